"""directus_provider -- a Directus client composed from capability modules, with live auth state.

Pick the capability modules an application needs once, then mount a
provider per Directus url.  The provider builds a client exposing exactly
those modules and keeps a ``loading / authenticated / unauthenticated``
status in step with a pluggable async credential store.

Typical usage::

    from directus_provider import CapabilityConfig, create_directus_provider

    kit = create_directus_provider(CapabilityConfig(authentication=True, rest=True))

    async with kit.provider("https://cms.example.com", auto_login=True):
        snapshot = kit.use_directus()
        await snapshot.directus.auth.login("me@example.com", "secret")

The module-level :data:`default_kit`, :func:`use_directus` and
:data:`DirectusContext` are a ready-made kit with no capability modules.

Modules:
    provider: Provider, kit and consumer accessor.
    builder: Client assembly from a capability config.
    auth: Credential stores, write-intercepting adapter and state machine.
    client: Base client and capability modules.
    models: Pydantic models shared across the package.
    config: XDG-aware settings for the CLI.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"

from directus_provider.auth import (  # noqa: E402
    AuthStateMachine,
    AuthStorage,
    AuthStorageAdapter,
    FileAuthStorage,
    MemoryAuthStorage,
)
from directus_provider.builder import build_client  # noqa: E402
from directus_provider.client import DirectusClient  # noqa: E402
from directus_provider.exceptions import (  # noqa: E402
    ConfigurationError,
    DirectusProviderError,
    StorageError,
)
from directus_provider.models import (  # noqa: E402
    AUTH_STORAGE_KEY,
    AuthenticationData,
    AuthenticationMode,
    AuthenticationOptions,
    AuthState,
    Capability,
    CapabilityConfig,
    GraphqlOptions,
    RealtimeOptions,
    RestOptions,
    Snapshot,
    StaticTokenOptions,
)
from directus_provider.provider import (  # noqa: E402
    DirectusKit,
    DirectusProvider,
    create_directus_provider,
)

default_kit = create_directus_provider()
DirectusContext = default_kit.context
use_directus = default_kit.use_directus

__all__ = [
    "AUTH_STORAGE_KEY",
    "AuthState",
    "AuthStateMachine",
    "AuthStorage",
    "AuthStorageAdapter",
    "AuthenticationData",
    "AuthenticationMode",
    "AuthenticationOptions",
    "Capability",
    "CapabilityConfig",
    "ConfigurationError",
    "DirectusClient",
    "DirectusContext",
    "DirectusKit",
    "DirectusProvider",
    "DirectusProviderError",
    "FileAuthStorage",
    "GraphqlOptions",
    "MemoryAuthStorage",
    "RealtimeOptions",
    "RestOptions",
    "Snapshot",
    "StaticTokenOptions",
    "StorageError",
    "build_client",
    "create_directus_provider",
    "default_kit",
    "use_directus",
]
