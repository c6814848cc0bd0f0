"""Canonical Pydantic models shared across all directus_provider modules.

The models fall into three groups:

**Auth models** -- :class:`AuthState`, :class:`AuthenticationMode` and
:class:`AuthenticationData`, the record a credential storage backend holds.

**Capability models** -- :class:`Capability`, the per-module option models
(:class:`AuthenticationOptions`, :class:`RestOptions`,
:class:`GraphqlOptions`, :class:`RealtimeOptions`,
:class:`StaticTokenOptions`) and :class:`CapabilityConfig`, which says
which modules a provider attaches to its client.

**Provider models** -- :class:`Snapshot`, the immutable view published to
consumers, and :class:`ProviderSettings`, the CLI's persisted settings.
"""

from __future__ import annotations

import enum
import time
from collections.abc import Mapping
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


AUTH_STORAGE_KEY = "directus-data"
"""Default key (file name) the durable credential store persists under."""


# --- Auth ---


class AuthState(str, enum.Enum):
    """Tri-state authentication status published by a provider.

    ``LOADING`` only exists while a startup probe is pending.
    """

    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class AuthenticationMode(str, enum.Enum):
    """How the authentication module exchanges tokens with Directus."""

    JSON = "json"
    COOKIE = "cookie"
    SESSION = "session"


class AuthenticationData(BaseModel):
    """Credential record persisted by an auth storage backend.

    Only :attr:`access_token` matters to the auth state: a non-empty value
    means authenticated.  Unknown keys returned by the server are preserved.

    Example::

        data = AuthenticationData(access_token="tok", expires=900000)
        assert has_access_token(data)
    """

    model_config = ConfigDict(extra="allow")

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires: Optional[int] = Field(
        default=None, description="Token lifetime in milliseconds"
    )
    expires_at: Optional[int] = Field(
        default=None, description="Token expiry as a Unix timestamp in milliseconds"
    )

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> AuthenticationData:
        """Build a record from a ``/auth/login`` or ``/auth/refresh`` body.

        The body may or may not be wrapped in Directus' ``data`` envelope.
        ``expires_at`` is computed from ``expires`` when the server omits it.
        """
        body = payload.get("data", payload) if isinstance(payload, Mapping) else {}
        data = cls.model_validate(dict(body or {}))
        if data.expires is not None and data.expires_at is None:
            data.expires_at = int(time.time() * 1000) + data.expires
        return data


def has_access_token(value: Any) -> bool:
    """Return ``True`` when *value* carries a non-empty ``access_token``.

    Accepts ``None``, an :class:`AuthenticationData`, or a plain mapping
    since third-party backends may hand back dicts.
    """
    if value is None:
        return False
    if isinstance(value, Mapping):
        token = value.get("access_token")
    else:
        token = getattr(value, "access_token", None)
    return bool(token)


# --- Capabilities ---


class Capability(str, enum.Enum):
    """Optional modules that can be attached to a Directus client."""

    AUTHENTICATION = "authentication"
    REST = "rest"
    GRAPHQL = "graphql"
    REALTIME = "realtime"
    STATIC_TOKEN = "static_token"

    @classmethod
    def ordered(cls) -> tuple[Capability, ...]:
        """Attach order; authentication first so later modules can use it."""
        return (
            cls.AUTHENTICATION,
            cls.REST,
            cls.GRAPHQL,
            cls.REALTIME,
            cls.STATIC_TOKEN,
        )

    @property
    def accessor(self) -> str:
        """Attribute name the module is exposed under on the client."""
        if self is Capability.AUTHENTICATION:
            return "auth"
        return self.value


class AuthenticationOptions(BaseModel):
    """Overrides for the authentication module.

    ``storage`` replaces the default durable backend; it is never serialised.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    mode: AuthenticationMode = AuthenticationMode.JSON
    auto_refresh: bool = True
    ms_refresh_before_expires: int = Field(
        default=30_000, description="Refresh this many ms before the token expires"
    )
    storage: Optional[Any] = Field(default=None, exclude=True)

    @field_validator("storage")
    @classmethod
    def _check_storage(cls, value: Any) -> Any:
        if value is None:
            return value
        for name in ("get", "set"):
            if not callable(getattr(value, name, None)):
                raise ValueError(f"storage must provide an async '{name}' method")
        return value


class RestOptions(BaseModel):
    """Overrides for the REST module."""

    model_config = ConfigDict(frozen=True)

    timeout: float = 30
    verify_ssl: bool = True
    max_retries: int = Field(default=0, ge=0)


class GraphqlOptions(BaseModel):
    """Overrides for the GraphQL module."""

    model_config = ConfigDict(frozen=True)

    timeout: float = 30


class RealtimeOptions(BaseModel):
    """Overrides for the realtime (websocket) module."""

    model_config = ConfigDict(frozen=True)

    auth_mode: Literal["handshake", "strict", "public"] = Field(
        default="handshake", description="handshake, strict or public"
    )
    url: Optional[str] = Field(
        default=None, description="Explicit websocket URL (derived from api_url otherwise)"
    )
    heartbeat: bool = True
    reconnect_retries: int = Field(default=10, ge=0)
    reconnect_delay: float = Field(default=1.0, ge=0)


class StaticTokenOptions(BaseModel):
    """Configuration for the static-token module."""

    model_config = ConfigDict(frozen=True)

    access_token: str = ""


class CapabilityConfig(BaseModel):
    """Which capability modules a provider attaches, and with what options.

    Each of ``authentication``, ``rest``, ``graphql`` and ``realtime`` is
    ``False`` (absent), ``True`` (enabled with defaults) or an options model
    (enabled with overrides).  ``static_token`` is ``None`` or a token; a
    bare string is shorthand for ``StaticTokenOptions(access_token=...)``.

    Example::

        config = CapabilityConfig(rest=True, authentication={"mode": "cookie"})
        assert config.enabled() == (Capability.AUTHENTICATION, Capability.REST)
    """

    model_config = ConfigDict(frozen=True)

    authentication: Union[bool, AuthenticationOptions] = False
    rest: Union[bool, RestOptions] = False
    graphql: Union[bool, GraphqlOptions] = False
    realtime: Union[bool, RealtimeOptions] = False
    static_token: Optional[StaticTokenOptions] = None

    @field_validator("static_token", mode="before")
    @classmethod
    def _coerce_token(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"access_token": value}
        return value

    def is_enabled(self, capability: Capability) -> bool:
        value = getattr(self, capability.value)
        if capability is Capability.STATIC_TOKEN:
            return value is not None
        return value is not False

    def enabled(self) -> tuple[Capability, ...]:
        """Return the configured capabilities in attach order."""
        return tuple(c for c in Capability.ordered() if self.is_enabled(c))

    def options_for(self, capability: Capability) -> Optional[BaseModel]:
        """Return the options model for *capability*, or ``None`` if absent.

        ``True`` resolves to the module's default options.
        """
        if not self.is_enabled(capability):
            return None
        value = getattr(self, capability.value)
        if value is True:
            return _DEFAULT_OPTIONS[capability]()
        return value


_DEFAULT_OPTIONS: dict[Capability, type[BaseModel]] = {
    Capability.AUTHENTICATION: AuthenticationOptions,
    Capability.REST: RestOptions,
    Capability.GRAPHQL: GraphqlOptions,
    Capability.REALTIME: RealtimeOptions,
    Capability.STATIC_TOKEN: StaticTokenOptions,
}


# --- Provider ---


class Snapshot(BaseModel):
    """Immutable view of a mounted provider at one point in time.

    Two snapshots are equal when they carry the same url, the *same* client
    object and the same auth state.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    api_url: str
    directus: Any
    auth_state: AuthState


class ProviderSettings(BaseModel):
    """CLI settings persisted at ``~/.config/directus-provider/config.json``.

    Loaded and saved by :func:`~directus_provider.config.load_settings` and
    :func:`~directus_provider.config.save_settings`.
    """

    api_url: Optional[str] = Field(
        default=None, description="Directus instance url"
    )
    auto_login: bool = True
    storage_key: str = Field(
        default=AUTH_STORAGE_KEY, description="Credential file name under the data directory"
    )
    capabilities: CapabilityConfig = Field(
        default_factory=lambda: CapabilityConfig(authentication=True, rest=True)
    )
