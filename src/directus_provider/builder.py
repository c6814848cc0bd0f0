"""Client builder -- assembles a :class:`DirectusClient` from a capability config.

:func:`build_client` creates the base client for a url and attaches one
module per enabled capability, in :meth:`Capability.ordered` order so the
authentication module is always present before the modules that ask it for
tokens.  The result is sealed: its capability set never changes.

Configuration mistakes are reported here, at build time, as
:class:`~directus_provider.exceptions.ConfigurationError` rather than on
first use.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional, Union

import httpx
from pydantic import ValidationError

from directus_provider.client.authentication import AuthenticationClient
from directus_provider.client.base import CapabilityModule, DirectusClient
from directus_provider.client.graphql import GraphqlClient
from directus_provider.client.realtime import RealtimeClient
from directus_provider.client.rest import RestClient
from directus_provider.client.static_token import StaticTokenClient
from directus_provider.exceptions import ConfigurationError
from directus_provider.models import (
    AuthenticationOptions,
    Capability,
    CapabilityConfig,
    GraphqlOptions,
    RealtimeOptions,
    RestOptions,
    StaticTokenOptions,
)

logger = logging.getLogger(__name__)


def coerce_config(config: Union[CapabilityConfig, Mapping[str, Any], None]) -> CapabilityConfig:
    """Return *config* as a validated :class:`CapabilityConfig`.

    Raises:
        ConfigurationError: If *config* is malformed.
    """
    if config is None:
        config = CapabilityConfig()
    elif not isinstance(config, CapabilityConfig):
        try:
            config = CapabilityConfig.model_validate(dict(config))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid capability config: {exc}") from exc
    validate_config(config)
    return config


def validate_config(config: CapabilityConfig) -> None:
    """Check the semantic rules pydantic cannot express.

    Raises:
        ConfigurationError: If the static-token capability has no token.
    """
    token = config.static_token
    if token is not None and not token.access_token.strip():
        raise ConfigurationError(
            "The static_token capability requires a non-empty access_token"
        )


def validate_api_url(api_url: str) -> str:
    """Return *api_url* if it is an absolute http(s) url.

    Raises:
        ConfigurationError: Otherwise.
    """
    if not api_url or not api_url.strip():
        raise ConfigurationError("api_url is required")
    try:
        url = httpx.URL(api_url)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"Invalid api_url '{api_url}': {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            f"Invalid api_url '{api_url}': expected an absolute http(s) url"
        )
    return api_url


def _authentication(options: Any, storage: Any) -> CapabilityModule:
    return AuthenticationClient(options or AuthenticationOptions(), storage)


def _rest(options: Any, storage: Any) -> CapabilityModule:
    return RestClient(options or RestOptions())


def _graphql(options: Any, storage: Any) -> CapabilityModule:
    return GraphqlClient(options or GraphqlOptions())


def _realtime(options: Any, storage: Any) -> CapabilityModule:
    return RealtimeClient(options or RealtimeOptions())


def _static_token(options: Any, storage: Any) -> CapabilityModule:
    if not isinstance(options, StaticTokenOptions):
        raise ConfigurationError("The static_token capability requires StaticTokenOptions")
    return StaticTokenClient(options.access_token)


_FACTORIES: dict[Capability, Callable[[Any, Any], CapabilityModule]] = {
    Capability.AUTHENTICATION: _authentication,
    Capability.REST: _rest,
    Capability.GRAPHQL: _graphql,
    Capability.REALTIME: _realtime,
    Capability.STATIC_TOKEN: _static_token,
}


def build_client(
    api_url: str,
    config: Union[CapabilityConfig, Mapping[str, Any], None],
    auth_storage: Any,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> DirectusClient:
    """Build a sealed client exposing exactly the configured capabilities.

    Args:
        api_url: Url of the Directus instance.
        config: Which capabilities to attach.
        auth_storage: Credential sink for the authentication module,
            normally an :class:`~directus_provider.auth.adapter.AuthStorageAdapter`.
        transport: Optional httpx transport shared by the HTTP modules.

    Returns:
        A new :class:`DirectusClient`.  Calling again with the same inputs
        gives an equivalent client that shares no state with this one.

    Raises:
        ConfigurationError: If *api_url* or *config* is invalid.

    Example::

        client = build_client("https://cms.example.com", CapabilityConfig(rest=True), adapter)
        client.rest       # RestClient
        client.graphql    # raises ConfigurationError
    """
    validate_api_url(api_url)
    config = coerce_config(config)

    client = DirectusClient(api_url, transport=transport)
    for capability in config.enabled():
        module = _FACTORIES[capability](config.options_for(capability), auth_storage)
        client.with_(module)
    client.seal()
    logger.debug("Built %r", client)
    return client
