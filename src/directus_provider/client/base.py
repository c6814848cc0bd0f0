"""Base Directus client and the capability-module protocol.

A :class:`DirectusClient` on its own only knows its url.  Functionality
comes from capability modules attached with :meth:`DirectusClient.with_`,
each exposed under a fixed accessor:

================  ==============  ===========================================
Capability        Accessor        Module
================  ==============  ===========================================
authentication    ``auth``        :class:`~directus_provider.client.authentication.AuthenticationClient`
rest              ``rest``        :class:`~directus_provider.client.rest.RestClient`
graphql           ``graphql``     :class:`~directus_provider.client.graphql.GraphqlClient`
realtime          ``realtime``    :class:`~directus_provider.client.realtime.RealtimeClient`
static_token      ``static_token`` :class:`~directus_provider.client.static_token.StaticTokenClient`
================  ==============  ===========================================

Reading the accessor of a module that was never attached raises
:class:`~directus_provider.exceptions.ConfigurationError`; it never returns
``None``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from directus_provider.exceptions import ConfigurationError
from directus_provider.models import Capability

if TYPE_CHECKING:
    from directus_provider.client.authentication import AuthenticationClient
    from directus_provider.client.graphql import GraphqlClient
    from directus_provider.client.realtime import RealtimeClient
    from directus_provider.client.rest import RestClient
    from directus_provider.client.static_token import StaticTokenClient

logger = logging.getLogger(__name__)


class CapabilityModule:
    """Base class for modules attachable to a :class:`DirectusClient`.

    Subclasses set :attr:`capability`.  :meth:`bind` is called once by
    :meth:`DirectusClient.with_`; :meth:`aclose` when the client closes.
    """

    capability: Capability

    def __init__(self) -> None:
        self._client: Optional[DirectusClient] = None

    @property
    def client(self) -> DirectusClient:
        if self._client is None:
            raise ConfigurationError(
                f"The {self.capability.value} module is not attached to a client"
            )
        return self._client

    def bind(self, client: DirectusClient) -> None:
        if self._client is not None:
            raise ConfigurationError(
                f"The {self.capability.value} module is already attached to a client"
            )
        self._client = client

    async def aclose(self) -> None:
        """Release network resources.  Default: nothing to release."""


class DirectusClient:
    """A Directus url plus a fixed set of capability modules.

    Args:
        url: Base url of the Directus instance.
        transport: Optional :mod:`httpx` transport shared by the HTTP
            modules (e.g. :class:`httpx.MockTransport` in tests).

    Example::

        client = DirectusClient("https://cms.example.com")
        client.with_(RestClient(RestOptions())).seal()
        items = await client.rest.read_items("articles")
    """

    def __init__(self, url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._url = url.rstrip("/")
        self._transport = transport
        self._modules: dict[Capability, CapabilityModule] = {}
        self._sealed = False

    def __repr__(self) -> str:
        names = ", ".join(c.value for c in self.capabilities_ordered()) or "none"
        return f"DirectusClient({self._url!r}, capabilities=[{names}])"

    @property
    def url(self) -> str:
        return self._url

    @property
    def transport(self) -> Optional[httpx.AsyncBaseTransport]:
        return self._transport

    # ------------------------------------------------------------------ #
    # Composition
    # ------------------------------------------------------------------ #

    def with_(self, module: CapabilityModule) -> DirectusClient:
        """Attach *module* and return ``self`` for chaining.

        Raises:
            ConfigurationError: If the client is sealed or the capability
                is already attached.
        """
        capability = module.capability
        if self._sealed:
            raise ConfigurationError(
                f"Cannot attach {capability.value}: the client's capabilities are fixed"
            )
        if capability in self._modules:
            raise ConfigurationError(f"Capability {capability.value} is already attached")
        module.bind(self)
        self._modules[capability] = module
        logger.debug("Attached %s module to %s", capability.value, self._url)
        return self

    def seal(self) -> DirectusClient:
        """Freeze the attached capability set."""
        self._sealed = True
        return self

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset(self._modules)

    def capabilities_ordered(self) -> tuple[Capability, ...]:
        return tuple(c for c in Capability.ordered() if c in self._modules)

    def has(self, capability: Capability) -> bool:
        return capability in self._modules

    def module(self, capability: Capability) -> CapabilityModule:
        """Return the attached module for *capability*.

        Raises:
            ConfigurationError: If the capability was not configured.
        """
        try:
            return self._modules[capability]
        except KeyError:
            raise ConfigurationError(
                f"The '{capability.value}' capability is not configured for this client; "
                f"enable it in the CapabilityConfig to use client.{capability.accessor}"
            ) from None

    @property
    def auth(self) -> AuthenticationClient:
        return self.module(Capability.AUTHENTICATION)  # type: ignore[return-value]

    @property
    def rest(self) -> RestClient:
        return self.module(Capability.REST)  # type: ignore[return-value]

    @property
    def graphql(self) -> GraphqlClient:
        return self.module(Capability.GRAPHQL)  # type: ignore[return-value]

    @property
    def realtime(self) -> RealtimeClient:
        return self.module(Capability.REALTIME)  # type: ignore[return-value]

    @property
    def static_token(self) -> StaticTokenClient:
        return self.module(Capability.STATIC_TOKEN)  # type: ignore[return-value]

    # ------------------------------------------------------------------ #
    # Shared services
    # ------------------------------------------------------------------ #

    async def get_token(self) -> Optional[str]:
        """Return the token to send with requests.

        The authentication module wins when it holds a token; the static
        token is the fallback.
        """
        if self.has(Capability.AUTHENTICATION):
            token = await self.auth.get_token()
            if token:
                return token
        if self.has(Capability.STATIC_TOKEN):
            return await self.static_token.get_token()
        return None

    async def aclose(self) -> None:
        """Close every attached module, last attached first."""
        for capability in reversed(self.capabilities_ordered()):
            await self._modules[capability].aclose()

    async def __aenter__(self) -> DirectusClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
