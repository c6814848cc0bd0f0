"""Directus client and its capability modules.

:class:`DirectusClient` is the base value; modules are attached with
:meth:`DirectusClient.with_` and reached through fixed accessors
(``client.auth``, ``client.rest``, ``client.graphql``, ``client.realtime``,
``client.static_token``).  Use :func:`~directus_provider.builder.build_client`
to assemble one from a :class:`~directus_provider.models.CapabilityConfig`.

Example::

    from directus_provider.client import DirectusClient, RestClient

    client = DirectusClient("https://cms.example.com").with_(RestClient()).seal()
    async with client:
        await client.rest.server_ping()
"""

from directus_provider.client.authentication import AuthenticationClient
from directus_provider.client.base import CapabilityModule, DirectusClient
from directus_provider.client.graphql import GraphqlClient
from directus_provider.client.realtime import RealtimeClient
from directus_provider.client.rest import RestClient
from directus_provider.client.static_token import StaticTokenClient

__all__ = [
    "AuthenticationClient",
    "CapabilityModule",
    "DirectusClient",
    "GraphqlClient",
    "RealtimeClient",
    "RestClient",
    "StaticTokenClient",
]
