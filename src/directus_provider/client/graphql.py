"""GraphQL module -- queries against ``/graphql`` and ``/graphql/system``."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from directus_provider.client.base import CapabilityModule
from directus_provider.client.http import HttpModuleMixin, bearer, map_response_error
from directus_provider.exceptions import ConfigurationError, ConnectionError_, ServerError
from directus_provider.models import Capability, GraphqlOptions

_SCOPES = {"items": "/graphql", "system": "/graphql/system"}


class GraphqlClient(HttpModuleMixin, CapabilityModule):
    """Directus GraphQL access.

    Example::

        data = await client.graphql.query("{ articles { id title } }")
    """

    capability = Capability.GRAPHQL

    def __init__(self, options: Optional[GraphqlOptions] = None) -> None:
        super().__init__()
        self._options = options or GraphqlOptions()

    @property
    def options(self) -> GraphqlOptions:
        return self._options

    async def query(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        scope: str = "items",
    ) -> Any:
        """Run *query* and return its ``data`` member.

        Args:
            query: GraphQL document.
            variables: Optional variables.
            scope: ``"items"`` for collections, ``"system"`` for system data.

        Raises:
            ConfigurationError: For an unknown *scope*.
            ServerError: When the response carries GraphQL ``errors``.
        """
        try:
            path = _SCOPES[scope]
        except KeyError:
            raise ConfigurationError(
                f"Unknown GraphQL scope '{scope}'; expected one of {sorted(_SCOPES)}"
            ) from None

        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        token = await self.client.get_token()
        http = self._open_http(
            self.client.url, self.client.transport, timeout=self._options.timeout
        )
        try:
            response = await http.post(path, json=payload, headers=bearer(None, token))
        except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
            raise ConnectionError_(f"GraphQL request failed: {exc}") from exc
        map_response_error(response)

        body = response.json()
        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors)
            raise ServerError(f"GraphQL error: {messages}")
        return body.get("data") if isinstance(body, dict) else body

    async def aclose(self) -> None:
        await self._close_http()
