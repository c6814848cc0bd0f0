"""REST module -- request helpers for the Directus REST API.

:class:`RestClient` sends requests relative to the client's url, adds the
``Authorization`` header from :meth:`DirectusClient.get_token`, unwraps the
``data`` envelope and maps error statuses to typed exceptions.  With
``RestOptions(max_retries=n)`` 5xx responses and connection errors are
retried with exponential backoff (1 s, 2 s, 4 s, ...).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from directus_provider.client.base import CapabilityModule
from directus_provider.client.http import (
    HttpModuleMixin,
    bearer,
    encode_query,
    extract_data,
    map_response_error,
)
from directus_provider.exceptions import ConnectionError_, ServerError
from directus_provider.models import Capability, RestOptions

logger = logging.getLogger(__name__)


class RestClient(HttpModuleMixin, CapabilityModule):
    """Directus REST access.

    Example::

        articles = await client.rest.read_items("articles", {"limit": 5})
        await client.rest.update_item("articles", 1, {"title": "Hello"})
    """

    capability = Capability.REST

    def __init__(self, options: Optional[RestOptions] = None) -> None:
        super().__init__()
        self._options = options or RestOptions()

    @property
    def options(self) -> RestOptions:
        return self._options

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send a request and return the unwrapped response body.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE, ...).
            path: Path relative to the Directus url, e.g. ``/items/articles``.
            params: Directus query (``fields``, ``filter``, ``limit``, ...).
            json_body: JSON-serialisable request body.
            headers: Extra request headers.

        Returns:
            The ``data`` member of the response, the raw body when there is
            no envelope, or ``None`` for empty responses.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On 5xx (after retries) and other error statuses.
            ConnectionError_: On network / timeout errors after all retries.
        """
        token = await self.client.get_token()
        response = await self._execute_with_retry(
            method.upper(), path, encode_query(params), json_body, bearer(headers, token)
        )
        map_response_error(response)
        return extract_data(response)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    # Collection helpers

    async def read_items(self, collection: str, query: Optional[dict[str, Any]] = None) -> Any:
        return await self.get(f"/items/{collection}", params=query)

    async def read_item(
        self, collection: str, key: Any, query: Optional[dict[str, Any]] = None
    ) -> Any:
        return await self.get(f"/items/{collection}/{key}", params=query)

    async def create_item(self, collection: str, item: dict[str, Any]) -> Any:
        return await self.post(f"/items/{collection}", json_body=item)

    async def update_item(self, collection: str, key: Any, item: dict[str, Any]) -> Any:
        return await self.patch(f"/items/{collection}/{key}", json_body=item)

    async def delete_item(self, collection: str, key: Any) -> None:
        await self.delete(f"/items/{collection}/{key}")

    async def read_me(self, query: Optional[dict[str, Any]] = None) -> Any:
        """Return the current user (``/users/me``)."""
        return await self.get("/users/me", params=query)

    async def server_ping(self) -> Any:
        return await self.get("/server/ping")

    async def aclose(self) -> None:
        await self._close_http()

    async def _execute_with_retry(
        self,
        method: str,
        path: str,
        params: dict[str, Any],
        json_body: Any,
        headers: dict[str, str],
    ) -> httpx.Response:
        http = self._open_http(
            self.client.url,
            self.client.transport,
            timeout=self._options.timeout,
            verify=self._options.verify_ssl,
        )
        max_retries = self._options.max_retries

        for attempt in range(max_retries + 1):
            try:
                kwargs: dict[str, Any] = {"headers": headers, "params": params}
                if json_body is not None:
                    kwargs["json"] = json_body
                response = await http.request(method, path, **kwargs)

                if response.status_code >= 500 and attempt < max_retries:
                    delay = 2 ** attempt
                    logger.debug(
                        "Server error %s, retrying in %ss (attempt %s/%s)",
                        response.status_code, delay, attempt + 1, max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    logger.debug(
                        "Connection error: %s, retrying in %ss (attempt %s/%s)",
                        exc, delay, attempt + 1, max_retries,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

        raise ServerError("Request failed after all retries")  # pragma: no cover
