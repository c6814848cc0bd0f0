"""httpx plumbing shared by the HTTP capability modules."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from directus_provider.exceptions import AuthError, NotFoundError, ServerError

logger = logging.getLogger(__name__)


class HttpModuleMixin:
    """Lazily owns one :class:`httpx.AsyncClient` per module instance.

    Nothing touches the network until the first request, so building a
    client never needs a running event loop.
    """

    _http_client: Optional[httpx.AsyncClient] = None

    def _open_http(
        self,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport],
        timeout: float = 30,
        verify: bool = True,
    ) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=base_url,
                timeout=timeout,
                verify=verify,
                transport=transport,
                follow_redirects=True,
            )
        return self._http_client

    async def _close_http(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def bearer(headers: Optional[dict[str, str]], token: Optional[str]) -> dict[str, str]:
    """Return *headers* with an ``Authorization`` header added when possible."""
    merged = dict(headers or {})
    if token and "Authorization" not in merged:
        merged["Authorization"] = f"Bearer {token}"
    return merged


def encode_query(query: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Encode a Directus query dict into URL parameters.

    ``fields`` lists are comma-joined; nested structures such as ``filter``
    and ``deep`` are sent as JSON strings.
    """
    params: dict[str, Any] = {}
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            params[key] = ",".join(value)
        elif isinstance(value, (dict, list, tuple)):
            params[key] = json.dumps(value)
        else:
            params[key] = value
    return params


def _error_message(response: httpx.Response) -> str:
    try:
        detail = response.json()
    except Exception:
        return response.text[:200] if response.text else ""
    if isinstance(detail, dict):
        errors = detail.get("errors")
        if isinstance(errors, list) and errors:
            return "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
        return str(detail.get("message") or detail.get("error") or detail.get("detail") or "")
    return str(detail)


def map_response_error(response: httpx.Response) -> None:
    """Raise a typed exception for error HTTP status codes."""
    status = response.status_code
    if status < 400:
        return

    msg = _error_message(response)
    prefix = f"HTTP {status}"
    full_msg = f"{prefix}: {msg}" if msg else prefix
    logger.debug("Request failed: %s", full_msg)

    if status in (401, 403):
        raise AuthError(full_msg)
    if status == 404:
        raise NotFoundError(full_msg)
    raise ServerError(full_msg)


def extract_data(response: httpx.Response) -> Any:
    """Return the body of a successful response, unwrapping ``data``.

    Empty bodies (e.g. ``204 No Content``) yield ``None``; non-JSON bodies
    are returned as text.
    """
    if not response.content:
        return None
    try:
        body = response.json()
    except Exception:
        return response.text
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body
