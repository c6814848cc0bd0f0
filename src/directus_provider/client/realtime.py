"""Realtime module -- Directus' websocket subscription API.

The websocket url is derived from the client url (``https`` becomes
``wss``, ``/websocket`` is appended) unless ``RealtimeOptions.url`` is set.

Authentication follows ``RealtimeOptions.auth_mode``:

- ``public`` -- no token is sent;
- ``handshake`` -- an ``auth`` message is sent right after connecting and
  its reply must not be an error;
- ``strict`` -- the token is passed as ``access_token`` in the url.

Incoming ``ping`` messages are answered with ``pong`` when
``heartbeat`` is enabled and are not returned by :meth:`RealtimeClient.receive`.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Optional

import httpx
import websockets
from websockets.exceptions import WebSocketException

from directus_provider.client.base import CapabilityModule
from directus_provider.exceptions import AuthError, ConnectionError_
from directus_provider.models import Capability, RealtimeOptions

logger = logging.getLogger(__name__)


class RealtimeClient(CapabilityModule):
    """Websocket connection with subscribe / unsubscribe helpers.

    Example::

        await client.realtime.connect()
        uid = await client.realtime.subscribe("messages", {"fields": ["*"]})
        event = await client.realtime.receive()
        await client.realtime.disconnect()
    """

    capability = Capability.REALTIME

    def __init__(self, options: Optional[RealtimeOptions] = None) -> None:
        super().__init__()
        self._options = options or RealtimeOptions()
        self._ws: Any = None
        self._uids = itertools.count(1)

    @property
    def options(self) -> RealtimeOptions:
        return self._options

    @property
    def url(self) -> str:
        """The websocket url this module connects to."""
        if self._options.url:
            return self._options.url
        base = httpx.URL(self.client.url)
        scheme = "wss" if base.scheme == "https" else "ws"
        path = base.path.rstrip("/") + "/websocket"
        return str(base.copy_with(scheme=scheme, path=path))

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        """Open the websocket, retrying up to ``reconnect_retries`` times.

        Raises:
            ConnectionError_: When every attempt fails.
            AuthError: When the handshake ``auth`` message is rejected.
        """
        if self._ws is not None:
            return
        token = None
        if self._options.auth_mode != "public":
            token = await self.client.get_token()

        url = self.url
        if self._options.auth_mode == "strict" and token:
            url = str(httpx.URL(url).copy_merge_params({"access_token": token}))

        retries = self._options.reconnect_retries
        for attempt in range(retries + 1):
            try:
                self._ws = await websockets.connect(url)
                break
            except (OSError, WebSocketException) as exc:
                if attempt >= retries:
                    raise ConnectionError_(
                        f"Websocket connection to {self.url} failed: {exc}"
                    ) from exc
                logger.debug(
                    "Websocket connect failed: %s, retrying in %ss (attempt %s/%s)",
                    exc, self._options.reconnect_delay, attempt + 1, retries,
                )
                await asyncio.sleep(self._options.reconnect_delay)

        if self._options.auth_mode == "handshake" and token:
            await self.send({"type": "auth", "access_token": token})
            reply = await self.receive()
            if reply.get("type") == "auth" and reply.get("status") == "error":
                await self.disconnect()
                error = reply.get("error") or {}
                raise AuthError(f"Realtime authentication failed: {error.get('message', error)}")

    async def send(self, message: dict[str, Any]) -> None:
        ws = self._require_connection()
        await ws.send(json.dumps(message))

    async def receive(self) -> dict[str, Any]:
        """Return the next non-heartbeat message."""
        ws = self._require_connection()
        while True:
            message = json.loads(await ws.recv())
            if self._options.heartbeat and message.get("type") == "ping":
                await self.send({"type": "pong"})
                continue
            return message

    async def subscribe(
        self,
        collection: str,
        query: Optional[dict[str, Any]] = None,
        uid: Optional[str] = None,
    ) -> str:
        """Subscribe to *collection* and return the subscription uid."""
        uid = uid or str(next(self._uids))
        message: dict[str, Any] = {"type": "subscribe", "collection": collection, "uid": uid}
        if query:
            message["query"] = query
        await self.send(message)
        return uid

    async def unsubscribe(self, uid: str) -> None:
        await self.send({"type": "unsubscribe", "uid": uid})

    async def disconnect(self) -> None:
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()

    async def aclose(self) -> None:
        await self.disconnect()

    def _require_connection(self) -> Any:
        if self._ws is None:
            raise ConnectionError_("Realtime connection is not open; call connect() first")
        return self._ws
