"""Authenticated-request module: login, refresh and logout against ``/auth``.

The module never keeps tokens itself.  Every credential it obtains or
clears goes through the storage it was built with, which inside a provider
is an :class:`~directus_provider.auth.adapter.AuthStorageAdapter`, so each
write also moves the provider's auth state.

Writes are serialised with an :class:`asyncio.Lock`; the adapter relies on
there being at most one write in flight.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from directus_provider.client.base import CapabilityModule
from directus_provider.client.http import HttpModuleMixin, map_response_error
from directus_provider.exceptions import AuthError, ConnectionError_
from directus_provider.models import (
    AuthenticationData,
    AuthenticationMode,
    AuthenticationOptions,
    Capability,
)

logger = logging.getLogger(__name__)


def _coerce(value: Any) -> Optional[AuthenticationData]:
    if value is None or isinstance(value, AuthenticationData):
        return value
    if isinstance(value, Mapping):
        return AuthenticationData.model_validate(dict(value))
    return AuthenticationData.model_validate(value, from_attributes=True)


class AuthenticationClient(HttpModuleMixin, CapabilityModule):
    """Email/password authentication with token refresh.

    Args:
        options: Mode and refresh settings.
        storage: Credential sink with async ``get``/``set``.

    Example::

        await client.auth.login("admin@example.com", "secret")
        token = await client.auth.get_token()
        await client.auth.logout()
    """

    capability = Capability.AUTHENTICATION

    def __init__(self, options: AuthenticationOptions, storage: Any) -> None:
        super().__init__()
        self._options = options
        self._storage = storage
        self._lock = asyncio.Lock()

    @property
    def options(self) -> AuthenticationOptions:
        return self._options

    @property
    def storage(self) -> Any:
        return self._storage

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def login(
        self, email: str, password: str, otp: Optional[str] = None
    ) -> AuthenticationData:
        """Exchange credentials for tokens and store them.

        Raises:
            AuthError: If Directus rejects the credentials.
            ConnectionError_: On network failure.
        """
        body: dict[str, Any] = {"email": email, "password": password}
        if otp:
            body["otp"] = otp
        if self._options.mode is not AuthenticationMode.JSON:
            body["mode"] = self._options.mode.value
        data = await self._post_tokens("/auth/login", body)
        logger.debug("Logged in as %s", email)
        return data

    async def refresh(self) -> AuthenticationData:
        """Trade the refresh token for a new access token and store it.

        In cookie and session mode the refresh token travels as a cookie,
        so only JSON mode requires one in storage.

        Raises:
            AuthError: If no refresh token is available or Directus rejects it.
        """
        current = _coerce(await self._storage.get())
        body: dict[str, Any] = {"mode": self._options.mode.value}
        if self._options.mode is AuthenticationMode.JSON:
            if current is None or not current.refresh_token:
                raise AuthError("No refresh token available; log in again")
            body["refresh_token"] = current.refresh_token
        return await self._post_tokens("/auth/refresh", body)

    async def logout(self) -> None:
        """Invalidate the session remotely and clear stored credentials.

        Stored credentials are cleared even when the remote call fails; the
        remote error is then re-raised.
        """
        current = _coerce(await self._storage.get())
        try:
            body: dict[str, Any] = {"mode": self._options.mode.value}
            if current is not None and current.refresh_token:
                body["refresh_token"] = current.refresh_token
            if current is not None or self._options.mode is not AuthenticationMode.JSON:
                response = await self._send("POST", "/auth/logout", body)
                map_response_error(response)
        finally:
            await self._write(None)

    async def get_token(self) -> Optional[str]:
        """Return the current access token, refreshing it first if it is about to expire."""
        current = _coerce(await self._storage.get())
        if current is None or not current.access_token:
            return None
        if self._should_refresh(current):
            try:
                current = await self.refresh()
            except AuthError:
                logger.debug("Token refresh rejected; using the stored token")
        return current.access_token

    async def set_token(self, access_token: Optional[str]) -> None:
        """Store *access_token* as-is; an empty value logs out locally."""
        await self._write(AuthenticationData(access_token=access_token) if access_token else None)

    async def aclose(self) -> None:
        await self._close_http()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _should_refresh(self, current: AuthenticationData) -> bool:
        if not self._options.auto_refresh or current.expires_at is None:
            return False
        now_ms = int(time.time() * 1000)
        return current.expires_at - now_ms <= self._options.ms_refresh_before_expires

    async def _post_tokens(self, path: str, body: dict[str, Any]) -> AuthenticationData:
        response = await self._send("POST", path, body)
        map_response_error(response)
        data = AuthenticationData.from_response(response.json())
        await self._write(data)
        return data

    async def _send(self, method: str, path: str, body: dict[str, Any]) -> httpx.Response:
        http = self._open_http(self.client.url, self.client.transport)
        try:
            return await http.request(method, path, json=body)
        except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
            raise ConnectionError_(f"{method} {path} failed: {exc}") from exc

    async def _write(self, value: Optional[AuthenticationData]) -> None:
        async with self._lock:
            await self._storage.set(value)
