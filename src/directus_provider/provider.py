"""Provider and consumer accessor -- one client and one auth state per mount.

:func:`create_directus_provider` fixes a :class:`CapabilityConfig` and
returns a :class:`DirectusKit`.  The kit makes :class:`DirectusProvider`
instances and owns the scope they publish into, a
:class:`contextvars.ContextVar` private to that kit, so providers built from
different kits never see each other.

A provider is an async context manager.  While mounted it holds:

- a :class:`~directus_provider.client.base.DirectusClient`, rebuilt only
  when :meth:`DirectusProvider.update` changes the url;
- an :class:`~directus_provider.auth.state.AuthStateMachine` fed by the
  :class:`~directus_provider.auth.adapter.AuthStorageAdapter` the
  authentication module writes through, plus the optional startup probe;
- the current :class:`~directus_provider.models.Snapshot`, replaced
  whenever either of the above changes.

Code running inside the ``async with`` block reads the snapshot with
:meth:`DirectusKit.use_directus`.

Example::

    kit = create_directus_provider(CapabilityConfig(authentication=True, rest=True))

    async with kit.provider("https://cms.example.com", auto_login=True) as provider:
        await provider.ready()
        snapshot = kit.use_directus()
        if snapshot.auth_state is AuthState.UNAUTHENTICATED:
            await snapshot.directus.auth.login("me@example.com", "secret")
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from contextvars import ContextVar, Token
from typing import Any, Callable, Optional, Union

import httpx

from directus_provider.auth.adapter import AuthStorageAdapter
from directus_provider.auth.state import AuthStateMachine, AuthStateObserver
from directus_provider.auth.storage import FileAuthStorage
from directus_provider.builder import build_client, coerce_config, validate_api_url
from directus_provider.client.base import DirectusClient
from directus_provider.exceptions import ConfigurationError
from directus_provider.models import (
    AuthenticationOptions,
    AuthState,
    CapabilityConfig,
    Snapshot,
)

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[Snapshot], None]


class DirectusKit:
    """A capability config plus the scope its providers publish into.

    Create one with :func:`create_directus_provider`.
    """

    def __init__(self, config: Union[CapabilityConfig, Mapping[str, Any], None] = None) -> None:
        self._config = coerce_config(config)
        self._context: ContextVar[Optional[DirectusProvider]] = ContextVar(
            f"directus_provider_scope_{id(self):x}", default=None
        )

    @property
    def config(self) -> CapabilityConfig:
        return self._config

    @property
    def context(self) -> ContextVar[Optional[DirectusProvider]]:
        """The scope variable holding the innermost mounted provider."""
        return self._context

    def provider(
        self,
        api_url: str,
        auto_login: bool = False,
        on_auth_state_changed: Optional[AuthStateObserver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> DirectusProvider:
        """Return an unmounted provider bound to this kit.

        Args:
            api_url: Url of the Directus instance.
            auto_login: Probe the credential store on mount and start in
                ``AuthState.LOADING`` until it answers.
            on_auth_state_changed: Called with the initial state on mount and
                with every later state change.
            transport: Optional httpx transport for the HTTP modules.
        """
        return DirectusProvider(self, api_url, auto_login, on_auth_state_changed, transport)

    def storage(self) -> Any:
        """Return the credential backend providers of this kit wrap.

        ``AuthenticationOptions.storage`` when configured, otherwise the
        durable :class:`~directus_provider.auth.storage.FileAuthStorage`.
        """
        options = self._config.authentication
        if isinstance(options, AuthenticationOptions) and options.storage is not None:
            return options.storage
        return FileAuthStorage()

    def use_directus(self) -> Snapshot:
        """Return the snapshot of the innermost mounted provider.

        Raises:
            ConfigurationError: When no provider of this kit is mounted in
                the current context.
        """
        provider = self._context.get()
        if provider is None:
            raise ConfigurationError("use_directus has to be used within the DirectusProvider")
        return provider.snapshot

    current = use_directus


class DirectusProvider:
    """Owns one client and one auth state machine per mount.

    Use as an async context manager; see the module docstring.
    """

    def __init__(
        self,
        kit: DirectusKit,
        api_url: str,
        auto_login: bool = False,
        on_auth_state_changed: Optional[AuthStateObserver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._kit = kit
        self._api_url = validate_api_url(api_url)
        self._auto_login = auto_login
        self._on_auth_state_changed = on_auth_state_changed
        self._transport = transport
        self._listeners: list[SnapshotListener] = []

        self._state_machine: Optional[AuthStateMachine] = None
        self._adapter: Optional[AuthStorageAdapter] = None
        self._client: Optional[DirectusClient] = None
        self._snapshot: Optional[Snapshot] = None
        self._probe_task: Optional[asyncio.Task[AuthState]] = None
        self._scope_token: Optional[Token[Optional[DirectusProvider]]] = None

    # ------------------------------------------------------------------ #
    # Read side
    # ------------------------------------------------------------------ #

    @property
    def mounted(self) -> bool:
        return self._scope_token is not None

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def snapshot(self) -> Snapshot:
        if self._snapshot is None:
            raise ConfigurationError("The DirectusProvider is not mounted")
        return self._snapshot

    @property
    def directus(self) -> DirectusClient:
        return self.snapshot.directus

    @property
    def auth_state(self) -> AuthState:
        return self.snapshot.auth_state

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* with every new snapshot; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def ready(self) -> AuthState:
        """Wait for a pending startup probe and return the auth state."""
        if self._probe_task is not None and not self._probe_task.done():
            await asyncio.shield(self._probe_task)
        return self.auth_state

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> DirectusProvider:
        if self.mounted:
            raise ConfigurationError("This DirectusProvider is already mounted")

        machine = AuthStateMachine(self._auto_login, on_change=self._on_state_change)
        self._state_machine = machine
        self._adapter = AuthStorageAdapter(self._kit.storage(), machine)
        self._client = build_client(
            self._api_url, self._kit.config, self._adapter, transport=self._transport
        )
        self._snapshot = Snapshot(
            api_url=self._api_url, directus=self._client, auth_state=machine.state
        )
        self._scope_token = self._kit.context.set(self)
        try:
            if self._on_auth_state_changed is not None:
                self._on_auth_state_changed(machine.state)

            if self._auto_login:
                self._probe_task = asyncio.get_running_loop().create_task(
                    machine.probe(self._adapter)
                )
                self._probe_task.add_done_callback(_log_probe_crash)
        except BaseException:
            await self._teardown()
            self._snapshot = None
            raise
        logger.debug("Mounted provider for %s (auto_login=%s)", self._api_url, self._auto_login)
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self._teardown()
        logger.debug("Unmounted provider for %s", self._api_url)

    async def _teardown(self) -> None:
        if self._state_machine is None or self._client is None:
            raise ConfigurationError("The DirectusProvider is not mounted")
        self._state_machine.close()
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._probe_task
        self._probe_task = None

        if self._scope_token is not None:
            self._kit.context.reset(self._scope_token)
            self._scope_token = None
        self._listeners.clear()
        await self._client.aclose()

    async def update(self, api_url: str) -> Snapshot:
        """Re-render with *api_url*.

        The client is rebuilt, and the old one closed, only when the url
        actually changes; otherwise the current snapshot is returned as is.
        """
        previous, adapter = self._client, self._adapter
        if not self.mounted or previous is None or adapter is None:
            raise ConfigurationError("The DirectusProvider is not mounted")
        if api_url == self._api_url:
            return self.snapshot

        validate_api_url(api_url)
        self._client = build_client(
            api_url, self._kit.config, adapter, transport=self._transport
        )
        self._api_url = api_url
        self._publish(
            Snapshot(api_url=api_url, directus=self._client, auth_state=self.auth_state)
        )
        logger.debug("Rebuilt client for %s", api_url)
        await previous.aclose()
        return self.snapshot

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _on_state_change(self, state: AuthState) -> None:
        self._publish(self.snapshot.model_copy(update={"auth_state": state}))
        if self._on_auth_state_changed is not None:
            self._on_auth_state_changed(state)

    def _publish(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)


def _log_probe_crash(task: asyncio.Task[AuthState]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Auth state observer failed during startup probe", exc_info=exc)


def create_directus_provider(
    config: Union[CapabilityConfig, Mapping[str, Any], None] = None,
) -> DirectusKit:
    """Fix a capability config and return the kit that provides it.

    Raises:
        ConfigurationError: If *config* is malformed.

    Example::

        kit = create_directus_provider({"rest": True, "static_token": "abc"})
    """
    return DirectusKit(config)
