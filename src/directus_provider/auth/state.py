"""Authentication state machine.

One :class:`AuthStateMachine` exists per mounted provider.  It holds one
of the three :class:`~directus_provider.models.AuthState` values and moves
between them on two kinds of events:

- a credential write intercepted by
  :class:`~directus_provider.auth.adapter.AuthStorageAdapter`, which calls
  :meth:`AuthStateMachine.publish`;
- the optional startup probe, :meth:`AuthStateMachine.probe`, which reads
  the credential store once.

The two are independent and may interleave; whichever publishes last wins.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from directus_provider.models import AuthState, has_access_token

logger = logging.getLogger(__name__)

AuthStateObserver = Callable[[AuthState], None]


class AuthStateMachine:
    """Tri-state auth status with change notification.

    Args:
        auto_login: Start in ``LOADING`` and allow a startup probe.  When
            ``False`` the machine starts ``UNAUTHENTICATED``.
        on_change: Called with the new state after every actual change.
    """

    def __init__(
        self,
        auto_login: bool = False,
        on_change: Optional[AuthStateObserver] = None,
    ) -> None:
        self._auto_login = auto_login
        self._state = AuthState.LOADING if auto_login else AuthState.UNAUTHENTICATED
        self._on_change = on_change
        self._probed = False
        self._closed = False

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, state: AuthState) -> bool:
        """Move to *state* and notify the observer.

        Republishing the current state, or publishing after :meth:`close`,
        does nothing.

        Returns:
            ``True`` if the state changed.
        """
        if self._closed:
            logger.debug("Ignoring %s: state machine is closed", state.value)
            return False
        if state is self._state:
            return False
        logger.debug("Auth state %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_change is not None:
            self._on_change(state)
        return True

    def publish_credential(self, value: Any) -> bool:
        """Publish the state implied by a credential record."""
        return self.publish(
            AuthState.AUTHENTICATED if has_access_token(value) else AuthState.UNAUTHENTICATED
        )

    async def probe(self, storage: Any) -> AuthState:
        """Read *storage* once and resolve ``LOADING``.

        Only runs when the machine was created with ``auto_login`` and has
        not probed yet; otherwise the current state is returned untouched.
        A failing ``get()`` is logged and treated as "no credential".
        """
        if not self._auto_login or self._probed:
            return self._state
        self._probed = True
        try:
            value = await storage.get()
        except Exception:
            logger.warning(
                "Startup credential probe failed; treating as logged out",
                exc_info=True,
            )
            value = None
        self.publish_credential(value)
        return self._state

    def close(self) -> None:
        """Stop accepting transitions (provider unmounted)."""
        self._closed = True
