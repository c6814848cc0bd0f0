"""Write-intercepting wrapper around a credential store.

:class:`AuthStorageAdapter` is what the authentication module receives as
its storage.  Reads pass straight through; every write first publishes the
auth state it implies and only then awaits the real backend, so the state
reflects intent even while slow persistence is still in flight.

A failed backend write raises :class:`~directus_provider.exceptions.StorageError`
but does not roll the published state back.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from directus_provider.auth.state import AuthStateMachine
from directus_provider.exceptions import StorageError
from directus_provider.models import AuthenticationData

logger = logging.getLogger(__name__)


class AuthStorageAdapter:
    """Decorates *storage* so writes drive *state_machine*.

    Args:
        storage: Any object with async ``get()`` and ``set(value)``.
        state_machine: The machine to publish derived states to.
    """

    def __init__(self, storage: Any, state_machine: AuthStateMachine) -> None:
        self._storage = storage
        self._state_machine = state_machine

    @property
    def storage(self) -> Any:
        """The wrapped backend."""
        return self._storage

    async def get(self) -> Optional[AuthenticationData]:
        return await self._storage.get()

    async def set(self, value: Optional[AuthenticationData]) -> None:
        self._state_machine.publish_credential(value)
        try:
            await self._storage.set(value)
        except Exception as exc:
            logger.debug("Credential write failed: %s", exc)
            raise StorageError(f"Failed to persist credentials: {exc}") from exc
