"""Credential storage backends.

A provider never persists credentials itself; it reads and writes them
through an :class:`AuthStorage`, an async two-method contract:

- ``get()`` returns the stored :class:`~directus_provider.models.AuthenticationData`
  or ``None`` when nothing is stored.
- ``set(value)`` replaces the stored record; ``None`` clears it.

Two interchangeable backends ship with the package:

- :class:`MemoryAuthStorage` -- transient, lives as long as the process.
- :class:`FileAuthStorage` -- durable, one JSON file per key under
  ``~/.local/share/directus-provider/credentials/`` (XDG) written
  atomically with ``0o600`` permissions.

Any object with compatible ``get``/``set`` coroutines can be passed as
``AuthenticationOptions(storage=...)``; subclassing :class:`AuthStorage` is
not required.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from directus_provider.config import _atomic_write, get_credentials_dir
from directus_provider.models import AUTH_STORAGE_KEY, AuthenticationData

logger = logging.getLogger(__name__)


class AuthStorage(ABC):
    """Abstract async credential store."""

    @abstractmethod
    async def get(self) -> Optional[AuthenticationData]:
        """Return the stored credential, or ``None`` when absent."""
        ...

    @abstractmethod
    async def set(self, value: Optional[AuthenticationData]) -> None:
        """Replace the stored credential; ``None`` clears it."""
        ...


class MemoryAuthStorage(AuthStorage):
    """Process-local store.  Useful for scripts and tests.

    Args:
        initial: Optional credential to start with.
    """

    def __init__(self, initial: Optional[AuthenticationData] = None) -> None:
        self._value = initial

    async def get(self) -> Optional[AuthenticationData]:
        return self._value

    async def set(self, value: Optional[AuthenticationData]) -> None:
        self._value = value


class FileAuthStorage(AuthStorage):
    """Durable store backed by a JSON file in the data directory.

    All writes are atomic: content is written to a temporary file in the
    same directory, fsynced, then renamed into place.  Blocking file I/O
    runs in a worker thread via :func:`asyncio.to_thread`.

    Args:
        key: File stem; defaults to :data:`~directus_provider.models.AUTH_STORAGE_KEY`.
        directory: Override for the credentials directory.

    Example::

        store = FileAuthStorage()
        await store.set(AuthenticationData(access_token="tok"))
        assert (await store.get()).access_token == "tok"
    """

    def __init__(self, key: str = AUTH_STORAGE_KEY, directory: Optional[Path] = None) -> None:
        self._key = key
        self._directory = directory

    @property
    def path(self) -> Path:
        """The filesystem path of the credential file."""
        directory = self._directory if self._directory is not None else get_credentials_dir()
        return directory / f"{self._key}.json"

    async def get(self) -> Optional[AuthenticationData]:
        return await asyncio.to_thread(self._load)

    async def set(self, value: Optional[AuthenticationData]) -> None:
        await asyncio.to_thread(self._save, value)

    def _load(self) -> Optional[AuthenticationData]:
        path = self.path
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return AuthenticationData.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            logger.debug("Ignoring unreadable credential file %s: %s", path, exc)
            return None

    def _save(self, value: Any) -> None:
        path = self.path
        if value is None:
            if path.is_file():
                path.unlink()
            return
        if not isinstance(value, AuthenticationData):
            value = AuthenticationData.model_validate(value)
        text = json.dumps(value.model_dump(mode="json"), indent=2) + "\n"
        _atomic_write(path, text, mode=0o600)
