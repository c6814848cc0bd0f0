"""Authentication state for directus_provider.

This package keeps a provider's ``loading / authenticated /
unauthenticated`` status in step with a pluggable credential store.

The main entry points are:

- :class:`AuthStorage` -- abstract async credential store, with the
  :class:`MemoryAuthStorage` and :class:`FileAuthStorage` backends.
- :class:`AuthStorageAdapter` -- wraps a store so every write publishes
  the auth state it implies.
- :class:`AuthStateMachine` -- holds the current state, runs the startup
  probe and notifies an observer on change.

Typical usage::

    machine = AuthStateMachine(auto_login=True, on_change=print)
    adapter = AuthStorageAdapter(FileAuthStorage(), machine)
    await machine.probe(adapter)
"""

from directus_provider.auth.adapter import AuthStorageAdapter
from directus_provider.auth.state import AuthStateMachine, AuthStateObserver
from directus_provider.auth.storage import AuthStorage, FileAuthStorage, MemoryAuthStorage

__all__ = [
    "AuthStateMachine",
    "AuthStateObserver",
    "AuthStorage",
    "AuthStorageAdapter",
    "FileAuthStorage",
    "MemoryAuthStorage",
]
