"""Tests for AuthStorageAdapter -- writes drive the auth state before persistence."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from directus_provider.auth.adapter import AuthStorageAdapter
from directus_provider.auth.state import AuthStateMachine
from directus_provider.auth.storage import MemoryAuthStorage
from directus_provider.exceptions import StorageError
from directus_provider.models import AuthenticationData, AuthState


class GatedStorage(MemoryAuthStorage):
    """Memory store whose writes block until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def set(self, value: Optional[AuthenticationData]) -> None:
        await self.release.wait()
        await super().set(value)


class FailingStorage(MemoryAuthStorage):
    async def set(self, value: Optional[AuthenticationData]) -> None:
        raise OSError("disk full")


class RecordingStorage:
    """Duck-typed store (no AuthStorage base) that records calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.value: Any = None

    async def get(self) -> Any:
        self.calls.append(("get", None))
        return self.value

    async def set(self, value: Any) -> None:
        self.calls.append(("set", value))
        self.value = value


class TestWritesPublishState:
    @pytest.mark.parametrize(
        "value",
        [
            AuthenticationData(access_token="tok"),
            AuthenticationData(access_token="t" * 2048, refresh_token="ref"),
            {"access_token": "from-a-dict"},
        ],
    )
    def test_token_write_authenticates(self, value):
        machine = AuthStateMachine()
        adapter = AuthStorageAdapter(MemoryAuthStorage(), machine)
        asyncio.run(adapter.set(value))
        assert machine.state is AuthState.AUTHENTICATED

    @pytest.mark.parametrize(
        "value",
        [
            None,
            AuthenticationData(),
            AuthenticationData(access_token=""),
            AuthenticationData(refresh_token="ref"),
            {"access_token": ""},
        ],
    )
    def test_empty_write_unauthenticates(self, value):
        machine = AuthStateMachine()
        machine.publish(AuthState.AUTHENTICATED)
        adapter = AuthStorageAdapter(MemoryAuthStorage(), machine)
        asyncio.run(adapter.set(value))
        assert machine.state is AuthState.UNAUTHENTICATED

    def test_write_reaches_backend(self):
        storage = RecordingStorage()
        adapter = AuthStorageAdapter(storage, AuthStateMachine())
        data = AuthenticationData(access_token="tok")
        asyncio.run(adapter.set(data))
        assert storage.calls == [("set", data)]

    def test_get_passes_through_without_publishing(self):
        storage = RecordingStorage()
        storage.value = AuthenticationData(access_token="tok")
        changes: list[AuthState] = []
        machine = AuthStateMachine(on_change=changes.append)
        adapter = AuthStorageAdapter(storage, machine)
        assert asyncio.run(adapter.get()) is storage.value
        assert changes == []
        assert machine.state is AuthState.UNAUTHENTICATED

    def test_exposes_wrapped_storage(self):
        storage = MemoryAuthStorage()
        assert AuthStorageAdapter(storage, AuthStateMachine()).storage is storage


class TestOrdering:
    def test_authenticated_before_persistence_resolves(self):
        async def scenario():
            storage = GatedStorage()
            machine = AuthStateMachine()
            adapter = AuthStorageAdapter(storage, machine)

            task = asyncio.create_task(adapter.set(AuthenticationData(access_token="tok")))
            await asyncio.sleep(0)
            state_during_write = machine.state
            stored_during_write = await storage.get()

            storage.release.set()
            await task
            return state_during_write, stored_during_write, await storage.get()

        during, stored_during, stored_after = asyncio.run(scenario())
        assert during is AuthState.AUTHENTICATED
        assert stored_during is None
        assert stored_after is not None and stored_after.access_token == "tok"

    def test_observer_called_before_backend_write(self):
        events: list[str] = []

        class Store(RecordingStorage):
            async def set(self, value: Any) -> None:
                events.append("persist")
                await super().set(value)

        machine = AuthStateMachine(on_change=lambda state: events.append(state.value))
        adapter = AuthStorageAdapter(Store(), machine)
        asyncio.run(adapter.set(AuthenticationData(access_token="tok")))
        assert events == ["authenticated", "persist"]


class TestFailures:
    def test_backend_failure_raises_storage_error(self):
        adapter = AuthStorageAdapter(FailingStorage(), AuthStateMachine())
        with pytest.raises(StorageError, match="disk full") as exc_info:
            asyncio.run(adapter.set(AuthenticationData(access_token="tok")))
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_backend_failure_keeps_published_state(self):
        machine = AuthStateMachine()
        adapter = AuthStorageAdapter(FailingStorage(), machine)
        with pytest.raises(StorageError):
            asyncio.run(adapter.set(AuthenticationData(access_token="tok")))
        assert machine.state is AuthState.AUTHENTICATED
