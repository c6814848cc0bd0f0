"""Tests for the REST module using httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from directus_provider.auth.storage import MemoryAuthStorage
from directus_provider.builder import build_client
from directus_provider.client.http import encode_query, extract_data
from directus_provider.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from directus_provider.models import AuthenticationData, CapabilityConfig, RestOptions

API_URL = "https://cms.example.com"


def _client(handler, config: Any = None, storage: Any = None):
    return build_client(
        API_URL,
        config or CapabilityConfig(rest=True),
        storage or MemoryAuthStorage(),
        transport=httpx.MockTransport(handler),
    )


def _run(client, call):
    async def scenario():
        async with client:
            return await call(client)

    return asyncio.run(scenario())


# ---------------------------------------------------------------------------
# Requests and responses
# ---------------------------------------------------------------------------


class TestRequests:
    def test_read_items_unwraps_data(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": [{"id": 1}, {"id": 2}]})

        result = _run(_client(handler), lambda c: c.rest.read_items("articles"))
        assert result == [{"id": 1}, {"id": 2}]
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/items/articles"

    def test_query_is_encoded(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": []})

        query = {"fields": ["id", "title"], "filter": {"status": {"_eq": "published"}}, "limit": 5}
        _run(_client(handler), lambda c: c.rest.read_items("articles", query))
        params = seen[0].url.params
        assert params["fields"] == "id,title"
        assert json.loads(params["filter"]) == {"status": {"_eq": "published"}}
        assert params["limit"] == "5"

    def test_create_item_sends_json(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"id": 7, "title": "Hello"}})

        result = _run(_client(handler), lambda c: c.rest.create_item("articles", {"title": "Hello"}))
        assert result == {"id": 7, "title": "Hello"}
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"title": "Hello"}

    def test_update_and_delete_paths(self):
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            if request.method == "DELETE":
                return httpx.Response(204)
            return httpx.Response(200, json={"data": {"id": 3}})

        async def calls(client):
            await client.rest.update_item("articles", 3, {"title": "x"})
            return await client.rest.delete_item("articles", 3)

        assert _run(_client(handler), calls) is None
        assert seen == [("PATCH", "/items/articles/3"), ("DELETE", "/items/articles/3")]

    def test_read_me(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/users/me"
            return httpx.Response(200, json={"data": {"email": "me@example.com"}})

        assert _run(_client(handler), lambda c: c.rest.read_me()) == {"email": "me@example.com"}


class TestAuthorizationHeader:
    def test_no_token_no_header(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": "pong"})

        _run(_client(handler), lambda c: c.rest.server_ping())
        assert "authorization" not in seen[0].headers

    def test_static_token_sent(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": "pong"})

        client = _client(handler, CapabilityConfig(rest=True, static_token="static"))
        _run(client, lambda c: c.rest.server_ping())
        assert seen[0].headers["authorization"] == "Bearer static"

    def test_login_token_preferred_over_static(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": "pong"})

        storage = MemoryAuthStorage(AuthenticationData(access_token="user"))
        client = _client(
            handler,
            CapabilityConfig(authentication=True, rest=True, static_token="static"),
            storage,
        )
        _run(client, lambda c: c.rest.server_ping())
        assert seen[0].headers["authorization"] == "Bearer user"

    def test_explicit_header_kept(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": None})

        client = _client(handler, CapabilityConfig(rest=True, static_token="static"))
        _run(client, lambda c: c.rest.get("/server/info", headers={"Authorization": "Bearer other"}))
        assert seen[0].headers["authorization"] == "Bearer other"


# ---------------------------------------------------------------------------
# Errors and retries
# ---------------------------------------------------------------------------


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status,exc_type",
        [
            (401, AuthError),
            (403, AuthError),
            (404, NotFoundError),
            (400, ServerError),
            (500, ServerError),
        ],
    )
    def test_status_mapping(self, status, exc_type):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"errors": [{"message": "nope"}]})

        with pytest.raises(exc_type, match="nope"):
            _run(_client(handler), lambda c: c.rest.read_items("articles"))

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused")

        with pytest.raises(ConnectionError_, match="refused"):
            _run(_client(handler), lambda c: c.rest.server_ping())


class TestRetries:
    @pytest.fixture
    def sleeps(self, monkeypatch) -> list[float]:
        recorded: list[float] = []

        async def fake_sleep(delay: float, *args: Any, **kwargs: Any) -> None:
            recorded.append(delay)

        monkeypatch.setattr("directus_provider.client.rest.asyncio.sleep", fake_sleep)
        return recorded

    def test_retries_server_errors(self, sleeps):
        responses = [httpx.Response(503), httpx.Response(502), httpx.Response(200, json={"data": 1})]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        client = _client(handler, CapabilityConfig(rest=RestOptions(max_retries=2)))
        assert _run(client, lambda c: c.rest.server_ping()) == 1
        assert sleeps == [1, 2]

    def test_gives_up_after_max_retries(self, sleeps):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500, json={"errors": [{"message": "down"}]})

        client = _client(handler, CapabilityConfig(rest=RestOptions(max_retries=1)))
        with pytest.raises(ServerError, match="down"):
            _run(client, lambda c: c.rest.server_ping())
        assert len(calls) == 2

    def test_client_errors_not_retried(self, sleeps):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        client = _client(handler, CapabilityConfig(rest=RestOptions(max_retries=3)))
        with pytest.raises(NotFoundError):
            _run(client, lambda c: c.rest.read_item("articles", 1))
        assert len(calls) == 1
        assert sleeps == []

    def test_retries_connection_errors(self, sleeps):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("refused")
            return httpx.Response(200, json={"data": "pong"})

        client = _client(handler, CapabilityConfig(rest=RestOptions(max_retries=1)))
        assert _run(client, lambda c: c.rest.server_ping()) == "pong"
        assert sleeps == [1]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_encode_query_skips_none(self):
        assert encode_query({"limit": None, "offset": 10}) == {"offset": 10}

    def test_encode_query_mixed_list_is_json(self):
        assert encode_query({"sort": ["-date", 1]}) == {"sort": '["-date", 1]'}

    def test_extract_data_without_envelope(self):
        assert extract_data(httpx.Response(200, json=[1, 2])) == [1, 2]

    def test_extract_data_text_body(self):
        assert extract_data(httpx.Response(200, text="pong")) == "pong"

    def test_extract_data_empty_body(self):
        assert extract_data(httpx.Response(204)) is None
