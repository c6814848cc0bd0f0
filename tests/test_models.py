"""Tests for the Pydantic models in directus_provider.models."""

from __future__ import annotations

import time

import pytest
from pydantic import ValidationError

from directus_provider.auth.storage import MemoryAuthStorage
from directus_provider.models import (
    AuthenticationData,
    AuthenticationMode,
    AuthenticationOptions,
    AuthState,
    Capability,
    CapabilityConfig,
    ProviderSettings,
    RestOptions,
    Snapshot,
    StaticTokenOptions,
    has_access_token,
)


class TestAuthenticationData:
    def test_from_response_unwraps_data_envelope(self):
        data = AuthenticationData.from_response(
            {"data": {"access_token": "tok", "refresh_token": "ref", "expires": 900000}}
        )
        assert data.access_token == "tok"
        assert data.refresh_token == "ref"
        assert data.expires == 900000

    def test_from_response_computes_expires_at(self):
        before = int(time.time() * 1000)
        data = AuthenticationData.from_response({"access_token": "tok", "expires": 1000})
        assert data.expires_at is not None
        assert before + 1000 <= data.expires_at <= int(time.time() * 1000) + 1000

    def test_from_response_keeps_server_expires_at(self):
        data = AuthenticationData.from_response(
            {"access_token": "tok", "expires": 1000, "expires_at": 42}
        )
        assert data.expires_at == 42

    def test_extra_fields_preserved(self):
        data = AuthenticationData.model_validate({"access_token": "tok", "user": "u1"})
        assert data.model_dump()["user"] == "u1"


class TestHasAccessToken:
    @pytest.mark.parametrize(
        "value",
        [
            AuthenticationData(access_token="tok"),
            {"access_token": "tok"},
            AuthenticationData(access_token="x" * 4096),
        ],
    )
    def test_non_empty_token(self, value):
        assert has_access_token(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            None,
            AuthenticationData(),
            AuthenticationData(access_token=""),
            AuthenticationData(refresh_token="ref"),
            {},
            {"access_token": ""},
            {"access_token": None},
        ],
    )
    def test_missing_or_empty_token(self, value):
        assert has_access_token(value) is False


class TestCapability:
    def test_authentication_comes_first(self):
        assert Capability.ordered()[0] is Capability.AUTHENTICATION
        assert set(Capability.ordered()) == set(Capability)

    def test_accessor_names(self):
        assert Capability.AUTHENTICATION.accessor == "auth"
        assert Capability.REST.accessor == "rest"
        assert Capability.STATIC_TOKEN.accessor == "static_token"


class TestCapabilityConfig:
    def test_defaults_to_no_capabilities(self):
        assert CapabilityConfig().enabled() == ()

    def test_enabled_in_attach_order(self):
        config = CapabilityConfig(graphql=True, rest=True, authentication=True)
        assert config.enabled() == (
            Capability.AUTHENTICATION,
            Capability.REST,
            Capability.GRAPHQL,
        )

    def test_static_token_string_shorthand(self):
        config = CapabilityConfig(static_token="abc")
        assert config.static_token == StaticTokenOptions(access_token="abc")
        assert config.is_enabled(Capability.STATIC_TOKEN)

    def test_options_for_true_gives_defaults(self):
        config = CapabilityConfig(rest=True)
        assert config.options_for(Capability.REST) == RestOptions()

    def test_options_for_explicit_options(self):
        config = CapabilityConfig(rest={"max_retries": 3})
        options = config.options_for(Capability.REST)
        assert isinstance(options, RestOptions)
        assert options.max_retries == 3

    def test_options_for_absent_is_none(self):
        assert CapabilityConfig().options_for(Capability.GRAPHQL) is None

    def test_invalid_value_rejected(self):
        with pytest.raises(ValidationError):
            CapabilityConfig.model_validate({"graphql": "maybe"})

    @pytest.mark.parametrize("mode", ["handshak", "STRICT", ""])
    def test_unknown_realtime_auth_mode_rejected(self, mode):
        with pytest.raises(ValidationError):
            CapabilityConfig.model_validate({"realtime": {"auth_mode": mode}})

    @pytest.mark.parametrize("mode", ["handshake", "strict", "public"])
    def test_known_realtime_auth_modes(self, mode):
        config = CapabilityConfig.model_validate({"realtime": {"auth_mode": mode}})
        assert config.options_for(Capability.REALTIME).auth_mode == mode

    def test_frozen(self):
        config = CapabilityConfig(rest=True)
        with pytest.raises(ValidationError):
            config.rest = False  # type: ignore[misc]


class TestAuthenticationOptions:
    def test_defaults(self):
        options = AuthenticationOptions()
        assert options.mode is AuthenticationMode.JSON
        assert options.auto_refresh is True
        assert options.storage is None

    def test_accepts_storage_with_get_and_set(self):
        storage = MemoryAuthStorage()
        assert AuthenticationOptions(storage=storage).storage is storage

    def test_rejects_storage_without_set(self):
        class ReadOnly:
            async def get(self):
                return None

        with pytest.raises(ValidationError, match="set"):
            AuthenticationOptions(storage=ReadOnly())

    def test_storage_not_serialised(self):
        options = AuthenticationOptions(storage=MemoryAuthStorage())
        assert "storage" not in options.model_dump()


class TestSnapshot:
    def test_value_equal_when_same_client_and_state(self):
        client = object()
        a = Snapshot(api_url="https://x.test", directus=client, auth_state=AuthState.LOADING)
        b = Snapshot(api_url="https://x.test", directus=client, auth_state=AuthState.LOADING)
        assert a == b

    def test_differs_on_auth_state(self):
        client = object()
        a = Snapshot(api_url="https://x.test", directus=client, auth_state=AuthState.LOADING)
        assert a != a.model_copy(update={"auth_state": AuthState.AUTHENTICATED})


class TestProviderSettings:
    def test_defaults(self):
        settings = ProviderSettings()
        assert settings.api_url is None
        assert settings.auto_login is True
        assert settings.storage_key == "directus-data"
        assert settings.capabilities.enabled() == (
            Capability.AUTHENTICATION,
            Capability.REST,
        )

    def test_round_trip_through_json(self):
        settings = ProviderSettings(
            api_url="https://cms.example.com",
            capabilities=CapabilityConfig(graphql=True, static_token="abc"),
        )
        restored = ProviderSettings.model_validate(settings.model_dump(mode="json"))
        assert restored == settings
