"""Auth commands -- inspect and change the login stored on this machine.

Every command mounts a provider over the durable
:class:`~directus_provider.auth.storage.FileAuthStorage`, so the CLI sees
exactly the auth state an application using the same storage key would.

Typical workflow::

    directus-provider --url https://cms.example.com auth login --email me@example.com
    directus-provider auth status
    directus-provider auth logout
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import typer

from directus_provider.auth.storage import FileAuthStorage
from directus_provider.exceptions import (
    AuthError,
    ConfigurationError,
    ConnectionError_,
    DirectusProviderError,
    ServerError,
)
from directus_provider.models import (
    AuthenticationOptions,
    AuthState,
    Capability,
    CapabilityConfig,
    ProviderSettings,
)
from directus_provider.output import error, format_response, info, success, suggest, warning
from directus_provider.provider import DirectusProvider, create_directus_provider

T = TypeVar("T")

auth_app = typer.Typer(no_args_is_help=True)

transport: Optional[httpx.AsyncBaseTransport] = None
"""httpx transport used by the commands; ``None`` means real network I/O."""


def _settings(ctx: typer.Context) -> ProviderSettings:
    from directus_provider.config import resolve_settings

    url = ctx.obj.get("url") if ctx.obj else None
    settings = resolve_settings(cli_url=url)
    if not settings.api_url:
        raise ConfigurationError(
            "No Directus url configured; pass --url or set DIRECTUS_URL"
        )
    return settings


def _provider(
    settings: ProviderSettings, auto_login: Optional[bool] = None
) -> DirectusProvider:
    """Mountable provider whose credentials live in the settings' storage key.

    *auto_login* defaults to ``settings.auto_login``.
    """
    if not settings.api_url:
        raise ConfigurationError(
            "No Directus url configured; pass --url or set DIRECTUS_URL"
        )
    capabilities = settings.capabilities
    data = capabilities.model_dump()
    options = capabilities.options_for(Capability.AUTHENTICATION)
    if isinstance(options, AuthenticationOptions):
        data["authentication"] = options.model_copy(
            update={"storage": FileAuthStorage(settings.storage_key)}
        )
    kit = create_directus_provider(CapabilityConfig.model_validate(data))
    if auto_login is None:
        auto_login = settings.auto_login
    return kit.provider(settings.api_url, auto_login=auto_login, transport=transport)


def _run(
    ctx: typer.Context,
    body: Callable[[ProviderSettings], Awaitable[T]],
) -> T:
    """Run *body* on a fresh event loop, mapping library errors to exit codes."""
    try:
        settings = _settings(ctx)
        return asyncio.run(body(settings))
    except DirectusProviderError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show whether a login is stored for the configured Directus url.

    Always mounts with auto-login, whatever the ``auto_login`` setting, and
    waits for the startup probe. The other commands follow the setting.

    Example::

        directus-provider auth status --json
    """

    async def body(settings: ProviderSettings) -> dict[str, Any]:
        async with _provider(settings, auto_login=True) as provider:
            state = await provider.ready()
            return {"api_url": provider.api_url, "auth_state": state.value}

    result = _run(ctx, body)
    format_response(result)
    if result["auth_state"] == AuthState.UNAUTHENTICATED.value:
        suggest("Log in: directus-provider auth login --email <email>")


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", help="Account email."),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Account password."
    ),
    otp: Optional[str] = typer.Option(None, "--otp", help="One-time password for 2FA."),
) -> None:
    """Log in and store the returned tokens.

    Example::

        directus-provider auth login --email admin@example.com
    """

    async def body(settings: ProviderSettings) -> AuthState:
        async with _provider(settings) as provider:
            await provider.directus.auth.login(email, password, otp=otp)
            return provider.auth_state

    state = _run(ctx, body)
    if state is AuthState.AUTHENTICATED:
        success(f"Logged in as {email}.")
    else:
        warning("Login returned no access token.")
        raise typer.Exit(code=AuthError.exit_code)


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Log out remotely (best effort) and clear the stored tokens.

    Example::

        directus-provider auth logout
    """

    async def body(settings: ProviderSettings) -> AuthState:
        async with _provider(settings) as provider:
            await provider.ready()
            try:
                await provider.directus.auth.logout()
            except (AuthError, ConnectionError_, ServerError) as exc:
                warning(f"Remote logout failed: {exc}")
            return provider.auth_state

    _run(ctx, body)
    success("Logged out.")


@auth_app.command("whoami")
def auth_whoami(ctx: typer.Context) -> None:
    """Print the current user (``GET /users/me``).

    Requires the ``rest`` capability.
    """

    async def body(settings: ProviderSettings) -> Any:
        async with _provider(settings) as provider:
            await provider.ready()
            if await provider.directus.get_token() is None:
                raise AuthError("Not logged in")
            return await provider.directus.rest.read_me()

    info("Fetching current user...")
    format_response(_run(ctx, body))
