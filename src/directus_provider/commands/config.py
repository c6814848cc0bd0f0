"""Config commands -- view and modify the CLI settings.

Provides the ``directus-provider config`` sub-command group for reading,
updating and resetting :class:`~directus_provider.models.ProviderSettings`.
"""

from __future__ import annotations

import typer

from directus_provider.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective settings.

    Example::

        directus-provider config show --json
    """
    from directus_provider.config import get_config_dir, resolve_settings
    from directus_provider.exceptions import DirectusProviderError

    url = ctx.obj.get("url") if ctx.obj else None
    try:
        settings = resolve_settings(cli_url=url)
    except DirectusProviderError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config directory: {get_config_dir()}")
    format_response(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Setting key (dot notation, e.g. 'capabilities.graphql')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the current value (bool, int or
    str) and the result is validated before saving.

    Example::

        directus-provider config set api_url https://cms.example.com
        directus-provider config set capabilities.graphql true
        directus-provider config set auto_login false
    """
    from directus_provider.config import load_settings, save_settings
    from directus_provider.models import ProviderSettings

    settings = load_settings()
    data = settings.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    coerced: object
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_settings = ProviderSettings.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_settings(new_settings)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset settings to defaults.  Asks for confirmation unless ``--force``."""
    from directus_provider.config import save_settings
    from directus_provider.models import ProviderSettings

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all settings to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_settings(ProviderSettings())
    success("Settings reset to defaults.")
