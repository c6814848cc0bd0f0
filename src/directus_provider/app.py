"""Typer application and CLI entry point for directus-provider.

The CLI is a thin shell over the library: every ``auth`` command mounts a
:class:`~directus_provider.provider.DirectusProvider` built from the
resolved :class:`~directus_provider.models.ProviderSettings`.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.  It installs a SIGINT handler, invokes the Typer app
and turns stray :class:`~directus_provider.exceptions.DirectusProviderError`
instances into their exit codes.
"""

from __future__ import annotations

import signal
import sys
from typing import Any, Optional

import typer

from directus_provider import __version__
from directus_provider.commands.auth import auth_app
from directus_provider.commands.config import config_app
from directus_provider.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="directus-provider",
    help="Inspect and manage Directus logins for directus-provider applications.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(auth_app, name="auth", help="Login state management.")
app.add_typer(config_app, name="config", help="Settings management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"directus-provider {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    url: Optional[str] = typer.Option(
        None, "--url", "-u", help="Directus url (overrides DIRECTUS_URL and settings)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~directus_provider.output.OutputManager`,
    routes library logging to stderr and stores shared options in
    ``ctx.obj``.
    """
    from directus_provider.output import (
        OutputFormat,
        OutputManager,
        configure_logging,
        set_output,
    )

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["url"] = url
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``directus-provider`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from directus_provider.exceptions import DirectusProviderError
        from directus_provider.output import error

        if isinstance(exc, DirectusProviderError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
