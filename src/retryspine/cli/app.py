"""
Root Typer application for the retryspine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="retryspine",
    help="Resilient request execution with retries, backoff and circuit breaking.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from retryspine import __version__

        typer.echo(f"retryspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs."),
) -> None:
    """retryspine CLI: simulate flaky endpoints and inspect settings."""
    from retryspine.cli.utils import err_console
    from retryspine.core.logging import configure_logging
    from retryspine.core.settings import get_settings

    try:
        settings = get_settings()
    except ValueError as e:
        err_console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(1) from e

    configure_logging(
        level="DEBUG" if verbose else "ERROR",
        json_format=bool(settings.json_logs),
    )


# ── Sub-command registration ─────────────────────────────────────────────

from retryspine.cli.config import app as config_app  # noqa: E402
from retryspine.cli.scenario import app as scenario_app  # noqa: E402

app.add_typer(scenario_app, name="scenario", help="Run simulated failure scenarios.")
app.add_typer(config_app, name="config", help="Configuration inspection.")
