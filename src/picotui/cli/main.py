"""Main CLI entry point using Typer."""

from __future__ import annotations

import structlog
import typer
from rich.console import Console

from picotui import __version__
from picotui.core.config import PicotuiConfig
from picotui.core.exceptions import ConfigError
from picotui.logging.config import configure_logging

app = typer.Typer(
    name="picotui",
    help="Terminal dashboard for monitoring a Picodata cluster.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"picotui version {__version__}")
        raise typer.Exit()


@app.command()
def main(
    url: str | None = typer.Option(
        None,
        "--url",
        "-u",
        help="Picodata HTTP API base URL [default: http://localhost:8080].",
    ),
    refresh: int | None = typer.Option(
        None,
        "--refresh",
        "-r",
        min=0,
        help="Auto refresh interval in seconds, 0 disables it [default: 5].",
    ),
    debug: bool | None = typer.Option(
        None,
        "--debug",
        "-d",
        help="Write HTTP requests and responses to ./picotui.log.",
        show_default=False,
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Picodata cluster monitor."""
    try:
        config = PicotuiConfig.load({"base_url": url, "refresh_interval": refresh, "debug": debug})
    except ConfigError as e:
        err_console.print(f"Error: {e}", style="red", markup=False, highlight=False)
        raise typer.Exit(1) from e

    configure_logging(debug=config.debug)

    # Imported late so --help and --version stay fast.
    from picotui.tui.app import PicotuiApp

    try:
        dashboard = PicotuiApp(config)
        dashboard.run()
    except Exception as e:
        logger.exception("Dashboard failed")
        err_console.print(f"Error: {e}", style="red", markup=False, highlight=False)
        raise typer.Exit(1) from e

    if dashboard.return_code:
        raise typer.Exit(dashboard.return_code)


if __name__ == "__main__":
    app()
