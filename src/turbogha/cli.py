"""Command line entry point for turbogha.

Provides a Typer-based CLI to run the cache server and inspect the
resolved configuration.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import settings
from .logging_config import setup_logging

console = Console()

app = typer.Typer(
    name="turbogha",
    help="Turborepo remote cache backed by the CI cache service",
    rich_markup_mode="rich",
)

SECRET_FIELDS = {"ACTIONS_RUNTIME_TOKEN", "TURBOGHA_SERVER_TOKEN"}


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"turbogha version {__version__}")
        raise typer.Exit()


def _mask(value: str) -> str:
    if not value:
        return "[dim](not set)[/dim]"
    return "*" * 8


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """turbogha: Turborepo remote cache server.

    ## Commands

    * [bold cyan]serve[/bold cyan] - Run the remote cache server
    * [bold cyan]config[/bold cyan] - Show the resolved configuration
    """
    pass


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on"),
    log_file: bool = typer.Option(
        True, "--log-file/--no-log-file", help="Also write the log to <tempDir>/turbogha.log"
    ),
) -> None:
    """Run the remote cache server."""
    import uvicorn

    setup_logging(settings.server_log_file if log_file else None)

    bind_host = host or settings.TURBOGHA_SERVER_HOST
    bind_port = port or settings.TURBOGHA_SERVER_PORT
    mode = "remote" if settings.valid else "filesystem"
    console.print(
        f"[green]Starting turbogha[/green] on http://{bind_host}:{bind_port} "
        f"([cyan]{mode}[/cyan] cache)"
    )

    uvicorn.run(
        "turbogha.server.main:app",
        host=bind_host,
        port=bind_port,
        reload=False,
        log_config=None,
    )


@app.command()
def config() -> None:
    """Show the resolved configuration."""
    table = Table(title="turbogha configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for name, value in settings.model_dump().items():
        display = _mask(value) if name in SECRET_FIELDS else str(value)
        table.add_row(name, display)

    table.add_row("temp_dir", str(settings.temp_dir))
    table.add_row("mode", "remote" if settings.valid else "filesystem")
    console.print(table)


if __name__ == "__main__":
    app()
