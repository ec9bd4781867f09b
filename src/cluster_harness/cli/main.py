"""Main CLI entry point using Typer."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from cluster_harness import __version__
from cluster_harness.cli.commands import project, status, token, url
from cluster_harness.logging.config import configure_logging

app = typer.Typer(
    name="harness",
    help="Cluster harness CLI for ephemeral integration-test projects.",
    add_completion=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"harness version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: ~/.config/cluster-harness/config.yaml).",
    ),
) -> None:
    """Cluster harness CLI - provision and inspect integration-test projects."""
    configure_logging(verbose=verbose, debug=debug)
    ctx.obj = {"config_path": config}


# Register subcommands
app.add_typer(project.app, name="project")
app.add_typer(token.app, name="token")
app.command()(status.status)
app.command()(url.url)


if __name__ == "__main__":
    app()
