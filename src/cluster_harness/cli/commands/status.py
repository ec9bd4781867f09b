"""Status command for showing harness configuration and cluster reachability."""

from __future__ import annotations

import platform

import structlog
import typer
from rich.console import Console
from rich.table import Table

from cluster_harness import __version__
from cluster_harness.cli.common import load_cli_config
from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.exceptions import KubernetesError

console = Console()
logger = structlog.get_logger()


def status(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed status information.",
    ),
) -> None:
    """Show harness configuration and whether the cluster is reachable."""
    logger.info("Checking harness status", verbose=verbose)
    config = load_cli_config(ctx)

    table = Table(title="Cluster Harness Status")
    table.add_column("Component", style="cyan", no_wrap=True)
    table.add_column("Status", style="green")
    table.add_column("Details", style="dim")

    table.add_row("CLI Version", __version__, "harness")
    table.add_row("Namespace", config.namespace, config.project_api)
    table.add_row("Cleanup", "enabled" if config.cleanup else "disabled", "")

    try:
        with KubernetesClient(config) as client:
            table.add_row("Master URL", client.master_url, client.get_current_context())
            table.add_row(
                "Token",
                "present" if client.credentials.has_token() else "missing",
                client.config.username or "",
            )
            if client.check_connection():
                table.add_row("Cluster", "reachable", client.get_cluster_version())
            else:
                table.add_row("Cluster", "[red]unreachable[/red]", "")
    except KubernetesError as e:
        table.add_row("Cluster", "[red]not configured[/red]", e.message)

    if verbose:
        table.add_row("Python", platform.python_version(), platform.python_implementation())
        table.add_row("Platform", platform.system(), platform.release())

    console.print(table)
    logger.info("Status check complete")
