"""Project commands: provision or remove the test project by hand."""

from __future__ import annotations

import structlog
import typer
from rich.console import Console
from rich.panel import Panel

from cluster_harness.cli.common import load_cli_config
from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.exceptions import (
    AuthenticationError,
    KubernetesError,
    KubernetesNotFoundError,
)
from cluster_harness.services.kubernetes.project_manager import ProjectLifecycleManager

app = typer.Typer(help="Manage the integration-test project.")
console = Console()
logger = structlog.get_logger()


@app.command("ensure")
def ensure(
    ctx: typer.Context,
    namespace: str | None = typer.Option(
        None,
        "--namespace",
        "-n",
        help="Project to ensure (overrides configuration).",
    ),
) -> None:
    """Create the test project unless it already exists.

    The project is kept after the command exits; remove it with
    ``harness project delete``.
    """
    config = load_cli_config(ctx, namespace=namespace)
    try:
        with KubernetesClient(config) as client:
            manager = ProjectLifecycleManager(client, cleanup_on_termination=False)
            record = manager.ensure_project()
    except AuthenticationError as e:
        console.print("[red]The session is not authenticated.[/red]")
        console.print(f"Run: [bold]{e.remediation}[/bold]")
        raise typer.Exit(code=1) from e
    except KubernetesError as e:
        console.print(f"[red]Failed to ensure project:[/red] {e}")
        raise typer.Exit(code=1) from e

    if record is None:
        console.print(f"Project [bold]{config.namespace}[/bold] already exists.")
    else:
        console.print(
            Panel(
                f"[green]Created project {record.name}[/green]\n\n"
                f"Created at: {record.created_at.isoformat()}",
                title="Project",
            )
        )


@app.command("delete")
def delete(
    ctx: typer.Context,
    name: str | None = typer.Argument(
        None,
        help="Project to delete (default: the configured namespace).",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation.",
    ),
) -> None:
    """Delete a project."""
    config = load_cli_config(ctx, namespace=name)
    if not yes:
        typer.confirm(f"Delete project '{config.namespace}'?", abort=True)

    logger.info("deleting_project_from_cli", name=config.namespace)
    try:
        with KubernetesClient(config) as client:
            try:
                client.delete_project(config.namespace)
            except Exception as e:
                raise client.translate_api_exception(e, "Project", config.namespace) from e
    except KubernetesNotFoundError:
        console.print(f"Project [bold]{config.namespace}[/bold] does not exist.")
        return
    except KubernetesError as e:
        console.print(f"[red]Failed to delete project:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Deleted project {config.namespace}[/green]")
