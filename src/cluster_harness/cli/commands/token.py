"""Token commands: validate and refresh the cluster bearer token."""

from __future__ import annotations

import typer
from rich.console import Console

from cluster_harness.cli.common import load_cli_config
from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.exceptions import (
    AuthenticationError,
    KubernetesError,
)
from cluster_harness.services.kubernetes.credential_guard import CredentialGuard

app = typer.Typer(help="Check the cluster bearer token.")
console = Console()


@app.command("check")
def check(
    ctx: typer.Context,
    show: bool = typer.Option(
        False,
        "--show",
        help="Print the token after validation.",
    ),
) -> None:
    """Probe the cluster and refresh the token if it has expired."""
    config = load_cli_config(ctx)
    try:
        with KubernetesClient(config) as client:
            previous = client.credentials.token
            CredentialGuard(client).ensure_valid()
            current = client.credentials.token
    except AuthenticationError as e:
        console.print("[red]The session is not authenticated.[/red]")
        console.print(f"Run: [bold]{e.remediation}[/bold]")
        raise typer.Exit(code=1) from e
    except KubernetesError as e:
        console.print(f"[red]Token check failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    if current != previous:
        console.print("[yellow]Token had expired and was refreshed.[/yellow]")
    else:
        console.print("[green]Token is valid.[/green]")
    if show and current:
        console.print(current)
