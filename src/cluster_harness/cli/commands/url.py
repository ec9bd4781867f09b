"""URL command: resolve a proxy URL into a workload's pod."""

from __future__ import annotations

import typer
from rich.console import Console

from cluster_harness.cli.common import load_cli_config
from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.exceptions import KubernetesError
from cluster_harness.integrations.kubernetes.proxy import PodProxy

console = Console()


def _parse_selectors(selectors: list[str]) -> dict[str, str]:
    labels: dict[str, str] = {}
    for selector in selectors:
        key, sep, value = selector.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got '{selector}'", param_hint="--selector")
        labels[key.strip()] = value.strip()
    return labels


def url(
    ctx: typer.Context,
    selector: list[str] = typer.Option(
        ...,
        "--selector",
        "-l",
        help="Pod label selector as key=value (repeatable).",
    ),
    port: int = typer.Option(..., "--port", "-p", help="Container port."),
    path: str = typer.Option("", "--path", help="Path on the pod."),
    index: int = typer.Option(0, "--index", "-i", help="Pod position among matches."),
) -> None:
    """Print the API-server proxy URL for a pod selected by labels."""
    labels = _parse_selectors(selector)
    config = load_cli_config(ctx)
    try:
        with KubernetesClient(config) as client:
            resolved = PodProxy(client).url(labels, index, port, path)
    except KubernetesError as e:
        console.print(f"[red]Cannot resolve URL:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(resolved, soft_wrap=True)
