"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from cluster_harness.core.config import ConfigFileError, load_config
from cluster_harness.integrations.kubernetes.config import HarnessConfig

console = Console()


def load_cli_config(ctx: typer.Context, **overrides: Any) -> HarnessConfig:
    """Load configuration for a command, exiting with code 2 when it is invalid.

    Args:
        ctx: Typer context carrying the ``--config`` path.
        **overrides: Values given on the command line.
    """
    obj = ctx.obj or {}
    try:
        return load_config(obj.get("config_path"), **overrides)
    except (ConfigFileError, ValidationError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=2) from e
