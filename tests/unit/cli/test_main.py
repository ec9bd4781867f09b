"""Tests for main CLI module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from cluster_harness.cli.main import app


class TestCLIMain:
    """Test main CLI entry point."""

    @pytest.mark.unit
    def test_help_option(self, cli_runner: CliRunner) -> None:
        """Test --help lists the command groups."""
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("status", "token", "project", "url"):
            assert command in result.stdout

    @pytest.mark.unit
    def test_version_option(self, cli_runner: CliRunner) -> None:
        """Test --version option displays version."""
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "harness version" in result.stdout

    @pytest.mark.unit
    def test_logging_flags_forwarded(
        self, cli_runner: CliRunner, _no_logging_setup: MagicMock
    ) -> None:
        """Test --verbose and --debug reach the logging setup."""
        cli_runner.invoke(app, ["--verbose", "--debug", "project", "--help"])
        _no_logging_setup.assert_called_once_with(verbose=True, debug=True)

    @pytest.mark.unit
    def test_invalid_config_exits_2(self, cli_runner: CliRunner, temp_dir: Path) -> None:
        """Test an invalid configuration file is reported with exit code 2."""
        config_path = temp_dir / "bad.yaml"
        config_path.write_text("namespace: Not_Valid\n")

        result = cli_runner.invoke(app, ["--config", str(config_path), "status"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.stdout
