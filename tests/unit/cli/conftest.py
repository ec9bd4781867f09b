"""Shared fixtures for CLI tests."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest

from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.config import HarnessConfig
from cluster_harness.integrations.kubernetes.credentials import CredentialStore


@pytest.fixture(autouse=True)
def _no_logging_setup() -> Generator[MagicMock]:
    """Keep CLI invocations from installing log handlers."""
    with patch("cluster_harness.cli.main.configure_logging") as mock_configure:
        yield mock_configure


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Mock cluster client returned by ``with KubernetesClient(...)``."""
    config = HarnessConfig(
        namespace="harness-test",
        master_url="https://api.example.test:6443",
        username="developer",
        password="secret",
    )
    client = MagicMock()
    client.config = config
    client.namespace = config.namespace
    client.master_url = config.master_url
    client.credentials = CredentialStore("sha256~current")
    client.get_current_context.return_value = "dev"
    client.translate_api_exception.side_effect = KubernetesClient.translate_api_exception
    client.__enter__.return_value = client
    return client
