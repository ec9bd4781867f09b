"""Shared fixtures for cluster service tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.config import HarnessConfig
from cluster_harness.integrations.kubernetes.credentials import CredentialStore


@pytest.fixture
def harness_config() -> HarnessConfig:
    """Harness config with OAuth credentials."""
    return HarnessConfig(
        namespace="ci-tests",
        master_url="https://api.example.test:6443",
        username="developer",
        password="secret",
    )


@pytest.fixture
def mock_k8s_client(harness_config: HarnessConfig) -> MagicMock:
    """Create a mock cluster client with a real credential store.

    Error translation is the real one, so tests can raise ApiException from
    the project calls and get harness errors back.
    """
    mock_client = MagicMock()
    mock_client.config = harness_config
    mock_client.namespace = harness_config.namespace
    mock_client.master_url = harness_config.master_url
    mock_client.timeout = harness_config.timeout
    mock_client.credentials = CredentialStore("sha256~current")
    mock_client.translate_api_exception.side_effect = KubernetesClient.translate_api_exception
    return mock_client


@pytest.fixture
def mock_issuer() -> MagicMock:
    """Token issuer handing out a fresh token."""
    issuer = MagicMock()
    issuer.get_token.return_value = "sha256~fresh"
    return issuer
