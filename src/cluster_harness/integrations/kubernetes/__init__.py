"""Cluster integration - API client, credentials, OAuth, pod proxy and configuration."""

from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.config import HarnessConfig
from cluster_harness.integrations.kubernetes.credentials import CredentialStore
from cluster_harness.integrations.kubernetes.exceptions import (
    AuthenticationError,
    CleanupWarning,
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
    ProvisioningError,
    ResolutionError,
    TokenRefreshError,
)
from cluster_harness.integrations.kubernetes.oauth import OAuthTokenClient
from cluster_harness.integrations.kubernetes.proxy import PodProxy

__all__ = [
    "AuthenticationError",
    "CleanupWarning",
    "CredentialStore",
    "HarnessConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesError",
    "KubernetesNotFoundError",
    "KubernetesValidationError",
    "OAuthTokenClient",
    "PodProxy",
    "ProvisioningError",
    "ResolutionError",
    "TokenRefreshError",
]
