"""Cluster service managers: credential guard, project lifecycle, management handles."""

from cluster_harness.services.kubernetes.base import K8sBaseManager
from cluster_harness.services.kubernetes.credential_guard import CredentialGuard, TokenIssuer
from cluster_harness.services.kubernetes.management import (
    ManagementHandle,
    RoutingProxy,
    build_ssl_context,
)
from cluster_harness.services.kubernetes.project_manager import (
    ProjectLifecycleManager,
    ProjectRecord,
    ProjectState,
)

__all__ = [
    "CredentialGuard",
    "K8sBaseManager",
    "ManagementHandle",
    "ProjectLifecycleManager",
    "ProjectRecord",
    "ProjectState",
    "RoutingProxy",
    "TokenIssuer",
    "build_ssl_context",
]
