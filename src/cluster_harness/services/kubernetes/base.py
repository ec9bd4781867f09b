"""Base manager for cluster service managers.

Provides shared infrastructure for the harness managers, including client
access and entity-bound logging.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from cluster_harness.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()


class K8sBaseManager:
    """Base class for cluster service managers.

    Provides shared concerns for all managers:
    - Client reference and API group access
    - Structured logging with entity binding

    Subclasses set ``_entity_name`` for structured log context.

    Example:
        >>> class ProjectLifecycleManager(K8sBaseManager):
        ...     _entity_name = "project"
    """

    _entity_name: str = ""

    def __init__(self, client: KubernetesClient) -> None:
        """Initialize the manager.

        Args:
            client: Cluster session.
        """
        self._client = client
        self._log = logger.bind(entity=self._entity_name)
