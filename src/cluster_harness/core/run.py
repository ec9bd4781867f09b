"""Test run orchestrator.

Wires the cluster session, the credential guard and the project lifecycle
manager into the run's lifecycle checkpoints, and hands out management
handles to tests.
"""

from __future__ import annotations

import ssl
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from cluster_harness.core.lifecycle import LifecyclePhase, LifecycleRegistry
from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.integrations.kubernetes.proxy import PodProxy
from cluster_harness.services.kubernetes.credential_guard import CredentialGuard
from cluster_harness.services.kubernetes.management import ManagementHandle, build_ssl_context
from cluster_harness.services.kubernetes.project_manager import ProjectLifecycleManager

if TYPE_CHECKING:
    from cluster_harness.core.termination import TerminationHooks
    from cluster_harness.integrations.kubernetes.config import HarnessConfig
    from cluster_harness.services.kubernetes.credential_guard import TokenIssuer

logger = structlog.get_logger()

# The project must exist before anything else registers workloads in it,
# and must outlive every other after-suite hook.
PROJECT_CREATE_PRECEDENCE = 10
PROJECT_DELETE_PRECEDENCE = -100


class HarnessRun:
    """One test run against one cluster project.

    Example:
        ```python
        config = load_config()
        with HarnessRun(config) as run:
            handle = run.management_handle({"app": "eap"})
            url = handle.resolve_url(9990)
        ```
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        client: KubernetesClient | None = None,
        token_issuer: TokenIssuer | None = None,
        termination_hooks: TerminationHooks | None = None,
        cleanup_on_termination: bool = True,
    ) -> None:
        """Build the run and register its lifecycle hooks.

        Args:
            config: Harness configuration.
            client: Cluster session; built from ``config`` if omitted.
            token_issuer: Token issuer for the credential guard.
            termination_hooks: Registry for the exit-time cleanup callback.
            cleanup_on_termination: Delete the created project at process exit
                if the run did not finish normally.
        """
        self.config = config
        self.client = client or KubernetesClient(config)
        self.guard = CredentialGuard(self.client, token_issuer)
        self.projects = ProjectLifecycleManager(
            self.client,
            self.guard,
            termination_hooks,
            cleanup_on_termination=cleanup_on_termination,
        )
        self.proxy = PodProxy(self.client)
        self.lifecycle = LifecycleRegistry()
        self._ssl_context: ssl.SSLContext | None = None
        self._started = False

        self.lifecycle.register(
            LifecyclePhase.BEFORE_SUITE,
            self.projects.ensure_project,
            precedence=PROJECT_CREATE_PRECEDENCE,
            name="create_project",
        )
        self.lifecycle.register(
            LifecyclePhase.AFTER_SUITE,
            self.projects.cleanup,
            precedence=PROJECT_DELETE_PRECEDENCE,
            name="delete_project",
        )

    @property
    def started(self) -> bool:
        return self._started

    @property
    def ssl_context(self) -> ssl.SSLContext:
        """TLS context shared by every management handle of this run."""
        if self._ssl_context is None:
            self._ssl_context = build_ssl_context(self.config)
        return self._ssl_context

    def start(self) -> None:
        """Fire the before-suite hooks."""
        logger.info("starting_test_run", namespace=self.config.namespace)
        self.lifecycle.fire(LifecyclePhase.BEFORE_SUITE)
        self._started = True

    def finish(self) -> None:
        """Fire the after-suite hooks, drop the exit-time cleanup and close the session."""
        logger.info("finishing_test_run", namespace=self.config.namespace)
        self.lifecycle.fire(LifecyclePhase.AFTER_SUITE)
        self.projects.unregister_termination_callback()
        self._started = False
        self.client.close()

    def management_handle(self, labels: Mapping[str, str]) -> ManagementHandle:
        """Handle on the workload whose pods carry ``labels``."""
        return ManagementHandle(
            proxy=self.proxy,
            labels=labels,
            config=self.config,
            credentials=self.client.credentials,
            ssl_context=self.ssl_context,
        )

    def __enter__(self) -> HarnessRun:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.finish()
