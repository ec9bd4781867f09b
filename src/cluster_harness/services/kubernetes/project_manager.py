"""Test project lifecycle manager.

Creates the project the tests run in when it does not exist yet, remembers
that this run created it, and deletes it again after the suite or when the
process is terminated.
"""

from __future__ import annotations

import functools
import threading
import warnings
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from cluster_harness.core.termination import TerminationHooks, default_termination_hooks
from cluster_harness.integrations.kubernetes.client import KubernetesClient, project_name
from cluster_harness.integrations.kubernetes.exceptions import (
    CleanupWarning,
    KubernetesNotFoundError,
    ProvisioningError,
)
from cluster_harness.services.kubernetes.base import K8sBaseManager
from cluster_harness.services.kubernetes.credential_guard import CredentialGuard


class ProjectState(StrEnum):
    """Ownership state of the test project."""

    ABSENT = "absent"
    CREATED = "created"
    DELETED = "deleted"


@dataclass(frozen=True)
class ProjectRecord:
    """A project this run created."""

    name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ProjectLifecycleManager(K8sBaseManager):
    """Manages the test project, creating it if need be and cleaning up afterward.

    Only a project created by this manager is ever deleted. A project that
    already existed is used as is and left alone.

    Example:
        ```python
        manager = ProjectLifecycleManager(client)
        manager.ensure_project()
        try:
            run_tests()
        finally:
            manager.cleanup()
        ```
    """

    _entity_name = "project"

    def __init__(
        self,
        client: KubernetesClient,
        guard: CredentialGuard | None = None,
        termination_hooks: TerminationHooks | None = None,
        *,
        cleanup_on_termination: bool = True,
    ) -> None:
        """Initialize the manager.

        Args:
            client: Cluster session.
            guard: Credential guard run before provisioning.
            termination_hooks: Registry for the exit-time cleanup callback;
                the process-wide registry if omitted.
            cleanup_on_termination: Register the exit-time cleanup callback.
        """
        super().__init__(client)
        self._guard = guard or CredentialGuard(client)
        self._termination_hooks = termination_hooks
        self._cleanup_on_termination = cleanup_on_termination
        self._termination_callback: functools.partial[bool] | None = None

        self._lock = threading.Lock()
        self._record: ProjectRecord | None = None
        self._state = ProjectState.ABSENT

    @property
    def record(self) -> ProjectRecord | None:
        """The project this run created, if it still exists."""
        with self._lock:
            return self._record

    @property
    def state(self) -> ProjectState:
        with self._lock:
            return self._state

    # =========================================================================
    # Provisioning
    # =========================================================================

    def ensure_project(self) -> ProjectRecord | None:
        """Make sure the configured project exists.

        Validates the session token first, then creates the project if it
        cannot be found, and registers the exit-time cleanup callback.

        Returns:
            The record of the project this run created, or None when the
            project already existed.

        Raises:
            AuthenticationError: The session was never authenticated.
            TokenRefreshError: The expired token could not be refreshed.
            ProvisioningError: The project could not be created.
        """
        self._guard.ensure_valid()

        config = self._client.config
        name = config.namespace
        if self._lookup(name) is None:
            self._create(name, config.description)
        else:
            self._log.info("using_existing_project", name=name)

        self._register_termination_callback(name, config.cleanup)
        return self.record

    def _lookup(self, name: str) -> Any:
        """Read the project, treating every failure as "not found".

        The client cannot tell an inaccessible project from a missing one
        when it answers 403, so both end up here as None.
        """
        try:
            return self._client.read_project(name)
        except Exception as e:
            self._log.debug("project_lookup_failed", name=name, error=str(e))
            return None

    def _create(self, name: str, description: str) -> None:
        self._log.info("creating_project", name=name)
        try:
            self._client.request_project(name, description)
            created = self._client.read_project(name)
        except Exception as e:
            error = self._client.translate_api_exception(e, "Project", name)
            raise ProvisioningError(
                name,
                message=f"Failed to create project '{name}': {error.message}",
                status_code=error.status_code,
            ) from e

        with self._lock:
            self._record = ProjectRecord(name=project_name(created) or name)
            self._state = ProjectState.CREATED
        self._log.info("created_project", name=name)

    def _register_termination_callback(self, name: str, cleanup_enabled: bool) -> None:
        """Register the exit-time cleanup for ``name``.

        The project name and the cleanup flag are bound by value; the callback
        still holds the manager, so it shares the record and its lock with
        :meth:`cleanup`.
        """
        if not self._cleanup_on_termination or self._termination_callback is not None:
            return
        hooks = self._termination_hooks or default_termination_hooks()
        self._termination_callback = functools.partial(self._release, name, cleanup_enabled)
        hooks.register(self._termination_callback, name=f"cleanup-project-{name}")

    def unregister_termination_callback(self) -> bool:
        """Drop the exit-time cleanup callback once teardown has run.

        Returns:
            True if a callback was registered.
        """
        callback, self._termination_callback = self._termination_callback, None
        if callback is None:
            return False
        hooks = self._termination_hooks or default_termination_hooks()
        return hooks.unregister(callback)

    # =========================================================================
    # Cleanup
    # =========================================================================

    def cleanup(self) -> bool:
        """Delete the project if this run created it and cleanup is enabled.

        Safe to call more than once and from both the normal teardown path and
        the exit-time callback: only the first call issues a delete. Deletion
        failures are logged and reported as CleanupWarning, never raised.

        Returns:
            True if a delete was attempted.
        """
        return self._release(None, self._client.config.cleanup)

    def _release(self, expected_name: str | None, cleanup_enabled: bool) -> bool:
        if not cleanup_enabled:
            self._log.debug("cleanup_disabled")
            return False

        with self._lock:
            record = self._record
            if record is None or (expected_name is not None and record.name != expected_name):
                return False
            self._record = None

        try:
            self._delete(record.name)
        finally:
            with self._lock:
                self._state = ProjectState.DELETED
        return True

    def _delete(self, name: str) -> None:
        self._log.info("deleting_project", name=name)
        try:
            self._client.delete_project(name)
        except Exception as e:
            error = self._client.translate_api_exception(e, "Project", name)
            if isinstance(error, KubernetesNotFoundError):
                self._log.info("project_already_deleted", name=name)
                return
            self._log.warning("project_cleanup_failed", name=name, error=str(error))
            try:
                warnings.warn(
                    CleanupWarning(f"Failed to delete project '{name}': {error}"),
                    stacklevel=4,
                )
            except CleanupWarning as warning:
                # Warnings filter set to "error"
                self._log.warning("cleanup_warning_suppressed", name=name, warning=str(warning))
            return
        self._log.info("deleted_project", name=name)
