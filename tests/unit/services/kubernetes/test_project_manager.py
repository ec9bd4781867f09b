"""Unit tests for ProjectLifecycleManager."""

from __future__ import annotations

import threading
import warnings
from unittest.mock import MagicMock

import pytest
from kubernetes.client import ApiException

from cluster_harness.integrations.kubernetes.exceptions import (
    AuthenticationError,
    CleanupWarning,
    ProvisioningError,
)
from cluster_harness.services.kubernetes.project_manager import (
    ProjectLifecycleManager,
    ProjectRecord,
    ProjectState,
)


@pytest.fixture
def mock_guard() -> MagicMock:
    return MagicMock()


@pytest.fixture
def mock_hooks() -> MagicMock:
    return MagicMock()


@pytest.fixture
def project_missing(mock_k8s_client: MagicMock) -> MagicMock:
    """Project lookups fail until the project is requested."""
    created = {"metadata": {"name": "ci-tests"}}
    mock_k8s_client.read_project.side_effect = [ApiException(status=404), created]
    return mock_k8s_client


@pytest.fixture
def manager(
    mock_k8s_client: MagicMock, mock_guard: MagicMock, mock_hooks: MagicMock
) -> ProjectLifecycleManager:
    return ProjectLifecycleManager(mock_k8s_client, mock_guard, mock_hooks)


def registered_callback(mock_hooks: MagicMock):
    mock_hooks.register.assert_called_once()
    return mock_hooks.register.call_args.args[0]


class TestEnsureProject:
    """Tests for project provisioning."""

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_creates_missing_project(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock, mock_guard: MagicMock
    ) -> None:
        """Should create the project and record it."""
        record = manager.ensure_project()

        mock_guard.ensure_valid.assert_called_once()
        project_missing.request_project.assert_called_once_with(
            "ci-tests", "auto-generated project for integration testing"
        )
        assert isinstance(record, ProjectRecord)
        assert record.name == "ci-tests"
        assert manager.state is ProjectState.CREATED

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_uses_existing_project(
        self, manager: ProjectLifecycleManager, mock_k8s_client: MagicMock
    ) -> None:
        """Should leave an existing project untouched and unrecorded."""
        mock_k8s_client.read_project.return_value = {"metadata": {"name": "ci-tests"}}

        assert manager.ensure_project() is None

        mock_k8s_client.request_project.assert_not_called()
        assert manager.record is None
        assert manager.state is ProjectState.ABSENT

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_lookup_errors_treated_as_missing(
        self, manager: ProjectLifecycleManager, mock_k8s_client: MagicMock
    ) -> None:
        """Should attempt creation whatever the lookup error was."""
        mock_k8s_client.read_project.side_effect = [
            ApiException(status=403),
            {"metadata": {"name": "ci-tests"}},
        ]

        manager.ensure_project()

        mock_k8s_client.request_project.assert_called_once()

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_creation_failure(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock
    ) -> None:
        """Should raise ProvisioningError and record nothing."""
        project_missing.request_project.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(ProvisioningError) as exc_info:
            manager.ensure_project()

        assert exc_info.value.status_code == 409
        assert exc_info.value.resource_name == "ci-tests"
        assert manager.record is None
        assert manager.state is ProjectState.ABSENT

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_authentication_error_stops_provisioning(
        self, manager: ProjectLifecycleManager, mock_k8s_client: MagicMock, mock_guard: MagicMock
    ) -> None:
        """Should not look up or create anything when the guard escalates."""
        mock_guard.ensure_valid.side_effect = AuthenticationError("t", "https://api.example.test")

        with pytest.raises(AuthenticationError):
            manager.ensure_project()

        mock_k8s_client.read_project.assert_not_called()
        mock_k8s_client.request_project.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_registers_termination_hook_once(
        self,
        manager: ProjectLifecycleManager,
        mock_k8s_client: MagicMock,
        mock_hooks: MagicMock,
    ) -> None:
        """Should register the exit-time callback a single time."""
        mock_k8s_client.read_project.return_value = {"metadata": {"name": "ci-tests"}}

        manager.ensure_project()
        manager.ensure_project()

        mock_hooks.register.assert_called_once()
        assert mock_hooks.register.call_args.kwargs["name"] == "cleanup-project-ci-tests"

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_no_termination_hook_when_disabled(
        self, mock_k8s_client: MagicMock, mock_guard: MagicMock, mock_hooks: MagicMock
    ) -> None:
        """Should not register a callback when asked not to."""
        mock_k8s_client.read_project.return_value = {"metadata": {"name": "ci-tests"}}
        manager = ProjectLifecycleManager(
            mock_k8s_client, mock_guard, mock_hooks, cleanup_on_termination=False
        )

        manager.ensure_project()

        mock_hooks.register.assert_not_called()


class TestCleanup:
    """Tests for project cleanup."""

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_round_trip(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock
    ) -> None:
        """Should delete the project this run created."""
        manager.ensure_project()

        assert manager.cleanup() is True

        project_missing.delete_project.assert_called_once_with("ci-tests")
        assert manager.record is None
        assert manager.state is ProjectState.DELETED

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_cleanup_is_idempotent(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock
    ) -> None:
        """Should delete at most once however often cleanup runs."""
        manager.ensure_project()

        assert manager.cleanup() is True
        assert manager.cleanup() is False

        project_missing.delete_project.assert_called_once()

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_existing_project_never_deleted(
        self, manager: ProjectLifecycleManager, mock_k8s_client: MagicMock
    ) -> None:
        """Should not delete a project it did not create."""
        mock_k8s_client.read_project.return_value = {"metadata": {"name": "ci-tests"}}
        manager.ensure_project()

        assert manager.cleanup() is False

        mock_k8s_client.delete_project.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_cleanup_disabled(
        self, mock_k8s_client: MagicMock, mock_guard: MagicMock, mock_hooks: MagicMock
    ) -> None:
        """Should keep the project when cleanup is off."""
        mock_k8s_client.config = mock_k8s_client.config.model_copy(update={"cleanup": False})
        mock_k8s_client.read_project.side_effect = [
            ApiException(status=404),
            {"metadata": {"name": "ci-tests"}},
        ]
        manager = ProjectLifecycleManager(mock_k8s_client, mock_guard, mock_hooks)
        manager.ensure_project()

        assert manager.cleanup() is False
        registered_callback(mock_hooks)()

        mock_k8s_client.delete_project.assert_not_called()
        assert manager.state is ProjectState.CREATED

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_cleanup_without_project(
        self, manager: ProjectLifecycleManager, mock_k8s_client: MagicMock
    ) -> None:
        """Should do nothing before provisioning."""
        assert manager.cleanup() is False
        mock_k8s_client.delete_project.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_termination_callback_and_teardown(
        self,
        manager: ProjectLifecycleManager,
        project_missing: MagicMock,
        mock_hooks: MagicMock,
    ) -> None:
        """Should delete once when both teardown and the exit callback run."""
        manager.ensure_project()
        callback = registered_callback(mock_hooks)

        assert callback() is True
        assert manager.cleanup() is False

        project_missing.delete_project.assert_called_once_with("ci-tests")

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_delete_failure_warns(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock
    ) -> None:
        """Should report a failed delete as CleanupWarning instead of raising."""
        project_missing.delete_project.side_effect = ApiException(status=500, reason="boom")
        manager.ensure_project()

        with pytest.warns(CleanupWarning, match="Failed to delete project 'ci-tests'"):
            assert manager.cleanup() is True

        assert manager.record is None

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_already_deleted(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock
    ) -> None:
        """Should treat a missing project on delete as done."""
        project_missing.delete_project.side_effect = ApiException(status=404)
        manager.ensure_project()

        with warnings.catch_warnings():
            warnings.simplefilter("error", CleanupWarning)
            assert manager.cleanup() is True

        assert manager.state is ProjectState.DELETED

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_delete_failure_with_warnings_as_errors(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock
    ) -> None:
        """Should not raise from cleanup when warnings are turned into errors."""
        project_missing.delete_project.side_effect = ApiException(status=500, reason="boom")
        manager.ensure_project()

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert manager.cleanup() is True

        assert manager.record is None
        assert manager.state is ProjectState.DELETED

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_state_deleted_when_delete_interrupted(
        self, manager: ProjectLifecycleManager, project_missing: MagicMock
    ) -> None:
        """Should leave a consistent state when the delete call is interrupted."""
        project_missing.delete_project.side_effect = KeyboardInterrupt
        manager.ensure_project()

        with pytest.raises(KeyboardInterrupt):
            manager.cleanup()

        assert manager.record is None
        assert manager.state is ProjectState.DELETED

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_concurrent_teardown_and_termination(
        self,
        manager: ProjectLifecycleManager,
        project_missing: MagicMock,
        mock_hooks: MagicMock,
    ) -> None:
        """Should delete once when teardown and the exit callback race."""
        manager.ensure_project()
        callback = registered_callback(mock_hooks)
        barrier = threading.Barrier(8)
        results: list[bool] = []

        def release(target) -> None:
            barrier.wait()
            results.append(target())

        threads = [
            threading.Thread(target=release, args=(manager.cleanup if i % 2 else callback,))
            for i in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        project_missing.delete_project.assert_called_once_with("ci-tests")
        assert results.count(True) == 1
        assert manager.state is ProjectState.DELETED

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_unregister_termination_callback(
        self,
        manager: ProjectLifecycleManager,
        project_missing: MagicMock,
        mock_hooks: MagicMock,
    ) -> None:
        """Should hand the registered callback back to the hook registry."""
        mock_hooks.unregister.return_value = True
        manager.ensure_project()
        callback = registered_callback(mock_hooks)

        assert manager.unregister_termination_callback() is True
        mock_hooks.unregister.assert_called_once_with(callback)
        assert manager.unregister_termination_callback() is False
