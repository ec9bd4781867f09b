"""pytest integration.

Drives a :class:`~cluster_harness.core.run.HarnessRun` from the pytest
session: the test project is ensured when the session starts and cleaned up
when it finishes. The plugin stays inert unless ``--harness`` is given.

Example:
    ```python
    def test_management_console(management_handle):
        handle = management_handle({"app": "eap"})
        response = httpx.get(
            handle.resolve_url(9990),
            headers=handle.authorization_header(),
            verify=handle.ssl_context,
        )
        assert response.status_code == 200
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest
import structlog

from cluster_harness.core.config import load_config
from cluster_harness.core.run import HarnessRun
from cluster_harness.integrations.kubernetes.client import KubernetesClient
from cluster_harness.services.kubernetes.management import ManagementHandle

logger = structlog.get_logger()

RUN_KEY = pytest.StashKey[HarnessRun]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("cluster-harness", "ephemeral cluster test projects")
    group.addoption(
        "--harness",
        action="store_true",
        default=False,
        help="Provision the test project before the session and remove it afterward.",
    )
    group.addoption(
        "--harness-config",
        default=None,
        metavar="PATH",
        help="Harness configuration file (default: ~/.config/cluster-harness/config.yaml).",
    )
    group.addoption(
        "--harness-namespace",
        default=None,
        metavar="NAME",
        help="Project the tests run in (overrides configuration).",
    )
    group.addoption(
        "--harness-keep-project",
        action="store_true",
        default=False,
        help="Do not delete the project at the end of the session.",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "harness: test needs the cluster test project")
    if not config.getoption("harness"):
        return

    path = config.getoption("harness_config")
    overrides: dict[str, object] = {"namespace": config.getoption("harness_namespace")}
    if config.getoption("harness_keep_project"):
        overrides["cleanup"] = False

    harness_config = load_config(Path(path) if path else None, **overrides)
    config.stash[RUN_KEY] = HarnessRun(harness_config)
    logger.debug("harness_plugin_enabled", namespace=harness_config.namespace)


def pytest_sessionstart(session: pytest.Session) -> None:
    run = session.config.stash.get(RUN_KEY, None)
    if run is not None:
        run.start()


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    run = session.config.stash.get(RUN_KEY, None)
    if run is not None and run.started:
        run.finish()


@pytest.fixture(scope="session")
def harness_run(pytestconfig: pytest.Config) -> HarnessRun:
    """The session's harness run; skips the test when the plugin is off."""
    run = pytestconfig.stash.get(RUN_KEY, None)
    if run is None:
        pytest.skip("cluster harness not enabled (pass --harness)")
    return run


@pytest.fixture(scope="session")
def cluster_client(harness_run: HarnessRun) -> KubernetesClient:
    return harness_run.client


@pytest.fixture
def management_handle(harness_run: HarnessRun) -> Callable[[Mapping[str, str]], ManagementHandle]:
    """Factory building a management handle from pod labels."""
    return harness_run.management_handle
