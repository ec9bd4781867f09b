"""Cluster API client wrapper.

Wraps the official kubernetes Python client with a private client
configuration, a shared credential store, lazy API group initialization,
project (namespace) operations for both OpenShift and plain Kubernetes, and
consistent error translation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from cluster_harness.integrations.kubernetes.credentials import CredentialStore
from cluster_harness.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesValidationError,
)

if TYPE_CHECKING:
    from kubernetes.client import (
        ApiClient,
        Configuration,
        CoreV1Api,
        CustomObjectsApi,
        VersionApi,
    )

    from cluster_harness.integrations.kubernetes.config import HarnessConfig

logger = structlog.get_logger()

PROJECT_GROUP = "project.openshift.io"
PROJECT_VERSION = "v1"
DESCRIPTION_ANNOTATION = "openshift.io/description"


def project_name(project: Any) -> str:
    """Extract metadata.name from a raw project dict or namespace object."""
    if isinstance(project, dict):
        return str(project.get("metadata", {}).get("name", ""))
    return str(project.metadata.name)


class KubernetesClient:
    """Session against one cluster for the duration of a test run.

    Holds the API client, the active namespace, the master URL and the
    credential store shared with the Credential Guard and Management Handles.

    Example:
        ```python
        from cluster_harness.integrations.kubernetes import HarnessConfig, KubernetesClient

        config = HarnessConfig.from_env({"namespace": "itest"})
        with KubernetesClient(config) as client:
            client.list_projects(limit=1)
        ```
    """

    def __init__(
        self,
        config: HarnessConfig,
        credentials: CredentialStore | None = None,
    ) -> None:
        """Initialize the client from harness config.

        Loads the kubeconfig (or in-cluster config) into a private client
        configuration, then applies the explicit master URL, TLS settings and
        token from the harness config on top.

        Args:
            config: Harness configuration.
            credentials: Credential store to share; created from
                ``config.token`` if omitted.
        """
        self._config = config
        self._current_context: str | None = None
        self.credentials = credentials or CredentialStore(config.token)

        self._configuration = self._load_configuration()
        self.credentials.bind(self._configuration)

        # Lazy-loaded API group instances
        self._api_client: ApiClient | None = None
        self._core_v1: CoreV1Api | None = None
        self._custom_objects: CustomObjectsApi | None = None
        self._version_api: VersionApi | None = None

        logger.info(
            "cluster_client_initialized",
            context=self._current_context,
            master_url=self.master_url,
            namespace=config.namespace,
            project_api=config.project_api,
        )

    def _load_configuration(self) -> Configuration:
        """Build the client configuration from kubeconfig or in-cluster settings."""
        from kubernetes import config
        from kubernetes.client import Configuration
        from kubernetes.config import ConfigException

        configuration = Configuration()
        try:
            config.load_kube_config(
                config_file=self._config.kubeconfig,
                context=self._config.context,
                client_configuration=configuration,
                persist_config=False,
            )
            self._current_context = self._config.context or "current-context"
            logger.debug(
                "loaded_kubeconfig",
                context=self._config.context,
                kubeconfig=self._config.kubeconfig,
            )
        except ConfigException as e:
            try:
                config.load_incluster_config(client_configuration=configuration)
                self._current_context = "in-cluster"
                logger.debug("loaded_incluster_config")
            except ConfigException:
                if self._config.master_url is None:
                    raise KubernetesConnectionError(
                        message="Cannot load Kubernetes configuration. "
                        "Ensure kubeconfig exists, running inside a cluster, "
                        "or set master_url.",
                        original_error=e,
                    ) from e
                logger.debug("using_explicit_master_url", master_url=self._config.master_url)

        if self._config.master_url:
            configuration.host = self._config.master_url
        if not self._config.verify_ssl:
            configuration.verify_ssl = False
        if self._config.ca_path:
            configuration.ssl_ca_cert = self._config.ca_path
        return configuration

    # =========================================================================
    # Lazy API Group Accessors
    # =========================================================================

    @property
    def api_client(self) -> ApiClient:
        """Get the ApiClient bound to this session's configuration."""
        if self._api_client is None:
            from kubernetes.client import ApiClient

            self._api_client = ApiClient(self._configuration)
        return self._api_client

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance (pods, namespaces)."""
        if self._core_v1 is None:
            from kubernetes.client import CoreV1Api

            self._core_v1 = CoreV1Api(self.api_client)
        return self._core_v1

    @property
    def custom_objects(self) -> CustomObjectsApi:
        """Get CustomObjectsApi instance (OpenShift projects and project requests)."""
        if self._custom_objects is None:
            from kubernetes.client import CustomObjectsApi

            self._custom_objects = CustomObjectsApi(self.api_client)
        return self._custom_objects

    @property
    def version_api(self) -> VersionApi:
        """Get VersionApi instance for cluster version info."""
        if self._version_api is None:
            from kubernetes.client import VersionApi

            self._version_api = VersionApi(self.api_client)
        return self._version_api

    # =========================================================================
    # Project Operations
    # =========================================================================

    @property
    def uses_projects(self) -> bool:
        """Whether projects go through the OpenShift project API."""
        return self._config.project_api == "openshift"

    def list_projects(self, *, limit: int | None = None) -> list[Any]:
        """List projects (or namespaces) visible to the current token.

        Args:
            limit: Maximum number of items to return.

        Returns:
            Raw project objects (dicts for OpenShift, V1Namespace otherwise).
        """
        kwargs: dict[str, Any] = {"_request_timeout": self.timeout}
        if limit:
            kwargs["limit"] = limit
        if self.uses_projects:
            result = self.custom_objects.list_cluster_custom_object(
                PROJECT_GROUP, PROJECT_VERSION, "projects", **kwargs
            )
            return list(result.get("items", []))
        return list(self.core_v1.list_namespace(**kwargs).items or [])

    def read_project(self, name: str) -> Any:
        """Read a project (or namespace) by name."""
        if self.uses_projects:
            return self.custom_objects.get_cluster_custom_object(
                PROJECT_GROUP, PROJECT_VERSION, "projects", name, _request_timeout=self.timeout
            )
        return self.core_v1.read_namespace(name=name, _request_timeout=self.timeout)

    def request_project(self, name: str, description: str) -> Any:
        """Request a new project (or create a namespace) with a description.

        Args:
            name: Project name.
            description: Human-readable description stored on the project.
        """
        if self.uses_projects:
            body = {
                "apiVersion": f"{PROJECT_GROUP}/{PROJECT_VERSION}",
                "kind": "ProjectRequest",
                "metadata": {"name": name},
                "description": description,
            }
            return self.custom_objects.create_cluster_custom_object(
                PROJECT_GROUP, PROJECT_VERSION, "projectrequests", body, _request_timeout=self.timeout
            )

        from kubernetes.client import V1Namespace, V1ObjectMeta

        body_ns = V1Namespace(
            metadata=V1ObjectMeta(
                name=name,
                annotations={DESCRIPTION_ANNOTATION: description},
            ),
        )
        return self.core_v1.create_namespace(body=body_ns, _request_timeout=self.timeout)

    def delete_project(self, name: str) -> None:
        """Delete a project (or namespace) by name."""
        if self.uses_projects:
            self.custom_objects.delete_cluster_custom_object(
                PROJECT_GROUP, PROJECT_VERSION, "projects", name, _request_timeout=self.timeout
            )
        else:
            self.core_v1.delete_namespace(name=name, _request_timeout=self.timeout)

    # =========================================================================
    # Error Translation
    # =========================================================================

    @staticmethod
    def translate_api_exception(
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> KubernetesError:
        """Translate a kubernetes ApiException to a custom exception.

        Args:
            e: The original ApiException.
            resource_type: Type of resource being operated on.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.

        Returns:
            An appropriate KubernetesError subclass.
        """
        from kubernetes.client import ApiException

        if isinstance(e, KubernetesError):
            return e

        if not isinstance(e, ApiException):
            return KubernetesError(
                message=str(e),
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        status = e.status

        if status in (401, 403):
            return KubernetesAuthError(
                message=e.reason or "Authentication/authorization failed",
                status_code=status,
                reason=e.reason,
            )

        if status == 404:
            return KubernetesNotFoundError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status == 409:
            return KubernetesConflictError(
                resource_type=resource_type,
                resource_name=resource_name,
                namespace=namespace,
            )

        if status in (400, 422):
            return KubernetesValidationError(
                message=e.reason or "Validation failed",
                status_code=status,
            )

        return KubernetesError(
            message=e.reason or f"Kubernetes API error: {status}",
            status_code=status,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )

    # =========================================================================
    # Connection Check
    # =========================================================================

    def check_connection(self) -> bool:
        """Check if connection to the cluster API server is working.

        Returns:
            True if connection is successful, False otherwise.
        """
        try:
            self.version_api.get_code()
            return True
        except Exception:
            return False

    def get_cluster_version(self) -> str:
        """Get the cluster version string.

        Returns:
            Kubernetes version (e.g., "v1.28").

        Raises:
            KubernetesConnectionError: If the cluster is unreachable.
        """
        try:
            version_info = self.version_api.get_code()
            return f"v{version_info.major}.{version_info.minor}"
        except Exception as e:
            raise KubernetesConnectionError(
                message="Failed to get cluster version",
                original_error=e,
            ) from e

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> HarnessConfig:
        """Harness configuration this session was built from."""
        return self._config

    @property
    def namespace(self) -> str:
        """The project (namespace) the tests run in."""
        return self._config.namespace

    @property
    def master_url(self) -> str:
        """Cluster API endpoint, without a trailing slash."""
        return str(self._configuration.host).rstrip("/")

    @property
    def timeout(self) -> int:
        """Get the configured timeout."""
        return self._config.timeout

    def get_current_context(self) -> str:
        """Get the kubeconfig context in use, or 'in-cluster'."""
        return self._current_context or "none"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Close the client and release resources."""
        if self._api_client is not None:
            self._api_client.close()
        self._api_client = None
        self._core_v1 = None
        self._custom_objects = None
        self._version_api = None
        logger.debug("cluster_client_closed")

    def __enter__(self) -> KubernetesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
