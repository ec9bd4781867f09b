"""Cluster integration custom exceptions."""

from __future__ import annotations

from typing import Any


class KubernetesError(Exception):
    """Base exception for cluster operations.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the cluster API (if applicable).
        resource_type: Type of resource involved (e.g., "Project", "Pod").
        resource_name: Name of the resource involved.
        namespace: Namespace of the resource (if applicable).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Initialize KubernetesError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from the cluster API.
            resource_type: Type of resource involved.
            resource_name: Name of the resource involved.
            namespace: Namespace of the resource.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.resource_type = resource_type
        self.resource_name = resource_name
        self.namespace = namespace

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.resource_type and self.resource_name:
            loc = f"[{self.resource_type}/{self.resource_name}"
            if self.namespace:
                loc += f" in {self.namespace}"
            loc += "]"
            parts.append(loc)
        return " ".join(parts)


class KubernetesConnectionError(KubernetesError):
    """Exception raised when connection to the cluster fails.

    This includes network errors, kubeconfig issues, and unreachable API servers.
    """

    def __init__(
        self,
        message: str = "Failed to connect to Kubernetes cluster",
        original_error: Exception | None = None,
    ) -> None:
        """Initialize KubernetesConnectionError.

        Args:
            message: Human-readable error message.
            original_error: The original exception that caused this error.
        """
        super().__init__(message=message)
        self.original_error = original_error


class KubernetesAuthError(KubernetesError):
    """Exception raised when authentication or authorization fails.

    This includes invalid tokens, expired certificates, and RBAC denials (401/403).
    """

    def __init__(
        self,
        message: str = "Kubernetes authentication/authorization failed",
        status_code: int | None = 401,
        reason: str | None = None,
    ) -> None:
        """Initialize KubernetesAuthError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code (usually 401 or 403).
            reason: Kubernetes API reason string.
        """
        super().__init__(message=message, status_code=status_code)
        self.reason = reason


class KubernetesNotFoundError(KubernetesError):
    """Exception raised when a requested resource is not found (404)."""

    def __init__(
        self,
        message: str = "Kubernetes resource not found",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Initialize KubernetesNotFoundError.

        Args:
            message: Human-readable error message.
            resource_type: Type of resource (e.g., "Project", "Pod").
            resource_name: Name of the resource.
            namespace: Namespace of the resource.
        """
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' not found"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=404,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class KubernetesValidationError(KubernetesError):
    """Exception raised when the API rejects an invalid resource (400/422)."""

    def __init__(
        self,
        message: str = "Invalid resource specification",
        validation_errors: dict[str, Any] | None = None,
        status_code: int | None = 422,
    ) -> None:
        """Initialize KubernetesValidationError.

        Args:
            message: Human-readable error message.
            validation_errors: Specific field validation errors.
            status_code: HTTP status code (usually 400 or 422).
        """
        super().__init__(message=message, status_code=status_code)
        self.validation_errors = validation_errors or {}


class KubernetesConflictError(KubernetesError):
    """Exception raised when a resource conflict occurs.

    This is typically a 409 response indicating the resource already exists
    or has been modified by another client.
    """

    def __init__(
        self,
        message: str = "Resource conflict",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        """Initialize KubernetesConflictError.

        Args:
            message: Human-readable error message.
            resource_type: Type of resource.
            resource_name: Name of the resource.
            namespace: Namespace of the resource.
        """
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' already exists"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=409,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class AuthenticationError(KubernetesAuthError):
    """Exception raised when the session was never authenticated.

    The probe call was rejected and no token was held at all, so there is
    nothing to refresh. A token is fetched anyway and handed back inside the
    error, together with the login command an operator can run by hand.

    Attributes:
        token: Freshly issued token, if one could be fetched.
        master_url: Cluster API endpoint the token is valid for.
    """

    def __init__(
        self,
        token: str,
        master_url: str,
        message: str = "Kubeconfig is not initialized",
    ) -> None:
        """Initialize AuthenticationError.

        Args:
            token: Token issued for the configured user.
            master_url: Cluster API endpoint.
            message: Human-readable error message prefix.
        """
        self.token = token
        self.master_url = master_url
        super().__init__(
            message=(
                f"{message}, please perform the following command and try again: "
                f"[{self.remediation}]"
            ),
            status_code=401,
        )

    @property
    def remediation(self) -> str:
        """Login command that initializes the kubeconfig with the issued token."""
        return f"oc login --token={self.token} --server={self.master_url}"


class TokenRefreshError(KubernetesAuthError):
    """Exception raised when the OAuth server does not issue a token.

    Covers rejected credentials, an unreachable authorization server, and
    responses that do not carry an access token.
    """

    def __init__(
        self,
        message: str = "Failed to obtain an OAuth token",
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize TokenRefreshError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from the OAuth server, if any.
            original_error: The original exception that caused this error.
        """
        super().__init__(message=message, status_code=status_code)
        self.original_error = original_error


class ProvisioningError(KubernetesError):
    """Exception raised when the test project cannot be created."""

    def __init__(
        self,
        name: str,
        message: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize ProvisioningError.

        Args:
            name: Name of the project that could not be created.
            message: Human-readable error message.
            status_code: HTTP status code from the cluster API, if any.
        """
        super().__init__(
            message=message or f"Failed to create project '{name}'",
            status_code=status_code,
            resource_type="Project",
            resource_name=name,
        )


class ResolutionError(KubernetesError):
    """Exception raised when no pod matches a set of label selectors."""

    def __init__(
        self,
        labels: dict[str, str],
        namespace: str,
        index: int = 0,
        matched: int = 0,
    ) -> None:
        """Initialize ResolutionError.

        Args:
            labels: Label selectors that were used.
            namespace: Namespace that was searched.
            index: Requested position among the matching pods.
            matched: Number of running pods that matched.
        """
        selector = ",".join(f"{k}={v}" for k, v in labels.items())
        if matched:
            message = f"No pod at index {index} for selector '{selector}' ({matched} running)"
        else:
            message = f"No running pod matches selector '{selector}'"
        super().__init__(message=message, resource_type="Pod", namespace=namespace)
        self.labels = dict(labels)
        self.index = index
        self.matched = matched


class CleanupWarning(UserWarning):
    """Warning emitted when deleting the test project fails during teardown."""
