"""Cluster harness configuration model."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

# RFC 1123 label, the constraint both namespaces and projects share.
_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_DNS_LABEL_MAX = 63

_TRUE_VALUES = {"1", "true", "yes", "on"}

DEFAULT_DESCRIPTION = "auto-generated project for integration testing"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


class HarnessConfig(BaseModel):
    """Read-only settings for one test run.

    Attributes:
        namespace: Name of the project (namespace) the tests run in.
        master_url: Cluster API endpoint. Taken from the kubeconfig if unset.
        username: User the OAuth server issues tokens for.
        password: Password for ``username``.
        token: Bearer token to start with. Taken from the kubeconfig if unset.
        cleanup: Delete the project at the end of the run if this run created it.
        project_api: ``openshift`` uses project requests, ``kubernetes`` plain namespaces.
        description: Description recorded on projects this run creates.
        kubeconfig: Kubeconfig file, or None for the client default.
        context: Kubeconfig context, or None for the current context.
        verify_ssl: Verify the API server and pod proxy certificates.
        ca_path: CA bundle used instead of the system trust store.
        timeout: Request timeout in seconds for cluster and OAuth calls.
        retry_attempts: Attempts for transient OAuth connection failures.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    namespace: str
    master_url: str | None = None
    username: str | None = None
    password: str | None = None
    token: str | None = None
    cleanup: bool = True
    project_api: Literal["openshift", "kubernetes"] = "openshift"
    description: str = DEFAULT_DESCRIPTION
    kubeconfig: str | None = None
    context: str | None = None
    verify_ssl: bool = True
    ca_path: str | None = None
    timeout: int = 60
    retry_attempts: int = 3

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Validate the namespace is a DNS-1123 label."""
        if len(v) > _DNS_LABEL_MAX or not _DNS_LABEL.match(v):
            raise ValueError(
                "namespace must be a lowercase RFC 1123 label of at most 63 characters"
            )
        return v

    @field_validator("master_url")
    @classmethod
    def validate_master_url(cls, v: str | None) -> str | None:
        """Validate the master URL scheme and drop any trailing slash."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("master_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("kubeconfig", "ca_path")
    @classmethod
    def validate_path(cls, v: str | None) -> str | None:
        """Expand ~ in file paths."""
        if v is None:
            return v
        return str(Path(v).expanduser())

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is at least one."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    @property
    def has_credentials(self) -> bool:
        """Whether a username and password are configured for token issuance."""
        return bool(self.username and self.password)

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> HarnessConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            HARNESS_NAMESPACE: Project (namespace) name
            HARNESS_MASTER_URL: Cluster API endpoint
            HARNESS_USERNAME: OAuth username
            HARNESS_PASSWORD: OAuth password
            HARNESS_TOKEN: Initial bearer token
            HARNESS_CLEANUP: Delete the project after the run (true/false)
            HARNESS_PROJECT_API: openshift or kubernetes
            HARNESS_KUBECONFIG: Kubeconfig path
            HARNESS_CONTEXT: Kubeconfig context
            HARNESS_VERIFY_SSL: Verify TLS certificates (true/false)
            HARNESS_TIMEOUT: Request timeout in seconds
        """
        config_dict = base_config.copy() if base_config else {}

        string_overrides = {
            "HARNESS_NAMESPACE": "namespace",
            "HARNESS_MASTER_URL": "master_url",
            "HARNESS_USERNAME": "username",
            "HARNESS_PASSWORD": "password",
            "HARNESS_TOKEN": "token",
            "HARNESS_PROJECT_API": "project_api",
            "HARNESS_KUBECONFIG": "kubeconfig",
            "HARNESS_CONTEXT": "context",
        }
        for env_name, field_name in string_overrides.items():
            if value := os.environ.get(env_name):
                config_dict[field_name] = value

        if cleanup := os.environ.get("HARNESS_CLEANUP"):
            config_dict["cleanup"] = _env_flag(cleanup)

        if verify_ssl := os.environ.get("HARNESS_VERIFY_SSL"):
            config_dict["verify_ssl"] = _env_flag(verify_ssl)

        if timeout := os.environ.get("HARNESS_TIMEOUT"):
            config_dict["timeout"] = int(timeout)

        return cls.model_validate(config_dict)
