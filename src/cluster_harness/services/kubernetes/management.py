"""Management handles for workloads running in the test project.

A handle resolves a URL into a pod selected by labels and carries the
credentials and TLS context a test needs to call that URL.
"""

from __future__ import annotations

import ssl
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from cluster_harness.integrations.kubernetes.config import HarnessConfig
    from cluster_harness.integrations.kubernetes.credentials import CredentialStore

FIRST_MATCH = 0


class RoutingProxy(Protocol):
    """Maps label selectors and a port to a reachable URL."""

    def url(
        self,
        labels: Mapping[str, str],
        index: int,
        port: int,
        path: str = "",
        params: Mapping[str, str] | None = None,
    ) -> str: ...


def build_ssl_context(config: HarnessConfig) -> ssl.SSLContext:
    """Create the TLS context for calls through the cluster API server.

    Uses ``config.ca_path`` when set, the system trust store otherwise, and
    turns verification off when ``config.verify_ssl`` is false.
    """
    context = ssl.create_default_context(cafile=config.ca_path)
    if not config.verify_ssl:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


@dataclass(frozen=True)
class ManagementHandle:
    """Handle on one workload, identified by its pod labels.

    Credentials are read through on every access, so a token refreshed by
    the Credential Guard is visible here immediately.
    """

    proxy: RoutingProxy
    labels: Mapping[str, str]
    config: HarnessConfig
    credentials: CredentialStore
    ssl_context: ssl.SSLContext = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @property
    def username(self) -> str | None:
        return self.config.username

    @property
    def password(self) -> str | None:
        return self.config.password

    @property
    def oauth_token(self) -> str | None:
        return self.credentials.token

    def authorization_header(self) -> dict[str, str]:
        """Headers authenticating a request to the resolved URL."""
        return self.credentials.authorization_header()

    def resolve_url(self, port: int) -> str:
        """URL into the first matching pod on ``port``.

        Always addresses the first running pod in name order; a specific
        replica cannot be chosen.

        Raises:
            ResolutionError: If no running pod matches the labels.
        """
        return self.proxy.url(self.labels, FIRST_MATCH, port, "", None)
