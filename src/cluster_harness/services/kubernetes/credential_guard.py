"""Credential guard for cluster API calls.

Verifies the held bearer token with a cheap authenticated probe before any
privileged call and refreshes it through the OAuth server when it expired.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol

from cluster_harness.integrations.kubernetes.exceptions import (
    AuthenticationError,
    KubernetesAuthError,
)
from cluster_harness.integrations.kubernetes.oauth import OAuthTokenClient
from cluster_harness.services.kubernetes.base import K8sBaseManager

if TYPE_CHECKING:
    from cluster_harness.integrations.kubernetes.client import KubernetesClient

HTTP_FORBIDDEN = 403


class TokenIssuer(Protocol):
    """Anything that can issue a bearer token for a username and password."""

    def get_token(self, master_url: str, username: str | None, password: str | None) -> str: ...


class CredentialGuard(K8sBaseManager):
    """Keeps the session's bearer token valid.

    The probe lists projects cluster-wide with ``limit=1``. A 401 answer means
    the token is stale (or absent); a 403 means the token authenticated but
    may not list, which is good enough.
    """

    _entity_name = "credentials"

    def __init__(
        self,
        client: KubernetesClient,
        token_issuer: TokenIssuer | None = None,
    ) -> None:
        """Initialize the guard.

        Args:
            client: Cluster session whose credential store is refreshed.
            token_issuer: Token issuer; an OAuthTokenClient built from the
                harness config if omitted.
        """
        super().__init__(client)
        config = client.config
        if token_issuer is None:
            verify: bool | str = config.ca_path or config.verify_ssl
            token_issuer = OAuthTokenClient(
                verify=verify,
                timeout=config.timeout,
                retries=config.retry_attempts,
            )
        self._issuer = token_issuer
        self._refresh_lock = threading.Lock()

    @property
    def master_url(self) -> str:
        return self._client.config.master_url or self._client.master_url

    def _issue_token(self) -> str:
        config = self._client.config
        return self._issuer.get_token(self.master_url, config.username, config.password)

    def ensure_valid(self) -> None:
        """Make sure the session holds a usable token.

        Raises:
            AuthenticationError: The session never held a token. The error
                carries a freshly issued token and the login command to run.
            TokenRefreshError: The OAuth server did not issue a token.
            KubernetesError: The probe failed for a reason other than
                authentication.
        """
        probed_with = self._client.credentials.token
        try:
            self._client.list_projects(limit=1)
            self._log.debug("token_valid")
            return
        except Exception as e:
            error = self._client.translate_api_exception(e, "Project")
            if not isinstance(error, KubernetesAuthError):
                raise error
            if error.status_code == HTTP_FORBIDDEN:
                self._log.debug("token_authenticated_without_list_permission")
                return
            if probed_with is None:
                token = self._issue_token()
                raise AuthenticationError(token=token, master_url=self.master_url) from error

        self._refresh(probed_with)

    def _refresh(self, expired: str) -> None:
        with self._refresh_lock:
            if self._client.credentials.token != expired:
                self._log.debug("token_already_refreshed")
                return
            self._log.warning("token_expired", token=expired)
            self._client.credentials.replace(self._issue_token())
            self._log.info("token_refreshed", master_url=self.master_url)
