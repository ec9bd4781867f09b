"""OpenShift OAuth token issuance.

Obtains a bearer token for a username and password through the OAuth
server's ``openshift-challenging-client``: a basic-auth request to the
authorize endpoint answered with a redirect whose URL fragment carries the
access token.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cluster_harness.integrations.kubernetes.exceptions import TokenRefreshError

logger = structlog.get_logger()

CHALLENGING_CLIENT_ID = "openshift-challenging-client"
WELL_KNOWN_PATH = "/.well-known/oauth-authorization-server"
LEGACY_AUTHORIZE_PATH = "/oauth/authorize"


class OAuthTokenClient:
    """HTTP client for the OpenShift OAuth server.

    Example:
        ```python
        issuer = OAuthTokenClient(verify=False)
        token = issuer.get_token("https://api.example:6443", "developer", "secret")
        ```
    """

    def __init__(
        self,
        verify: Any = True,
        timeout: float = 30.0,
        retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the OAuth client.

        Args:
            verify: TLS verification: a bool, a CA bundle path or an SSLContext.
            timeout: Request timeout in seconds.
            retries: Attempts for transient connection failures.
            transport: Custom httpx transport.
        """
        self._retries = retries
        client_kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(timeout),
            "verify": verify,
            "follow_redirects": False,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)

    def _make_retry_decorator(self) -> Any:
        """Create a retry decorator for transient connection errors."""
        return retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        @self._make_retry_decorator()
        def _do() -> httpx.Response:
            return self._client.request(method, url, **kwargs)

        try:
            return _do()
        except httpx.TransportError as e:
            raise TokenRefreshError(
                message=f"Cannot reach OAuth server at {url}: {e}",
                original_error=e,
            ) from e

    def authorize_endpoint(self, master_url: str) -> str:
        """Discover the OAuth authorize endpoint for a cluster.

        Falls back to the legacy ``/oauth/authorize`` path on the master when
        the server does not publish OAuth metadata.

        Args:
            master_url: Cluster API endpoint.

        Returns:
            Absolute URL of the authorize endpoint.
        """
        master_url = master_url.rstrip("/")
        response = self._send("GET", f"{master_url}{WELL_KNOWN_PATH}")
        if response.is_success:
            try:
                endpoint = response.json().get("authorization_endpoint")
            except ValueError:
                endpoint = None
            if endpoint:
                return str(endpoint)
        logger.debug("oauth_metadata_unavailable", status=response.status_code)
        return f"{master_url}{LEGACY_AUTHORIZE_PATH}"

    def get_token(self, master_url: str, username: str | None, password: str | None) -> str:
        """Obtain a bearer token for a user.

        Args:
            master_url: Cluster API endpoint.
            username: OAuth username.
            password: OAuth password.

        Returns:
            The issued access token.

        Raises:
            TokenRefreshError: If the credentials are missing or rejected, the
                server is unreachable, or no token comes back.
        """
        if not username or not password:
            raise TokenRefreshError(message="A username and password are required to obtain a token")

        endpoint = self.authorize_endpoint(master_url)
        logger.debug("requesting_token", endpoint=endpoint, username=username)
        response = self._send(
            "GET",
            endpoint,
            params={"client_id": CHALLENGING_CLIENT_ID, "response_type": "token"},
            auth=(username, password),
            headers={"X-CSRF-Token": "1"},
        )

        if response.status_code in (401, 403):
            raise TokenRefreshError(
                message=f"OAuth server rejected the credentials for '{username}'",
                status_code=response.status_code,
            )
        if not response.is_redirect:
            raise TokenRefreshError(
                message=f"Unexpected OAuth response: {response.status_code}",
                status_code=response.status_code,
            )

        location = response.headers.get("location", "")
        fragment = parse_qs(urlsplit(location).fragment)
        if "error" in fragment:
            raise TokenRefreshError(
                message=f"OAuth server returned an error: {fragment['error'][0]}",
                status_code=response.status_code,
            )
        tokens = fragment.get("access_token")
        if not tokens:
            raise TokenRefreshError(
                message="OAuth redirect did not carry an access token",
                status_code=response.status_code,
            )

        logger.info("obtained_token", username=username)
        return tokens[0]

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> OAuthTokenClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
