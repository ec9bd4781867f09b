"""Unit tests for the OpenShift OAuth token client."""

from __future__ import annotations

import base64
from collections.abc import Callable

import httpx
import pytest

from cluster_harness.integrations.kubernetes.exceptions import TokenRefreshError
from cluster_harness.integrations.kubernetes.oauth import (
    CHALLENGING_CLIENT_ID,
    OAuthTokenClient,
)

MASTER = "https://api.example.test:6443"
AUTHORIZE = "https://oauth.example.test/oauth/authorize"
TOKEN_REDIRECT = (
    "https://oauth.example.test/oauth/token/implicit"
    "#access_token=sha256~issued&expires_in=86400&scope=user%3Afull&token_type=Bearer"
)

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler, retries: int = 1) -> OAuthTokenClient:
    return OAuthTokenClient(retries=retries, transport=httpx.MockTransport(handler))


def oauth_server(authorize: Handler, metadata: bool = True) -> Handler:
    """Route discovery to metadata and everything else to ``authorize``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/.well-known/oauth-authorization-server":
            if not metadata:
                return httpx.Response(404)
            return httpx.Response(200, json={"authorization_endpoint": AUTHORIZE})
        return authorize(request)

    return handler


@pytest.mark.unit
@pytest.mark.kubernetes
class TestAuthorizeEndpoint:
    """Test authorize endpoint discovery."""

    def test_uses_published_metadata(self) -> None:
        """Should use the endpoint from the OAuth metadata."""
        client = make_client(oauth_server(lambda r: httpx.Response(500)))
        assert client.authorize_endpoint(MASTER + "/") == AUTHORIZE

    def test_falls_back_to_legacy_path(self) -> None:
        """Should fall back to /oauth/authorize on the master."""
        client = make_client(oauth_server(lambda r: httpx.Response(500), metadata=False))
        assert client.authorize_endpoint(MASTER) == f"{MASTER}/oauth/authorize"

    def test_falls_back_on_invalid_metadata(self) -> None:
        """Should fall back when the metadata is not JSON."""
        client = make_client(lambda r: httpx.Response(200, text="<html></html>"))
        assert client.authorize_endpoint(MASTER) == f"{MASTER}/oauth/authorize"


@pytest.mark.unit
@pytest.mark.kubernetes
class TestGetToken:
    """Test token issuance."""

    def test_get_token_success(self) -> None:
        """Should return the access token from the redirect fragment."""
        seen: list[httpx.Request] = []

        def authorize(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(302, headers={"Location": TOKEN_REDIRECT})

        with make_client(oauth_server(authorize)) as client:
            token = client.get_token(MASTER, "developer", "secret")

        assert token == "sha256~issued"
        request = seen[0]
        assert str(request.url).startswith(AUTHORIZE)
        assert request.url.params["client_id"] == CHALLENGING_CLIENT_ID
        assert request.url.params["response_type"] == "token"
        assert request.headers["X-CSRF-Token"] == "1"
        expected = base64.b64encode(b"developer:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"

    def test_missing_credentials(self) -> None:
        """Should refuse to request a token without credentials."""
        client = make_client(lambda r: httpx.Response(500))
        with pytest.raises(TokenRefreshError, match="username and password are required"):
            client.get_token(MASTER, "developer", None)

    def test_rejected_credentials(self) -> None:
        """Should raise when the OAuth server answers 401."""
        client = make_client(oauth_server(lambda r: httpx.Response(401)))
        with pytest.raises(TokenRefreshError, match="rejected the credentials") as exc_info:
            client.get_token(MASTER, "developer", "wrong")
        assert exc_info.value.status_code == 401

    def test_unexpected_response(self) -> None:
        """Should raise when the server does not redirect."""
        client = make_client(oauth_server(lambda r: httpx.Response(200, text="login form")))
        with pytest.raises(TokenRefreshError, match="Unexpected OAuth response: 200"):
            client.get_token(MASTER, "developer", "secret")

    def test_error_in_fragment(self) -> None:
        """Should surface an OAuth error carried in the redirect."""
        location = "https://oauth.example.test/implicit#error=access_denied"
        client = make_client(
            oauth_server(lambda r: httpx.Response(302, headers={"Location": location}))
        )
        with pytest.raises(TokenRefreshError, match="access_denied"):
            client.get_token(MASTER, "developer", "secret")

    def test_redirect_without_token(self) -> None:
        """Should raise when the redirect has no access token."""
        location = "https://oauth.example.test/implicit#expires_in=86400"
        client = make_client(
            oauth_server(lambda r: httpx.Response(302, headers={"Location": location}))
        )
        with pytest.raises(TokenRefreshError, match="did not carry an access token"):
            client.get_token(MASTER, "developer", "secret")

    def test_unreachable_server(self) -> None:
        """Should wrap transport failures."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(TokenRefreshError, match="Cannot reach OAuth server") as exc_info:
            client.get_token(MASTER, "developer", "secret")
        assert isinstance(exc_info.value.original_error, httpx.ConnectError)

    def test_retries_transient_failures(self) -> None:
        """Should retry a transport failure before giving up."""
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/.well-known/oauth-authorization-server":
                calls["count"] += 1
                if calls["count"] == 1:
                    raise httpx.ConnectError("connection reset", request=request)
                return httpx.Response(200, json={"authorization_endpoint": AUTHORIZE})
            return httpx.Response(302, headers={"Location": TOKEN_REDIRECT})

        client = make_client(handler, retries=2)
        assert client.get_token(MASTER, "developer", "secret") == "sha256~issued"
        assert calls["count"] == 2
