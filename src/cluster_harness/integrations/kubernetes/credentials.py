"""Shared holder for the live cluster bearer token.

The Credential Guard replaces the token in place; the cluster client and
every Management Handle read it from the same store. Bound kubernetes client
configurations are updated on every replacement and also re-read the store
through ``refresh_api_key_hook`` before each request, so no caller keeps a
stale copy across an API call.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from kubernetes.client import Configuration

logger = structlog.get_logger()

# Depending on the kubernetes client release the Authorization header is built
# from "BearerToken" or from "authorization". Both keys carry the full header
# value and no prefix.
_TOKEN_KEY = "BearerToken"
_LEGACY_KEY = "authorization"
_BEARER = "Bearer"


def _read(configuration: Configuration) -> str | None:
    """Bare token currently held by a configuration, without its prefix."""
    for key in (_TOKEN_KEY, _LEGACY_KEY):
        value = configuration.api_key.get(key)
        if value:
            return str(value).removeprefix(f"{_BEARER} ")
    return None


def _clear(configuration: Configuration) -> None:
    for key in (_TOKEN_KEY, _LEGACY_KEY):
        configuration.api_key.pop(key, None)
        configuration.api_key_prefix.pop(key, None)


def _apply(configuration: Configuration, token: str | None) -> None:
    _clear(configuration)
    if token:
        for key in (_TOKEN_KEY, _LEGACY_KEY):
            configuration.api_key[key] = f"{_BEARER} {token}"


class CredentialStore:
    """Mutex-guarded bearer token.

    Example:
        >>> store = CredentialStore("sha256~abc")
        >>> store.replace("sha256~def")
        'sha256~abc'
        >>> store.token
        'sha256~def'
    """

    def __init__(self, token: str | None = None) -> None:
        self._lock = threading.Lock()
        self._token = token or None
        self._bound: list[Configuration] = []

    @property
    def token(self) -> str | None:
        """The current token, or None if the session was never authenticated."""
        with self._lock:
            return self._token

    def has_token(self) -> bool:
        return self.token is not None

    def replace(self, token: str) -> str | None:
        """Swap in a new token and push it to every bound configuration.

        Args:
            token: Freshly issued token.

        Returns:
            The token that was replaced.
        """
        if not token:
            raise ValueError("token must not be empty")
        with self._lock:
            previous, self._token = self._token, token
            for configuration in self._bound:
                _apply(configuration, token)
        logger.debug("replaced_token", had_token=previous is not None)
        return previous

    def authorization_header(self) -> dict[str, str]:
        """HTTP headers carrying the current token, empty if there is none."""
        token = self.token
        return {"Authorization": f"{_BEARER} {token}"} if token else {}

    def bind(self, configuration: Configuration) -> None:
        """Make a kubernetes client configuration follow this store.

        Seeds the store from the configuration when the store is still empty
        (a token loaded from the kubeconfig), otherwise overrides the
        configuration with the stored token. A refresh hook installed by the
        kubeconfig loader (exec or OIDC credentials) keeps running; a token
        it renews is adopted by the store.

        Args:
            configuration: Configuration backing the cluster ApiClient.
        """
        with self._lock:
            loaded = _read(configuration)
            if self._token is None and loaded:
                self._token = loaded
            _apply(configuration, self._token)
            self._bound.append(configuration)

        loader_hook: Callable[[Configuration], None] | None = configuration.refresh_api_key_hook

        def _refresh(config: Configuration) -> None:
            nonlocal loaded, loader_hook
            if loader_hook is not None:
                _clear(config)
                loader_hook(config)
                # The loader reinstalls its own hook when it rewrites the token.
                if config.refresh_api_key_hook is not _refresh:
                    loader_hook = config.refresh_api_key_hook
                    config.refresh_api_key_hook = _refresh
                renewed = _read(config)
                if renewed and renewed != loaded:
                    loaded = renewed
                    logger.debug("adopted_renewed_kubeconfig_token")
                    self.replace(renewed)
            _apply(config, self.token)

        configuration.refresh_api_key_hook = _refresh
