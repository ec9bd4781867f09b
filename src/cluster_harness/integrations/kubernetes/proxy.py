"""Routing proxy into pods behind cluster-internal networking.

Builds URLs on the API server's pod proxy subresource
(``/api/v1/namespaces/<ns>/pods/<pod>:<port>/proxy/<path>``), which is
reachable from wherever the cluster API is.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from cluster_harness.integrations.kubernetes.exceptions import ResolutionError

if TYPE_CHECKING:
    from cluster_harness.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()


def format_selector(labels: Mapping[str, str]) -> str:
    """Render a label mapping as a Kubernetes equality selector."""
    return ",".join(f"{key}={value}" for key, value in labels.items())


class PodProxy:
    """Resolve proxy URLs for pods selected by labels in the session namespace."""

    def __init__(self, client: KubernetesClient) -> None:
        self._client = client

    def running_pods(self, labels: Mapping[str, str]) -> list[Any]:
        """Running pods matching the selectors, ordered by name.

        Args:
            labels: Label selectors (key=value, all must match).

        Returns:
            V1Pod objects in a stable order.
        """
        try:
            result = self._client.core_v1.list_namespaced_pod(
                namespace=self._client.namespace,
                label_selector=format_selector(labels),
                _request_timeout=self._client.timeout,
            )
        except Exception as e:
            raise self._client.translate_api_exception(
                e, "Pod", None, self._client.namespace
            )

        pods = [
            pod
            for pod in result.items or []
            if pod.status is not None and pod.status.phase == "Running"
        ]
        return sorted(pods, key=lambda pod: pod.metadata.name)

    def url(
        self,
        labels: Mapping[str, str],
        index: int,
        port: int,
        path: str = "",
        params: Mapping[str, str] | None = None,
    ) -> str:
        """Build the proxy URL for one of the matching pods.

        Args:
            labels: Label selectors identifying the workload.
            index: Position of the pod among the matching running pods.
            port: Container port on the pod.
            path: Path on the pod, with or without a leading slash.
            params: Extra query parameters.

        Returns:
            Absolute URL on the cluster API server.

        Raises:
            ResolutionError: If fewer than ``index + 1`` running pods match.
        """
        namespace = self._client.namespace
        pods = self.running_pods(labels)
        if index < 0 or index >= len(pods):
            raise ResolutionError(dict(labels), namespace, index=index, matched=len(pods))

        pod_name = pods[index].metadata.name
        url = (
            f"{self._client.master_url}/api/v1/namespaces/{namespace}"
            f"/pods/{pod_name}:{port}/proxy/{path.lstrip('/')}"
        )
        resolved = str(httpx.URL(url, params=dict(params) if params else None))
        logger.debug("resolved_proxy_url", pod=pod_name, port=port, url=resolved)
        return resolved
