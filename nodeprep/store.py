"""Access to cluster nodes through the Kubernetes API."""

from typing import Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from nodeprep.exceptions import (
    ConfigurationError,
    NodeNotFoundError,
    NodeStoreError,
    NodeUpdateConflictError,
)
from nodeprep.logging_config import get_logger
from nodeprep.models.node import Node

logger = get_logger(__name__)


class NodeStore(Protocol):
    """Minimal node API consumed by the reconciler."""

    def get(self, name: str) -> Node:
        """Return the node named ``name``.

        Raises:
            NodeNotFoundError: If no such node exists
            NodeStoreError: On any other failure
        """
        ...

    def list(self) -> list[Node]:
        """Return every node in the cluster.

        Raises:
            NodeStoreError: If the nodes cannot be listed
        """
        ...

    def update(self, node: Node) -> Node:
        """Replace the stored node with ``node`` and return the stored result.

        Raises:
            NodeUpdateConflictError: If the node changed since it was read
            NodeNotFoundError: If the node no longer exists
            NodeStoreError: On any other failure
        """
        ...


def _describe(e: ApiException) -> str:
    if e.status:
        return f"({e.status}) {e.reason}"
    return str(e.reason or e)


class KubernetesNodeStore:
    """Node store backed by the core/v1 nodes API."""

    def __init__(self, api: client.CoreV1Api, request_timeout: float | None = None):
        """Initialize the store.

        Args:
            api: Kubernetes core/v1 API client
            request_timeout: Timeout in seconds applied to every API call
        """
        self.api = api
        self.request_timeout = request_timeout

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: str | None = None,
        context: str | None = None,
        request_timeout: float | None = None,
    ) -> "KubernetesNodeStore":
        """Create a store from a kubeconfig file.

        Args:
            kubeconfig: Path to kubeconfig; the client default location is used when None
            context: Kubeconfig context to use; the current context when None
            request_timeout: Timeout in seconds applied to every API call

        Raises:
            ConfigurationError: If the kubeconfig cannot be loaded
        """
        source = kubeconfig or "(default)"
        logger.debug(f"Loading kubeconfig {source} with context {context or '(current)'}")
        try:
            api_client = config.new_client_from_config(config_file=kubeconfig, context=context)
        except Exception as e:
            raise ConfigurationError(
                f"Failed to create Kubernetes client from kubeconfig {source}: {e}",
                "Check that the kubeconfig exists and that the context is valid",
            ) from e

        return cls(client.CoreV1Api(api_client), request_timeout=request_timeout)

    def _request_kwargs(self) -> dict:
        if self.request_timeout is None:
            return {}
        return {"_request_timeout": self.request_timeout}

    def get(self, name: str) -> Node:
        try:
            v1_node = self.api.read_node(name, **self._request_kwargs())
        except ApiException as e:
            if e.status == 404:
                raise NodeNotFoundError(name, _describe(e)) from e
            raise NodeStoreError(f"failed to get node {name}: {_describe(e)}") from e
        except HTTPError as e:
            raise NodeStoreError(f"failed to get node {name}: {e}") from e
        return Node.from_kubernetes(v1_node)

    def list(self) -> list[Node]:
        try:
            response = self.api.list_node(**self._request_kwargs())
        except ApiException as e:
            raise NodeStoreError(f"failed to list cluster nodes: {_describe(e)}") from e
        except HTTPError as e:
            raise NodeStoreError(f"failed to list cluster nodes: {e}") from e
        return [Node.from_kubernetes(n) for n in response.items]

    def update(self, node: Node) -> Node:
        try:
            v1_node = self.api.replace_node(
                node.name, node.to_kubernetes(), **self._request_kwargs()
            )
        except ApiException as e:
            if e.status == 404:
                raise NodeNotFoundError(node.name, _describe(e)) from e
            if e.status == 409:
                raise NodeUpdateConflictError(
                    f"node {node.name} was modified concurrently: {_describe(e)}",
                    "List the nodes again and retry the operation",
                ) from e
            raise NodeStoreError(f"failed to update node {node.name}: {_describe(e)}") from e
        except HTTPError as e:
            raise NodeStoreError(f"failed to update node {node.name}: {e}") from e
        return Node.from_kubernetes(v1_node)
