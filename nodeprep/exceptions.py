"""Custom exceptions for nodeprep."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nodeprep.models.node import NodeTaint


class NodePrepError(Exception):
    """Base exception for all nodeprep errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ConfigurationError(NodePrepError):
    """Exception raised for configuration errors."""

    pass


class NodeStoreError(NodePrepError):
    """Exception raised when a call to the node API fails."""

    pass


class NodeNotFoundError(NodeStoreError):
    """Exception raised when the requested node does not exist."""

    def __init__(self, node_name: str, details: str = None):
        self.node_name = node_name
        super().__init__(f"node {node_name} not found", details)


class NodeUpdateConflictError(NodeStoreError):
    """Exception raised when a node changed between read and update."""

    pass


class NodeTimeoutError(NodeStoreError):
    """Exception raised for a node that was not reconciled before the batch deadline."""

    pass


class TaintConflictError(NodePrepError):
    """Exception raised when a requested taint disagrees with one already on a node.

    Two taints with the same key but a different value or effect can be neither merged nor
    removed by key alone. This is a caller error, so it is not a NodeStoreError and batch
    operations never aggregate it.
    """

    def __init__(self, key: str, existing: NodeTaint, requested: NodeTaint, operation: str):
        self.key = key
        self.existing = existing
        self.requested = requested
        self.operation = operation
        super().__init__(
            f"can't {operation}: found taint {existing} with key {key} but "
            f"(value, effect)=({existing.value}, {existing.effect}); "
            f"(value, effect) must be equal to ({requested.value}, {requested.effect})"
        )


@dataclass(frozen=True)
class NodeFailure:
    """A single node that could not be reconciled during a batch operation."""

    node_name: str
    action: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.node_name}: {self.action} failed: {self.error}"


class NodeBatchError(NodePrepError):
    """Exception raised when a batch operation failed on one or more nodes.

    The message names the operation; the details carry one line per failed node, in the
    order the failures were collected.
    """

    def __init__(self, operation: str, failures: list[NodeFailure]):
        self.operation = operation
        self.failures = list(failures)
        super().__init__(
            f"{operation} failed for {len(self.failures)} node(s)",
            "\n".join(f"- {failure}" for failure in self.failures),
        )

    @property
    def node_names(self) -> list[str]:
        """Names of the failed nodes."""
        return [failure.node_name for failure in self.failures]

    def __len__(self) -> int:
        return len(self.failures)

    def __iter__(self):
        return iter(self.failures)
