"""Taint and label reconciliation for Kubernetes test clusters."""

from nodeprep.exceptions import (
    ConfigurationError,
    NodeBatchError,
    NodeFailure,
    NodeNotFoundError,
    NodePrepError,
    NodeStoreError,
    NodeTimeoutError,
    NodeUpdateConflictError,
    TaintConflictError,
)
from nodeprep.models import Node, NodePrepConfig, NodeTaint
from nodeprep.reconciler import NodeReconciler
from nodeprep.store import KubernetesNodeStore, NodeStore

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "KubernetesNodeStore",
    "Node",
    "NodeBatchError",
    "NodeFailure",
    "NodeNotFoundError",
    "NodePrepConfig",
    "NodePrepError",
    "NodeReconciler",
    "NodeStore",
    "NodeStoreError",
    "NodeTaint",
    "NodeTimeoutError",
    "NodeUpdateConflictError",
    "TaintConflictError",
    "__version__",
]
