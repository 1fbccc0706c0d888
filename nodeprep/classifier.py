"""Worker and master node classification.

A node is a master (control plane) node when it carries at least one taint whose key is in the
master taint key set, and a worker otherwise. Classification only looks at the node as given, so
adding or removing a taint changes it immediately.
"""

from collections.abc import Collection, Iterable

from nodeprep.models.config import DEFAULT_MASTER_TAINT_KEYS as _DEFAULT_KEYS
from nodeprep.models.node import Node, NodeTaint

DEFAULT_MASTER_TAINT_KEYS: frozenset[str] = frozenset(_DEFAULT_KEYS)


def has_master_taint(
    taints: Iterable[NodeTaint] | None, master_taint_keys: Collection[str]
) -> bool:
    """Return True if any taint key is a master taint key."""
    return any(t.key in master_taint_keys for t in taints or [])


def is_worker(node: Node, master_taint_keys: Collection[str] = DEFAULT_MASTER_TAINT_KEYS) -> bool:
    """Return True if the node carries no master taint."""
    return not has_master_taint(node.taints, master_taint_keys)


def filter_workers(
    nodes: Iterable[Node], master_taint_keys: Collection[str] = DEFAULT_MASTER_TAINT_KEYS
) -> list[Node]:
    """Return the worker nodes among ``nodes``, preserving order."""
    return [n for n in nodes if is_worker(n, master_taint_keys)]
