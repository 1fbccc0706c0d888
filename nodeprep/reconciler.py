"""Bulk reconciliation of node taints and labels.

Batch operations list the nodes once, then reconcile each node independently: the new taints or
labels are computed, and the node is updated only if they differ from what it already has.
Repeating an operation is therefore a no-op.

Batch operations do not fail fast. Their callers are test suites that retry until setup
succeeds, so every node that can be reconciled is, and all per-node failures are reported
together in a single NodeBatchError. Failing to list the nodes, on the other hand, fails the
operation immediately. Every desired state is computed before the first write, so a
TaintConflictError propagates with no node updated.
"""

import concurrent.futures
import functools
from collections.abc import Callable, Collection, Iterable, Mapping

from nodeprep.classifier import DEFAULT_MASTER_TAINT_KEYS, filter_workers
from nodeprep.exceptions import (
    NodeBatchError,
    NodeFailure,
    NodeNotFoundError,
    NodeStoreError,
    NodeTimeoutError,
)
from nodeprep.labels import labels_merge, labels_remove_keys
from nodeprep.logging_config import get_logger
from nodeprep.models.node import Node, NodeTaint
from nodeprep.store import NodeStore
from nodeprep.taints import same_taints, taints_difference, taints_union

logger = get_logger(__name__)


def _format_taints(taints: Iterable[NodeTaint]) -> str:
    return "[" + ", ".join(str(t) for t in taints) + "]"


class NodeReconciler:
    """Applies taint and label changes across the nodes of a cluster."""

    def __init__(
        self,
        store: NodeStore,
        master_taint_keys: Collection[str] = DEFAULT_MASTER_TAINT_KEYS,
        max_workers: int = 1,
    ):
        """Initialize the reconciler.

        Args:
            store: Node store used to read and update nodes
            master_taint_keys: Taint keys that mark a node as master/control plane
            max_workers: Number of nodes reconciled in parallel during batch operations
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.store = store
        self.master_taint_keys = frozenset(master_taint_keys)
        self.max_workers = max_workers

    def get(self, name: str) -> Node:
        """Return the node named ``name``.

        Raises:
            NodeNotFoundError: If the node does not exist
            NodeStoreError: If the node cannot be read
        """
        return self.store.get(name)

    def get_labels(self, name: str) -> dict[str, str]:
        """Return the labels of the node named ``name``."""
        try:
            return dict(self.get(name).labels)
        except NodeNotFoundError:
            raise
        except NodeStoreError as e:
            raise NodeStoreError(
                f"failed to get labels for node {name}: {e.message}", e.details
            ) from e

    def list_all(self) -> list[Node]:
        """Return all nodes, master ones included."""
        return self.store.list()

    def list_workers(self) -> list[Node]:
        """Return the nodes that carry none of the master taint keys."""
        return filter_workers(self.list_all(), self.master_taint_keys)

    def taint_workers(self, taints: Iterable[NodeTaint], timeout: float | None = None) -> None:
        """Add ``taints`` to every worker node.

        Workers that already carry some of the taints only get the missing ones; workers that
        carry all of them are left untouched.

        Raises:
            NodeStoreError: If the nodes cannot be listed
            NodeBatchError: If one or more workers could not be updated
            TaintConflictError: If a worker has a taint with a requested key but another value
                or effect; no node is updated in that case
        """
        taints = list(taints)
        workers = self._fetch("taint worker nodes", self.list_workers)
        self._reconcile_all(
            "tainting worker nodes",
            workers,
            lambda n: self._tainted(n, taints),
            f"add taints {_format_taints(taints)}",
            timeout,
        )

    def untaint_all(self, taints: Iterable[NodeTaint], timeout: float | None = None) -> None:
        """Remove ``taints`` from every node, master ones included.

        Raises:
            NodeStoreError: If the nodes cannot be listed
            NodeBatchError: If one or more nodes could not be updated
            TaintConflictError: If a node has a taint with a requested key but another value
                or effect; no node is updated in that case
        """
        taints = list(taints)
        nodes = self._fetch("untaint nodes", self.list_all)
        self._reconcile_all(
            "removing taints from nodes",
            nodes,
            lambda n: self._untainted(n, taints),
            f"remove taints {_format_taints(taints)}",
            timeout,
        )

    def unlabel_all(self, keys: Iterable[str], timeout: float | None = None) -> None:
        """Remove the labels with the given keys from every node, whatever their values.

        Raises:
            NodeStoreError: If the nodes cannot be listed
            NodeBatchError: If one or more nodes could not be updated
        """
        keys = list(keys)
        nodes = self._fetch("unlabel nodes", self.list_all)
        self._reconcile_all(
            "unlabeling nodes",
            nodes,
            lambda n: self._relabeled(n, labels_remove_keys(n.labels, keys)),
            f"remove labels with keys {keys}",
            timeout,
        )

    def label_workers(self, labels: Mapping[str, str], timeout: float | None = None) -> None:
        """Add ``labels`` to every worker node, overwriting existing values.

        Raises:
            NodeStoreError: If the nodes cannot be listed
            NodeBatchError: If one or more workers could not be updated
        """
        labels = dict(labels)
        workers = self._fetch("label worker nodes", self.list_workers)
        self._reconcile_all(
            "labeling worker nodes",
            workers,
            lambda n: self._relabeled(n, labels_merge(n.labels, labels)),
            f"add labels {labels}",
            timeout,
        )

    def label(self, node: Node, labels: Mapping[str, str]) -> bool:
        """Add ``labels`` to a single node, overwriting existing values.

        Returns:
            True if the node was updated, False if it already had the labels

        Raises:
            NodeStoreError: If the update fails; the subclass of the store error is preserved
        """
        changed = self._relabeled(node, labels_merge(node.labels, labels))
        if changed is None:
            return False
        try:
            self.store.update(changed)
        except NodeStoreError as e:
            logger.error(f"Failed to add labels {dict(labels)} to node {node.name}: {e}")
            raise
        return True

    def _fetch(self, operation: str, list_nodes: Callable[[], list[Node]]) -> list[Node]:
        try:
            return list_nodes()
        except NodeStoreError as e:
            logger.error(f"Failed to {operation}: {e}")
            raise NodeStoreError(f"failed to {operation}: {e.message}", e.details) from e

    # The helpers below return the node to write, or None when it already has the target state.

    def _tainted(self, node: Node, taints: list[NodeTaint]) -> Node | None:
        if node.taints:
            logger.warning(
                f"Node {node.name} is already tainted with {_format_taints(node.taints)}. "
                "This might break the tolerations tests."
            )

        new_taints = taints_union(node.taints, taints)
        if same_taints(new_taints, node.taints):
            return None
        return node.model_copy(update={"taints": new_taints})

    def _untainted(self, node: Node, taints: list[NodeTaint]) -> Node | None:
        new_taints = taints_difference(node.taints, taints)
        if same_taints(new_taints, node.taints):
            return None
        return node.model_copy(update={"taints": new_taints})

    def _relabeled(self, node: Node, new_labels: dict[str, str]) -> Node | None:
        if new_labels == node.labels:
            return None
        return node.model_copy(update={"labels": new_labels})

    def _reconcile_all(
        self,
        operation: str,
        nodes: list[Node],
        desired: Callable[[Node], Node | None],
        action: str,
        timeout: float | None,
    ) -> None:
        """Write the desired state of every node and raise a NodeBatchError for the failed ones.

        Desired states are computed for all nodes before the first write, so a
        TaintConflictError leaves the cluster untouched. Only the calling thread touches
        ``failures``; workers report through their futures.

        A node still being written when ``timeout`` expires is reported as failed, but its
        write is not interrupted. Whatever happens to it afterwards is logged.
        """
        changes = []
        for node in nodes:
            changed = desired(node)
            if changed is not None:
                changes.append(changed)

        logger.info(f"Started {operation}: {len(changes)} of {len(nodes)} node(s) need an update")

        failures: list[NodeFailure] = []
        updated = 0
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="nodeprep"
        )
        try:
            futures = {executor.submit(self.store.update, node): node for node in changes}
            done, _ = concurrent.futures.wait(futures, timeout=timeout)

            for future, node in futures.items():
                if future not in done:
                    if not future.cancel():
                        future.add_done_callback(
                            functools.partial(_log_late_outcome, node.name, action)
                        )
                    failures.append(
                        NodeFailure(
                            node.name,
                            action,
                            NodeTimeoutError(f"node {node.name} not reconciled within {timeout}s"),
                        )
                    )
                    continue
                try:
                    future.result()
                    updated += 1
                    logger.debug(f"Node {node.name} updated to {action}")
                except NodeStoreError as e:
                    logger.warning(f"Failed to {action} on node {node.name}: {e}")
                    failures.append(NodeFailure(node.name, action, e))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            f"Finished {operation}: {updated} updated, "
            f"{len(nodes) - len(changes)} unchanged, {len(failures)} failed"
        )
        if failures:
            raise NodeBatchError(operation, failures)


def _log_late_outcome(node_name: str, action: str, future: concurrent.futures.Future) -> None:
    error = future.exception()
    if error is not None:
        logger.error(f"Failed to {action} on node {node_name} after the deadline: {error}")
    else:
        logger.warning(f"Node {node_name} updated to {action} after the deadline")
