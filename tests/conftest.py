"""Pytest configuration and shared fixtures."""

import threading

import pytest
from hypothesis import Verbosity, settings

from nodeprep.exceptions import NodeNotFoundError, NodeStoreError
from nodeprep.models.node import Node, NodeTaint

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

settings.load_profile("default")

MASTER_TAINT = NodeTaint(key="node-role.kubernetes.io/master", effect="NoSchedule")
CONTROL_PLANE_TAINT = NodeTaint(key="node-role.kubernetes.io/control-plane", effect="NoSchedule")


class FakeNodeStore:
    """In-memory node store that records updates and can be sabotaged.

    ``fail_updates_for`` names nodes whose updates raise ``update_error``; ``list_error`` and
    ``get_error`` make the corresponding calls fail.
    """

    def __init__(self, nodes=()):
        self.nodes = {n.name: n.model_copy(deep=True) for n in nodes}
        self.updated: list[str] = []
        self.fail_updates_for: set[str] = set()
        self.update_error = NodeStoreError("dummy error")
        self.list_error: Exception | None = None
        self.get_error: Exception | None = None
        self.list_calls = 0
        self._lock = threading.Lock()

    def get(self, name):
        if self.get_error is not None:
            raise self.get_error
        if name not in self.nodes:
            raise NodeNotFoundError(name)
        return self.nodes[name].model_copy(deep=True)

    def list(self):
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return [n.model_copy(deep=True) for n in self.nodes.values()]

    def update(self, node):
        with self._lock:
            self.updated.append(node.name)
            if node.name in self.fail_updates_for:
                raise self.update_error
            if node.name not in self.nodes:
                raise NodeNotFoundError(node.name)
            self.nodes[node.name] = node.model_copy(deep=True)
        return node

    def taints_of(self, name):
        return set(self.nodes[name].taints)

    def labels_of(self, name):
        return dict(self.nodes[name].labels)


@pytest.fixture
def make_store():
    """Factory building a FakeNodeStore pre-populated with nodes."""

    def _make(*nodes):
        return FakeNodeStore(nodes)

    return _make


@pytest.fixture
def mixed_cluster():
    """Two workers, one master and one control-plane node."""
    return [
        Node(name="worker-a", labels={"zone": "a"}),
        Node(name="worker-b", labels={"zone": "b"}),
        Node(name="master-a", taints=[MASTER_TAINT]),
        Node(name="control-plane-a", taints=[CONTROL_PLANE_TAINT]),
    ]
