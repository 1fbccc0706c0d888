"""Data models for nodes and configuration."""

from nodeprep.models.config import DEFAULT_MASTER_TAINT_KEYS, NodePrepConfig
from nodeprep.models.node import TAINT_EFFECTS, Node, NodeTaint

__all__ = [
    "Node",
    "NodeTaint",
    "NodePrepConfig",
    "DEFAULT_MASTER_TAINT_KEYS",
    "TAINT_EFFECTS",
]
