"""Data models for cluster nodes and their taints."""

import copy
from typing import Any

from kubernetes.client import V1Node, V1NodeSpec, V1ObjectMeta, V1Taint
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

TAINT_EFFECTS = ("NoSchedule", "PreferNoSchedule", "NoExecute")


class NodeTaint(BaseModel):
    """Kubernetes node taint.

    Taints are immutable and hashable so that collections of them can be compared as sets.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    value: str = ""
    effect: str  # NoSchedule, PreferNoSchedule, NoExecute

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Validate taint key is not empty."""
        if not v:
            raise ValueError("taint key cannot be empty")
        return v

    @field_validator("effect")
    @classmethod
    def validate_effect(cls, v: str) -> str:
        """Validate taint effect is one of the allowed values."""
        if v not in TAINT_EFFECTS:
            raise ValueError(f"effect must be one of {list(TAINT_EFFECTS)}, got {v}")
        return v

    def __str__(self) -> str:
        if self.value:
            return f"{self.key}={self.value}:{self.effect}"
        return f"{self.key}:{self.effect}"

    @classmethod
    def parse(cls, text: str) -> "NodeTaint":
        """Parse a taint written as ``key=value:effect`` or ``key:effect``.

        Raises:
            ValueError: If the text is malformed or the taint is invalid
        """
        text = text.strip()
        if ":" not in text:
            raise ValueError(f"invalid taint format: '{text}'. Expected 'key=value:effect'")
        key_value, effect = text.rsplit(":", 1)
        key, _, value = key_value.partition("=")
        return cls(key=key.strip(), value=value.strip(), effect=effect.strip())

    @classmethod
    def from_kubernetes(cls, taint: V1Taint) -> "NodeTaint":
        """Build from a kubernetes client taint."""
        return cls(key=taint.key, value=taint.value or "", effect=taint.effect)

    def to_kubernetes(self) -> V1Taint:
        """Convert to a kubernetes client taint."""
        return V1Taint(key=self.key, value=self.value or None, effect=self.effect)


class Node(BaseModel):
    """A cluster node, reduced to the attributes nodeprep reconciles."""

    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    taints: list[NodeTaint] = Field(default_factory=list)
    resource_version: str | None = None

    # Object the node was read from; written back on update so unmanaged fields survive.
    _source: Any = PrivateAttr(default=None)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate node name is not empty."""
        if not v:
            raise ValueError("node name cannot be empty")
        return v

    @field_validator("taints")
    @classmethod
    def validate_unique_taint_keys(cls, v: list[NodeTaint]) -> list[NodeTaint]:
        """Validate a node carries at most one taint per key."""
        keys = [t.key for t in v]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"taint keys must be unique, found duplicates: {duplicates}")
        return v

    def taint_keys(self) -> set[str]:
        """Return the keys of all taints on the node."""
        return {t.key for t in self.taints}

    @classmethod
    def from_kubernetes(cls, node: V1Node) -> "Node":
        """Parse from a kubernetes client node object."""
        metadata = node.metadata or V1ObjectMeta()
        spec_taints = node.spec.taints if node.spec else None

        result = cls(
            name=metadata.name,
            labels=dict(metadata.labels or {}),
            taints=[NodeTaint.from_kubernetes(t) for t in spec_taints or []],
            resource_version=metadata.resource_version,
        )
        result._source = node
        return result

    def to_kubernetes(self) -> V1Node:
        """Convert to a kubernetes client node object suitable for a full replace."""
        if self._source is not None:
            body = copy.deepcopy(self._source)
        else:
            body = V1Node(metadata=V1ObjectMeta(name=self.name), spec=V1NodeSpec())

        if body.metadata is None:
            body.metadata = V1ObjectMeta(name=self.name)
        if body.spec is None:
            body.spec = V1NodeSpec()

        # Unchanged taints keep their source object, and with it fields such as time_added
        existing = {NodeTaint.from_kubernetes(t): t for t in body.spec.taints or []}

        body.metadata.labels = dict(self.labels)
        body.metadata.resource_version = self.resource_version
        body.spec.taints = [existing.get(t) or t.to_kubernetes() for t in self.taints]
        return body
