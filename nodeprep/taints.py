"""Set operations over node taints.

Taints are keyed by taint key: a node carries at most one taint per key. Requesting a taint
whose key is already present with a different value or effect is a conflict, both when adding
and when removing. Removal must name the taint exactly; it never falls back to matching by key.

The results are lists, but their order carries no meaning. Compare them with ``same_taints``.
"""

from collections.abc import Iterable

from nodeprep.exceptions import TaintConflictError
from nodeprep.models.node import NodeTaint


def _by_key(taints: Iterable[NodeTaint] | None) -> dict[str, NodeTaint]:
    return {t.key: t for t in taints or []}


def _check_conflict(existing: NodeTaint | None, requested: NodeTaint, operation: str) -> None:
    if existing is None:
        return
    if existing.value != requested.value or existing.effect != requested.effect:
        raise TaintConflictError(requested.key, existing, requested, operation)


def taints_union(
    current: Iterable[NodeTaint] | None, requested: Iterable[NodeTaint]
) -> list[NodeTaint]:
    """Return ``current`` with every taint in ``requested`` added.

    Raises:
        TaintConflictError: If a requested key is already present with another value or effect
    """
    union = _by_key(current)
    for taint in requested:
        _check_conflict(union.get(taint.key), taint, "taint node")
        union[taint.key] = taint
    return list(union.values())


def taints_difference(
    current: Iterable[NodeTaint] | None, to_remove: Iterable[NodeTaint]
) -> list[NodeTaint]:
    """Return ``current`` without the taints in ``to_remove``.

    Taints in ``to_remove`` that are not present are ignored.

    Raises:
        TaintConflictError: If a key to remove is present with another value or effect
    """
    remaining = _by_key(current)
    for taint in to_remove:
        _check_conflict(remaining.get(taint.key), taint, "untaint node")
        remaining.pop(taint.key, None)
    return list(remaining.values())


def same_taints(x: Iterable[NodeTaint] | None, y: Iterable[NodeTaint] | None) -> bool:
    """Compare two taint collections ignoring order."""
    return set(x or []) == set(y or [])
