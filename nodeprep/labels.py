"""Mapping operations over node labels."""

from collections.abc import Iterable, Mapping


def labels_merge(
    current: Mapping[str, str] | None, requested: Mapping[str, str]
) -> dict[str, str]:
    """Return ``current`` updated with ``requested``; requested values always win."""
    merged = dict(current or {})
    merged.update(requested)
    return merged


def labels_remove_keys(current: Mapping[str, str] | None, keys: Iterable[str]) -> dict[str, str]:
    """Return ``current`` without the given keys. Missing keys are ignored."""
    remaining = dict(current or {})
    for key in keys:
        remaining.pop(key, None)
    return remaining
