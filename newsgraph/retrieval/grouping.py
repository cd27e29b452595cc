"""Insertion-ordered grouping of result sequences."""

from typing import Any, Callable, Hashable, Iterable, TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def group_by(items: Iterable[T], key_fn: Callable[[T], K]) -> dict[K, list[T]]:
    """Partition items by key.

    Keys appear in first-seen order and members keep their original order.
    """
    groups: dict[K, list[T]] = {}
    for item in items:
        groups.setdefault(key_fn(item), []).append(item)
    return groups


def _hashable(value: Any) -> Hashable:
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    if isinstance(value, dict):
        return tuple(sorted((k, _hashable(v)) for k, v in value.items()))
    return value


def group_by_field(items: Iterable[dict], field: str) -> dict[Hashable, list[dict]]:
    """Group shaped items by one of their fields (missing field -> None)."""
    return group_by(items, lambda item: _hashable(item.get(field)))
