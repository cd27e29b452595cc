"""Temporal co-occurrence window filter."""

from typing import Callable, Iterable, TypeVar

from ..graph.schema import to_number

T = TypeVar("T")


def within_window(
    timestamp: float | int | str | None,
    reference: float | int | str | None,
    half_width: float | int | str | None,
) -> bool:
    """Open interval test: reference - half_width < timestamp < reference + half_width."""
    t = to_number(timestamp)
    t0 = to_number(reference)
    w = to_number(half_width)
    if t is None or t0 is None or w is None:
        return False
    return (t0 - w) < t < (t0 + w)


def filter_by_window(
    items: Iterable[T],
    *,
    reference: float | None,
    half_width: float | None,
    timestamp: Callable[[T], float | None],
) -> list[T]:
    """Keep items whose timestamp lies strictly inside the window, in order."""
    return [
        item
        for item in items
        if within_window(timestamp(item), reference, half_width)
    ]
