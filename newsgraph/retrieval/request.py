"""Validation of caller parameters into traversal requests."""

from typing import Any, Iterable

from ..graph.schema import Direction, normalize_relation, qualify_id, to_number
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from .errors import InvalidArgument
from .types import TraversalRequest


def require_identity(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{name} must be a non-empty string")
    return value.strip()


def require_positive_int(value: Any, name: str, *, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be a positive integer, got {value!r}")
    if value < 1:
        raise InvalidArgument(f"{name} must be a positive integer, got {value}")
    if maximum is not None and value > maximum:
        raise InvalidArgument(f"{name} must be at most {maximum}, got {value}")
    return value


def require_relation(value: Any, name: str) -> str:
    if value is None:
        raise InvalidArgument(f"{name} is required")
    return normalize_relation(require_identity(value, name))


def require_number(value: Any, name: str) -> float:
    number = to_number(value)
    if number is None:
        raise InvalidArgument(f"{name} must be numeric, got {value!r}")
    return number


def require_window(value: Any, name: str) -> float:
    window = require_number(value, name)
    if window < 0:
        raise InvalidArgument(f"{name} must not be negative, got {value}")
    return window


def require_offset(value: Any, name: str = "offset") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgument(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _string_set(values: Iterable[Any] | None, name: str) -> tuple[str, ...]:
    if values is None:
        return tuple()
    if isinstance(values, str):
        raise InvalidArgument(f"{name} must be a list of strings")
    cleaned: list[str] = []
    for value in values:
        if not isinstance(value, str):
            raise InvalidArgument(f"{name} must be a list of strings, got {value!r}")
        if value.strip() and value.strip() not in cleaned:
            cleaned.append(value.strip())
    return tuple(cleaned)


def build_request(
    start_id: Any,
    depth: Any,
    *,
    collection: str,
    direction: Direction = Direction.OUT,
    graph: tuple[str, ...] = (),
    edge_type: Any = None,
    max_weight: Any = None,
    category: Any = None,
    window: Any = None,
    origins: Any = None,
    reference_time: Any = None,
    terms: Any = None,
    limit: Any = None,
    required: tuple[str, ...] = (),
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> TraversalRequest:
    """Validate caller parameters into a TraversalRequest.

    Companion parameters named in ``required`` must be present. Nothing here
    touches the store.

    Raises:
        InvalidArgument: on empty identity, non-positive depth, or a missing
            or malformed companion parameter
    """
    start = qualify_id(require_identity(start_id, "start_id"), collection)
    bounded_depth = require_positive_int(depth, "depth", maximum=config.max_depth)

    for name, value in (
        ("edge_type", edge_type),
        ("max_weight", max_weight),
        ("category", category),
        ("window", window),
        ("reference_time", reference_time),
        ("terms", terms),
        ("limit", limit),
    ):
        if name in required and value is None:
            raise InvalidArgument(f"{name} is required")

    relation = require_relation(edge_type, "edge_type") if edge_type is not None else None

    normalized_terms = _string_set(terms, "terms")
    if "terms" in required and not normalized_terms:
        raise InvalidArgument("terms must contain at least one term")

    return TraversalRequest(
        start_id=start,
        depth=bounded_depth,
        direction=direction,
        graph=tuple(normalize_relation(name) for name in graph),
        edge_type=relation,
        max_weight=(
            require_number(max_weight, "max_weight") if max_weight is not None else None
        ),
        category=require_identity(category, "category") if category is not None else None,
        window=require_window(window, "window") if window is not None else None,
        origins=_string_set(origins, "origins") or None,
        reference_time=(
            require_number(reference_time, "reference_time")
            if reference_time is not None
            else None
        ),
        terms=normalized_terms,
        limit=(
            require_positive_int(limit, "limit", maximum=config.max_limit)
            if limit is not None
            else None
        ),
    )
