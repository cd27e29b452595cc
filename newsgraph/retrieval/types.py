"""Typed contracts for related-document retrieval."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..graph.schema import Direction, resolve_field, split_id, to_number
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig


def _string_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if item is not None)
    return tuple()


@dataclass(frozen=True)
class DocumentNode:
    node_id: str
    key: str
    collection: str
    category: tuple[str, ...]
    subcategory: tuple[str, ...]
    timestamp: float | None
    author: str | None
    source_tags: tuple[str, ...]
    payload: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
    ) -> "DocumentNode":
        node_id = str(payload.get("id") or "")
        collection, key = split_id(node_id)
        collection = str(payload.get("collection") or collection)
        profile = config.profile_for(collection)

        author = payload.get("author")
        return cls(
            node_id=node_id,
            key=str(payload.get("key") or key),
            collection=collection,
            category=_string_tuple(payload.get("category")),
            subcategory=_string_tuple(payload.get("subcategory")),
            timestamp=to_number(resolve_field(payload, profile.timestamp_field)),
            author=author if isinstance(author, str) else None,
            source_tags=_string_tuple(payload.get("source_tags")),
            payload=payload,
        )

    def get(self, field_name: str) -> Any:
        return resolve_field(self.payload, field_name)


@dataclass(frozen=True)
class EdgeRelation:
    edge_id: str | None
    source: str
    target: str
    relation: str
    weight: float | None
    origins: tuple[str, ...]
    payload: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
    ) -> "EdgeRelation":
        return cls(
            edge_id=payload.get("id"),
            source=str(payload.get("from_id") or ""),
            target=str(payload.get("to_id") or ""),
            relation=str(payload.get("relation") or ""),
            weight=to_number(payload.get(config.weight_field)),
            origins=_string_tuple(payload.get(config.origin_field)),
            payload=payload,
        )


@dataclass(frozen=True)
class TraversalRow:
    """One visited vertex, the edge that reached it, and the full path."""

    vertex: DocumentNode
    edge: EdgeRelation
    vertices: tuple[DocumentNode, ...]
    edges: tuple[EdgeRelation, ...]

    @property
    def depth(self) -> int:
        return len(self.edges)

    def vertex_at(self, index: int) -> DocumentNode | None:
        if 0 <= index < len(self.vertices):
            return self.vertices[index]
        return None

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
    ) -> "TraversalRow":
        vertices = tuple(
            DocumentNode.from_payload(v, config) for v in record["vertices"]
        )
        edges = tuple(EdgeRelation.from_payload(e, config) for e in record["edges"])
        return cls(vertex=vertices[-1], edge=edges[-1], vertices=vertices, edges=edges)


@dataclass(frozen=True)
class TraversalRequest:
    start_id: str
    depth: int
    direction: Direction
    graph: tuple[str, ...] = ()
    edge_type: str | None = None
    max_weight: float | None = None
    category: str | None = None
    window: float | None = None
    origins: tuple[str, ...] | None = None
    reference_time: float | None = None
    terms: tuple[str, ...] = ()
    limit: int | None = None


@dataclass(frozen=True)
class PathGroup:
    key: str
    path_count: int


@dataclass(frozen=True)
class RankedItem:
    document: DocumentNode
    path_count: int


@dataclass(frozen=True)
class RankedResult:
    items: tuple[RankedItem, ...]

    @property
    def documents(self) -> list[DocumentNode]:
        return [item.document for item in self.items]

    @property
    def path_counts(self) -> list[int]:
        return [item.path_count for item in self.items]

    def __len__(self) -> int:
        return len(self.items)


class DetailLevel(Enum):
    MINIMAL = "minimal"
    SUMMARY = "summary"
    FULL = "full"
    EXPLICIT = "explicit"


@dataclass(frozen=True)
class ProjectionSpec:
    """Closed projection variant: minimal, summary, full or explicit fields."""

    detail: DetailLevel
    fields: tuple[str, ...] = ()
    redact: bool = False

    @classmethod
    def minimal(cls, redact: bool = False) -> "ProjectionSpec":
        return cls(DetailLevel.MINIMAL, redact=redact)

    @classmethod
    def summary(cls, redact: bool = False) -> "ProjectionSpec":
        return cls(DetailLevel.SUMMARY, redact=redact)

    @classmethod
    def full(cls, redact: bool = False) -> "ProjectionSpec":
        return cls(DetailLevel.FULL, redact=redact)

    @classmethod
    def explicit(cls, fields: list[str], redact: bool = False) -> "ProjectionSpec":
        return cls(DetailLevel.EXPLICIT, fields=tuple(fields), redact=redact)
