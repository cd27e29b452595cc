"""Store access and bounded traversal shared by the discovery strategies."""

from contextlib import contextmanager
import logging
from typing import Any, Callable, Iterable, Iterator, Protocol

from ..graph.schema import Direction, ListingFilter
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from .types import DocumentNode, TraversalRow

log = logging.getLogger(__name__)


class GraphStore(Protocol):
    def get_document(self, node_id: str) -> dict | None: ...

    def find_documents(
        self, collection: str, field: str, value: Any, limit: int | None = None
    ) -> list[dict]: ...

    def find_documents_containing(
        self, collection: str, field: str, value: Any, limit: int | None = None
    ) -> list[dict]: ...

    def find_entities(
        self, names: list[str], collection: str = "Entity", match_key: bool = False
    ) -> list[dict]: ...

    def traverse(
        self,
        start_id: str,
        *,
        depth: int,
        direction: Direction | str = Direction.OUT,
        relations: tuple[str, ...] = (),
        min_depth: int = 1,
    ) -> list[dict]: ...

    def list_documents(
        self,
        collection: str,
        *,
        filters: ListingFilter | None = None,
        sort_field: str | None = "epoch_time",
        descending: bool = True,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict]: ...

    def list_linked(
        self,
        target_id: str,
        relation: str,
        collection: str,
        *,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict]: ...

    def distinct_values(
        self,
        collection: str,
        field: str,
        *,
        node_id: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[Any]: ...

    def document_edges(
        self, node_id: str, relations: tuple[str, ...], limit: int = 20
    ) -> list[dict]: ...

    def close(self) -> None: ...


@contextmanager
def open_storage(
    storage: GraphStore | None = None,
    settings=None,
    db_url: str | None = None,
) -> Iterator[GraphStore]:
    """Yield the injected storage, or a Neo4j storage closed on exit.

    A ``db_url`` only replaces the endpoint of the configured settings.
    """
    if storage is not None:
        yield storage
        return

    from ..graph.neo4j_storage import Neo4jStorage
    from ..settings import StoreSettings

    settings = (settings or StoreSettings.from_env()).with_uri(db_url)
    owned = Neo4jStorage.from_settings(settings)
    try:
        yield owned
    finally:
        owned.close()


def resolve_document(
    storage: GraphStore,
    node_id: str,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> DocumentNode | None:
    payload = storage.get_document(node_id)
    if payload is None:
        return None
    return DocumentNode.from_payload(payload, config)


def walk(
    storage: GraphStore,
    start_id: str,
    *,
    depth: int,
    direction: Direction,
    graph: tuple[str, ...] = (),
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[TraversalRow]:
    """Traverse 1..depth hops and type every path as a TraversalRow."""
    records = storage.traverse(
        start_id, depth=depth, direction=direction, relations=graph
    )
    rows = [
        TraversalRow.from_record(record, config)
        for record in records
        if record.get("edges")
    ]
    log.debug(f"walk {start_id} ({direction.value}, depth {depth}): {len(rows)} rows")
    return rows


def distinct_vertices(
    rows: Iterable[TraversalRow],
    keep: Callable[[TraversalRow], bool],
) -> list[DocumentNode]:
    """Vertices of the rows passing ``keep``, first occurrence wins."""
    seen: set[str] = set()
    vertices: list[DocumentNode] = []
    for row in rows:
        if row.vertex.node_id in seen or not keep(row):
            continue
        seen.add(row.vertex.node_id)
        vertices.append(row.vertex)
    return vertices
