"""Path-count ranking of candidates reached through intermediate nodes."""

import logging
from typing import Callable, Iterable

from ..graph.schema import Direction
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from .traversal import GraphStore, distinct_vertices, resolve_document, walk
from .types import (
    DocumentNode,
    PathGroup,
    RankedItem,
    RankedResult,
    TraversalRequest,
    TraversalRow,
)
from .window import within_window

log = logging.getLogger(__name__)

_EMPTY = RankedResult(items=())


def count_paths(
    rows: Iterable[TraversalRow],
    key_fn: Callable[[TraversalRow], str | None],
) -> list[PathGroup]:
    """Count rows per candidate key, keys in first-seen order.

    Rows whose key is None are skipped.
    """
    counts: dict[str, int] = {}
    for row in rows:
        key = key_fn(row)
        if key is None:
            continue
        counts[key] = counts.get(key, 0) + 1
    return [PathGroup(key=key, path_count=count) for key, count in counts.items()]


def rank_groups(
    groups: list[PathGroup],
    *,
    descending: bool = True,
    limit: int | None = None,
) -> list[PathGroup]:
    """Stable sort by path count; equal counts keep visitation order."""
    ranked = sorted(groups, key=lambda group: group.path_count, reverse=descending)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def _url_of(doc: DocumentNode | None, config: RetrievalConfig) -> str | None:
    if doc is None:
        return None
    url = doc.get(config.profile_for(doc.collection).url_field)
    return url if isinstance(url, str) and url else None


def _has_term_frequency(row: TraversalRow, config: RetrievalConfig) -> bool:
    for name in config.term_frequency_fields:
        value = row.edge.payload.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            return True
    return False


def rank_via_shared_document(
    storage: GraphStore,
    request: TraversalRequest,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> RankedResult:
    """Rank articles by paths through documents sharing the start article's url.

    From every document with the article's url, walk outbound to
    intermediates reached over an edge with a positive term frequency, then
    inbound to terminals of the same source. Paths are counted per url of the
    first inbound vertex; the top groups are resolved back to articles and
    filtered by the window around the start article's timestamp.
    """
    start = resolve_document(storage, request.start_id, config)
    start_url = _url_of(start, config)
    if start is None or start_url is None:
        return _EMPTY

    documents = [
        DocumentNode.from_payload(payload, config)
        for payload in storage.find_documents(config.document_collection, "url", start_url)
    ]

    inbound_cache: dict[str, list[TraversalRow]] = {}
    candidate_rows: list[TraversalRow] = []
    for doc in documents:
        source = doc.get(config.shared_attribute)
        outbound = walk(
            storage,
            doc.node_id,
            depth=request.depth,
            direction=Direction.OUT,
            graph=request.graph,
            config=config,
        )
        for row in outbound:
            if not _has_term_frequency(row, config):
                continue
            intermediate = row.vertex.node_id
            if intermediate not in inbound_cache:
                inbound_cache[intermediate] = walk(
                    storage,
                    intermediate,
                    depth=request.depth,
                    direction=Direction.IN,
                    graph=request.graph,
                    config=config,
                )
            candidate_rows.extend(
                inbound
                for inbound in inbound_cache[intermediate]
                if inbound.vertex.node_id != doc.node_id
                and inbound.vertex.get(config.shared_attribute) == source
            )

    groups = rank_groups(
        count_paths(candidate_rows, lambda row: _url_of(row.vertex_at(1), config)),
        descending=config.shared_document_descending,
        limit=request.limit,
    )

    items: list[RankedItem] = []
    for group in groups:
        for payload in storage.find_documents(config.article_collection, "url", group.key):
            article = DocumentNode.from_payload(payload, config)
            if article.node_id == start.node_id:
                continue
            if within_window(article.timestamp, start.timestamp, request.window):
                items.append(RankedItem(document=article, path_count=group.path_count))

    log.debug(
        f"rank_via_shared_document {request.start_id}: "
        f"{len(documents)} documents, {len(groups)} groups, {len(items)} items"
    )
    return RankedResult(items=tuple(items))


def _origin_matches(row: TraversalRow, origins: tuple[str, ...] | None) -> bool:
    if origins:
        return bool(set(row.edge.origins) & set(origins))
    return bool(row.edge.origins)


def rank_with_origin(
    storage: GraphStore,
    request: TraversalRequest,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> RankedResult:
    """Rank neighbors by the number of qualifying paths reaching them.

    A path qualifies when its last edge carries a matching origin, its vertex
    is in the requested category, is not the start article and lies strictly
    within the window around the start article's timestamp.
    """
    start = resolve_document(storage, request.start_id, config)
    if start is None:
        return _EMPTY

    rows = walk(
        storage,
        start.node_id,
        depth=request.depth,
        direction=Direction.ANY,
        graph=request.graph,
        config=config,
    )
    kept = [
        row
        for row in rows
        if _origin_matches(row, request.origins)
        and request.category in row.vertex.category
        and row.vertex.key != start.key
        and within_window(row.vertex.timestamp, start.timestamp, request.window)
    ]

    vertices: dict[str, DocumentNode] = {}
    for row in kept:
        vertices.setdefault(row.vertex.node_id, row.vertex)

    groups = rank_groups(
        count_paths(kept, lambda row: row.vertex.node_id),
        descending=config.origin_descending,
    )
    items = [
        RankedItem(document=vertices[group.key], path_count=group.path_count)
        for group in groups
        if vertices[group.key].collection == config.article_collection
    ]
    if request.limit is not None:
        items = items[: request.limit]
    return RankedResult(items=tuple(items))


def fan_out_from_entities(
    storage: GraphStore,
    request: TraversalRequest,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[DocumentNode]:
    """Articles pointing at entities named by the query terms.

    Candidates must be in the requested category, differ from the start
    article and fall strictly within the window around the caller's
    reference timestamp. Distinct by identity, in visitation order.
    """
    start = resolve_document(storage, request.start_id, config)
    if start is None:
        return []

    entities = storage.find_entities(list(request.terms), config.entity_collection)
    rows: list[TraversalRow] = []
    for payload in entities:
        rows.extend(
            walk(
                storage,
                str(payload.get("id")),
                depth=request.depth,
                direction=Direction.IN,
                graph=request.graph,
                config=config,
            )
        )

    return distinct_vertices(
        rows,
        lambda row: request.category in row.vertex.category
        and row.vertex.key != start.key
        and within_window(row.vertex.timestamp, request.reference_time, request.window),
    )


def rank_by_shared_id(
    storage: GraphStore,
    request: TraversalRequest,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> RankedResult:
    """Rank articles by paths grouped on the third vertex of each path.

    Only rows reached over an edge of the requested type and ending away
    from the start count; paths shorter than two hops carry no key.
    """
    start = resolve_document(storage, request.start_id, config)
    if start is None:
        return _EMPTY

    rows = walk(
        storage,
        start.node_id,
        depth=request.depth,
        direction=Direction.ANY,
        graph=request.graph,
        config=config,
    )
    kept = [
        row
        for row in rows
        if row.edge.relation == request.edge_type
        and row.vertex.node_id != start.node_id
    ]

    def third_vertex(row: TraversalRow) -> str | None:
        vertex = row.vertex_at(2)
        if vertex is None or vertex.node_id == start.node_id:
            return None
        return vertex.node_id

    groups = rank_groups(
        count_paths(kept, third_vertex),
        descending=config.shared_id_descending,
        limit=request.limit,
    )

    items: list[RankedItem] = []
    for group in groups:
        article = resolve_document(storage, group.key, config)
        if article is not None and article.collection == config.article_collection:
            items.append(RankedItem(document=article, path_count=group.path_count))
    return RankedResult(items=tuple(items))
