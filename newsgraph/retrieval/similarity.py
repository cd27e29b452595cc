"""Direct similarity: neighbors reached over sufficiently similar edges."""

import logging

from ..graph.schema import Direction
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from .traversal import GraphStore, distinct_vertices, walk
from .types import DocumentNode, EdgeRelation, TraversalRequest

log = logging.getLogger(__name__)


def edge_qualifies(edge: EdgeRelation, request: TraversalRequest) -> bool:
    """Edge has the requested type and a weight strictly under the threshold.

    A missing weight never qualifies.
    """
    if request.edge_type is not None and edge.relation != request.edge_type:
        return False
    if request.max_weight is None:
        return True
    return edge.weight is not None and edge.weight < request.max_weight


def find_similar(
    storage: GraphStore,
    request: TraversalRequest,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[DocumentNode]:
    """Outbound neighbors within depth, filtered by edge type and weight.

    Results are distinct by identity in visitation order and never include
    the start document.
    """
    rows = walk(
        storage,
        request.start_id,
        depth=request.depth,
        direction=Direction.OUT,
        graph=request.graph,
        config=config,
    )
    similar = distinct_vertices(
        rows,
        lambda row: row.vertex.node_id != request.start_id
        and edge_qualifies(row.edge, request),
    )
    log.debug(f"find_similar {request.start_id}: {len(similar)} of {len(rows)} rows kept")
    return similar


def related_by_read_url(
    storage: GraphStore,
    url: str,
    *,
    depth: int,
    edge_type: str,
    graph: tuple[str, ...] = (),
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> tuple[DocumentNode | None, list[DocumentNode]]:
    """Articles related to the article whose ``read`` list links to ``url``.

    The query article is the first one (by identity) whose read entries carry
    the url. From it, any-direction neighbors reached over an ``edge_type``
    edge are returned, distinct and excluding the query article.

    Returns:
        (query article or None, related articles)
    """
    matches = storage.find_documents_containing(
        config.article_collection, "read_urls", url, limit=1
    )
    if not matches:
        return None, []

    query_article = DocumentNode.from_payload(matches[0], config)
    rows = walk(
        storage,
        query_article.node_id,
        depth=depth,
        direction=Direction.ANY,
        graph=graph,
        config=config,
    )
    related = distinct_vertices(
        rows,
        lambda row: row.vertex.node_id != query_article.node_id
        and row.edge.relation == edge_type,
    )
    return query_article, related
