"""News Graph MCP Server.

Exposes related-article discovery and article/document listing as MCP tools.
Every tool answers with ``success`` set; failures carry ``error`` and
``error_kind`` and never partial results.
"""

import logging
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP

from ..graph.neo4j_storage import Neo4jStorage
from ..retrieval import listing, pipeline
from ..retrieval.config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from ..retrieval.errors import RetrievalError
from ..retrieval.traversal import GraphStore
from ..settings import StoreSettings, load_settings

log = logging.getLogger(__name__)

mcp = FastMCP(
    "News Graph",
    instructions="""
Related-article discovery over the news graph.

Similarity: get_crlr_related_articles(_unset) follow similarity edges under a threshold.
Path ranking: get_path_related_articles(_unset), get_path_related_docs rank by path counts.
Entities: get_related_articles_graph fans out from entities named by top terms.
Listing: recent_articles, articles_by_category, article_by_key, ... page through collections.

Every tool accepts an optional db_url to query another endpoint with the same credentials.
""",
)

settings: StoreSettings | None = None
config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG
storage: GraphStore | None = None


def init_server(
    store_settings: StoreSettings | None = None,
    retrieval_config: RetrievalConfig | None = None,
    graph_storage: GraphStore | None = None,
):
    """Initialize server with store settings and a shared storage."""
    global settings, config, storage
    settings = store_settings or StoreSettings.from_env()
    config = retrieval_config or DEFAULT_RETRIEVAL_CONFIG
    storage = graph_storage or Neo4jStorage.from_settings(settings)
    log.info(f"News graph server initialized against {settings.uri}")


def _require_storage() -> GraphStore:
    """Get storage or raise error."""
    if storage is None:
        raise RuntimeError("Server not initialized. Call init_server() first.")
    return storage


def _store_kwargs(db_url: str | None) -> dict[str, Any]:
    """Shared storage, or settings for a per-call storage on another endpoint."""
    if db_url and (settings is None or db_url != settings.uri):
        return {"db_url": db_url, "settings": settings, "config": config}
    return {"storage": _require_storage(), "config": config}


def _run(fn: Callable[..., Any], *args: Any, db_url: str | None = None, **kwargs: Any):
    """Call an operation; returns (result, None) or (None, error response)."""
    try:
        return fn(*args, **kwargs, **_store_kwargs(db_url)), None
    except RetrievalError as exc:
        log.warning(f"Tool call failed: {exc}")
        return None, {"success": False, "error": str(exc), "error_kind": exc.kind}


def _articles_response(result: Any, error: dict | None, key: str = "articles") -> dict:
    if error:
        return error
    if isinstance(result, dict):
        count = sum(len(members) for members in result.values())
        return {"success": True, "count": count, "groups": result}
    return {"success": True, "count": len(result), key: result}


# =============================================================================
# RELATED-ARTICLE DISCOVERY
# =============================================================================


@mcp.tool()
def get_crlr_related_articles_unset(
    article_key: str,
    graph_depth: int,
    edge_collection_name: str,
    sim_threshold: float,
    db_url: str | None = None,
) -> dict:
    """Get articles similar to an article, with identifying fields removed.

    Args:
        article_key: Key of the query article (e.g., "123")
        graph_depth: Maximum traversal depth
        edge_collection_name: Similarity edge type to follow
        sim_threshold: Keep edges with sim_value strictly below this
        db_url: Optional store endpoint override

    Returns:
        Dict with success status and related articles
    """
    result, error = _run(
        pipeline.get_crlr_related_articles_unset,
        article_key,
        graph_depth,
        edge_collection_name,
        sim_threshold,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def get_crlr_related_articles(
    article_key: str,
    graph_depth: int,
    edge_collection_name: str,
    sim_threshold: float,
    db_url: str | None = None,
) -> dict:
    """Get articles similar to an article, with full content and source tags.

    Args:
        article_key: Key of the query article
        graph_depth: Maximum traversal depth
        edge_collection_name: Similarity edge type to follow
        sim_threshold: Keep edges with sim_value strictly below this
        db_url: Optional store endpoint override

    Returns:
        Dict with success status and related articles
    """
    result, error = _run(
        pipeline.get_crlr_related_articles,
        article_key,
        graph_depth,
        edge_collection_name,
        sim_threshold,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def get_path_related_articles_unset(
    article_key: str,
    graph_depth: int,
    limit: int,
    epochtime: float,
    db_url: str | None = None,
) -> dict:
    """Get articles ranked by paths through documents sharing the article's url.

    Args:
        article_key: Key of the query article
        graph_depth: Maximum traversal depth
        limit: Maximum number of url groups to rank
        epochtime: Half-width (seconds) of the window around the article's time
        db_url: Optional store endpoint override

    Returns:
        Dict with success status and redacted articles, best connected first
    """
    result, error = _run(
        pipeline.get_path_related_articles_unset,
        article_key,
        graph_depth,
        limit,
        epochtime,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def get_path_related_articles(
    traversal_depth: int,
    qa_category: str,
    qa_key: str,
    threshold_epochtime: float,
    no_of_results: int,
    ip_origin: list[str] | None = None,
    db_url: str | None = None,
) -> dict:
    """Get articles ranked by the number of qualifying paths reaching them.

    Args:
        traversal_depth: Maximum traversal depth
        qa_category: Category the related articles must carry
        qa_key: Key of the query article
        threshold_epochtime: Half-width (seconds) of the time window
        no_of_results: Maximum number of articles
        ip_origin: Optional origin tags; an edge must carry one of them
        db_url: Optional store endpoint override

    Returns:
        Dict with success status and articles carrying no_of_paths
    """
    result, error = _run(
        pipeline.get_path_related_articles,
        traversal_depth,
        qa_category,
        qa_key,
        threshold_epochtime,
        no_of_results,
        ip_origin,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def get_related_articles_graph(
    qa_topterms: list[str],
    qa_key: str,
    traversal_depth: int,
    qa_epochtime: float,
    qa_category: str,
    threshold_epochtime: float,
    db_url: str | None = None,
) -> dict:
    """Get articles linked to the entities named by the query's top terms.

    Args:
        qa_topterms: Entity names to start from
        qa_key: Key of the query article (excluded from results)
        traversal_depth: Maximum traversal depth
        qa_epochtime: Reference timestamp of the query
        qa_category: Category the related articles must carry
        threshold_epochtime: Half-width (seconds) of the time window
        db_url: Optional store endpoint override

    Returns:
        Dict with success status and related articles
    """
    result, error = _run(
        pipeline.get_related_articles_graph,
        qa_topterms,
        qa_key,
        traversal_depth,
        qa_epochtime,
        qa_category,
        threshold_epochtime,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def get_crlr_related_docs(
    doc_url: str,
    search_depth: int,
    edge_coll_name: str,
    db_url: str | None = None,
) -> dict:
    """Find the article reading a url and the articles related to it.

    Args:
        doc_url: Url listed in the query article's read entries
        search_depth: Maximum traversal depth
        edge_coll_name: Edge type to follow
        db_url: Optional store endpoint override

    Returns:
        Dict with success status, query_article and related_articles
    """
    result, error = _run(
        pipeline.get_crlr_related_docs,
        doc_url,
        search_depth,
        edge_coll_name,
        db_url=db_url,
    )
    if error:
        return error
    return {"success": True, **result}


@mcp.tool()
def get_path_related_docs(
    query_article_id: str,
    search_depth: int,
    edge_coll_name: str,
    no_of_results: int,
    db_url: str | None = None,
) -> dict:
    """Rank articles by paths grouped on their third vertex.

    Args:
        query_article_id: Qualified id (or key) of the query article
        search_depth: Maximum traversal depth
        edge_coll_name: Edge type to follow
        no_of_results: Maximum number of articles
        db_url: Optional store endpoint override

    Returns:
        Dict with success status, related_articles and aligned path_counts
    """
    result, error = _run(
        pipeline.get_path_related_docs,
        query_article_id,
        search_depth,
        edge_coll_name,
        no_of_results,
        db_url=db_url,
    )
    if error:
        return error
    return {"success": True, **result}


# =============================================================================
# LISTING
# =============================================================================


@mcp.tool()
def recent_articles(
    limit: int = 10,
    offset: int = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    db_url: str | None = None,
) -> dict:
    """List articles, newest first by default.

    Args:
        limit: Page size
        offset: Number of articles to skip
        sort_by: default.epoch_time, epoch_time, _key or author
        sort_order: "asc" or "desc"
        detail: "minimal", "summary" or "full"
        projection: Explicit field list (dotted names allowed), overrides detail
        group_by: Optional field to group the page by
        db_url: Optional store endpoint override
    """
    result, error = _run(
        listing.recent_articles,
        limit,
        offset,
        sort_by,
        sort_order,
        detail,
        projection,
        group_by,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def paginated_article_list(
    limit: int = 10,
    offset: int = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    db_url: str | None = None,
) -> dict:
    """Page through all articles with an explicit sort."""
    result, error = _run(
        listing.paginated_article_list,
        limit,
        offset,
        sort_by,
        sort_order,
        detail,
        projection,
        group_by,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def articles_by_category(
    category: str,
    subcategory: str | None = None,
    limit: int = 10,
    offset: int = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    db_url: str | None = None,
) -> dict:
    """List articles in a category, optionally narrowed to a subcategory."""
    result, error = _run(
        listing.articles_by_category,
        category,
        subcategory,
        limit,
        offset,
        sort_by,
        sort_order,
        detail,
        projection,
        group_by,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def articles_by_author(
    author: str,
    limit: int = 10,
    offset: int = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    db_url: str | None = None,
) -> dict:
    """List articles by one author."""
    result, error = _run(
        listing.articles_by_author,
        author,
        limit,
        offset,
        sort_by,
        sort_order,
        detail,
        projection,
        group_by,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def article_by_key(
    key: str,
    detail: str = "full",
    projection: list[str] | None = None,
    db_url: str | None = None,
) -> dict:
    """Get one article by key or qualified id ("Article/123"); null when absent."""
    result, error = _run(listing.article_by_key, key, detail, projection, db_url=db_url)
    if error:
        return error
    return {"success": True, "article": result}


@mcp.tool()
def articles_by_date_range(
    start_epoch: float,
    end_epoch: float,
    limit: int = 10,
    offset: int = 0,
    detail: str = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    db_url: str | None = None,
) -> dict:
    """List articles published between two epochs (inclusive), newest first."""
    result, error = _run(
        listing.articles_by_date_range,
        start_epoch,
        end_epoch,
        limit,
        offset,
        detail,
        projection,
        group_by,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def articles_by_entity(
    entity: str,
    limit: int = 10,
    offset: int = 0,
    detail: str = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    db_url: str | None = None,
) -> dict:
    """List articles linked to an entity, matched by key or name."""
    result, error = _run(
        listing.articles_by_entity,
        entity,
        limit,
        offset,
        detail,
        projection,
        group_by,
        db_url=db_url,
    )
    return _articles_response(result, error)


@mcp.tool()
def list_categories(
    article_key: str | None = None,
    limit: int = 100,
    offset: int = 0,
    db_url: str | None = None,
) -> dict:
    """List distinct article categories and subcategories."""
    result, error = _run(
        listing.list_categories, article_key, limit, offset, db_url=db_url
    )
    if error:
        return error
    return {"success": True, **result}


@mcp.tool()
def list_authors(
    article_key: str | None = None,
    limit: int = 100,
    offset: int = 0,
    db_url: str | None = None,
) -> dict:
    """List distinct article authors."""
    result, error = _run(listing.list_authors, article_key, limit, offset, db_url=db_url)
    return _articles_response(result, error, key="authors")


@mcp.tool()
def document_by_key(
    key: str,
    detail: str = "full",
    projection: list[str] | None = None,
    db_url: str | None = None,
) -> dict:
    """Get one document by key or qualified id ("Document/9"); null when absent."""
    result, error = _run(listing.document_by_key, key, detail, projection, db_url=db_url)
    if error:
        return error
    return {"success": True, "document": result}


@mcp.tool()
def documents_by_date_range(
    start_epoch: float,
    end_epoch: float,
    limit: int = 10,
    offset: int = 0,
    detail: str = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    db_url: str | None = None,
) -> dict:
    """List documents published between two epochs (inclusive), newest first."""
    result, error = _run(
        listing.documents_by_date_range,
        start_epoch,
        end_epoch,
        limit,
        offset,
        detail,
        projection,
        group_by,
        db_url=db_url,
    )
    return _articles_response(result, error, key="documents")


@mcp.tool()
def list_document_authors(
    document_key: str | None = None,
    limit: int = 100,
    offset: int = 0,
    db_url: str | None = None,
) -> dict:
    """List distinct document authors."""
    result, error = _run(
        listing.list_document_authors, document_key, limit, offset, db_url=db_url
    )
    return _articles_response(result, error, key="authors")


@mcp.tool()
def list_document_categories(
    document_key: str | None = None,
    limit: int = 100,
    offset: int = 0,
    db_url: str | None = None,
) -> dict:
    """List distinct document categories and subcategories."""
    result, error = _run(
        listing.list_document_categories, document_key, limit, offset, db_url=db_url
    )
    if error:
        return error
    return {"success": True, **result}


@mcp.tool()
def get_document_edges(
    document_id: str,
    limit: int = 20,
    db_url: str | None = None,
) -> dict:
    """Get edges touching a document in every configured edge relation.

    Args:
        document_id: Qualified id or key of the document
        limit: Maximum edges per relation
        db_url: Optional store endpoint override

    Returns:
        Dict with success status and edges tagged with _edgeCollection
    """
    result, error = _run(listing.document_edges, document_id, limit, db_url=db_url)
    return _articles_response(result, error, key="edges")


def main():
    """Run the MCP server (stdio transport)."""
    import asyncio

    store_settings, retrieval_config = load_settings()
    init_server(store_settings, retrieval_config)

    asyncio.run(mcp.run_stdio_async())


if __name__ == "__main__":
    main()
