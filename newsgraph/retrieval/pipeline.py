"""Related-document operations, one function per wire operation.

Every operation validates its parameters before touching the store, runs one
strategy, shapes the result and wraps store failures with operation context.
Storages are opened per call unless one is injected, and always closed.
"""

import logging
from typing import Any

from ..graph.schema import Direction
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from .errors import operation_context
from .ranker import (
    fan_out_from_entities,
    rank_by_shared_id,
    rank_via_shared_document,
    rank_with_origin,
)
from .request import (
    build_request,
    require_identity,
    require_positive_int,
    require_relation,
)
from .shaping import public_payload, shape_ranked, shape_related
from .similarity import find_similar, related_by_read_url
from .traversal import GraphStore, open_storage

log = logging.getLogger(__name__)


def _similar_articles(
    operation: str,
    article_key: Any,
    graph_depth: Any,
    edge_collection_name: Any,
    sim_threshold: Any,
    *,
    redact: bool,
    db_url: str | None,
    storage: GraphStore | None,
    settings,
    config: RetrievalConfig,
) -> list[dict]:
    params = {
        "article_key": article_key,
        "graph_depth": graph_depth,
        "edge_collection_name": edge_collection_name,
        "sim_threshold": sim_threshold,
        "db_url": db_url,
    }
    with operation_context(operation, params):
        request = build_request(
            article_key,
            graph_depth,
            collection=config.article_collection,
            direction=Direction.OUT,
            graph=config.news_graph,
            edge_type=edge_collection_name,
            max_weight=sim_threshold,
            required=("edge_type", "max_weight"),
            config=config,
        )
        log.info(f"{operation}: start={request.start_id} depth={request.depth}")
        with open_storage(storage, settings, db_url) as db:
            similar = find_similar(db, request, config)
        log.info(f"{operation}: {len(similar)} related articles")
        return [shape_related(doc, redact=redact) for doc in similar]


def get_crlr_related_articles_unset(
    article_key: Any,
    graph_depth: Any,
    edge_collection_name: Any,
    sim_threshold: Any,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict]:
    """Articles similar to the given one, redacted."""
    return _similar_articles(
        "get_crlr_related_articles_unset",
        article_key,
        graph_depth,
        edge_collection_name,
        sim_threshold,
        redact=True,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def get_crlr_related_articles(
    article_key: Any,
    graph_depth: Any,
    edge_collection_name: Any,
    sim_threshold: Any,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict]:
    """Articles similar to the given one, with full content blocks and tags."""
    return _similar_articles(
        "get_crlr_related_articles",
        article_key,
        graph_depth,
        edge_collection_name,
        sim_threshold,
        redact=False,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def get_path_related_articles_unset(
    article_key: Any,
    graph_depth: Any,
    limit: Any,
    epochtime: Any,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict]:
    """Articles ranked by paths through documents sharing the article's url.

    ``epochtime`` is the half-width of the window around the article's own
    timestamp. Output is redacted and ordered by path count, highest first.
    """
    operation = "get_path_related_articles_unset"
    params = {
        "article_key": article_key,
        "graph_depth": graph_depth,
        "limit": limit,
        "epochtime": epochtime,
        "db_url": db_url,
    }
    with operation_context(operation, params):
        request = build_request(
            article_key,
            graph_depth,
            collection=config.article_collection,
            graph=config.news_graph,
            window=epochtime,
            limit=limit,
            required=("window", "limit"),
            config=config,
        )
        log.info(f"{operation}: start={request.start_id} depth={request.depth}")
        with open_storage(storage, settings, db_url) as db:
            ranked = rank_via_shared_document(db, request, config)
        log.info(f"{operation}: {len(ranked)} ranked articles")
        return [shape_related(item.document, redact=True) for item in ranked.items]


def get_path_related_articles(
    traversal_depth: Any,
    qa_category: Any,
    qa_key: Any,
    threshold_epochtime: Any,
    no_of_results: Any,
    ip_origin: list[str] | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict]:
    """Articles ranked by qualifying paths, each with ``no_of_paths``.

    Without ``ip_origin`` any edge carrying a non-empty origin qualifies.
    """
    operation = "get_path_related_articles"
    params = {
        "traversal_depth": traversal_depth,
        "qa_category": qa_category,
        "qa_key": qa_key,
        "threshold_epochtime": threshold_epochtime,
        "no_of_results": no_of_results,
        "ip_origin": ip_origin,
        "db_url": db_url,
    }
    with operation_context(operation, params):
        request = build_request(
            qa_key,
            traversal_depth,
            collection=config.article_collection,
            direction=Direction.ANY,
            graph=config.news_graph,
            category=qa_category,
            window=threshold_epochtime,
            origins=ip_origin,
            limit=no_of_results,
            required=("category", "window", "limit"),
            config=config,
        )
        log.info(f"{operation}: start={request.start_id} depth={request.depth}")
        with open_storage(storage, settings, db_url) as db:
            ranked = rank_with_origin(db, request, config)
        log.info(f"{operation}: {len(ranked)} ranked articles")
        return [shape_ranked(item) for item in ranked.items]


def get_related_articles_graph(
    qa_topterms: Any,
    qa_key: Any,
    traversal_depth: Any,
    qa_epochtime: Any,
    qa_category: Any,
    threshold_epochtime: Any,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict]:
    """Articles linked to the entities named by the top terms."""
    operation = "get_related_articles_graph"
    params = {
        "qa_topterms": qa_topterms,
        "qa_key": qa_key,
        "traversal_depth": traversal_depth,
        "qa_epochtime": qa_epochtime,
        "qa_category": qa_category,
        "threshold_epochtime": threshold_epochtime,
        "db_url": db_url,
    }
    with operation_context(operation, params):
        request = build_request(
            qa_key,
            traversal_depth,
            collection=config.article_collection,
            direction=Direction.IN,
            graph=config.entity_graph,
            category=qa_category,
            window=threshold_epochtime,
            reference_time=qa_epochtime,
            terms=qa_topterms,
            required=("category", "window", "reference_time", "terms"),
            config=config,
        )
        log.info(f"{operation}: start={request.start_id} terms={len(request.terms)}")
        with open_storage(storage, settings, db_url) as db:
            related = fan_out_from_entities(db, request, config)
        log.info(f"{operation}: {len(related)} related articles")
        return [shape_related(doc, redact=False) for doc in related]


def get_crlr_related_docs(
    doc_url: Any,
    search_depth: Any,
    edge_coll_name: Any,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> dict[str, list[dict]]:
    """The article reading ``doc_url`` and the articles related to it."""
    operation = "get_crlr_related_docs"
    params = {
        "doc_url": doc_url,
        "search_depth": search_depth,
        "edge_coll_name": edge_coll_name,
        "db_url": db_url,
    }
    with operation_context(operation, params):
        url = require_identity(doc_url, "doc_url")
        depth = require_positive_int(search_depth, "depth", maximum=config.max_depth)
        relation = require_relation(edge_coll_name, "edge_type")
        log.info(f"{operation}: url={url} depth={depth} edge_type={relation}")
        with open_storage(storage, settings, db_url) as db:
            query_article, related = related_by_read_url(
                db,
                url,
                depth=depth,
                edge_type=relation,
                graph=config.news_graph,
                config=config,
            )
        log.info(f"{operation}: {len(related)} related articles")
        return {
            "query_article": [public_payload(query_article)] if query_article else [],
            "related_articles": [public_payload(doc) for doc in related],
        }


def get_path_related_docs(
    query_article_id: Any,
    search_depth: Any,
    edge_coll_name: Any,
    no_of_results: Any,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> dict[str, list]:
    """Articles ranked by paths grouped on their third vertex.

    ``related_articles`` and ``path_counts`` are aligned by index.
    """
    operation = "get_path_related_docs"
    params = {
        "query_article_id": query_article_id,
        "search_depth": search_depth,
        "edge_coll_name": edge_coll_name,
        "no_of_results": no_of_results,
        "db_url": db_url,
    }
    with operation_context(operation, params):
        request = build_request(
            query_article_id,
            search_depth,
            collection=config.article_collection,
            direction=Direction.ANY,
            graph=config.news_graph,
            edge_type=edge_coll_name,
            limit=no_of_results,
            required=("edge_type", "limit"),
            config=config,
        )
        log.info(f"{operation}: start={request.start_id} depth={request.depth}")
        with open_storage(storage, settings, db_url) as db:
            ranked = rank_by_shared_id(db, request, config)
        log.info(f"{operation}: {len(ranked)} ranked articles")
        return {
            "related_articles": [public_payload(doc) for doc in ranked.documents],
            "path_counts": ranked.path_counts,
        }
