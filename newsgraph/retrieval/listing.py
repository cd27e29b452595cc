"""Paginated listing of articles and documents with projection and grouping."""

import logging
from typing import Any

from ..graph.schema import ListingFilter, qualify_id
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from .errors import InvalidArgument, operation_context
from .grouping import group_by_field
from .request import require_identity, require_number, require_offset, require_positive_int
from .shaping import project, projection_from_args
from .traversal import GraphStore, open_storage
from .types import DocumentNode

log = logging.getLogger(__name__)

# Caller-facing sort names mapped to the flat property the store orders on.
ARTICLE_SORT_FIELDS = {
    "default.epoch_time": "epoch_time",
    "epoch_time": "epoch_time",
    "_key": "key",
    "author": "author",
}
DOCUMENT_SORT_FIELDS = {
    "epoch_published": "epoch_time",
    "epoch_time": "epoch_time",
    "_key": "key",
    "author": "author",
    "title": "title",
}


def _sort_property(sort_by: Any, allowed: dict[str, str]) -> str:
    if sort_by not in allowed:
        raise InvalidArgument(
            f"sort_by must be one of {', '.join(sorted(allowed))}; got {sort_by!r}"
        )
    return allowed[sort_by]


def _descending(sort_order: Any) -> bool:
    order = str(sort_order or "").lower()
    if order not in ("asc", "desc"):
        raise InvalidArgument(f"sort_order must be asc or desc, got {sort_order!r}")
    return order == "desc"


def _page(limit: Any, offset: Any, config: RetrievalConfig) -> tuple[int, int]:
    return (
        require_positive_int(limit, "limit", maximum=config.listing_max_limit),
        require_offset(offset),
    )


def group_label(value: Any) -> str:
    """String key for a group, so grouped output stays JSON-serializable."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, tuple):
        return ",".join(group_label(v) for v in value)
    return str(value)


def _shape(
    payloads: list[dict],
    *,
    detail: str | None,
    projection: list[str] | None,
    group_by: str | None,
    config: RetrievalConfig,
) -> list[dict] | dict[str, list[dict]]:
    spec = projection_from_args(detail, projection)
    items = [
        project(DocumentNode.from_payload(payload, config), spec, config)
        for payload in payloads
    ]
    if not group_by:
        return items
    return {
        group_label(key): members
        for key, members in group_by_field(items, group_by).items()
    }


def recent_articles(
    limit: Any = 10,
    offset: Any = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str | None = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict] | dict[str, list[dict]]:
    """Articles sorted by an allow-listed field, newest first by default."""
    params = {"limit": limit, "offset": offset, "sort_by": sort_by, "sort_order": sort_order}
    with operation_context("recent_articles", params):
        page_size, skip = _page(limit, offset, config)
        sort_field = _sort_property(sort_by, ARTICLE_SORT_FIELDS)
        descending = _descending(sort_order)
        projection_from_args(detail, projection)
        with open_storage(storage, settings, db_url) as db:
            payloads = db.list_documents(
                config.article_collection,
                sort_field=sort_field,
                descending=descending,
                offset=skip,
                limit=page_size,
            )
        return _shape(
            payloads,
            detail=detail,
            projection=projection,
            group_by=group_by,
            config=config,
        )


def paginated_article_list(
    limit: Any = 10,
    offset: Any = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str | None = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    **kwargs: Any,
) -> list[dict] | dict[str, list[dict]]:
    """Page through all articles; same contract as recent_articles."""
    return recent_articles(
        limit, offset, sort_by, sort_order, detail, projection, group_by, **kwargs
    )


def articles_by_category(
    category: Any,
    subcategory: Any = None,
    limit: Any = 10,
    offset: Any = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str | None = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict] | dict[str, list[dict]]:
    """Articles in a category, optionally narrowed to a subcategory."""
    params = {"category": category, "subcategory": subcategory, "limit": limit, "offset": offset}
    with operation_context("articles_by_category", params):
        filters = ListingFilter(
            category=require_identity(category, "category"),
            subcategory=(
                require_identity(subcategory, "subcategory") if subcategory else None
            ),
        )
        page_size, skip = _page(limit, offset, config)
        sort_field = _sort_property(sort_by, ARTICLE_SORT_FIELDS)
        descending = _descending(sort_order)
        projection_from_args(detail, projection)
        with open_storage(storage, settings, db_url) as db:
            payloads = db.list_documents(
                config.article_collection,
                filters=filters,
                sort_field=sort_field,
                descending=descending,
                offset=skip,
                limit=page_size,
            )
        return _shape(
            payloads,
            detail=detail,
            projection=projection,
            group_by=group_by,
            config=config,
        )


def articles_by_author(
    author: Any,
    limit: Any = 10,
    offset: Any = 0,
    sort_by: str = "default.epoch_time",
    sort_order: str = "desc",
    detail: str | None = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict] | dict[str, list[dict]]:
    params = {"author": author, "limit": limit, "offset": offset}
    with operation_context("articles_by_author", params):
        filters = ListingFilter(author=require_identity(author, "author"))
        page_size, skip = _page(limit, offset, config)
        sort_field = _sort_property(sort_by, ARTICLE_SORT_FIELDS)
        descending = _descending(sort_order)
        projection_from_args(detail, projection)
        with open_storage(storage, settings, db_url) as db:
            payloads = db.list_documents(
                config.article_collection,
                filters=filters,
                sort_field=sort_field,
                descending=descending,
                offset=skip,
                limit=page_size,
            )
        return _shape(
            payloads,
            detail=detail,
            projection=projection,
            group_by=group_by,
            config=config,
        )


def _by_key(
    operation: str,
    collection: str,
    key: Any,
    detail: str | None,
    projection: list[str] | None,
    *,
    db_url: str | None,
    storage: GraphStore | None,
    settings,
    config: RetrievalConfig,
) -> dict | None:
    with operation_context(operation, {"key": key, "detail": detail}):
        node_id = qualify_id(require_identity(key, "key"), collection)
        spec = projection_from_args(detail, projection, default="full")
        with open_storage(storage, settings, db_url) as db:
            payload = db.get_document(node_id)
        if payload is None:
            return None
        doc = DocumentNode.from_payload(payload, config)
        if doc.collection != collection:
            return None
        return project(doc, spec, config)


def article_by_key(
    key: Any,
    detail: str | None = "full",
    projection: list[str] | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> dict | None:
    """One article by key or qualified id; None when absent."""
    return _by_key(
        "article_by_key",
        config.article_collection,
        key,
        detail,
        projection,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def document_by_key(
    key: Any,
    detail: str | None = "full",
    projection: list[str] | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> dict | None:
    """One document by key or qualified id; None when absent."""
    return _by_key(
        "document_by_key",
        config.document_collection,
        key,
        detail,
        projection,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def _by_date_range(
    operation: str,
    collection: str,
    start_epoch: Any,
    end_epoch: Any,
    limit: Any,
    offset: Any,
    detail: str | None,
    projection: list[str] | None,
    group_by: str | None,
    *,
    db_url: str | None,
    storage: GraphStore | None,
    settings,
    config: RetrievalConfig,
) -> list[dict] | dict[str, list[dict]]:
    params = {"start_epoch": start_epoch, "end_epoch": end_epoch, "limit": limit, "offset": offset}
    with operation_context(operation, params):
        filters = ListingFilter(
            min_epoch=require_number(start_epoch, "start_epoch"),
            max_epoch=require_number(end_epoch, "end_epoch"),
        )
        page_size, skip = _page(limit, offset, config)
        projection_from_args(detail, projection)
        with open_storage(storage, settings, db_url) as db:
            payloads = db.list_documents(
                collection,
                filters=filters,
                sort_field="epoch_time",
                descending=True,
                offset=skip,
                limit=page_size,
            )
        return _shape(
            payloads,
            detail=detail,
            projection=projection,
            group_by=group_by,
            config=config,
        )


def articles_by_date_range(
    start_epoch: Any,
    end_epoch: Any,
    limit: Any = 10,
    offset: Any = 0,
    detail: str | None = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict] | dict[str, list[dict]]:
    """Articles published within [start_epoch, end_epoch], newest first."""
    return _by_date_range(
        "articles_by_date_range",
        config.article_collection,
        start_epoch,
        end_epoch,
        limit,
        offset,
        detail,
        projection,
        group_by,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def documents_by_date_range(
    start_epoch: Any,
    end_epoch: Any,
    limit: Any = 10,
    offset: Any = 0,
    detail: str | None = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict] | dict[str, list[dict]]:
    """Documents published within [start_epoch, end_epoch], newest first."""
    return _by_date_range(
        "documents_by_date_range",
        config.document_collection,
        start_epoch,
        end_epoch,
        limit,
        offset,
        detail,
        projection,
        group_by,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def articles_by_entity(
    entity: Any,
    limit: Any = 10,
    offset: Any = 0,
    detail: str | None = "summary",
    projection: list[str] | None = None,
    group_by: str | None = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict] | dict[str, list[dict]]:
    """Articles linked to an entity (matched by key or name), newest first."""
    params = {"entity": entity, "limit": limit, "offset": offset}
    with operation_context("articles_by_entity", params):
        name = require_identity(entity, "entity")
        page_size, skip = _page(limit, offset, config)
        projection_from_args(detail, projection)
        with open_storage(storage, settings, db_url) as db:
            entities = db.find_entities(
                [name], config.entity_collection, match_key=True
            )
            if not entities:
                log.info(f"articles_by_entity: no entity named {name!r}")
                payloads = []
            else:
                payloads = db.list_linked(
                    str(entities[0]["id"]),
                    config.entity_relation,
                    config.article_collection,
                    offset=skip,
                    limit=page_size,
                )
        return _shape(
            payloads,
            detail=detail,
            projection=projection,
            group_by=group_by,
            config=config,
        )


def _categories(
    operation: str,
    collection: str,
    key: Any,
    limit: Any,
    offset: Any,
    *,
    db_url: str | None,
    storage: GraphStore | None,
    settings,
    config: RetrievalConfig,
) -> dict[str, list]:
    with operation_context(operation, {"key": key, "limit": limit, "offset": offset}):
        node_id = qualify_id(require_identity(key, "key"), collection) if key else None
        page_size, skip = _page(limit, offset, config)
        with open_storage(storage, settings, db_url) as db:
            categories = db.distinct_values(
                collection, "category", node_id=node_id, offset=skip, limit=page_size
            )
            subcategories = db.distinct_values(
                collection, "subcategory", node_id=node_id, offset=skip, limit=page_size
            )
        return {"categories": categories, "subcategories": subcategories}


def _authors(
    operation: str,
    collection: str,
    key: Any,
    limit: Any,
    offset: Any,
    *,
    db_url: str | None,
    storage: GraphStore | None,
    settings,
    config: RetrievalConfig,
) -> list:
    with operation_context(operation, {"key": key, "limit": limit, "offset": offset}):
        node_id = qualify_id(require_identity(key, "key"), collection) if key else None
        page_size, skip = _page(limit, offset, config)
        with open_storage(storage, settings, db_url) as db:
            return db.distinct_values(
                collection, "author", node_id=node_id, offset=skip, limit=page_size
            )


def list_categories(
    article_key: Any = None,
    limit: Any = 100,
    offset: Any = 0,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> dict[str, list]:
    """Distinct article categories and subcategories, sorted."""
    return _categories(
        "list_categories",
        config.article_collection,
        article_key,
        limit,
        offset,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def list_document_categories(
    document_key: Any = None,
    limit: Any = 100,
    offset: Any = 0,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> dict[str, list]:
    return _categories(
        "list_document_categories",
        config.document_collection,
        document_key,
        limit,
        offset,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def list_authors(
    article_key: Any = None,
    limit: Any = 100,
    offset: Any = 0,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list:
    """Distinct non-null article authors, sorted."""
    return _authors(
        "list_authors",
        config.article_collection,
        article_key,
        limit,
        offset,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def list_document_authors(
    document_key: Any = None,
    limit: Any = 100,
    offset: Any = 0,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list:
    return _authors(
        "list_document_authors",
        config.document_collection,
        document_key,
        limit,
        offset,
        db_url=db_url,
        storage=storage,
        settings=settings,
        config=config,
    )


def document_edges(
    document_id: Any,
    limit: Any = None,
    *,
    db_url: str | None = None,
    storage: GraphStore | None = None,
    settings=None,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> list[dict]:
    """Edges touching a document in each configured edge relation.

    Each edge carries the relation it was found in under ``_edgeCollection``.
    """
    with operation_context("document_edges", {"document_id": document_id, "limit": limit}):
        node_id = qualify_id(
            require_identity(document_id, "document_id"), config.document_collection
        )
        per_relation = require_positive_int(
            config.document_edge_limit if limit is None else limit,
            "limit",
            maximum=config.listing_max_limit,
        )
        with open_storage(storage, settings, db_url) as db:
            edges = db.document_edges(
                node_id, config.document_edge_relations, limit=per_relation
            )
        log.info(f"document_edges: {len(edges)} edges for {node_id}")
        return edges
