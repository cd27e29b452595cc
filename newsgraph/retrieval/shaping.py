"""Result shaping: projections, redaction and related-article payloads."""

import copy
from typing import Any

from ..graph.schema import is_valid_field, resolve_field
from .config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig
from .errors import InvalidArgument
from .types import DetailLevel, DocumentNode, ProjectionSpec, RankedItem

CONTENT_REDACTED_FIELDS = ("description", "docID", "image", "summary", "url")
WATCH_REDACTED_FIELDS = ("description", "image", "url", "videoID")

# Added by the store on read; never part of a shaped payload.
_STORE_FIELDS = frozenset({"collection"})


def _unset(value: Any, names: tuple[str, ...]) -> Any:
    if not isinstance(value, dict):
        return value
    return {k: v for k, v in value.items() if k not in names}


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def _first_media(doc: DocumentNode, name: str, redact_fields: tuple[str, ...] | None):
    entry = _first(doc.payload.get(name))
    if entry is None:
        return []
    if redact_fields:
        entry = _unset(entry, redact_fields)
    return [copy.deepcopy(entry)]


def public_payload(doc: DocumentNode) -> dict[str, Any]:
    """Document payload as stored, identified by `_id` and `_key`."""
    payload = {
        k: copy.deepcopy(v)
        for k, v in doc.payload.items()
        if k not in _STORE_FIELDS and k not in {"id", "key"}
    }
    return {"_id": doc.node_id, "_key": doc.key, **payload}


def redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Strip redacted sub-fields from content blocks and first media entries."""
    redacted = dict(payload)
    if isinstance(redacted.get("default"), dict):
        redacted["default"] = _unset(redacted["default"], CONTENT_REDACTED_FIELDS)
    for name, fields in (("read", CONTENT_REDACTED_FIELDS), ("watch", WATCH_REDACTED_FIELDS)):
        media = redacted.get(name)
        if isinstance(media, list) and media:
            redacted[name] = [_unset(media[0], fields), *media[1:]]
    return redacted


def shape_related(doc: DocumentNode, *, redact: bool) -> dict[str, Any]:
    """Shape a related article for strategy output.

    Redacted output strips identifying sub-fields and carries only the first
    source tag; full output keeps the sub-objects and the whole tag list.
    """
    default = doc.payload.get("default")
    shaped: dict[str, Any] = {
        "articleID": doc.key,
        "category": list(doc.category),
        "subcategory": list(doc.subcategory),
        "default": copy.deepcopy(
            _unset(default, CONTENT_REDACTED_FIELDS) if redact else default
        ),
        "default_image": copy.deepcopy(doc.payload.get("default_image")),
        "read": _first_media(doc, "read", CONTENT_REDACTED_FIELDS if redact else None),
        "watch": _first_media(doc, "watch", WATCH_REDACTED_FIELDS if redact else None),
    }
    if redact:
        shaped["tag"] = doc.source_tags[0] if doc.source_tags else None
    else:
        shaped["source_tags"] = list(doc.source_tags)
    return shaped


def shape_ranked(item: RankedItem, *, redact: bool = False) -> dict[str, Any]:
    """Whole document payload with its path count under ``no_of_paths``."""
    payload = public_payload(item.document)
    if redact:
        payload = redact_payload(payload)
    payload["no_of_paths"] = item.path_count
    return payload


def project(
    doc: DocumentNode,
    projection: ProjectionSpec,
    config: RetrievalConfig = DEFAULT_RETRIEVAL_CONFIG,
) -> dict[str, Any]:
    """Project a document to the requested detail level or field list."""
    if projection.detail is DetailLevel.EXPLICIT:
        source = public_payload(doc)
        if projection.redact:
            source = redact_payload(source)
        return {
            name: copy.deepcopy(resolve_field(source, name))
            for name in projection.fields
        }

    if projection.detail is DetailLevel.FULL:
        payload = public_payload(doc)
        return redact_payload(payload) if projection.redact else payload

    profile = config.profile_for(doc.collection)
    shaped = {"_key": doc.key, "title": doc.get(profile.title_field)}
    if projection.detail is DetailLevel.SUMMARY:
        shaped[profile.summary_key] = doc.get(profile.summary_field)
    return shaped


def projection_from_args(
    detail: str | None,
    projection: list[str] | None,
    *,
    default: str = "summary",
    redact: bool = False,
) -> ProjectionSpec:
    """Resolve caller detail/projection arguments; an explicit list wins."""
    if projection:
        if isinstance(projection, str) or not all(
            isinstance(name, str) and is_valid_field(name) for name in projection
        ):
            raise InvalidArgument("projection must be a list of field names")
        return ProjectionSpec.explicit(list(projection), redact=redact)
    try:
        level = DetailLevel(detail or default)
    except ValueError as exc:
        raise InvalidArgument(
            f"detail must be one of minimal, summary, full; got {detail!r}"
        ) from exc
    if level is DetailLevel.EXPLICIT:
        raise InvalidArgument("explicit detail level requires a projection field list")
    return ProjectionSpec(level, redact=redact)
