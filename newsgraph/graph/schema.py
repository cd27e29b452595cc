"""Graph schema definitions for the news graph.

Defines collections (node labels), traversal directions and the helpers that
map documents between their nested form and the flat properties the store
filters on.
"""

from dataclasses import dataclass
from enum import Enum
import re
from typing import Any

_LABEL_RE = re.compile(r"[^a-zA-Z0-9_]")
_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class Collection(Enum):
    """Document collections stored in the graph."""

    ARTICLE = "Article"
    DOCUMENT = "Document"
    ENTITY = "Entity"


class Direction(Enum):
    """Traversal direction relative to the start node."""

    OUT = "out"
    IN = "in"
    ANY = "any"


@dataclass(frozen=True)
class ListingFilter:
    """Equality and inclusive epoch-range filters for document listing."""

    node_id: str | None = None
    category: str | None = None
    subcategory: str | None = None
    author: str | None = None
    min_epoch: float | None = None
    max_epoch: float | None = None


MIRRORS_KEY = "_mirrors"

# Flat mirrors of nested fields, derived at import time so the store can
# filter and sort without decoding payloads.
FLAT_MIRRORS: dict[str, dict[str, str]] = {
    Collection.ARTICLE.value: {
        "epoch_time": "default.epoch_time",
        "url": "default.url",
    },
    Collection.DOCUMENT.value: {
        "epoch_time": "epoch_published",
    },
}


def sanitize_label(label: str) -> str:
    """Sanitize label or relationship type for Neo4j (no spaces, special chars)."""
    sanitized = _LABEL_RE.sub("_", label.strip())
    if sanitized and not sanitized[0].isalpha():
        sanitized = "N_" + sanitized
    return sanitized or "Unknown"


def normalize_relation(name: str) -> str:
    """Canonical relationship type name for an edge collection name."""
    return sanitize_label(name).upper()


def is_valid_field(field: str) -> bool:
    """Check that a (dotted) field name is safe to use as a property path."""
    return bool(_FIELD_RE.match(field))


def qualify_id(value: str, collection: str) -> str:
    """Return a collection-qualified identity.

    Example:
        qualify_id("123", "Article") -> "Article/123"
        qualify_id("Document/9", "Article") -> "Document/9"
    """
    value = value.strip()
    if "/" in value:
        return value
    return f"{collection}/{value}"


def split_id(node_id: str) -> tuple[str, str]:
    """Split a qualified identity into (collection, key)."""
    collection, _, key = node_id.partition("/")
    if not key:
        return "", collection
    return collection, key


def resolve_field(payload: dict | None, field: str) -> Any:
    """Resolve a dotted field path inside a nested payload."""
    current: Any = payload
    for part in field.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def to_number(value: Any) -> float | None:
    """Convert stored timestamps and weights to numbers.

    Strings are parsed, booleans and anything unparsable give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def flatten_document(collection: str, payload: dict) -> dict:
    """Add the flat filter properties derived from nested fields.

    Derived names are listed under ``_mirrors`` so readers can drop them again.
    """
    flat = dict(payload)
    mirrors: list[str] = []
    for target, source in FLAT_MIRRORS.get(collection, {}).items():
        value = resolve_field(payload, source)
        if value is not None and target not in payload:
            flat[target] = value
            mirrors.append(target)

    read = payload.get("read")
    if isinstance(read, list) and "read_urls" not in payload:
        flat["read_urls"] = [
            item["url"]
            for item in read
            if isinstance(item, dict) and isinstance(item.get("url"), str)
        ]
        mirrors.append("read_urls")

    if mirrors:
        flat[MIRRORS_KEY] = mirrors
    return flat


def strip_mirrors(flat: dict) -> dict:
    """Inverse of flatten_document."""
    mirrors = set(flat.get(MIRRORS_KEY) or [])
    return {k: v for k, v in flat.items() if k != MIRRORS_KEY and k not in mirrors}


def get_collections() -> list[str]:
    """Get list of all known collections."""
    return [c.value for c in Collection]
