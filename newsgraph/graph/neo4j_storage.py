"""Neo4j graph storage for the news graph.

Provides the read primitives the retrieval layer is built on: bounded-depth
traversal with full paths, point lookups, and paginated listing. Nested
document fields (content blocks, media lists) are kept as one JSON-encoded
property; flat mirrors derived at import time carry what Cypher filters on.
"""

import json
import logging
from typing import Any

from neo4j import GraphDatabase

from .schema import (
    Direction,
    ListingFilter,
    flatten_document,
    normalize_relation,
    sanitize_label,
    split_id,
    strip_mirrors,
)

log = logging.getLogger(__name__)

NESTED_PROPERTY = "_nested"
SCALAR_TYPES = (str, int, float, bool)


def _is_scalar_list(value: list) -> bool:
    if not value:
        return True
    if not all(isinstance(v, SCALAR_TYPES) for v in value):
        return False
    return len({type(v) for v in value}) == 1


def encode_properties(props: dict[str, Any]) -> dict[str, Any]:
    """Split a document into Neo4j-storable properties plus one JSON blob."""
    stored: dict[str, Any] = {}
    nested: dict[str, Any] = {}
    for key, value in props.items():
        if value is None:
            continue
        if isinstance(value, SCALAR_TYPES):
            stored[key] = value
        elif isinstance(value, list) and _is_scalar_list(value):
            stored[key] = value
        else:
            nested[key] = value
    if nested:
        stored[NESTED_PROPERTY] = json.dumps(nested, sort_keys=True)
    return stored


def decode_properties(props: dict[str, Any]) -> dict[str, Any]:
    """Inverse of encode_properties."""
    decoded = dict(props)
    raw = decoded.pop(NESTED_PROPERTY, None)
    if raw:
        decoded.update(json.loads(raw))
    return decoded


class Neo4jStorage:
    """Read-side Neo4j wrapper exposing traversal and lookup primitives."""

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        user: str = "neo4j",
        password: str = "",
        database: str | None = None,
    ):
        self.driver = GraphDatabase.driver(uri, auth=(user, password))
        self.database = database

    @classmethod
    def from_settings(cls, settings) -> "Neo4jStorage":
        """Build from a StoreSettings object."""
        return cls(
            uri=settings.uri,
            user=settings.user,
            password=settings.password,
            database=settings.database,
        )

    def _session(self):
        if self.database:
            return self.driver.session(database=self.database)
        return self.driver.session()

    @staticmethod
    def _node_payload(props: dict, labels: list[str]) -> dict:
        """Decode a stored node into the payload the retrieval layer reads."""
        payload = strip_mirrors(decode_properties(props))
        node_id = str(payload.get("id") or "")
        collection, key = split_id(node_id)
        payload.setdefault("key", key)
        payload["collection"] = collection or (labels[0] if labels else "")
        return payload

    @staticmethod
    def _edge_payload(props: dict, relation: str, from_id: str, to_id: str) -> dict:
        payload = decode_properties(props)
        payload["relation"] = relation
        payload["from_id"] = from_id
        payload["to_id"] = to_id
        return payload

    @staticmethod
    def _label_for(node_id: str) -> str:
        collection, _ = split_id(node_id)
        return f":{sanitize_label(collection)}" if collection else ""

    def close(self):
        self.driver.close()

    def clear(self, force: bool = False):
        """Clear all nodes and relationships.

        Args:
            force: Must be True to execute destructive wipe.
        """
        if not force:
            raise RuntimeError("Refusing to clear database without force=True")
        with self._session() as session:
            session.run("MATCH (n) DETACH DELETE n")

    def _create_indexes(self, labels: list[str]):
        """Create uniqueness constraints and lookup indexes."""
        with self._session() as session:
            for label in labels:
                session.run(
                    f"CREATE CONSTRAINT IF NOT EXISTS FOR (n:{label}) REQUIRE n.id IS UNIQUE"
                )
                for prop in ("url", "name", "epoch_time"):
                    session.run(
                        f"CREATE INDEX IF NOT EXISTS FOR (n:{label}) ON (n.{prop})"
                    )

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_document(self, node_id: str) -> dict | None:
        """Get a node by its collection-qualified identity.

        Args:
            node_id: Qualified identity (e.g., "Article/123")

        Returns:
            Node payload or None if not found
        """
        with self._session() as session:
            record = session.run(
                f"""
                MATCH (n{self._label_for(node_id)} {{id: $id}})
                RETURN properties(n) as props, labels(n) as labels
                LIMIT 1
                """,
                id=node_id,
            ).single()
            if not record:
                return None
            return self._node_payload(record["props"], record["labels"])

    def find_documents(
        self,
        collection: str,
        field: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict]:
        """Find nodes of a collection whose property equals a value.

        Args:
            collection: Node label (Article, Document, ...)
            field: Flat property name
            value: Value to match
            limit: Optional maximum number of nodes

        Returns:
            List of node payloads
        """
        prop = sanitize_label(field)
        limit_clause = "LIMIT $limit" if limit else ""
        with self._session() as session:
            result = session.run(
                f"""
                MATCH (n:{sanitize_label(collection)})
                WHERE n.{prop} = $value
                RETURN properties(n) as props, labels(n) as labels
                ORDER BY n.id
                {limit_clause}
                """,
                value=value,
                limit=limit,
            )
            return [self._node_payload(r["props"], r["labels"]) for r in result]

    def find_documents_containing(
        self,
        collection: str,
        field: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict]:
        """Find nodes whose list property contains a value."""
        prop = sanitize_label(field)
        limit_clause = "LIMIT $limit" if limit else ""
        with self._session() as session:
            result = session.run(
                f"""
                MATCH (n:{sanitize_label(collection)})
                WHERE $value IN coalesce(n.{prop}, [])
                RETURN properties(n) as props, labels(n) as labels
                ORDER BY n.id
                {limit_clause}
                """,
                value=value,
                limit=limit,
            )
            return [self._node_payload(r["props"], r["labels"]) for r in result]

    def find_entities(
        self,
        names: list[str],
        collection: str = "Entity",
        match_key: bool = False,
    ) -> list[dict]:
        """Find entity nodes by name (and optionally by key).

        Args:
            names: Candidate names
            collection: Entity label
            match_key: Also match the entity key

        Returns:
            List of entity payloads, in the order of ``names``
        """
        names = list(names)
        if not names:
            return []
        with self._session() as session:
            result = session.run(
                f"""
                MATCH (n:{sanitize_label(collection)})
                WHERE n.name IN $names OR ($match_key AND n.key IN $names)
                RETURN properties(n) as props, labels(n) as labels
                ORDER BY n.id
                """,
                names=names,
                match_key=match_key,
            )
            entities = [self._node_payload(r["props"], r["labels"]) for r in result]

        def _position(entity: dict) -> int:
            for candidate in (entity.get("name"), entity.get("key")):
                if candidate in names:
                    return names.index(candidate)
            return len(names)

        return sorted(entities, key=_position)

    # =========================================================================
    # TRAVERSAL
    # =========================================================================

    def traverse(
        self,
        start_id: str,
        *,
        depth: int,
        direction: Direction | str = Direction.OUT,
        relations: tuple[str, ...] = (),
        min_depth: int = 1,
    ) -> list[dict]:
        """Bounded-depth traversal returning every path from the start node.

        Relationships are unique within a path; vertices may repeat.

        Args:
            start_id: Qualified identity of the start node
            depth: Maximum number of hops (positive)
            direction: "out", "in" or "any"
            relations: Relationship types making up the graph (empty: all)
            min_depth: Minimum number of hops

        Returns:
            List of {"vertices": [...], "edges": [...]} path records, where
            vertices[0] is the start node and edges[-1] reached vertices[-1]
        """
        if not isinstance(depth, int) or depth < 1:
            raise ValueError(f"depth must be a positive integer, got {depth!r}")
        direction = Direction(direction)

        rel_filter = ""
        if relations:
            rel_filter = ":" + "|".join(normalize_relation(r) for r in relations)
        hops = f"*{max(1, min_depth)}..{depth}"

        if direction is Direction.OUT:
            pattern = f"(start)-[{rel_filter}{hops}]->(v)"
        elif direction is Direction.IN:
            pattern = f"(start)<-[{rel_filter}{hops}]-(v)"
        else:
            pattern = f"(start)-[{rel_filter}{hops}]-(v)"

        with self._session() as session:
            result = session.run(
                f"""
                MATCH (start{self._label_for(start_id)} {{id: $id}})
                MATCH p = {pattern}
                RETURN [n IN nodes(p) | {{props: properties(n), labels: labels(n)}}] as vertices,
                       [r IN relationships(p) | {{
                           props: properties(r),
                           relation: type(r),
                           from_id: startNode(r).id,
                           to_id: endNode(r).id
                       }}] as edges
                """,
                id=start_id,
            )
            rows = []
            for record in result:
                rows.append(
                    {
                        "vertices": [
                            self._node_payload(v["props"], v["labels"])
                            for v in record["vertices"]
                        ],
                        "edges": [
                            self._edge_payload(
                                e["props"], e["relation"], e["from_id"], e["to_id"]
                            )
                            for e in record["edges"]
                        ],
                    }
                )

        log.debug(
            f"traverse {start_id} depth={depth} direction={direction.value}: {len(rows)} paths"
        )
        return rows

    # =========================================================================
    # LISTING
    # =========================================================================

    def list_documents(
        self,
        collection: str,
        *,
        filters: ListingFilter | None = None,
        sort_field: str | None = "epoch_time",
        descending: bool = True,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict]:
        """List documents with optional filters, sorted and paginated.

        Args:
            collection: Node label
            filters: Optional category/subcategory/author/epoch filters
            sort_field: Flat property to sort on (None keeps store order)
            descending: Sort direction
            offset: Number of documents to skip
            limit: Maximum number of documents

        Returns:
            List of node payloads
        """
        filters = filters or ListingFilter()
        order_clause = ""
        if sort_field:
            order = "DESC" if descending else "ASC"
            prop = sanitize_label(sort_field)
            order_clause = f"ORDER BY n.{prop} IS NULL, n.{prop} {order}, n.id"

        with self._session() as session:
            result = session.run(
                f"""
                MATCH (n:{sanitize_label(collection)})
                WHERE ($node_id IS NULL OR n.id = $node_id)
                  AND ($category IS NULL OR $category IN coalesce(n.category, []))
                  AND ($subcategory IS NULL OR $subcategory IN coalesce(n.subcategory, []))
                  AND ($author IS NULL OR n.author = $author)
                  AND ($min_epoch IS NULL OR toFloat(n.epoch_time) >= $min_epoch)
                  AND ($max_epoch IS NULL OR toFloat(n.epoch_time) <= $max_epoch)
                RETURN properties(n) as props, labels(n) as labels
                {order_clause}
                SKIP $offset
                LIMIT $limit
                """,
                node_id=filters.node_id,
                category=filters.category,
                subcategory=filters.subcategory,
                author=filters.author,
                min_epoch=filters.min_epoch,
                max_epoch=filters.max_epoch,
                offset=offset,
                limit=limit,
            )
            return [self._node_payload(r["props"], r["labels"]) for r in result]

    def list_linked(
        self,
        target_id: str,
        relation: str,
        collection: str,
        *,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict]:
        """List documents linked to a target node, newest first."""
        rel = normalize_relation(relation)
        with self._session() as session:
            result = session.run(
                f"""
                MATCH (n:{sanitize_label(collection)})-[:{rel}]->(t{self._label_for(target_id)} {{id: $target_id}})
                WITH DISTINCT n
                RETURN properties(n) as props, labels(n) as labels
                ORDER BY n.epoch_time IS NULL, n.epoch_time DESC, n.id
                SKIP $offset
                LIMIT $limit
                """,
                target_id=target_id,
                offset=offset,
                limit=limit,
            )
            return [self._node_payload(r["props"], r["labels"]) for r in result]

    def distinct_values(
        self,
        collection: str,
        field: str,
        *,
        node_id: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[Any]:
        """Distinct values of a property, unwinding list properties.

        Args:
            collection: Node label
            field: Flat property name
            node_id: Restrict to one node
            offset: Number of values to skip
            limit: Maximum number of values

        Returns:
            Sorted list of distinct non-null values
        """
        prop = sanitize_label(field)
        with self._session() as session:
            result = session.run(
                f"""
                MATCH (n:{sanitize_label(collection)})
                WHERE ($node_id IS NULL OR n.id = $node_id) AND n.{prop} IS NOT NULL
                UNWIND (CASE WHEN valueType(n.{prop}) STARTS WITH 'LIST'
                             THEN n.{prop} ELSE [n.{prop}] END) as value
                WITH DISTINCT value
                WHERE value IS NOT NULL
                RETURN value
                ORDER BY value
                SKIP $offset
                LIMIT $limit
                """,
                node_id=node_id,
                offset=offset,
                limit=limit,
            )
            return [r["value"] for r in result]

    def document_edges(
        self, node_id: str, relations: tuple[str, ...], limit: int = 20
    ) -> list[dict]:
        """Edges touching a node, per relation type, tagged with the relation.

        Args:
            node_id: Qualified identity
            relations: Relationship types to inspect
            limit: Maximum edges per relation type

        Returns:
            List of edge payloads with an ``_edgeCollection`` field
        """
        edges: list[dict] = []
        with self._session() as session:
            for relation in relations:
                rel = normalize_relation(relation)
                result = session.run(
                    f"""
                    MATCH (n{self._label_for(node_id)} {{id: $id}})-[r:{rel}]-()
                    RETURN DISTINCT properties(r) as props, type(r) as relation,
                           startNode(r).id as from_id, endNode(r).id as to_id
                    LIMIT $limit
                    """,
                    id=node_id,
                    limit=limit,
                )
                for r in result:
                    payload = self._edge_payload(
                        r["props"], r["relation"], r["from_id"], r["to_id"]
                    )
                    payload["_edgeCollection"] = relation
                    edges.append(payload)
        return edges

    # =========================================================================
    # IMPORT
    # =========================================================================

    def import_snapshot(
        self, snapshot: dict[str, Any], clear_first: bool = False
    ) -> dict[str, int]:
        """Import a node/edge dataset into Neo4j.

        Args:
            snapshot: {"nodes": [{id, collection, properties}],
                       "edges": [{from_id, to_id, relation, properties}]}
            clear_first: Wipe the database before importing

        Returns:
            Dict with imported node and edge counts
        """
        nodes = snapshot.get("nodes", [])
        edges = snapshot.get("edges", [])
        labels: set[str] = set()

        def _import_tx(tx) -> dict[str, int]:
            node_count = 0
            edge_count = 0

            if clear_first:
                tx.run("MATCH (n) DETACH DELETE n")

            for node in nodes:
                node_id = node.get("id")
                if not node_id:
                    continue
                collection = node.get("collection") or split_id(node_id)[0]
                label = sanitize_label(collection or "Document")
                labels.add(label)

                props = flatten_document(collection, dict(node.get("properties", {})))
                props["id"] = node_id
                props["key"] = split_id(node_id)[1]

                tx.run(
                    f"""
                    MERGE (n:{label} {{id: $node_id}})
                    SET n = $props
                    """,
                    node_id=node_id,
                    props=encode_properties(props),
                )
                node_count += 1

            for index, edge in enumerate(edges):
                from_id = edge.get("from_id")
                to_id = edge.get("to_id")
                relation = edge.get("relation")
                if not from_id or not to_id or not relation:
                    continue

                rel = normalize_relation(relation)
                props = dict(edge.get("properties", {}))
                props.setdefault("id", edge.get("id") or f"{rel.lower()}/{index}")

                result = tx.run(
                    f"""
                    MATCH (a {{id: $from_id}})
                    MATCH (b {{id: $to_id}})
                    MERGE (a)-[r:{rel} {{id: $edge_id}}]->(b)
                    SET r = $props
                    RETURN count(r) as written
                    """,
                    from_id=from_id,
                    to_id=to_id,
                    edge_id=props["id"],
                    props=encode_properties(props),
                )
                record = result.single()
                if record:
                    edge_count += int(record["written"])

            return {"nodes": node_count, "edges": edge_count}

        with self._session() as session:
            result = session.execute_write(_import_tx)

        self._create_indexes(sorted(labels))
        log.info(f"Imported {result['nodes']} nodes and {result['edges']} edges")
        return result
