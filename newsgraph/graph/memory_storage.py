"""In-memory news graph on NetworkX.

Mirrors the read primitives of Neo4jStorage over a MultiDiGraph so the
retrieval layer can run against a snapshot file without a database.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Iterator

import networkx as nx
import yaml

from .schema import (
    Direction,
    ListingFilter,
    flatten_document,
    normalize_relation,
    split_id,
    strip_mirrors,
    to_number,
)

log = logging.getLogger(__name__)


def load_snapshot_file(path: Path | str) -> dict[str, Any]:
    """Read a node/edge snapshot from a JSON or YAML file."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Snapshot {path} must contain a mapping with nodes and edges")
    return data


def _sort_key(value: Any) -> tuple[int, Any]:
    # Numbers before strings; the two never compare directly.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


class InMemoryStorage:
    """Snapshot-backed graph exposing the same primitives as Neo4jStorage."""

    def __init__(self):
        self.graph = nx.MultiDiGraph()

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> "InMemoryStorage":
        storage = cls()
        storage.import_snapshot(snapshot)
        return storage

    @classmethod
    def from_file(cls, path: Path | str) -> "InMemoryStorage":
        return cls.from_snapshot(load_snapshot_file(path))

    def close(self):
        pass

    def clear(self, force: bool = False):
        if not force:
            raise RuntimeError("Refusing to clear graph without force=True")
        self.graph.clear()

    def _payload(self, node_id: str) -> dict:
        return strip_mirrors(copy.deepcopy(self.graph.nodes[node_id]))

    def _nodes_in(self, collection: str) -> Iterator[tuple[str, dict]]:
        for node_id, data in self.graph.nodes(data=True):
            if data.get("collection") == collection:
                yield node_id, data

    @staticmethod
    def _edge_payload(u: str, v: str, data: dict) -> dict:
        payload = copy.deepcopy(data)
        payload["from_id"] = u
        payload["to_id"] = v
        return payload

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_document(self, node_id: str) -> dict | None:
        if node_id not in self.graph:
            return None
        return self._payload(node_id)

    def find_documents(
        self,
        collection: str,
        field: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict]:
        matches = sorted(
            node_id
            for node_id, data in self._nodes_in(collection)
            if data.get(field) == value
        )
        if limit:
            matches = matches[:limit]
        return [self._payload(node_id) for node_id in matches]

    def find_documents_containing(
        self,
        collection: str,
        field: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict]:
        matches = sorted(
            node_id
            for node_id, data in self._nodes_in(collection)
            if isinstance(data.get(field), list) and value in data[field]
        )
        if limit:
            matches = matches[:limit]
        return [self._payload(node_id) for node_id in matches]

    def find_entities(
        self,
        names: list[str],
        collection: str = "Entity",
        match_key: bool = False,
    ) -> list[dict]:
        names = list(names)
        found: list[tuple[int, str]] = []
        for node_id, data in self._nodes_in(collection):
            candidates = [data.get("name")]
            if match_key:
                candidates.append(data.get("key"))
            positions = [names.index(c) for c in candidates if c in names]
            if positions:
                found.append((min(positions), node_id))
        return [self._payload(node_id) for _, node_id in sorted(found)]

    # =========================================================================
    # TRAVERSAL
    # =========================================================================

    def _steps(self, node_id: str, direction: Direction, relations: set[str]):
        """Edges leaving node_id in the given direction as (edge_key, next, payload)."""
        steps = []
        if direction in (Direction.OUT, Direction.ANY):
            for u, v, key, data in self.graph.out_edges(node_id, keys=True, data=True):
                steps.append(((u, v, key), v, self._edge_payload(u, v, data)))
        if direction in (Direction.IN, Direction.ANY):
            for u, v, key, data in self.graph.in_edges(node_id, keys=True, data=True):
                if direction is Direction.ANY and u == v:
                    continue
                steps.append(((u, v, key), u, self._edge_payload(u, v, data)))
        if relations:
            steps = [s for s in steps if s[2].get("relation") in relations]
        return steps

    def traverse(
        self,
        start_id: str,
        *,
        depth: int,
        direction: Direction | str = Direction.OUT,
        relations: tuple[str, ...] = (),
        min_depth: int = 1,
    ) -> list[dict]:
        """Depth-first enumeration of every path of 1..depth hops.

        Each relationship is used at most once per path. Paths are emitted in
        pre-order, so a path precedes its extensions.
        """
        if not isinstance(depth, int) or depth < 1:
            raise ValueError(f"depth must be a positive integer, got {depth!r}")
        direction = Direction(direction)
        if start_id not in self.graph:
            return []

        wanted = {normalize_relation(r) for r in relations}
        rows: list[dict] = []
        payloads: dict[str, dict] = {}

        def vertex(node_id: str) -> dict:
            if node_id not in payloads:
                payloads[node_id] = self._payload(node_id)
            return payloads[node_id]

        def walk(node_id: str, path_nodes: list[str], path_edges: list, used: set):
            if len(path_edges) >= depth:
                return
            for edge_key, nxt, payload in self._steps(node_id, direction, wanted):
                if edge_key in used:
                    continue
                nodes = path_nodes + [nxt]
                edges = path_edges + [payload]
                if len(edges) >= min_depth:
                    rows.append(
                        {
                            "vertices": [copy.deepcopy(vertex(n)) for n in nodes],
                            "edges": copy.deepcopy(edges),
                        }
                    )
                walk(nxt, nodes, edges, used | {edge_key})

        walk(start_id, [start_id], [], set())
        log.debug(
            f"traverse {start_id} depth={depth} direction={direction.value}: {len(rows)} paths"
        )
        return rows

    # =========================================================================
    # LISTING
    # =========================================================================

    @staticmethod
    def _matches(data: dict, filters: ListingFilter) -> bool:
        if filters.node_id is not None and data.get("id") != filters.node_id:
            return False
        for name in ("category", "subcategory"):
            wanted = getattr(filters, name)
            if wanted is not None and wanted not in (data.get(name) or []):
                return False
        if filters.author is not None and data.get("author") != filters.author:
            return False
        if filters.min_epoch is not None or filters.max_epoch is not None:
            epoch = to_number(data.get("epoch_time"))
            if epoch is None:
                return False
            if filters.min_epoch is not None and epoch < filters.min_epoch:
                return False
            if filters.max_epoch is not None and epoch > filters.max_epoch:
                return False
        return True

    @staticmethod
    def _sorted(node_ids: list[tuple[str, dict]], sort_field: str | None, descending: bool):
        ordered = sorted(node_ids, key=lambda item: item[0])
        if not sort_field:
            return ordered
        present = [item for item in ordered if item[1].get(sort_field) is not None]
        missing = [item for item in ordered if item[1].get(sort_field) is None]
        present.sort(key=lambda item: _sort_key(item[1][sort_field]), reverse=descending)
        return present + missing

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
        filters = filters or ListingFilter()
        selected = [
            (node_id, data)
            for node_id, data in self._nodes_in(collection)
            if self._matches(data, filters)
        ]
        ordered = self._sorted(selected, sort_field, descending)
        return [self._payload(node_id) for node_id, _ in ordered[offset : offset + limit]]

    def list_linked(
        self,
        target_id: str,
        relation: str,
        collection: str,
        *,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict]:
        if target_id not in self.graph:
            return []
        rel = normalize_relation(relation)
        linked: dict[str, dict] = {}
        for u, _, data in self.graph.in_edges(target_id, data=True):
            if data.get("relation") == rel and self.graph.nodes[u].get("collection") == collection:
                linked[u] = self.graph.nodes[u]
        ordered = self._sorted(list(linked.items()), "epoch_time", True)
        return [self._payload(node_id) for node_id, _ in ordered[offset : offset + limit]]

    def distinct_values(
        self,
        collection: str,
        field: str,
        *,
        node_id: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> list[Any]:
        values: set = set()
        for nid, data in self._nodes_in(collection):
            if node_id is not None and nid != node_id:
                continue
            value = data.get(field)
            items = value if isinstance(value, list) else [value]
            values.update(v for v in items if v is not None)
        ordered = sorted(values, key=_sort_key)
        return ordered[offset : offset + limit]

    def document_edges(
        self, node_id: str, relations: tuple[str, ...], limit: int = 20
    ) -> list[dict]:
        if node_id not in self.graph:
            return []
        edges: list[dict] = []
        for relation in relations:
            rel = normalize_relation(relation)
            seen: set = set()
            found: list[dict] = []
            touching = list(self.graph.out_edges(node_id, keys=True, data=True))
            touching += list(self.graph.in_edges(node_id, keys=True, data=True))
            for u, v, key, data in touching:
                if data.get("relation") != rel or (u, v, key) in seen:
                    continue
                seen.add((u, v, key))
                payload = self._edge_payload(u, v, data)
                payload["_edgeCollection"] = relation
                found.append(payload)
                if len(found) >= limit:
                    break
            edges.extend(found)
        return edges

    # =========================================================================
    # IMPORT
    # =========================================================================

    def import_snapshot(
        self, snapshot: dict[str, Any], clear_first: bool = False
    ) -> dict[str, int]:
        """Load nodes and edges; edges to unknown nodes are skipped."""
        if clear_first:
            self.graph.clear()

        node_count = 0
        for node in snapshot.get("nodes", []):
            node_id = node.get("id")
            if not node_id:
                continue
            collection = node.get("collection") or split_id(node_id)[0]
            props = flatten_document(collection, copy.deepcopy(node.get("properties", {})))
            props["id"] = node_id
            props["key"] = split_id(node_id)[1]
            props["collection"] = collection
            self.graph.add_node(node_id, **props)
            node_count += 1

        edge_count = 0
        for index, edge in enumerate(snapshot.get("edges", [])):
            from_id = edge.get("from_id")
            to_id = edge.get("to_id")
            relation = edge.get("relation")
            if not relation or from_id not in self.graph or to_id not in self.graph:
                log.debug(f"Skipping edge {index}: unresolved endpoints or relation")
                continue
            rel = normalize_relation(relation)
            props = copy.deepcopy(edge.get("properties", {}))
            props.setdefault("id", edge.get("id") or f"{rel.lower()}/{index}")
            props["relation"] = rel
            edge_id = props["id"]
            self.graph.add_edge(from_id, to_id, key=edge_id)
            self.graph.edges[from_id, to_id, edge_id].update(props)
            edge_count += 1

        log.info(f"Loaded {node_count} nodes and {edge_count} edges into memory")
        return {"nodes": node_count, "edges": edge_count}
