"""Tests for the path-count ranking strategies."""

from dataclasses import replace

from newsgraph.graph.schema import Direction
from newsgraph.graph.tests.graph_fixtures import (
    document,
    edge,
    entity_graph,
    origin_graph,
    shared_document_graph,
    shared_id_graph,
)
from newsgraph.retrieval.config import DEFAULT_RETRIEVAL_CONFIG
from newsgraph.retrieval.ranker import (
    count_paths,
    fan_out_from_entities,
    rank_by_shared_id,
    rank_groups,
    rank_via_shared_document,
    rank_with_origin,
)
from newsgraph.retrieval.types import PathGroup, TraversalRequest


class TestCounting:
    def test_count_paths_keeps_first_seen_order_and_skips_none(self):
        rows = ["b", "a", None, "b", "c", "a", "b"]

        groups = count_paths(rows, lambda row: row)

        assert groups == [
            PathGroup("b", 3),
            PathGroup("a", 2),
            PathGroup("c", 1),
        ]

    def test_rank_groups_is_stable(self):
        groups = [PathGroup("x", 1), PathGroup("y", 2), PathGroup("z", 1)]

        assert [g.key for g in rank_groups(groups)] == ["y", "x", "z"]
        assert [g.key for g in rank_groups(groups, descending=False)] == ["x", "z", "y"]
        assert [g.key for g in rank_groups(groups, limit=2)] == ["y", "x"]


class TestSharedDocument:
    def _request(self, **kwargs):
        values = {"depth": 1, "window": 200.0, "limit": 10}
        values.update(kwargs)
        return TraversalRequest(start_id="Article/q", direction=Direction.OUT, **values)

    def test_ranks_articles_by_paths_through_shared_entities(self):
        ranked = rank_via_shared_document(shared_document_graph(), self._request())

        assert [doc.key for doc in ranked.documents] == ["r1", "r2"]
        assert ranked.path_counts == [2, 1]

    def test_limit_applies_before_window(self):
        ranked = rank_via_shared_document(shared_document_graph(), self._request(limit=1))

        assert [doc.key for doc in ranked.documents] == ["r1"]

    def test_narrow_window_drops_everything(self):
        ranked = rank_via_shared_document(
            shared_document_graph(), self._request(window=10.0)
        )

        assert len(ranked) == 0

    def test_unknown_article_gives_empty_result(self):
        request = replace(self._request(), start_id="Article/missing")

        assert len(rank_via_shared_document(shared_document_graph(), request)) == 0

    def test_start_article_is_never_ranked(self):
        storage = shared_document_graph()
        storage.import_snapshot(
            {
                "nodes": [document("d0b", url="https://news.example/q")],
                "edges": [
                    {**edge("Document/d0b", "Entity/n1", "MENTIONS", ne_tf=1), "id": "mentions/d0b"}
                ],
            }
        )

        ranked = rank_via_shared_document(storage, self._request())

        assert [doc.key for doc in ranked.documents] == ["r1", "r2"]
        assert ranked.path_counts == [4, 2]


class TestWithOrigin:
    def _request(self, **kwargs):
        values = {"depth": 2, "category": "politics", "window": 100.0, "limit": 10}
        values.update(kwargs)
        return TraversalRequest(start_id="Article/q", direction=Direction.ANY, **values)

    def test_counts_paths_with_any_origin(self):
        ranked = rank_with_origin(origin_graph(), self._request())

        assert [doc.key for doc in ranked.documents] == ["a", "b"]
        assert ranked.path_counts == [2, 2]

    def test_origin_filter_intersects_edge_origins(self):
        ranked = rank_with_origin(origin_graph(), self._request(origins=("feed",)))

        assert [doc.key for doc in ranked.documents] == ["b"]
        assert ranked.path_counts == [1]

    def test_limit_truncates_ranking(self):
        ranked = rank_with_origin(origin_graph(), self._request(limit=1))

        assert [doc.key for doc in ranked.documents] == ["a"]

    def test_excludes_other_collections_categories_and_start(self):
        keys = [doc.key for doc in rank_with_origin(origin_graph(), self._request()).documents]

        assert "e" not in keys
        assert "c" not in keys
        assert "d" not in keys
        assert "q" not in keys


class TestEntityFanOut:
    def _request(self, terms=("Election",), **kwargs):
        values = {
            "depth": 1,
            "category": "politics",
            "window": 100.0,
            "reference_time": 1000.0,
            "graph": DEFAULT_RETRIEVAL_CONFIG.entity_graph,
        }
        values.update(kwargs)
        return TraversalRequest(
            start_id="Article/q", direction=Direction.IN, terms=tuple(terms), **values
        )

    def test_articles_linked_to_named_entities(self):
        related = fan_out_from_entities(entity_graph(), self._request())

        assert [doc.key for doc in related] == ["a"]

    def test_results_are_distinct_across_entities(self):
        related = fan_out_from_entities(
            entity_graph(), self._request(terms=("Budget", "Election"))
        )

        assert [doc.key for doc in related] == ["a"]

    def test_wider_window_admits_later_articles(self):
        related = fan_out_from_entities(entity_graph(), self._request(window=1000.0))

        assert [doc.key for doc in related] == ["a", "b"]

    def test_unknown_terms_give_empty_result(self):
        assert fan_out_from_entities(entity_graph(), self._request(terms=("Nope",))) == []


class TestSharedId:
    def _request(self, **kwargs):
        values = {"depth": 2, "edge_type": "LINK", "limit": 10}
        values.update(kwargs)
        return TraversalRequest(start_id="Article/q", direction=Direction.ANY, **values)

    def test_weakest_connectivity_ranks_first(self):
        ranked = rank_by_shared_id(shared_id_graph(), self._request())

        assert [doc.key for doc in ranked.documents] == ["z", "y"]
        assert ranked.path_counts == [1, 2]

    def test_descending_order_is_configurable(self):
        config = replace(DEFAULT_RETRIEVAL_CONFIG, shared_id_descending=True)

        ranked = rank_by_shared_id(shared_id_graph(), self._request(), config)

        assert [doc.key for doc in ranked.documents] == ["y", "z"]

    def test_single_hop_paths_carry_no_key(self):
        ranked = rank_by_shared_id(shared_id_graph(), self._request(depth=1))

        assert len(ranked) == 0

    def test_other_edge_types_are_ignored(self):
        ranked = rank_by_shared_id(shared_id_graph(), self._request(edge_type="SIMILAR"))

        assert len(ranked) == 0
