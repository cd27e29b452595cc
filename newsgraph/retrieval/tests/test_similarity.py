from newsgraph.graph.schema import Direction
from newsgraph.graph.tests.graph_fixtures import similarity_graph
from newsgraph.retrieval.similarity import edge_qualifies, find_similar, related_by_read_url
from newsgraph.retrieval.types import EdgeRelation, TraversalRequest


def _request(depth=2, **kwargs) -> TraversalRequest:
    values = {"edge_type": "SIMILAR", "max_weight": 0.5}
    values.update(kwargs)
    return TraversalRequest(
        start_id="Article/1", depth=depth, direction=Direction.OUT, **values
    )


def _edge(relation="SIMILAR", **props) -> EdgeRelation:
    return EdgeRelation.from_payload({"relation": relation, **props})


class TestEdgeQualifies:
    def test_weight_must_be_strictly_below_threshold(self):
        request = _request()

        assert edge_qualifies(_edge(sim_value=0.49), request)
        assert not edge_qualifies(_edge(sim_value=0.5), request)
        assert not edge_qualifies(_edge(sim_value=0.8), request)

    def test_missing_or_unparsable_weight_never_qualifies(self):
        request = _request()

        assert not edge_qualifies(_edge(), request)
        assert not edge_qualifies(_edge(sim_value="close"), request)

    def test_numeric_string_weight_is_converted(self):
        assert edge_qualifies(_edge(sim_value="0.1"), _request())

    def test_relation_must_match(self):
        assert not edge_qualifies(_edge("CLOSE_TO", sim_value=0.1), _request())

    def test_no_threshold_accepts_any_weight(self):
        request = _request(max_weight=None)

        assert edge_qualifies(_edge(), request)


class TestFindSimilar:
    def test_depth_two_follows_qualifying_edges(self):
        similar = find_similar(similarity_graph(), _request(depth=2))

        assert [doc.key for doc in similar] == ["2", "4"]

    def test_depth_one_stops_at_direct_neighbors(self):
        similar = find_similar(similarity_graph(), _request(depth=1))

        assert [doc.key for doc in similar] == ["2"]

    def test_start_article_is_never_returned(self):
        # Article 2 links back to article 1 with a qualifying weight.
        similar = find_similar(similarity_graph(), _request(depth=3))

        assert "1" not in [doc.key for doc in similar]

    def test_missing_start_gives_empty_result(self):
        request = TraversalRequest(
            start_id="Article/missing",
            depth=2,
            direction=Direction.OUT,
            edge_type="SIMILAR",
            max_weight=0.5,
        )

        assert find_similar(similarity_graph(), request) == []


class TestRelatedByReadUrl:
    def test_finds_query_article_and_neighbors_in_any_direction(self):
        query, related = related_by_read_url(
            similarity_graph(), "https://source.example/shared", depth=1, edge_type="SIMILAR"
        )

        assert query.key == "1"
        assert [doc.key for doc in related] == ["2", "3"]

    def test_unknown_url_gives_no_query_article(self):
        query, related = related_by_read_url(
            similarity_graph(), "https://source.example/nowhere", depth=1, edge_type="SIMILAR"
        )

        assert query is None
        assert related == []

    def test_other_edge_types_are_ignored(self):
        query, related = related_by_read_url(
            similarity_graph(), "https://source.example/shared", depth=1, edge_type="CLOSE_TO"
        )

        assert query.key == "1"
        assert [doc.key for doc in related] == ["5"]
