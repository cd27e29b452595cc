"""Tests for article and document listing."""

import pytest

from newsgraph.graph.tests.graph_fixtures import (
    article,
    document,
    edge,
    entity,
    memory_storage,
)
from newsgraph.retrieval import listing
from newsgraph.retrieval.errors import InvalidArgument


@pytest.fixture
def storage():
    return memory_storage(
        [
            article("a1", subcategory=("elections",), epoch=100, author="alice"),
            article("a2", category=("sports",), subcategory=("football",), epoch=300, author="bob"),
            article("a3", subcategory=("budget",), epoch=200, author="alice"),
            article("a4", subcategory=("elections",), epoch=None),
            document("d1", epoch=50, author="x"),
            document("d2", epoch=150, category=("tech",)),
            entity("e1", "Election"),
        ],
        [
            edge("Article/a1", "Entity/e1", "ARTICLE_ENTITIES"),
            edge("Article/a3", "Entity/e1", "ARTICLE_ENTITIES"),
            edge("Document/d1", "Document/d2", "EDGES", weight=3),
            edge("Document/d2", "Document/d1", "CLOSENESS"),
        ],
    )


def _keys(items):
    return [item["_key"] for item in items]


class TestRecentArticles:
    def test_newest_first_with_missing_timestamps_last(self, storage):
        result = listing.recent_articles(storage=storage)

        assert _keys(result) == ["a2", "a3", "a1", "a4"]
        assert result[0] == {"_key": "a2", "title": "Article a2", "summary": "Summary of a2"}

    def test_pagination(self, storage):
        result = listing.paginated_article_list(limit=2, offset=1, storage=storage)

        assert _keys(result) == ["a3", "a1"]

    def test_sort_by_key_ascending(self, storage):
        result = listing.recent_articles(
            sort_by="_key", sort_order="asc", detail="minimal", storage=storage
        )

        assert _keys(result) == ["a1", "a2", "a3", "a4"]
        assert set(result[0]) == {"_key", "title"}

    def test_grouping_by_projected_field(self, storage):
        result = listing.recent_articles(
            projection=["_key", "author"], group_by="author", storage=storage
        )

        assert list(result) == ["bob", "alice", "null"]
        assert _keys(result["alice"]) == ["a3", "a1"]
        assert _keys(result["null"]) == ["a4"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"sort_by": "title"},
            {"sort_order": "up"},
            {"limit": 0},
            {"limit": 1001},
            {"offset": -1},
            {"detail": "everything"},
        ],
    )
    def test_rejects_bad_arguments(self, storage, kwargs):
        with pytest.raises(InvalidArgument):
            listing.recent_articles(storage=storage, **kwargs)


class TestFilteredListings:
    def test_by_category(self, storage):
        assert _keys(listing.articles_by_category("politics", storage=storage)) == [
            "a3",
            "a1",
            "a4",
        ]
        assert _keys(
            listing.articles_by_category("politics", "elections", storage=storage)
        ) == ["a1", "a4"]

    def test_by_author(self, storage):
        assert _keys(listing.articles_by_author("alice", storage=storage)) == ["a3", "a1"]

    def test_by_date_range_is_inclusive(self, storage):
        assert _keys(listing.articles_by_date_range(100, 200, storage=storage)) == [
            "a3",
            "a1",
        ]
        assert _keys(listing.documents_by_date_range(0, 100, storage=storage)) == ["d1"]

    def test_date_range_rejects_non_numeric_bounds(self, storage):
        with pytest.raises(InvalidArgument):
            listing.articles_by_date_range("yesterday", 200, storage=storage)

    def test_by_entity_name_or_key(self, storage):
        assert _keys(listing.articles_by_entity("Election", storage=storage)) == ["a3", "a1"]
        assert _keys(listing.articles_by_entity("e1", storage=storage)) == ["a3", "a1"]
        assert listing.articles_by_entity("Nobody", storage=storage) == []


class TestByKey:
    def test_article_by_key_defaults_to_full_payload(self, storage):
        result = listing.article_by_key("a1", storage=storage)

        assert result["_id"] == "Article/a1"
        assert result["author"] == "alice"
        assert result["default"]["epoch_time"] == 100

    def test_missing_or_foreign_keys_give_none(self, storage):
        assert listing.article_by_key("missing", storage=storage) is None
        assert listing.article_by_key("Document/d1", storage=storage) is None

    def test_document_by_key_with_detail(self, storage):
        result = listing.document_by_key("d1", detail="minimal", storage=storage)

        assert result == {"_key": "d1", "title": "Document d1"}


class TestDistinctValues:
    def test_categories(self, storage):
        assert listing.list_categories(storage=storage) == {
            "categories": ["politics", "sports"],
            "subcategories": ["budget", "elections", "football"],
        }
        assert listing.list_categories("a2", storage=storage) == {
            "categories": ["sports"],
            "subcategories": ["football"],
        }

    def test_document_categories(self, storage):
        assert listing.list_document_categories(storage=storage) == {
            "categories": ["politics", "tech"],
            "subcategories": [],
        }

    def test_authors_skip_missing_values(self, storage):
        assert listing.list_authors(storage=storage) == ["alice", "bob"]
        assert listing.list_document_authors(storage=storage) == ["x"]


class TestDocumentEdges:
    def test_edges_are_tagged_with_their_relation(self, storage):
        edges = listing.document_edges("d1", storage=storage)

        assert [e["_edgeCollection"] for e in edges] == ["EDGES", "CLOSENESS"]
        assert edges[0]["from_id"] == "Document/d1"
        assert edges[0]["weight"] == 3

    def test_rejects_non_positive_limit(self, storage):
        with pytest.raises(InvalidArgument):
            listing.document_edges("d1", limit=0, storage=storage)


def test_group_label():
    assert listing.group_label(None) == "null"
    assert listing.group_label(True) == "true"
    assert listing.group_label(("a", "b")) == "a,b"
    assert listing.group_label(3) == "3"
