"""Tests for MCP server tools."""

import pytest

from newsgraph.graph.tests.graph_fixtures import (
    article,
    document,
    edge,
    memory_storage,
    origin_graph,
    similarity_graph,
)
from newsgraph.mcp import server as mcp_server
from newsgraph.settings import StoreSettings


@pytest.fixture
def use_storage(monkeypatch):
    def install(storage):
        monkeypatch.setattr(mcp_server, "storage", storage)
        monkeypatch.setattr(mcp_server, "settings", StoreSettings())
        return storage

    return install


class TestDiscoveryTools:
    def test_similar_articles_success(self, use_storage):
        use_storage(similarity_graph())

        result = mcp_server.get_crlr_related_articles("1", 2, "SIMILAR", 0.5)

        assert result["success"] is True
        assert result["count"] == 2
        assert [a["articleID"] for a in result["articles"]] == ["2", "4"]

    def test_invalid_argument_sets_error_kind(self, use_storage):
        use_storage(similarity_graph())

        result = mcp_server.get_crlr_related_articles_unset("1", 0, "SIMILAR", 0.5)

        assert result["success"] is False
        assert result["error_kind"] == "invalid_argument"
        assert "get_crlr_related_articles_unset" in result["error"]
        assert "articles" not in result

    def test_path_ranking_tool(self, use_storage):
        use_storage(origin_graph())

        result = mcp_server.get_path_related_articles(2, "politics", "q", 100, 10)

        assert result["success"] is True
        assert [a["no_of_paths"] for a in result["articles"]] == [2, 2]

    def test_related_docs_tool_merges_result(self, use_storage):
        use_storage(similarity_graph())

        result = mcp_server.get_crlr_related_docs("https://source.example/shared", 1, "SIMILAR")

        assert result["success"] is True
        assert [a["_key"] for a in result["query_article"]] == ["1"]
        assert "related_articles" in result

    def test_bad_endpoint_comes_back_as_structured_error(self, use_storage):
        use_storage(similarity_graph())

        result = mcp_server.get_crlr_related_articles(
            "1", 1, "SIMILAR", 0.5, db_url="foo://bad:1234"
        )

        assert result["success"] is False
        assert result["error_kind"] == "retrieval_error"
        assert "get_crlr_related_articles" in result["error"]
        assert "articles" not in result


class TestListingTools:
    @pytest.fixture
    def storage(self, use_storage):
        return use_storage(
            memory_storage(
                [
                    article("a1", epoch=100, author="alice"),
                    article("a2", epoch=200, author="bob"),
                    document("d1"),
                    document("d2"),
                ],
                [edge("Document/d1", "Document/d2", "CONNECTIONS")],
            )
        )

    def test_recent_articles(self, storage):
        result = mcp_server.recent_articles(limit=1)

        assert result == {
            "success": True,
            "count": 1,
            "articles": [{"_key": "a2", "title": "Article a2", "summary": "Summary of a2"}],
        }

    def test_grouped_listing_reports_groups(self, storage):
        result = mcp_server.recent_articles(projection=["_key", "author"], group_by="author")

        assert result["success"] is True
        assert result["count"] == 2
        assert set(result["groups"]) == {"alice", "bob"}

    def test_article_by_key(self, storage):
        found = mcp_server.article_by_key("a1", detail="minimal")
        missing = mcp_server.article_by_key("zzz")

        assert found == {"success": True, "article": {"_key": "a1", "title": "Article a1"}}
        assert missing == {"success": True, "article": None}

    def test_document_tools(self, storage):
        assert mcp_server.document_by_key("d1")["document"]["_id"] == "Document/d1"
        assert mcp_server.document_by_key("d404") == {"success": True, "document": None}
        edges = mcp_server.get_document_edges("d1")
        assert edges["count"] == 1
        assert edges["edges"][0]["_edgeCollection"] == "CONNECTIONS"

    def test_authors_and_categories(self, storage):
        assert mcp_server.list_authors()["authors"] == ["alice", "bob"]
        assert mcp_server.list_categories() == {
            "success": True,
            "categories": ["politics"],
            "subcategories": ["elections"],
        }

    def test_bad_sort_is_reported(self, storage):
        result = mcp_server.recent_articles(sort_by="title")

        assert result["success"] is False
        assert result["error_kind"] == "invalid_argument"


class TestStoreSelection:
    def test_uninitialized_server_raises(self, monkeypatch):
        monkeypatch.setattr(mcp_server, "storage", None)
        monkeypatch.setattr(mcp_server, "settings", None)

        with pytest.raises(RuntimeError, match="not initialized"):
            mcp_server._require_storage()

    def test_same_endpoint_uses_shared_storage(self, use_storage):
        storage = use_storage(similarity_graph())

        kwargs = mcp_server._store_kwargs(StoreSettings().uri)

        assert kwargs["storage"] is storage

    def test_other_endpoint_gets_per_call_settings(self, use_storage):
        use_storage(similarity_graph())

        kwargs = mcp_server._store_kwargs("bolt://replica:7687")

        assert kwargs["db_url"] == "bolt://replica:7687"
        assert kwargs["settings"] == StoreSettings()
        assert "storage" not in kwargs

    def test_init_server_accepts_injected_storage(self, monkeypatch):
        storage = similarity_graph()
        monkeypatch.setattr(mcp_server, "storage", None)
        monkeypatch.setattr(mcp_server, "settings", None)

        mcp_server.init_server(StoreSettings(uri="bolt://test:7687"), graph_storage=storage)

        assert mcp_server._require_storage() is storage
        assert mcp_server.settings.uri == "bolt://test:7687"
