import pytest

from newsgraph.graph.tests.graph_fixtures import article, document, memory_storage
from newsgraph.retrieval.errors import InvalidArgument
from newsgraph.retrieval.shaping import (
    project,
    projection_from_args,
    public_payload,
    redact_payload,
    shape_ranked,
    shape_related,
)
from newsgraph.retrieval.types import (
    DetailLevel,
    DocumentNode,
    ProjectionSpec,
    RankedItem,
)


@pytest.fixture
def storage():
    return memory_storage([article("1", author="alice"), document("d1", epoch=77)], [])


@pytest.fixture
def doc(storage):
    return DocumentNode.from_payload(storage.get_document("Article/1"))


class TestShapeRelated:
    def test_redacted_output(self, doc):
        shaped = shape_related(doc, redact=True)

        assert shaped["articleID"] == "1"
        assert shaped["category"] == ["politics"]
        assert shaped["subcategory"] == ["elections"]
        assert shaped["default"] == {"title": "Article 1", "epoch_time": 1000}
        assert shaped["read"] == [{"title": "read 0"}]
        assert shaped["watch"] == [{"title": "watch 1"}]
        assert shaped["tag"] == "tag-a"
        assert "source_tags" not in shaped

    def test_full_output_keeps_sub_objects(self, doc):
        shaped = shape_related(doc, redact=False)

        assert shaped["default"]["url"] == "https://news.example/1"
        assert shaped["read"][0]["docID"] == "read-1-0"
        assert shaped["watch"][0]["videoID"] == "video-1"
        assert shaped["source_tags"] == ["tag-a", "tag-b"]
        assert "tag" not in shaped

    def test_missing_media_gives_empty_lists(self):
        doc = DocumentNode.from_payload({"id": "Article/9", "category": ["x"]})

        shaped = shape_related(doc, redact=True)

        assert shaped["read"] == []
        assert shaped["watch"] == []
        assert shaped["tag"] is None
        assert shaped["default"] is None

    def test_shaping_does_not_mutate_the_document(self, doc):
        shaped = shape_related(doc, redact=False)
        shaped["default"]["title"] = "changed"

        assert doc.payload["default"]["title"] == "Article 1"


class TestPayloads:
    def test_public_payload_uses_identity_fields(self, doc):
        payload = public_payload(doc)

        assert payload["_id"] == "Article/1"
        assert payload["_key"] == "1"
        assert "collection" not in payload
        assert "id" not in payload
        assert "url" not in payload

    def test_redact_payload_only_touches_first_media_entry(self):
        payload = {
            "default": {"title": "T", "url": "u"},
            "read": [{"title": "a", "url": "u1"}, {"title": "b", "url": "u2"}],
        }

        redacted = redact_payload(payload)

        assert redacted["default"] == {"title": "T"}
        assert redacted["read"] == [{"title": "a"}, {"title": "b", "url": "u2"}]
        assert payload["default"]["url"] == "u"

    def test_shape_ranked_adds_path_count(self, doc):
        shaped = shape_ranked(RankedItem(document=doc, path_count=3))

        assert shaped["no_of_paths"] == 3
        assert shaped["_key"] == "1"
        assert shaped["default"]["url"] == "https://news.example/1"


class TestProject:
    def test_minimal_and_summary(self, doc):
        assert project(doc, ProjectionSpec.minimal()) == {"_key": "1", "title": "Article 1"}
        assert project(doc, ProjectionSpec.summary()) == {
            "_key": "1",
            "title": "Article 1",
            "summary": "Summary of 1",
        }

    def test_document_profile(self, storage):
        doc = DocumentNode.from_payload(storage.get_document("Document/d1"))

        assert doc.timestamp == 77
        assert project(doc, ProjectionSpec.summary()) == {
            "_key": "d1",
            "title": "Document d1",
            "description": "About d1",
        }

    def test_explicit_fields_resolve_dotted_paths(self, doc):
        spec = ProjectionSpec.explicit(["_key", "default.title", "author", "missing"])

        assert project(doc, spec) == {
            "_key": "1",
            "default.title": "Article 1",
            "author": "alice",
            "missing": None,
        }

    def test_full_with_redaction(self, doc):
        shaped = project(doc, ProjectionSpec.full(redact=True))

        assert "url" not in shaped["default"]
        assert shaped["_id"] == "Article/1"


class TestProjectionFromArgs:
    def test_explicit_list_wins_over_detail(self):
        spec = projection_from_args("minimal", ["_key", "default.title"])

        assert spec.detail is DetailLevel.EXPLICIT
        assert spec.fields == ("_key", "default.title")

    def test_default_level(self):
        assert projection_from_args(None, None).detail is DetailLevel.SUMMARY
        assert projection_from_args(None, None, default="full").detail is DetailLevel.FULL

    @pytest.mark.parametrize(
        "detail, projection",
        [
            ("everything", None),
            ("explicit", None),
            (None, "title"),
            (None, ["title", "bad field"]),
            (None, ["title", 3]),
        ],
    )
    def test_rejects_bad_arguments(self, detail, projection):
        with pytest.raises(InvalidArgument):
            projection_from_args(detail, projection)
