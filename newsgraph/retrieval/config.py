"""Configuration for related-document retrieval."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CollectionProfile:
    """Where a collection keeps the fields the shaper and window read."""

    name: str
    title_field: str
    summary_field: str
    summary_key: str
    timestamp_field: str
    url_field: str


ARTICLE_PROFILE = CollectionProfile(
    name="Article",
    title_field="default.title",
    summary_field="default_summary",
    summary_key="summary",
    timestamp_field="default.epoch_time",
    url_field="default.url",
)

DOCUMENT_PROFILE = CollectionProfile(
    name="Document",
    title_field="title",
    summary_field="description",
    summary_key="description",
    timestamp_field="epoch_published",
    url_field="url",
)


@dataclass(frozen=True)
class RetrievalConfig:
    """Constants controlling traversal, ranking and shaping."""

    article_collection: str = "Article"
    document_collection: str = "Document"
    entity_collection: str = "Entity"

    # Named graphs as relationship-type sets; empty means every type.
    news_graph: tuple[str, ...] = ()
    entity_graph: tuple[str, ...] = ("ARTICLE_ENTITIES",)
    entity_relation: str = "ARTICLE_ENTITIES"
    document_edge_relations: tuple[str, ...] = ("EDGES", "CLOSENESS", "CONNECTIONS")

    weight_field: str = "sim_value"
    origin_field: str = "origin"
    term_frequency_fields: tuple[str, ...] = ("ne_tf", "np_tf", "ep_tf")
    shared_attribute: str = "source"

    max_depth: int = 6
    max_limit: int = 500
    listing_max_limit: int = 1000
    document_edge_limit: int = 20

    # Path-count-by-identity ranks weakest connectivity first.
    shared_id_descending: bool = False
    shared_document_descending: bool = True
    origin_descending: bool = True

    def profile_for(self, collection: str) -> CollectionProfile:
        """Field profile of a collection (documents vs articles)."""
        if collection == self.document_collection:
            return DOCUMENT_PROFILE
        return ARTICLE_PROFILE


DEFAULT_RETRIEVAL_CONFIG = RetrievalConfig()
