"""Shared Neo4j test configuration.

Integration tests run against a dedicated test instance and never against
the main local database.
"""

from __future__ import annotations

import os

from newsgraph.settings import StoreSettings

MAIN_URI = "bolt://localhost:7687"


def get_test_settings() -> StoreSettings:
    return StoreSettings(
        uri=os.getenv("TEST_NEO4J_URI", "bolt://localhost:17687"),
        user=os.getenv("TEST_NEO4J_USER", "neo4j"),
        password=os.getenv("TEST_NEO4J_PASSWORD", ""),
        database=os.getenv("TEST_NEO4J_DATABASE") or None,
    )


def guard_test_uri(uri: str) -> None:
    if uri.strip() == MAIN_URI:
        raise RuntimeError(
            f"Refusing to run integration tests against main Neo4j ({MAIN_URI}). "
            "Use TEST_NEO4J_URI=bolt://localhost:17687"
        )
