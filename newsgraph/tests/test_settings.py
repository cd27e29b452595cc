"""Tests for store settings and the YAML configuration file."""

import pytest

from newsgraph.retrieval.config import DEFAULT_RETRIEVAL_CONFIG
from newsgraph.settings import CONFIG_ENV, StoreSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (CONFIG_ENV, "NEO4J_URI", "NEO4J_USER", "NEO4J_PASSWORD", "NEO4J_DATABASE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file():
    settings, config = load_settings()

    assert settings == StoreSettings()
    assert config is DEFAULT_RETRIEVAL_CONFIG


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("NEO4J_URI", "bolt://graph:7687")
    monkeypatch.setenv("NEO4J_PASSWORD", "secret")

    settings, _ = load_settings()

    assert settings.uri == "bolt://graph:7687"
    assert settings.password == "secret"
    assert settings.database is None


def test_yaml_file_overrides_store_and_retrieval(tmp_path):
    path = tmp_path / "newsgraph.yaml"
    path.write_text(
        "store:\n"
        "  uri: bolt://file:7687\n"
        "  database: news\n"
        "retrieval:\n"
        "  max_depth: 3\n"
        "  document_edge_relations: [EDGES]\n",
        encoding="utf-8",
    )

    settings, config = load_settings(path)

    assert settings.uri == "bolt://file:7687"
    assert settings.database == "news"
    assert config.max_depth == 3
    assert config.document_edge_relations == ("EDGES",)


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("retrieval:\n  listing_max_limit: 25\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV, str(path))

    _, config = load_settings()

    assert config.listing_max_limit == 25


@pytest.mark.parametrize(
    "content, message",
    [
        ("store:\n  host: x\n", "Unknown store settings"),
        ("retrieval:\n  depth: 2\n", "Unknown retrieval settings"),
        ("- just\n- a list\n", "must hold a mapping"),
    ],
)
def test_rejects_malformed_files(tmp_path, content, message):
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match=message):
        load_settings(path)


def test_with_uri_and_redaction():
    settings = StoreSettings(password="secret")

    assert settings.with_uri(None) is settings
    assert settings.with_uri(settings.uri) is settings
    other = settings.with_uri("bolt://other:7687")
    assert other.uri == "bolt://other:7687"
    assert other.password == "secret"
    assert settings.redacted()["password"] == "***"
