"""Store connection settings and optional YAML configuration file."""

from dataclasses import dataclass, fields, replace
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from .retrieval.config import DEFAULT_RETRIEVAL_CONFIG, RetrievalConfig

log = logging.getLogger(__name__)

CONFIG_ENV = "NEWSGRAPH_CONFIG"


@dataclass(frozen=True)
class StoreSettings:
    """Endpoint and credential material for the graph store.

    Passed explicitly into every operation; nothing below this object builds
    connections from hardcoded values.
    """

    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: str = ""
    database: str | None = None

    @classmethod
    def from_env(cls) -> "StoreSettings":
        return cls(
            uri=os.environ.get("NEO4J_URI", cls.uri),
            user=os.environ.get("NEO4J_USER", cls.user),
            password=os.environ.get("NEO4J_PASSWORD", cls.password),
            database=os.environ.get("NEO4J_DATABASE") or None,
        )

    def with_uri(self, uri: str | None) -> "StoreSettings":
        """Same credentials against another endpoint."""
        if not uri or uri == self.uri:
            return self
        return replace(self, uri=uri)

    def redacted(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "user": self.user,
            "password": "***" if self.password else "",
            "database": self.database,
        }


def _coerce_config_value(current: Any, value: Any) -> Any:
    if isinstance(current, tuple) and isinstance(value, list):
        return tuple(value)
    return value


def load_settings(
    path: str | Path | None = None,
) -> tuple[StoreSettings, RetrievalConfig]:
    """Load store settings and retrieval config.

    Environment variables provide the base settings. A YAML file (explicit
    path, or NEWSGRAPH_CONFIG) may override them with a ``store`` section and
    retrieval defaults with a ``retrieval`` section.

    Args:
        path: Optional YAML file path

    Returns:
        Tuple of (StoreSettings, RetrievalConfig)
    """
    settings = StoreSettings.from_env()
    config = DEFAULT_RETRIEVAL_CONFIG

    config_path = path or os.environ.get(CONFIG_ENV)
    if not config_path:
        return settings, config

    config_file = Path(config_path)
    log.info(f"Loading configuration: {config_file}")
    raw = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file must hold a mapping: {config_file}")

    store_section = raw.get("store") or {}
    if store_section:
        known = {f.name for f in fields(StoreSettings)}
        unknown = set(store_section) - known
        if unknown:
            raise ValueError(f"Unknown store settings: {sorted(unknown)}")
        settings = replace(settings, **store_section)

    retrieval_section = raw.get("retrieval") or {}
    if retrieval_section:
        known_fields = {f.name: f for f in fields(RetrievalConfig)}
        unknown = set(retrieval_section) - set(known_fields)
        if unknown:
            raise ValueError(f"Unknown retrieval settings: {sorted(unknown)}")
        overrides = {
            name: _coerce_config_value(getattr(config, name), value)
            for name, value in retrieval_section.items()
        }
        config = replace(config, **overrides)

    return settings, config
