"""Configuration management for second-brain.

Loads settings from environment variables with sensible defaults, then
optionally overlays a ``.second-brain.yml`` found in an indexed root.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

LOG = logging.getLogger("config")

CONFIG_FILE_NAME = ".second-brain.yml"
PROCESS_WIDE_EMBEDDING_KEYS = ("backend", "model", "api_key", "base_url")
DEFAULT_DB_PATH = str(Path.home() / ".second-brain" / "index.db")


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration."""
    backend: str = "openai"  # "openai", "local", "mock"
    model: str = "text-embedding-3-small"
    batch_size: int = 20
    api_key: str = ""  # empty = OPENAI_API_KEY
    base_url: str = ""  # empty = provider default

    @classmethod
    def from_env(cls) -> "EmbeddingConfig":
        return cls(
            backend=os.getenv("SECOND_BRAIN_EMBEDDING_BACKEND", "openai"),
            model=os.getenv("SECOND_BRAIN_EMBEDDING_MODEL", "text-embedding-3-small"),
            batch_size=int(os.getenv("SECOND_BRAIN_BATCH_SIZE", "20")),
            api_key=os.getenv("OPENAI_API_KEY", ""),
            base_url=os.getenv("SECOND_BRAIN_EMBEDDING_BASE_URL", ""),
        )


@dataclass
class IndexConfig:
    """File enumeration and chunking configuration."""
    chunk_size: int = 500
    max_file_size: int = 1024 * 1024
    ignore_patterns: List[str] = field(default_factory=list)
    indexed_paths: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "IndexConfig":
        return cls(
            chunk_size=int(os.getenv("SECOND_BRAIN_CHUNK_SIZE", "500")),
            max_file_size=int(os.getenv("SECOND_BRAIN_MAX_FILE_SIZE", str(1024 * 1024))),
        )


@dataclass
class AppConfig:
    """Top-level application configuration."""
    db_path: str = DEFAULT_DB_PATH
    embeddings: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            db_path=os.getenv("SECOND_BRAIN_DB_PATH") or os.getenv("DB_PATH") or DEFAULT_DB_PATH,
            embeddings=EmbeddingConfig.from_env(),
            index=IndexConfig.from_env(),
            log_level=os.getenv("SECOND_BRAIN_LOG_LEVEL", "INFO").upper(),
        )


def _overlay(section: Any, values: Dict[str, Any]) -> Any:
    known = {f.name for f in fields(section)}
    unknown = set(values) - known
    if unknown:
        LOG.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
    return replace(section, **{k: v for k, v in values.items() if k in known})


def load_config(root: Path | str, base: Optional[AppConfig] = None) -> AppConfig:
    """
    Return ``base`` (default: env config) overlaid with ``<root>/.second-brain.yml``.

    Recognised keys: ``indexed_paths``, ``ignore_patterns``, ``chunk_size``,
    ``max_file_size`` and ``embeddings.batch_size``. The embedding backend
    and model are shared by the whole process, so ``embeddings.model`` and
    ``embeddings.backend`` are ignored here. A missing file yields ``base``
    unchanged, with ``indexed_paths`` defaulting to ``[root]``.
    """
    root = Path(root)
    config = base or AppConfig.from_env()
    config_path = root / CONFIG_FILE_NAME

    if not config_path.is_file():
        if not config.index.indexed_paths:
            config = replace(config, index=replace(config.index, indexed_paths=[str(root)]))
        return config

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping at top level")

    LOG.info("Loaded config overlay from %s", config_path)

    embeddings = config.embeddings
    if isinstance(data.get("embeddings"), dict):
        values = dict(data["embeddings"])
        fixed = sorted(k for k in PROCESS_WIDE_EMBEDDING_KEYS if k in values)
        if fixed:
            LOG.warning("Ignoring %s in %s: set by the server environment", ", ".join(fixed), config_path)
        for key in fixed:
            del values[key]
        embeddings = _overlay(embeddings, values)

    index_values = {k: data[k] for k in ("chunk_size", "max_file_size", "ignore_patterns", "indexed_paths") if k in data}
    index = _overlay(config.index, index_values)
    if not index.indexed_paths:
        index = replace(index, indexed_paths=[str(root)])

    return replace(config, embeddings=embeddings, index=index)
