from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from second_brain.config import AppConfig, load_config
from second_brain.files import FileEnumerator
from second_brain.models import FileSummary, IndexReport, RecentActivity, SearchReport
from second_brain.rag.activity import DEFAULT_DAYS, recent_files
from second_brain.rag.embedding_provider import EmbeddingProvider, build_embedding_provider
from second_brain.rag.indexer import Indexer
from second_brain.rag.search import DEFAULT_LIMIT, Searcher
from second_brain.storage.vector_store import VectorStore, build_vector_store

LOG = logging.getLogger("second_brain")

PREVIEW_CHARS = 500


@dataclass
class SecondBrain:
    """Process-wide resources shared by every tool call."""

    config: AppConfig
    store: VectorStore
    embedding_provider: EmbeddingProvider
    indexer: Indexer
    searcher: Searcher

    @classmethod
    def create(
        cls,
        config: AppConfig,
        store: VectorStore,
        embedding_provider: EmbeddingProvider,
    ) -> "SecondBrain":
        return cls(
            config=config,
            store=store,
            embedding_provider=embedding_provider,
            indexer=Indexer(
                store,
                embedding_provider,
                batch_size=config.embeddings.batch_size,
                chunk_size=config.index.chunk_size,
            ),
            searcher=Searcher(store, embedding_provider),
        )

    def indexer_for(self, config: AppConfig) -> Indexer:
        """The shared indexer, or a one-off one when a root overrides chunking or batching."""
        if (
            config.index.chunk_size == self.config.index.chunk_size
            and config.embeddings.batch_size == self.config.embeddings.batch_size
        ):
            return self.indexer
        return Indexer(
            self.store,
            self.embedding_provider,
            batch_size=config.embeddings.batch_size,
            chunk_size=config.index.chunk_size,
        )


def _provider_kwargs(config: AppConfig) -> dict:
    emb = config.embeddings
    if emb.backend == "openai":
        return {"api_key": emb.api_key or None, "model": emb.model, "base_url": emb.base_url or None}
    if emb.backend == "local":
        return {"model_name": emb.model}
    return {}


@asynccontextmanager
async def open_second_brain(
    config: Optional[AppConfig] = None,
    embedding_provider: Optional[EmbeddingProvider] = None,
) -> AsyncIterator[SecondBrain]:
    """Open the store and embedding provider once; release both on exit."""
    config = config or AppConfig.from_env()
    provider = embedding_provider or build_embedding_provider(config.embeddings.backend, **_provider_kwargs(config))
    try:
        store = build_vector_store("sqlite", db_path=config.db_path)
    except Exception:
        await provider.close()
        raise
    try:
        yield SecondBrain.create(config, store, provider)
    finally:
        store.close()
        await provider.close()


async def index_directory(brain: SecondBrain, path: str) -> IndexReport:
    root = Path(path).expanduser()
    if not root.is_dir():
        raise ValueError(f"Not a directory: {path}")

    root_config = load_config(root, base=brain.config)
    enumerator = FileEnumerator(
        ignore_patterns=root_config.index.ignore_patterns,
        max_file_size=root_config.index.max_file_size,
    )
    files = enumerator.enumerate(root)
    indexer = brain.indexer_for(root_config)
    count = await indexer.index_files(files)
    LOG.info("Indexed %d files from %s", count, root)
    return IndexReport(path=str(root), filesIndexed=count, chunksIndexed=indexer.chunks_indexed)


async def semantic_search(brain: SecondBrain, query: str, limit: int = DEFAULT_LIMIT) -> SearchReport:
    results = await brain.searcher.search(query, limit)
    return SearchReport(query=query, results=results)


def summarize_file(path: str) -> FileSummary:
    file_path = Path(path).expanduser()
    try:
        with file_path.open("r", encoding="utf-8", newline="") as handle:
            content = handle.read()
    except FileNotFoundError as exc:
        raise ValueError(f"File not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(f"Cannot read {path}: {exc}") from exc
    return FileSummary(
        path=str(file_path),
        size=len(content.encode("utf-8")),
        preview=content[:PREVIEW_CHARS],
    )


def recent_activity(brain: SecondBrain, days: float = DEFAULT_DAYS) -> RecentActivity:
    return RecentActivity(days=days, files=recent_files(brain.store, days))
