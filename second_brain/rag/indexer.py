"""
Indexing pipeline: chunk → embed (sequential batches) → store.

Commit granularity is one file. Each file is chunked and fully embedded
before a single atomic upsert, so a provider failure leaves the failing
file's previous record intact, keeps the files already committed by the
same call, and never touches the files after it.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, List

from second_brain.models import IndexedFile
from second_brain.rag.chunker import DEFAULT_CHUNK_SIZE, chunk_text
from second_brain.rag.embedding_provider import EmbeddingProvider, EmbeddingProviderError
from second_brain.storage.vector_store import VectorStore

LOG = logging.getLogger("rag.indexer")

DEFAULT_BATCH_SIZE = 20


class Indexer:
    """
    Orchestrates chunking, embedding and persistence for a set of files.

    Usage::

        indexer = Indexer(store, provider, batch_size=20)
        count = await indexer.index_files(files)
    """

    def __init__(
        self,
        store: VectorStore,
        embedding_provider: EmbeddingProvider,
        batch_size: int = DEFAULT_BATCH_SIZE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._store = store
        self._embed = embedding_provider
        self._batch_size = batch_size
        self._chunk_size = chunk_size
        self.chunks_indexed = 0

    async def index_files(self, files: Iterable[IndexedFile]) -> int:
        """
        Index ``files`` in order, replacing any previous record per path.

        Returns the number of files processed. Raises EmbeddingProviderError
        (or a storage error) on the first failure; earlier files remain
        committed.
        """
        start = time.perf_counter()
        processed = 0
        self.chunks_indexed = 0

        for file in files:
            chunk_count = await self.index_file(file)
            self.chunks_indexed += chunk_count
            processed += 1

        LOG.info(
            "Indexed %d files (%d chunks) in %d ms",
            processed,
            self.chunks_indexed,
            int((time.perf_counter() - start) * 1000),
        )
        return processed

    async def index_file(self, file: IndexedFile) -> int:
        """Chunk, embed and atomically store a single file. Returns its chunk count."""
        chunks = list(chunk_text(file.content, self._chunk_size))
        embeddings = await self._embed_chunks(chunks, file.path)
        self._store.upsert_file(file, chunks, embeddings)
        LOG.debug("Indexed %s: %d chunks", file.path, len(chunks))
        return len(chunks)

    async def _embed_chunks(self, chunks: List[str], path: str) -> List[List[float]]:
        embeddings: List[List[float]] = []
        for i in range(0, len(chunks), self._batch_size):
            batch = chunks[i : i + self._batch_size]
            try:
                vectors = await self._embed.embed(batch)
            except EmbeddingProviderError:
                LOG.error("Embedding failed for %s (chunks %d-%d)", path, i, i + len(batch) - 1)
                raise
            if len(vectors) != len(batch):
                raise EmbeddingProviderError(
                    f"Provider returned {len(vectors)} vectors for a batch of {len(batch)}"
                )
            embeddings.extend(vectors)
        return embeddings
