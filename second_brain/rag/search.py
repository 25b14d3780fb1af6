"""
Exact nearest-neighbour search over every stored chunk vector.

Each query embeds the query text once, then scores all N stored chunks by
cosine similarity: O(N·D) per query for D-dimensional vectors. This is a
deliberate brute-force scan sized for one developer's local codebase.
Swapping in an approximate index would lose the exact top-K guarantee.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from second_brain.models import SearchResult
from second_brain.rag.embedding_provider import EmbeddingProvider, EmbeddingProviderError
from second_brain.storage.vector_store import DimensionMismatchError, VectorStore

LOG = logging.getLogger("rag.search")

DEFAULT_LIMIT = 5


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Dot product divided by the product of the Euclidean norms.

    Zero-norm vectors score 0.0. Raises DimensionMismatchError when the
    vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(f"Cannot compare vectors of dimension {va.size} and {vb.size}")
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class Searcher:
    """
    Ranks stored chunks against a natural-language query.

    Usage::

        searcher = Searcher(store, provider)
        results = await searcher.search("where is the config loaded", limit=5)
    """

    def __init__(self, store: VectorStore, embedding_provider: EmbeddingProvider) -> None:
        self._store = store
        self._embed = embedding_provider

    async def search(self, query: str, limit: int = DEFAULT_LIMIT) -> List[SearchResult]:
        """
        Return the ``limit`` highest-scoring chunks, best first.

        Ties keep retrieval order (file id, then chunk index).
        """
        if not isinstance(query, str) or not query.strip():
            raise ValueError("query must be a non-empty string")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ValueError(f"limit must be a non-negative integer, got {limit!r}")
        if limit == 0:
            return []

        embeddings = await self._embed.embed([query])
        if len(embeddings) != 1:
            raise EmbeddingProviderError(f"Expected 1 query vector, got {len(embeddings)}")
        query_vec = np.asarray(embeddings[0], dtype=np.float64)

        chunks = self._store.all_chunks()
        if not chunks:
            return []

        results: List[SearchResult] = []
        for chunk in chunks:
            if chunk.embedding.shape != query_vec.shape:
                raise DimensionMismatchError(
                    f"Query vector has dimension {query_vec.size}, "
                    f"stored chunk {chunk.path}#{chunk.chunk_index} has {chunk.embedding.size}"
                )
            results.append(
                SearchResult(
                    path=chunk.path,
                    content=chunk.text,
                    score=cosine_similarity(query_vec, chunk.embedding),
                    mtime=chunk.mtime,
                )
            )

        # sorted() is stable, also with reverse=True
        ranked = sorted(results, key=lambda r: r.score, reverse=True)
        LOG.debug("Scored %d chunks for query %r", len(results), query[:80])
        return ranked[:limit]
