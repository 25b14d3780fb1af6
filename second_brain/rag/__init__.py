"""
Retrieval subsystem: chunking, embedding providers, indexing, similarity
search and recency queries.

The Indexer and Searcher depend only on the EmbeddingProvider and
VectorStore abstractions, so tests run against the mock provider and a
temporary SQLite file.
"""

from __future__ import annotations
