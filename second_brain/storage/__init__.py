"""
Persistent storage layer for second-brain.

Provides:
- VectorStore: Abstract file + chunk-vector storage
- SQLiteVectorStore: sqlite3 backend (files table + embeddings table)
"""

from second_brain.storage.vector_store import (
    DimensionMismatchError,
    StoredChunk,
    VectorStore,
    build_vector_store,
)

__all__ = [
    "DimensionMismatchError",
    "StoredChunk",
    "VectorStore",
    "build_vector_store",
]
