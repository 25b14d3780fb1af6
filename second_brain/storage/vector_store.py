"""
Abstract store for file records and their per-chunk embedding vectors.

A file owns its chunks: replacing or deleting the file record removes
every chunk vector it had. Vectors are stored as float32 blobs.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from second_brain.models import IndexedFile, RecentFile

LOG = logging.getLogger("storage.vector_store")

DEFAULT_DB_PATH = Path.home() / ".second-brain" / "index.db"

_VECTOR_DTYPE = np.dtype("<f4")


class DimensionMismatchError(ValueError):
    """Two vectors that must share a dimensionality do not."""


@dataclass
class StoredChunk:
    """One chunk vector joined with its owning file's path and mtime."""

    file_id: int
    chunk_index: int
    path: str
    text: str
    embedding: np.ndarray
    mtime: datetime


def encode_vector(vector: Sequence[float]) -> bytes:
    """Encode a vector as a little-endian float32 blob."""
    return np.asarray(vector, dtype=_VECTOR_DTYPE).tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    """Decode a float32 blob back into a 1-D array."""
    return np.frombuffer(blob, dtype=_VECTOR_DTYPE)


class VectorStore(ABC):
    """
    Abstract interface for file and chunk-vector persistence.

    Implementations enforce one record per path, cascade chunk deletion to
    the owning file, and keep a single vector dimensionality.
    """

    @abstractmethod
    def upsert_file(
        self,
        file: IndexedFile,
        chunks: Sequence[str],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        """
        Atomically replace the record for ``file.path`` and all its chunks.

        Returns the new file id.
        """

    @abstractmethod
    def all_chunks(self) -> List[StoredChunk]:
        """Every stored chunk, ordered by (file id, chunk index)."""

    @abstractmethod
    def files_modified_after(self, cutoff: datetime) -> List[RecentFile]:
        """Files with mtime strictly after ``cutoff``, newest first."""

    @abstractmethod
    def get_file(self, path: str) -> Optional[IndexedFile]:
        """Return the stored record for ``path``, if any."""

    @abstractmethod
    def delete_file(self, path: str) -> bool:
        """Delete a file record and its chunks. Returns True if it existed."""

    @abstractmethod
    def count_files(self) -> int:
        """Number of stored file records."""

    @abstractmethod
    def count_chunks(self, path: Optional[str] = None) -> int:
        """Number of stored chunk vectors, optionally for one path."""

    @abstractmethod
    def dimension(self) -> Optional[int]:
        """Vector dimensionality, or None before the first vector is written."""

    def get_stats(self) -> Dict[str, Any]:
        return {
            "files": self.count_files(),
            "chunks": self.count_chunks(),
            "dimension": self.dimension(),
        }

    def close(self) -> None:
        """Release resources. Override if needed."""
        pass

    def __enter__(self) -> "VectorStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def build_vector_store(backend: str = "sqlite", db_path: Optional[Path | str] = None) -> VectorStore:
    """
    Factory: create a VectorStore of the requested type.

    Args:
        backend: "sqlite" (only supported backend currently)
        db_path: Database file. Defaults to SECOND_BRAIN_DB_PATH, then
            DB_PATH, then ~/.second-brain/index.db

    Raises:
        ValueError: Unknown backend
    """
    if backend == "sqlite":
        from second_brain.storage.sqlite_vector_store import SQLiteVectorStore

        if db_path is None:
            db_path = os.environ.get("SECOND_BRAIN_DB_PATH") or os.environ.get("DB_PATH") or DEFAULT_DB_PATH
        return SQLiteVectorStore(Path(db_path))
    else:
        raise ValueError(
            f"Unknown vector store backend: {backend!r}. "
            f"Supported: 'sqlite'"
        )
