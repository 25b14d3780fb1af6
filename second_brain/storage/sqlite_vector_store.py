"""
SQLite-backed vector store.

Two tables: ``files`` keyed by path, and ``embeddings`` keyed by
(file_id, chunk_index) with ON DELETE CASCADE to the owning file. Each
file upsert runs in one transaction, so readers never observe a
half-replaced set of chunks.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from second_brain.models import IndexedFile, RecentFile, from_millis, to_millis
from second_brain.storage.vector_store import (
    DimensionMismatchError,
    StoredChunk,
    VectorStore,
    decode_vector,
    encode_vector,
)

LOG = logging.getLogger("storage.sqlite_vector_store")

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT UNIQUE NOT NULL,
    content TEXT NOT NULL,
    mtime INTEGER NOT NULL,
    size INTEGER NOT NULL,
    extension TEXT
);

CREATE TABLE IF NOT EXISTS embeddings (
    file_id INTEGER NOT NULL,
    chunk_index INTEGER NOT NULL,
    chunk_text TEXT NOT NULL,
    embedding BLOB NOT NULL,
    PRIMARY KEY (file_id, chunk_index),
    FOREIGN KEY (file_id) REFERENCES files(id) ON DELETE CASCADE
);

-- Store-wide settings (vector dimensionality)
CREATE TABLE IF NOT EXISTS store_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_files_mtime ON files(mtime);
CREATE INDEX IF NOT EXISTS idx_files_path ON files(path);
"""


class SQLiteVectorStore(VectorStore):
    """SQLite storage for file records and chunk vectors."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._init_schema()
        LOG.info("Opened vector store at %s", db_path)

    def _init_schema(self) -> None:
        """Create tables and indexes (idempotent)."""
        self._conn.executescript(_SCHEMA_SQL)
        self._conn.commit()

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ── Writes ────────────────────────────────────────────────────────

    def upsert_file(
        self,
        file: IndexedFile,
        chunks: Sequence[str],
        embeddings: Sequence[Sequence[float]],
    ) -> int:
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks of {file.path}"
            )

        dims = {len(vec) for vec in embeddings}
        if len(dims) > 1:
            raise DimensionMismatchError(f"Mixed vector dimensions for {file.path}: {sorted(dims)}")
        stored_dim = self.dimension()
        new_dim = dims.pop() if dims else None
        if new_dim is not None and stored_dim is not None and new_dim != stored_dim:
            raise DimensionMismatchError(
                f"Vector dimension {new_dim} does not match store dimension {stored_dim}"
            )

        # `with conn` commits on success and rolls back on any exception
        with self._conn:
            cur = self._conn.cursor()
            cur.execute("DELETE FROM files WHERE path = ?", (file.path,))
            cur.execute(
                "INSERT INTO files (path, content, mtime, size, extension) VALUES (?, ?, ?, ?, ?)",
                (file.path, file.content, to_millis(file.mtime), file.size, file.extension),
            )
            file_id = cur.lastrowid
            cur.executemany(
                "INSERT INTO embeddings (file_id, chunk_index, chunk_text, embedding) VALUES (?, ?, ?, ?)",
                [
                    (file_id, idx, text, encode_vector(vec))
                    for idx, (text, vec) in enumerate(zip(chunks, embeddings))
                ],
            )
            if new_dim is not None and stored_dim is None:
                cur.execute(
                    "INSERT INTO store_meta (key, value) VALUES ('dimension', ?)",
                    (str(new_dim),),
                )

        LOG.debug("Stored %s: file_id=%d, %d chunks", file.path, file_id, len(chunks))
        return file_id

    def delete_file(self, path: str) -> bool:
        with self._conn:
            cur = self._conn.execute("DELETE FROM files WHERE path = ?", (path,))
        return cur.rowcount > 0

    # ── Reads ─────────────────────────────────────────────────────────

    def all_chunks(self) -> List[StoredChunk]:
        cur = self._conn.execute(
            "SELECT e.file_id, e.chunk_index, f.path, e.chunk_text, e.embedding, f.mtime "
            "FROM embeddings e JOIN files f ON e.file_id = f.id "
            "ORDER BY e.file_id, e.chunk_index"
        )
        return [
            StoredChunk(
                file_id=file_id,
                chunk_index=chunk_index,
                path=path,
                text=text,
                embedding=decode_vector(blob),
                mtime=from_millis(mtime),
            )
            for file_id, chunk_index, path, text, blob, mtime in cur.fetchall()
        ]

    def files_modified_after(self, cutoff: datetime) -> List[RecentFile]:
        cur = self._conn.execute(
            "SELECT path, mtime FROM files WHERE mtime > ? ORDER BY mtime DESC, path",
            (to_millis(cutoff),),
        )
        return [RecentFile(path=path, mtime=from_millis(mtime)) for path, mtime in cur.fetchall()]

    def get_file(self, path: str) -> Optional[IndexedFile]:
        row = self._conn.execute(
            "SELECT path, content, mtime, size, extension FROM files WHERE path = ?",
            (path,),
        ).fetchone()
        if row is None:
            return None
        path, content, mtime, size, extension = row
        return IndexedFile(
            path=path,
            content=content,
            mtime=from_millis(mtime),
            size=size,
            extension=extension or "",
        )

    def count_files(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]

    def count_chunks(self, path: Optional[str] = None) -> int:
        if path is None:
            return self._conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]
        return self._conn.execute(
            "SELECT COUNT(*) FROM embeddings e JOIN files f ON e.file_id = f.id WHERE f.path = ?",
            (path,),
        ).fetchone()[0]

    def dimension(self) -> Optional[int]:
        row = self._conn.execute("SELECT value FROM store_meta WHERE key = 'dimension'").fetchone()
        return int(row[0]) if row else None

    def close(self) -> None:
        self._conn.close()
        LOG.info("Closed vector store at %s", self._db_path)
