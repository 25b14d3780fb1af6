"""
Shared test fixtures and pytest configuration.

Markers:
    @pytest.mark.embedding   : Requires sentence-transformers model downloadable

Run:
    pytest -m embedding               # only local embedding model tests
    pytest -m "not embedding"         # skip model downloads (fast CI)
"""

from datetime import datetime, timezone
from typing import Optional

import pytest

from second_brain.models import IndexedFile
from second_brain.rag.embedding_provider import MockEmbeddingProvider
from second_brain.storage.sqlite_vector_store import SQLiteVectorStore


def _embedding_model_available() -> bool:
    """Check if all-MiniLM-L6-v2 can be loaded (already cached or downloadable)."""
    try:
        from sentence_transformers import SentenceTransformer
        model = SentenceTransformer("all-MiniLM-L6-v2")
        vec = model.encode(["test"])
        return vec.shape[1] == 384
    except Exception:
        return False


# Cache the check at module level so it runs once per session
_EMBEDDING_OK: Optional[bool] = None


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "embedding: requires sentence-transformers model available")


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests whose infrastructure requirements are not met."""
    global _EMBEDDING_OK

    if not any("embedding" in item.keywords for item in items):
        return
    if _EMBEDDING_OK is None:
        _EMBEDDING_OK = _embedding_model_available()

    skip_embedding = pytest.mark.skip(reason="Embedding model not available (all-MiniLM-L6-v2)")
    for item in items:
        if "embedding" in item.keywords and not _EMBEDDING_OK:
            item.add_marker(skip_embedding)


def make_file(path: str, content: str, mtime: Optional[datetime] = None, extension: str = ".txt") -> IndexedFile:
    return IndexedFile(
        path=path,
        content=content,
        mtime=mtime or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        size=len(content.encode("utf-8")),
        extension=extension,
    )


@pytest.fixture
def store(tmp_path):
    """Create a SQLiteVectorStore in a temp directory."""
    s = SQLiteVectorStore(tmp_path / "index.db")
    yield s
    s.close()


@pytest.fixture
def provider():
    return MockEmbeddingProvider(dim=8)
