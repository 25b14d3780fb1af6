"""
Embedding provider abstraction with remote (OpenAI), local
(sentence-transformers) and deterministic mock backends.

Every backend maps an ordered batch of texts to one fixed-length float
vector per text, in the same order. Failures surface as
EmbeddingProviderError and are never retried here.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import struct
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

LOG = logging.getLogger("rag.embedding_provider")

DEFAULT_OPENAI_MODEL = "text-embedding-3-small"

# Native output sizes of the OpenAI embedding models
OPENAI_MODEL_DIMENSIONS: Dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class EmbeddingProviderError(RuntimeError):
    """The embedding backend failed (network, auth, quota, malformed response)."""


class EmbeddingProvider(ABC):
    """Abstract interface for text → embedding vector conversion."""

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Convert a batch of texts into embedding vectors.

        Returns a list of float vectors, one per input text, in input order.
        """
        ...

    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimensionality."""
        ...

    async def close(self) -> None:
        """Release resources (e.g. HTTP clients). Override if needed."""
        pass


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Remote embeddings via the OpenAI ``/embeddings`` endpoint.

    API key from ``api_key=`` or the OPENAI_API_KEY environment variable.
    A custom ``transport`` can be injected (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
        timeout: float = 60.0,
        dimensions: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        if not self._api_key:
            raise ValueError("API key required. Set OPENAI_API_KEY or pass api_key=.")

        self._model = model
        self._dim = dimensions or OPENAI_MODEL_DIMENSIONS.get(model, 0)
        self._base_url = base_url or "https://api.openai.com/v1"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        body: Dict[str, Any] = {"model": self._model, "input": list(texts)}

        try:
            resp = await self._client.post("/embeddings", headers=headers, json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingProviderError(
                f"Embedding request failed with HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingProviderError(f"Embedding request failed: {exc}") from exc

        try:
            data = resp.json()["data"]
            items = sorted(data, key=lambda item: item["index"])
            vectors = [[float(x) for x in item["embedding"]] for item in items]
        except (ValueError, KeyError, TypeError) as exc:
            raise EmbeddingProviderError(f"Malformed embedding response: {exc}") from exc

        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Embedding response has {len(vectors)} vectors for {len(texts)} inputs"
            )
        if vectors and not self._dim:
            self._dim = len(vectors[0])

        LOG.debug("Embedded %d texts with %s", len(texts), self._model)
        return vectors

    def dimension(self) -> int:
        return self._dim

    async def close(self) -> None:
        await self._client.aclose()


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Local embedding via sentence-transformers.

    Default model: all-MiniLM-L6-v2 (384 dimensions). Encoding runs in a
    worker thread so the event loop is not blocked.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", device: Optional[str] = None) -> None:
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError:
            raise ImportError(
                "sentence-transformers is required for LocalEmbeddingProvider. "
                "Install with: pip install 'second-brain-mcp[local]'"
            )

        self._model_name = model_name
        LOG.info("Loading embedding model: %s", model_name)
        self._model = SentenceTransformer(model_name, device=device)
        self._dim = self._model.get_sentence_embedding_dimension()

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            embeddings = await asyncio.to_thread(self._model.encode, list(texts), show_progress_bar=False)
        except Exception as exc:  # noqa: BLE001
            raise EmbeddingProviderError(f"Local embedding failed: {exc}") from exc
        return [e.tolist() for e in embeddings]

    def dimension(self) -> int:
        return self._dim


class MockEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic embedding provider for testing.

    Texts found in ``vectors`` get their fixed vector; any other text gets a
    non-zero vector derived from its SHA-256 digest, so equal texts always
    embed identically. ``fail_on_call`` makes the Nth call (1-based) raise.
    """

    def __init__(
        self,
        dim: int = 8,
        vectors: Optional[Dict[str, Sequence[float]]] = None,
        fail_on_call: Optional[int] = None,
    ) -> None:
        self._dim = dim
        self._vectors = {text: [float(x) for x in vec] for text, vec in (vectors or {}).items()}
        self._fail_on_call = fail_on_call
        self.calls: List[List[str]] = []

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if self._fail_on_call is not None and len(self.calls) == self._fail_on_call:
            raise EmbeddingProviderError(f"Mock provider failure on call {len(self.calls)}")
        return [self._vectors.get(text) or self._hash_vector(text) for text in texts]

    def _hash_vector(self, text: str) -> List[float]:
        values: List[float] = []
        counter = 0
        while len(values) < self._dim:
            digest = hashlib.sha256(f"{counter}:{text}".encode("utf-8")).digest()
            for (word,) in struct.iter_unpack(">I", digest):
                values.append(word / 0xFFFFFFFF * 2.0 - 1.0)
            counter += 1
        vec = values[: self._dim]
        if not any(vec):
            vec[0] = 1.0
        return vec

    def dimension(self) -> int:
        return self._dim


def build_embedding_provider(backend: str = "openai", **kwargs: Any) -> EmbeddingProvider:
    """
    Factory: create an EmbeddingProvider of the requested type.

    Args:
        backend: "openai", "local" or "mock"
        **kwargs: Backend-specific configuration

    Raises:
        ValueError: Unknown backend
    """
    if backend == "openai":
        return OpenAIEmbeddingProvider(**kwargs)
    elif backend == "local":
        return LocalEmbeddingProvider(**kwargs)
    elif backend == "mock":
        return MockEmbeddingProvider(**kwargs)
    else:
        raise ValueError(
            f"Unknown embedding backend: {backend!r}. "
            f"Supported: 'openai', 'local', 'mock'"
        )
