"""Tests for rag.search: cosine similarity and brute-force ranking."""

import math

import numpy as np
import pytest

from second_brain.rag.embedding_provider import MockEmbeddingProvider
from second_brain.rag.indexer import Indexer
from second_brain.rag.search import Searcher, cosine_similarity
from second_brain.storage.vector_store import DimensionMismatchError

from conftest import make_file


class TestCosineSimilarity:
    @pytest.mark.parametrize("vec", [[1.0, 2.0, 3.0], [-0.5, 0.25], [1e-3, 7.0, -2.0, 0.0], [42.0]])
    def test_self_similarity_is_one(self, vec):
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    @pytest.mark.parametrize("vec", [[1.0, 2.0, 3.0], [-0.5, 0.25], [1e-3, 7.0, -2.0, 0.0]])
    def test_opposite_is_minus_one(self, vec):
        assert cosine_similarity(vec, [-x for x in vec]) == pytest.approx(-1.0)

    def test_orthogonal_is_zero(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_magnitude_independent(self):
        assert cosine_similarity([1.0, 1.0], [10.0, 10.0]) == pytest.approx(1.0)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_dimension_mismatch_raises(self):
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_accepts_numpy_arrays(self):
        v = np.array([0.3, 0.4], dtype=np.float32)
        assert cosine_similarity(v, v) == pytest.approx(1.0)


VECTORS = {
    "query": [1.0, 0.0, 0.0],
    "exact": [2.0, 0.0, 0.0],
    "close": [1.0, 0.2, 0.0],
    "far": [0.0, 1.0, 0.0],
    "opposite": [-1.0, 0.0, 0.0],
}


@pytest.fixture
def provider3():
    return MockEmbeddingProvider(dim=3, vectors=VECTORS)


async def _index(store, provider, files):
    await Indexer(store, provider).index_files(files)


class TestSearcher:
    @pytest.mark.asyncio
    async def test_ranks_by_descending_score(self, store, provider3):
        await _index(store, provider3, [
            make_file("/far.txt", "far"),
            make_file("/opposite.txt", "opposite"),
            make_file("/close.txt", "close"),
            make_file("/exact.txt", "exact"),
        ])
        results = await Searcher(store, provider3).search("query", limit=10)

        assert [r.path for r in results] == ["/exact.txt", "/close.txt", "/far.txt", "/opposite.txt"]
        assert results[0].score == pytest.approx(1.0)
        assert results[-1].score == pytest.approx(-1.0)
        for a, b in zip(results, results[1:]):
            assert a.score >= b.score

    @pytest.mark.asyncio
    async def test_limit_truncates(self, store, provider3):
        await _index(store, provider3, [make_file(f"/{n}.txt", n) for n in ("far", "close", "exact")])
        results = await Searcher(store, provider3).search("query", limit=2)
        assert [r.content for r in results] == ["exact", "close"]

    @pytest.mark.asyncio
    async def test_limit_zero_returns_empty(self, store, provider3):
        await _index(store, provider3, [make_file("/exact.txt", "exact")])
        assert await Searcher(store, provider3).search("query", limit=0) == []

    @pytest.mark.asyncio
    async def test_limit_larger_than_corpus_returns_all(self, store, provider3):
        await _index(store, provider3, [make_file("/exact.txt", "exact"), make_file("/far.txt", "far")])
        assert len(await Searcher(store, provider3).search("query", limit=50)) == 2

    @pytest.mark.asyncio
    async def test_ties_keep_retrieval_order(self, store):
        provider = MockEmbeddingProvider(dim=2, vectors={"q": [1.0, 0.0], "t1": [1.0, 1.0], "t2": [2.0, 2.0], "t3": [4.0, 4.0]})
        await _index(store, provider, [make_file("/1", "t1"), make_file("/2", "t2"), make_file("/3", "t3")])
        results = await Searcher(store, provider).search("q", limit=3)
        assert [r.path for r in results] == ["/1", "/2", "/3"]
        assert len({round(r.score, 6) for r in results}) == 1

    @pytest.mark.asyncio
    async def test_results_carry_file_metadata(self, store, provider3):
        f = make_file("/exact.txt", "exact")
        await _index(store, provider3, [f])
        [result] = await Searcher(store, provider3).search("query", limit=1)
        assert result.path == "/exact.txt"
        assert result.content == "exact"
        assert result.mtime == f.mtime

    @pytest.mark.asyncio
    async def test_empty_store_returns_empty(self, store, provider3):
        assert await Searcher(store, provider3).search("query") == []

    @pytest.mark.asyncio
    async def test_query_embedded_once(self, store, provider3):
        await _index(store, provider3, [make_file("/exact.txt", "exact")])
        provider3.calls.clear()
        await Searcher(store, provider3).search("query", limit=5)
        assert provider3.calls == [["query"]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [-1, 1.5, True, "3"])
    async def test_invalid_limit_raises(self, store, provider3, limit):
        with pytest.raises(ValueError):
            await Searcher(store, provider3).search("query", limit=limit)
        assert provider3.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   "])
    async def test_blank_query_raises(self, store, provider3, query):
        with pytest.raises(ValueError):
            await Searcher(store, provider3).search(query)

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_fatal(self, store):
        await _index(store, MockEmbeddingProvider(dim=4), [make_file("/a.txt", "alpha")])
        with pytest.raises(DimensionMismatchError):
            await Searcher(store, MockEmbeddingProvider(dim=3)).search("alpha")


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_single_file_single_chunk(self, store, provider):
        await Indexer(store, provider, chunk_size=500).index_files([make_file("a.txt", "line1\nline2\n")])

        assert store.count_chunks() == 1
        for limit in (1, 5):
            results = await Searcher(store, provider).search("anything at all", limit=limit)
            assert len(results) == 1
            assert results[0].path == "a.txt"
            assert results[0].content == "line1\nline2\n"
            assert not math.isnan(results[0].score)
