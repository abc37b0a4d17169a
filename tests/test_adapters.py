"""Tests for candidate source adapters and collaborator implementations."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import numpy as np
import pytest

from retrieval_fusion.adapters.base import (
    AdapterConnectionError, AdapterError, AdapterTimeoutError, CandidateSourceAdapter
)
from retrieval_fusion.adapters.candidate_sources import LexicalCandidateAdapter, VectorCandidateAdapter
from retrieval_fusion.adapters.collaborators import LexicalRetriever, VectorRetriever
from retrieval_fusion.adapters.memory import (
    HashingEmbedder, InMemoryLexicalIndex, InMemoryRecordStore, InMemoryVectorIndex,
    build_in_memory_collaborators, tokenize
)
from retrieval_fusion.adapters.rest import (
    RestLexicalRetriever, RestQueryEmbedder, RestRecordStore, RestSessionPool, RestVectorRetriever
)
from retrieval_fusion.models.core import CandidateList
from retrieval_fusion.utils.error_handling import AdapterUnavailableError, ErrorHandler


class StaticRetriever(LexicalRetriever):
    """Returns canned results, optionally after a delay or with a failure."""

    def __init__(self, results=None, delay=0.0, error=None):
        self.results = results or []
        self.delay = delay
        self.error = error
        self.calls = []

    async def search(self, query_text, limit):
        self.calls.append((query_text, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.results[:limit]


class SyncVectorRetriever(VectorRetriever):
    """Plain synchronous retriever."""

    def __init__(self, results):
        self.results = results
        self.calls = []

    def search(self, query_embedding, limit):
        self.calls.append((list(query_embedding), limit))
        return self.results[:limit]


class TestCandidateSourceAdapter:
    """Test cases for the shared adapter behaviour."""

    def setup_method(self):
        self.adapter = LexicalCandidateAdapter(StaticRetriever(), timeout=1.0)
        self.adapter.error_handler = ErrorHandler()

    def test_normalize_result_format_dedupes_and_sorts(self):
        raw = [(1, 0.3), (2, 0.9), (1, 0.7), (3, 0.9), (4, 0.1)]

        results = self.adapter._normalize_result_format(raw, limit=10)

        assert [(r.id, r.score) for r in results] == [(2, 0.9), (3, 0.9), (1, 0.7), (4, 0.1)]

    def test_normalize_result_format_skips_malformed_entries(self):
        raw = [(1, 0.5), ("bad",), (2, "not-a-number"), (3, float("nan")), None, (4, "0.25")]

        results = self.adapter._normalize_result_format(raw, limit=10)

        assert [(r.id, r.score) for r in results] == [(1, 0.5), (4, 0.25)]

    def test_normalize_result_format_truncates(self):
        raw = [(i, 1.0 / i) for i in range(1, 20)]

        results = self.adapter._normalize_result_format(raw, limit=5)

        assert [r.id for r in results] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_timeout_raises_adapter_timeout_error(self):
        adapter = LexicalCandidateAdapter(StaticRetriever([(1, 1.0)], delay=1.0), timeout=0.05)
        adapter.error_handler = ErrorHandler()

        with pytest.raises(AdapterTimeoutError):
            await adapter.search_with_timeout("query", 10)

        stats = adapter.error_handler.get_error_statistics()
        assert stats["total_errors"] == 1

    @pytest.mark.asyncio
    async def test_collaborator_failure_is_wrapped(self):
        adapter = LexicalCandidateAdapter(StaticRetriever(error=RuntimeError("index closed")))
        adapter.error_handler = ErrorHandler()

        with pytest.raises(AdapterError) as exc_info:
            await adapter.search_with_timeout("query", 10)

        assert isinstance(exc_info.value, AdapterUnavailableError)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_adapter_is_abstract(self):
        with pytest.raises(TypeError):
            CandidateSourceAdapter("x")

    def test_string_representation(self):
        assert str(self.adapter) == "LexicalCandidateAdapter(source_id='lexical')"
        assert repr(self.adapter) == "LexicalCandidateAdapter(source_id='lexical', timeout=1.0)"


class TestLexicalCandidateAdapter:
    """Test cases for LexicalCandidateAdapter."""

    @pytest.mark.asyncio
    async def test_search(self):
        retriever = StaticRetriever([(10, 7.5), (11, 3.2)])
        adapter = LexicalCandidateAdapter(retriever)

        candidates = await adapter.search_with_timeout("  noise cancelling ", 100)

        assert candidates.source_id == "lexical"
        assert candidates.ids == [10, 11]
        assert candidates.query == "noise cancelling"
        assert retriever.calls == [("noise cancelling", 100)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None])
    async def test_empty_query_skips_retriever(self, query):
        retriever = StaticRetriever([(1, 1.0)])
        adapter = LexicalCandidateAdapter(retriever)

        candidates = await adapter.search(query, 100)

        assert len(candidates) == 0
        assert retriever.calls == []

    def test_get_configuration(self):
        adapter = LexicalCandidateAdapter(StaticRetriever(), timeout=2.5)

        assert adapter.get_configuration() == {
            "source_id": "lexical", "retriever": "StaticRetriever", "timeout": 2.5
        }


class TestVectorCandidateAdapter:
    """Test cases for VectorCandidateAdapter."""

    @pytest.mark.asyncio
    async def test_sync_retriever(self):
        retriever = SyncVectorRetriever([(3, 0.91), (4, 0.5)])
        adapter = VectorCandidateAdapter(retriever, dimension=3)

        candidates = await adapter.search_with_timeout((0.1, 0.2, 0.3), 50)

        assert candidates.ids == [3, 4]
        assert retriever.calls == [([0.1, 0.2, 0.3], 50)]

    @pytest.mark.asyncio
    async def test_missing_embedding_returns_empty(self):
        retriever = SyncVectorRetriever([(3, 0.91)])
        adapter = VectorCandidateAdapter(retriever)

        candidates = await adapter.search(None, 50)

        assert candidates == CandidateList.empty("vector")
        assert retriever.calls == []

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self):
        adapter = VectorCandidateAdapter(SyncVectorRetriever([]), dimension=4)
        adapter.error_handler = ErrorHandler()

        with pytest.raises(AdapterError):
            await adapter.search_with_timeout([0.1, 0.2], 10)


class TestInMemoryCollaborators:
    """Test cases for the in-memory collaborators."""

    def test_tokenize(self):
        assert tokenize("Noise-Cancelling, Wireless!") == ["noise", "cancelling", "wireless"]
        assert tokenize("") == []

    def test_record_store(self, catalog):
        store = InMemoryRecordStore(catalog)

        found = store.fetch_by_ids([3, 999, 1])

        assert set(found) == {1, 3}
        assert len(store) == 12
        assert store.delete(3) is True
        assert store.delete(3) is False
        assert [r.id for r in store.all_records()][:3] == [1, 2, 4]

    def test_bm25_ranks_matching_records(self, catalog):
        index = InMemoryLexicalIndex(catalog)

        results = index.search("headphones", 10)
        ids = [record_id for record_id, _ in results]

        assert set(ids) == {1, 3}
        assert all(score > 0 for _, score in results)
        assert index.search("zeppelin", 10) == []
        assert index.search("", 10) == []

    def test_bm25_respects_limit(self, catalog):
        index = InMemoryLexicalIndex(catalog)

        assert len(index.search("sonic paperleaf hearth", 2)) == 2

    def test_vector_index_cosine(self):
        index = InMemoryVectorIndex(dimension=2)
        index.add("a", [1.0, 0.0])
        index.add("b", [0.0, 1.0])
        index.add("c", [1.0, 1.0])

        results = index.search([1.0, 0.0], 3)

        assert [record_id for record_id, _ in results] == ["a", "c", "b"]
        assert results[0][1] == pytest.approx(1.0)
        assert results[1][1] == pytest.approx(np.sqrt(0.5))
        assert results[2][1] == 0.0

    def test_vector_index_rejects_wrong_dimension(self):
        index = InMemoryVectorIndex(dimension=3)
        with pytest.raises(ValueError):
            index.add(1, [1.0, 2.0])

    def test_hashing_embedder(self):
        embedder = HashingEmbedder(dimension=16)

        first = embedder.embed("wireless headphones")
        second = embedder.embed("wireless headphones")

        assert first == second
        assert len(first) == 16
        assert np.linalg.norm(first) == pytest.approx(1.0)
        assert embedder.embed("") == [0.0] * 16

    def test_build_in_memory_collaborators(self, catalog):
        store, lexical, vector, embedder = build_in_memory_collaborators(catalog, dimension=32)

        assert len(store) == 12
        assert vector.dimension == 32
        results = vector.search(embedder.embed(catalog[0].name), 3)
        assert results[0][0] == 1


def make_session(status=200, payload=None, text=""):
    """Mock aiohttp session whose ``post`` works as an async context manager."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    session.post = MagicMock(return_value=context)
    session.close = AsyncMock()
    return session


class TestRestCollaborators:
    """Test cases for the aiohttp collaborators."""

    @pytest.mark.asyncio
    async def test_lexical_search(self):
        session = make_session(payload={"results": [{"id": 1, "score": 3.5}, {"id": 2, "score": 1.0}]})
        pool = RestSessionPool("http://search.local/api", session=session)

        results = await RestLexicalRetriever(pool).search("headphones", 100)

        assert results == [(1, 3.5), (2, 1.0)]
        session.post.assert_called_once_with(
            "http://search.local/api/lexical/search", json={"query": "headphones", "limit": 100}
        )

    @pytest.mark.asyncio
    async def test_vector_search(self):
        session = make_session(payload={"results": [{"id": "a", "score": 0.8}]})
        pool = RestSessionPool("http://search.local", session=session)

        results = await RestVectorRetriever(pool).search((0.5, 0.25), 10)

        assert results == [("a", 0.8)]
        session.post.assert_called_once_with(
            "http://search.local/vector/search", json={"embedding": [0.5, 0.25], "limit": 10}
        )

    @pytest.mark.asyncio
    async def test_record_store_skips_malformed_rows(self):
        session = make_session(payload={"records": [
            {"id": 1, "name": "Desk", "price": "120.5", "created_at": "2024-01-02T03:04:05"},
            {"name": "missing id"},
        ]})
        pool = RestSessionPool("http://search.local", session=session)

        records = await RestRecordStore(pool).fetch_by_ids([1, 2])

        assert list(records) == [1]
        assert records[1].price == 120.5
        assert records[1].created_at.year == 2024

    @pytest.mark.asyncio
    async def test_record_store_empty_ids_skip_http(self):
        session = make_session(payload={"records": []})
        pool = RestSessionPool("http://search.local", session=session)

        assert await RestRecordStore(pool).fetch_by_ids([]) == {}
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_embedder(self):
        session = make_session(payload={"embedding": [1, 0, 0.5]})
        pool = RestSessionPool("http://search.local", session=session)

        assert await RestQueryEmbedder(pool).embed("desk") == [1.0, 0.0, 0.5]

    @pytest.mark.asyncio
    async def test_non_200_raises_adapter_error(self):
        session = make_session(status=503, text="overloaded")
        pool = RestSessionPool("http://search.local", session=session)

        with pytest.raises(AdapterError, match="503"):
            await RestLexicalRetriever(pool).search("desk", 10)

    @pytest.mark.asyncio
    async def test_client_error_raises_connection_error(self):
        session = make_session()
        session.post = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
        pool = RestSessionPool("http://search.local", session=session)

        with pytest.raises(AdapterConnectionError):
            await RestVectorRetriever(pool).search([0.1], 10)

    @pytest.mark.asyncio
    async def test_missing_results_list(self):
        session = make_session(payload={"hits": []})
        pool = RestSessionPool("http://search.local", session=session)

        with pytest.raises(AdapterError):
            await RestLexicalRetriever(pool).search("desk", 10)

    @pytest.mark.asyncio
    async def test_pool_does_not_close_injected_session(self):
        session = make_session()
        pool = RestSessionPool("http://search.local", session=session)

        await pool.close()

        session.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_adapter_over_rest_retriever(self):
        session = make_session(payload={"results": [{"id": 7, "score": 2.0}, {"id": 7, "score": 4.0}]})
        adapter = LexicalCandidateAdapter(RestLexicalRetriever(RestSessionPool("http://x", session=session)))

        candidates = await adapter.search_with_timeout("skillet", 100)

        assert [(r.id, r.score) for r in candidates.results] == [(7, 4.0)]
