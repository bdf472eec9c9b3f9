"""
Unit tests for the SearchService pipeline.

Collaborators are mocked; the classifier, fusion and enricher are real.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from kb_search.core.exceptions import (
    ChunkStoreError,
    EmbeddingProviderError,
    InvalidQueryError,
    RetrievalError,
)
from kb_search.core.models.chunk import Chunk, ChunkMetadata, SourceSignal
from kb_search.core.services.context_enricher import ParentContextEnricher
from kb_search.core.services.query_classifier import QueryClassifier
from kb_search.core.services.search_service import SearchService
from kb_search.infrastructure.cache.embedding_cache import TTLEmbeddingCache

KEYWORD = SourceSignal.KEYWORD


@pytest.fixture
def mock_reranker():
    reranker = MagicMock()
    reranker.rerank = AsyncMock(return_value=[])
    return reranker


@pytest.fixture
def build_service(mock_embedder, mock_chunk_store, mock_reranker):
    """Factory building a SearchService over the shared mocks."""

    def _build(**kwargs) -> SearchService:
        params = dict(
            embedder=mock_embedder,
            chunk_store=mock_chunk_store,
            classifier=QueryClassifier(),
            enricher=ParentContextEnricher(mock_chunk_store),
            reranker=mock_reranker,
        )
        params.update(kwargs)
        return SearchService(**params)

    return _build


class TestValidationAndErrors:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    async def test_blank_query_rejected(self, build_service, mock_embedder, query):
        with pytest.raises(InvalidQueryError):
            await build_service().search(query)

        mock_embedder.embed.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -3])
    async def test_non_positive_limit_rejected(self, build_service, mock_embedder, limit):
        with pytest.raises(InvalidQueryError):
            await build_service().search("Who is Krishna?", limit=limit)

        mock_embedder.embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_limit_none_uses_default(self, build_service, mock_chunk_store):
        await build_service(top_k=3).search("Who is Krishna?", limit=None)

        assert mock_chunk_store.vector_search.await_args.args[1] == 12

    @pytest.mark.asyncio
    async def test_embedding_failure_is_fatal(
        self, build_service, mock_embedder, mock_chunk_store
    ):
        mock_embedder.embed.side_effect = EmbeddingProviderError("quota", model="m")

        with pytest.raises(EmbeddingProviderError):
            await build_service().search("Who is Krishna?")

        mock_chunk_store.vector_search.assert_not_awaited()
        mock_chunk_store.keyword_search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_both_branches_failing_raises(self, build_service, mock_chunk_store):
        mock_chunk_store.vector_search.side_effect = ChunkStoreError("down")
        mock_chunk_store.keyword_search.side_effect = ChunkStoreError("down")

        with pytest.raises(RetrievalError):
            await build_service().search("Who is Krishna?")

    @pytest.mark.asyncio
    async def test_one_branch_failing_degrades(
        self, build_service, mock_chunk_store, make_candidate
    ):
        mock_chunk_store.vector_search.side_effect = ChunkStoreError("down")
        mock_chunk_store.keyword_search.return_value = [make_candidate("k1", KEYWORD)]

        response = await build_service().search("Who is Krishna?")

        assert [r.id for r in response.results] == ["k1"]


class TestPipeline:

    @pytest.mark.asyncio
    async def test_branches_run_concurrently(
        self, build_service, mock_chunk_store, make_candidate
    ):
        vector_started = asyncio.Event()
        keyword_started = asyncio.Event()

        async def vector_search(*args, **kwargs):
            vector_started.set()
            # Only completes if the keyword branch is in flight at the same time
            await asyncio.wait_for(keyword_started.wait(), timeout=2)
            return [make_candidate("v1")]

        async def keyword_search(*args, **kwargs):
            keyword_started.set()
            await asyncio.wait_for(vector_started.wait(), timeout=2)
            return [make_candidate("k1", KEYWORD)]

        mock_chunk_store.vector_search.side_effect = vector_search
        mock_chunk_store.keyword_search.side_effect = keyword_search

        response = await build_service(reranker=None).search("Who is Krishna?", limit=2)

        assert [r.id for r in response.results] == ["v1", "k1"]

    @pytest.mark.asyncio
    async def test_empty_branches_short_circuit(
        self, build_service, mock_chunk_store, mock_reranker
    ):
        response = await build_service().search("Who is Krishna?")

        assert response.is_empty
        assert response.context == ""
        assert response.classification.query_type == "factual"
        mock_reranker.rerank.assert_not_awaited()
        mock_chunk_store.get_by_ids.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_branch_pool_and_threshold(
        self, build_service, mock_chunk_store, mock_embedder
    ):
        await build_service(top_k=5, vector_threshold=0.25).search("Who is Krishna?")

        mock_chunk_store.vector_search.assert_awaited_once_with(
            [0.1, 0.2, 0.3], 20, category=None, min_similarity=0.25
        )
        mock_chunk_store.keyword_search.assert_awaited_once_with(
            "Who is Krishna?", 20, category=None
        )

    @pytest.mark.asyncio
    async def test_hybrid_result_ranked_first(
        self, build_service, mock_chunk_store, make_candidate
    ):
        mock_chunk_store.vector_search.return_value = [
            make_candidate("A"),
            make_candidate("B"),
        ]
        mock_chunk_store.keyword_search.return_value = [
            make_candidate("B", KEYWORD),
            make_candidate("C", KEYWORD),
        ]

        response = await build_service(reranker=None).search("Who is Krishna?", limit=3)

        assert [r.id for r in response.results] == ["B", "A", "C"]

    @pytest.mark.asyncio
    async def test_fallback_fills_to_limit(
        self, build_service, mock_chunk_store, mock_reranker, make_candidate
    ):
        mock_chunk_store.vector_search.return_value = [
            make_candidate(i) for i in ("c1", "c2", "c3")
        ]
        mock_reranker.rerank.return_value = ["c2"]

        response = await build_service().search("Who is Krishna?", limit=3)

        assert [r.id for r in response.results] == ["c2", "c1", "c3"]

    @pytest.mark.asyncio
    async def test_rerank_input_bounded_by_pool_size(
        self, build_service, mock_chunk_store, mock_reranker, make_candidate
    ):
        mock_chunk_store.vector_search.return_value = [
            make_candidate(f"v{i}") for i in range(30)
        ]

        response = await build_service(rerank_pool_size=8).search("Who is Krishna?", limit=5)

        query, candidates, top_n = mock_reranker.rerank.await_args.args
        assert query == "Who is Krishna?"
        assert len(candidates) == 8
        assert top_n == 5
        assert len(response.results) == 5

    @pytest.mark.asyncio
    async def test_pool_size_never_below_limit(
        self, build_service, mock_chunk_store, mock_reranker, make_candidate
    ):
        mock_chunk_store.vector_search.return_value = [
            make_candidate(f"v{i}") for i in range(10)
        ]

        response = await build_service(rerank_pool_size=2).search("battle", limit=6)

        assert len(mock_reranker.rerank.await_args.args[1]) == 6
        assert len(response.results) == 6

    @pytest.mark.asyncio
    async def test_parent_context_in_output(
        self, build_service, mock_chunk_store, make_candidate
    ):
        mock_chunk_store.vector_search.return_value = [
            make_candidate("c1", parent_id="P1", content="Do your duty."),
            make_candidate("c2", type="parent", content="A parent section."),
        ]
        mock_chunk_store.get_by_ids.return_value = [
            Chunk(id="P1", content="x" * 600, metadata=ChunkMetadata(type="parent"))
        ]

        response = await build_service(reranker=None).search("Who is Krishna?", limit=2)

        mock_chunk_store.get_by_ids.assert_awaited_once_with(["P1"])
        assert response.context == (
            f"[Parent Section Context: {'x' * 500}...]\n\n"
            "[Specific Passage: Do your duty.]"
            "\n\n---\n\n"
            "A parent section."
        )
        assert [s.id for s in response.sources] == ["c1", "c2"]
        assert response.sources[0].has_parent is True
        assert response.sources[1].has_parent is False


class TestCategoryFilter:

    @pytest.mark.asyncio
    async def test_off_by_default(self, build_service, mock_chunk_store):
        await build_service().search("Who is Krishna?")

        assert mock_chunk_store.vector_search.await_args.kwargs["category"] is None

    @pytest.mark.asyncio
    async def test_confident_classification_filters_both_branches(
        self, build_service, mock_chunk_store
    ):
        await build_service(category_filter_enabled=True).search("Who is Krishna?")

        assert mock_chunk_store.vector_search.await_args.kwargs["category"] == "encyclopedia"
        assert mock_chunk_store.keyword_search.await_args.kwargs["category"] == "encyclopedia"

    @pytest.mark.asyncio
    async def test_medium_confidence_not_filtered(self, build_service, mock_chunk_store):
        await build_service(category_filter_enabled=True).search("Describe the warrior Karna")

        assert mock_chunk_store.vector_search.await_args.kwargs["category"] is None


class TestEmbeddingCacheAndExpansion:

    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider(self, build_service, mock_embedder):
        service = build_service(embedding_cache=TTLEmbeddingCache())

        await service.search("Who is Krishna?")
        await service.search("who is   KRISHNA?")

        mock_embedder.embed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_embed_not_cached(self, build_service, mock_embedder):
        cache = TTLEmbeddingCache()
        mock_embedder.embed.side_effect = EmbeddingProviderError("down")

        with pytest.raises(EmbeddingProviderError):
            await build_service(embedding_cache=cache).search("Who is Krishna?")

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_expanded_text_feeds_search_only(
        self, build_service, mock_embedder, mock_chunk_store, mock_reranker, make_candidate
    ):
        expander = MagicMock()
        expander.expand = AsyncMock(return_value="Krishna Vasudeva avatar")
        mock_chunk_store.keyword_search.return_value = [make_candidate("k1", KEYWORD)]

        response = await build_service(expander=expander).search("Who is Krishna?")

        mock_embedder.embed.assert_awaited_once_with("Krishna Vasudeva avatar")
        assert mock_chunk_store.keyword_search.await_args.args[0] == "Krishna Vasudeva avatar"
        assert mock_reranker.rerank.await_args.args[0] == "Who is Krishna?"
        assert response.classification.query_type == "factual"

    @pytest.mark.asyncio
    async def test_expansion_failure_uses_original(
        self, build_service, mock_embedder
    ):
        expander = MagicMock()
        expander.expand = AsyncMock(side_effect=RuntimeError("llm down"))

        await build_service(expander=expander).search("Who is Krishna?")

        mock_embedder.embed.assert_awaited_once_with("Who is Krishna?")
