"""Search service - hybrid retrieval pipeline."""

import asyncio
import logging
from typing import Optional

from ..exceptions import EmbeddingProviderError, InvalidQueryError, RetrievalError
from ..models.chunk import Candidate, EnrichedResult, SourceAttribution
from ..models.classification import Confidence, QueryClassification
from ..models.search import SearchResponse
from ..protocols.cache import EmbeddingCacheProtocol
from ..protocols.chunk_store import ChunkStoreProtocol
from ..protocols.embedder import EmbedderProtocol
from ..protocols.expander import QueryExpanderProtocol
from ..strategies.fusion import RRF_K, fallback_merge, reciprocal_rank_fusion
from .context_enricher import ParentContextEnricher
from .query_classifier import QueryClassifier
from .reranker_gateway import RerankerGateway

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


class SearchService:
    """Classify, dual search, fuse, rerank and enrich."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        chunk_store: ChunkStoreProtocol,
        classifier: QueryClassifier,
        enricher: ParentContextEnricher,
        reranker: RerankerGateway | None = None,
        embedding_cache: EmbeddingCacheProtocol | None = None,
        expander: QueryExpanderProtocol | None = None,
        top_k: int = 5,
        candidate_multiplier: int = 4,
        rerank_pool_size: int = 20,
        vector_threshold: float | None = 0.3,
        rrf_k: int = RRF_K,
        category_filter_enabled: bool = False,
        category_filter_min_confidence: Confidence = Confidence.HIGH,
        parent_preview_chars: int = 500,
    ):
        """Initialize search service.

        Args:
            embedder: Query embedding provider.
            chunk_store: Store serving vector and keyword search.
            classifier: Query classifier.
            enricher: Parent-context enricher.
            reranker: Re-ranker gateway; None keeps fused order.
            embedding_cache: Query embedding cache.
            expander: Optional query expander.
            top_k: Default number of results.
            candidate_multiplier: Per-branch pool is ``limit * multiplier``.
            rerank_pool_size: Fused candidates handed to the reranker.
            vector_threshold: Minimum vector similarity.
            rrf_k: RRF constant.
            category_filter_enabled: Restrict both branches to the
                classifier's primary category when confident enough.
            category_filter_min_confidence: Confidence needed to filter.
            parent_preview_chars: Parent characters included in context.
        """
        self._embedder = embedder
        self._chunk_store = chunk_store
        self._classifier = classifier
        self._enricher = enricher
        self._reranker = reranker
        self._embedding_cache = embedding_cache
        self._expander = expander
        self._top_k = top_k
        self._candidate_multiplier = candidate_multiplier
        self._rerank_pool_size = rerank_pool_size
        self._vector_threshold = vector_threshold
        self._rrf_k = rrf_k
        self._category_filter_enabled = category_filter_enabled
        self._category_filter_min_confidence = category_filter_min_confidence
        self._parent_preview_chars = parent_preview_chars

    async def search(self, query: str, limit: Optional[int] = None) -> SearchResponse:
        """Run the retrieval pipeline for one query.

        Args:
            query: User query.
            limit: Override number of results.

        Returns:
            Search response with results, context, and sources. An empty
            response means nothing relevant was found.

        Raises:
            InvalidQueryError: Query is blank or limit is not positive.
            EmbeddingProviderError: Query could not be embedded.
            RetrievalError: Both search branches failed.
        """
        if not query or not query.strip():
            raise InvalidQueryError("Query must not be empty")

        if limit is None:
            limit = self._top_k
        if limit <= 0:
            raise InvalidQueryError("Limit must be positive", {"limit": limit})

        classification = self._classifier.classify(query)
        category = self._category_for(classification)

        search_text = await self._expand(query)
        embedding = await self._embed(search_text)

        pool = limit * self._candidate_multiplier
        vector_results, keyword_results = await self._dual_search(
            embedding, search_text, pool, category
        )

        fused = reciprocal_rank_fusion(
            vector_results,
            keyword_results,
            limit=max(self._rerank_pool_size, limit),
            k=self._rrf_k,
        )
        if not fused:
            logger.info(f"Search: no candidates for '{query[:50]}...'")
            return SearchResponse.empty(classification)

        ranked_ids: list[str] = []
        if self._reranker is not None:
            ranked_ids = await self._reranker.rerank(query, fused, limit)

        merged = fallback_merge(ranked_ids, fused, limit)
        results = await self._enricher.enrich(merged)

        logger.info(
            f"Search: returned {len(results)}/{limit} docs for '{query[:50]}...' "
            f"(vector={len(vector_results)}, keyword={len(keyword_results)}, "
            f"fused={len(fused)})"
        )

        return SearchResponse(
            results=results,
            context=self._format_context(results),
            sources=self._get_sources(results),
            classification=classification,
        )

    def _category_for(self, classification: QueryClassification) -> str | None:
        if not self._category_filter_enabled:
            return None
        if not classification.reaches(self._category_filter_min_confidence):
            return None
        if classification.primary_category:
            logger.debug(f"Search: filtering by category '{classification.primary_category}'")
        return classification.primary_category

    async def _expand(self, query: str) -> str:
        """Expanded query text, or the original on failure."""
        if self._expander is None:
            return query
        try:
            expanded = await self._expander.expand(query)
        except Exception as e:
            logger.warning(f"Query expansion failed, using original query: {e}")
            return query
        if not expanded or not expanded.strip():
            return query
        logger.debug(f"Expanded '{query[:50]}' -> '{expanded[:100]}'")
        return expanded

    async def _embed(self, text: str) -> list[float]:
        """Embed via the cache; provider errors are fatal."""
        if self._embedding_cache is not None:
            cached = self._embedding_cache.get(text)
            if cached is not None:
                logger.debug(f"Embedding cache hit for '{text[:50]}'")
                return cached

        try:
            embedding = await self._embedder.embed(text)
        except EmbeddingProviderError as e:
            logger.error(f"Search: embedding failed for '{text[:50]}...': {e}")
            raise

        if self._embedding_cache is not None:
            self._embedding_cache.set(text, embedding)
        return embedding

    async def _dual_search(
        self,
        embedding: list[float],
        text: str,
        pool: int,
        category: str | None,
    ) -> tuple[list[Candidate], list[Candidate]]:
        """Run vector and keyword search concurrently."""
        vector_outcome, keyword_outcome = await asyncio.gather(
            self._chunk_store.vector_search(
                embedding,
                pool,
                category=category,
                min_similarity=self._vector_threshold,
            ),
            self._chunk_store.keyword_search(text, pool, category=category),
            return_exceptions=True,
        )

        for outcome in (vector_outcome, keyword_outcome):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome

        vector_failed = isinstance(vector_outcome, Exception)
        keyword_failed = isinstance(keyword_outcome, Exception)

        if vector_failed and keyword_failed:
            logger.error(
                f"Search: both branches failed: vector={vector_outcome}, "
                f"keyword={keyword_outcome}"
            )
            raise RetrievalError(
                "Vector and keyword search both failed",
                {"vector": str(vector_outcome), "keyword": str(keyword_outcome)},
            ) from vector_outcome

        if vector_failed:
            logger.warning(f"Vector search failed, continuing with keyword only: {vector_outcome}")
            vector_outcome = []
        if keyword_failed:
            logger.warning(f"Keyword search failed, continuing with vector only: {keyword_outcome}")
            keyword_outcome = []

        return vector_outcome, keyword_outcome

    def _format_context(self, results: list[EnrichedResult]) -> str:
        """Format results as context for LLM."""
        if not results:
            return ""

        parts = []
        for r in results:
            if r.metadata.is_child and r.parent_content:
                parent = r.parent_content[:self._parent_preview_chars]
                parts.append(
                    f"[Parent Section Context: {parent}...]\n\n"
                    f"[Specific Passage: {r.content}]"
                )
            else:
                parts.append(r.content)

        return CONTEXT_SEPARATOR.join(parts)

    def _get_sources(self, results: list[EnrichedResult]) -> list[SourceAttribution]:
        """Source attribution per result, in result order."""
        return [SourceAttribution.from_result(r) for r in results]
