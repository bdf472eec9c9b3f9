import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def configure_container(settings: Settings, target: Container | None = None) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.
        target: Container to fill; the module container by default.

    Returns:
        Configured container.
    """
    from .core.models.classification import Confidence
    from .core.protocols.cache import EmbeddingCacheProtocol
    from .core.protocols.chunk_store import ChunkStoreProtocol
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.expander import QueryExpanderProtocol
    from .core.protocols.judge import RelevanceJudgeProtocol
    from .core.services.context_enricher import ParentContextEnricher
    from .core.services.query_classifier import QueryClassifier
    from .core.services.reranker_gateway import RerankerGateway
    from .core.services.search_service import SearchService
    from .infrastructure.cache.embedding_cache import (
        NullEmbeddingCache,
        TTLEmbeddingCache,
    )
    from .infrastructure.llm.ollama_client import OllamaClient

    c = target if target is not None else container

    def make_embedder():
        if settings.embedding_backend == "sentence_transformers":
            from .infrastructure.embeddings.sentence_transformer import (
                SentenceTransformerEmbedder,
            )
            return SentenceTransformerEmbedder(
                settings.embedding_model,
                query_prefix=settings.embedding_query_prefix,
            )

        from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder
        return OpenAIEmbedder(
            base_url=settings.embedding_base_url,
            model=settings.embedding_model,
            api_key=settings.embedding_api_key,
            query_prefix=settings.embedding_query_prefix,
        )

    def make_chunk_store():
        if settings.chunk_store_backend == "memory":
            from .infrastructure.stores.memory_store import InMemoryChunkStore
            return InMemoryChunkStore.from_json(settings.memory_store_path)

        from .infrastructure.stores.pgvector_store import PgVectorChunkStore
        return PgVectorChunkStore.from_url(
            settings.database_url,
            pool_size=settings.database_pool_size,
            echo=settings.database_echo,
        )

    def make_cache():
        if not settings.embedding_cache_enabled:
            return NullEmbeddingCache()
        return TTLEmbeddingCache(
            max_size=settings.embedding_cache_size,
            ttl_seconds=settings.embedding_cache_ttl_seconds,
        )

    c.register(EmbedderProtocol, make_embedder, singleton=True)
    c.register(ChunkStoreProtocol, make_chunk_store, singleton=True)
    c.register(EmbeddingCacheProtocol, make_cache, singleton=True)

    c.register(
        OllamaClient,
        lambda: OllamaClient(
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout,
        ),
        singleton=True,
    )
    c.register(RelevanceJudgeProtocol, lambda: c.resolve(OllamaClient), singleton=True)
    c.register(QueryExpanderProtocol, lambda: c.resolve(OllamaClient), singleton=True)

    c.register(
        QueryClassifier,
        lambda: QueryClassifier(enabled=settings.classifier_enabled),
        singleton=True,
    )

    c.register(
        RerankerGateway,
        lambda: RerankerGateway(
            judge=c.resolve(RelevanceJudgeProtocol),
            preview_chars=settings.rag_rerank_preview_chars,
        ),
        singleton=True,
    )

    c.register(
        ParentContextEnricher,
        lambda: ParentContextEnricher(c.resolve(ChunkStoreProtocol)),
        singleton=True,
    )

    c.register(
        SearchService,
        lambda: SearchService(
            embedder=c.resolve(EmbedderProtocol),
            chunk_store=c.resolve(ChunkStoreProtocol),
            classifier=c.resolve(QueryClassifier),
            enricher=c.resolve(ParentContextEnricher),
            reranker=c.resolve(RerankerGateway) if settings.rag_rerank_enabled else None,
            embedding_cache=c.resolve(EmbeddingCacheProtocol),
            expander=(
                c.resolve(QueryExpanderProtocol)
                if settings.rag_query_expansion_enabled
                else None
            ),
            top_k=settings.rag_top_k,
            candidate_multiplier=settings.rag_candidate_multiplier,
            rerank_pool_size=settings.rag_rerank_pool_size,
            vector_threshold=settings.rag_vector_threshold,
            rrf_k=settings.rag_rrf_k,
            category_filter_enabled=settings.category_filter_enabled,
            category_filter_min_confidence=Confidence(
                settings.category_filter_min_confidence
            ),
            parent_preview_chars=settings.rag_parent_preview_chars,
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return c
