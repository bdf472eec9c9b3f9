"""Embedding cache implementations."""
from .embedding_cache import NullEmbeddingCache, TTLEmbeddingCache

__all__ = ["NullEmbeddingCache", "TTLEmbeddingCache"]
