"""
Unit tests for the query embedding caches.
"""

import pytest

from kb_search.core.protocols.cache import EmbeddingCacheProtocol
from kb_search.infrastructure.cache.embedding_cache import (
    NullEmbeddingCache,
    TTLEmbeddingCache,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestTTLEmbeddingCache:

    def test_keys_are_normalized(self, clock):
        cache = TTLEmbeddingCache(clock=clock)
        cache.set("Who is  Krishna?", [1.0, 2.0])

        assert cache.get(" who is krishna? ") == [1.0, 2.0]

    def test_miss(self, clock):
        assert TTLEmbeddingCache(clock=clock).get("anything") is None

    def test_entries_expire(self, clock):
        cache = TTLEmbeddingCache(ttl_seconds=60, clock=clock)
        cache.set("query", [1.0])

        clock.now += 59
        assert cache.get("query") == [1.0]

        clock.now += 1
        assert cache.get("query") is None
        assert len(cache) == 0

    def test_oldest_entry_evicted(self, clock):
        cache = TTLEmbeddingCache(max_size=2, clock=clock)
        cache.set("a", [1.0])
        cache.set("b", [2.0])
        cache.set("c", [3.0])

        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("b") == [2.0]
        assert cache.get("c") == [3.0]

    def test_overwrite_refreshes_entry(self, clock):
        cache = TTLEmbeddingCache(max_size=2, ttl_seconds=60, clock=clock)
        cache.set("a", [1.0])
        cache.set("b", [2.0])
        clock.now += 30
        cache.set("a", [1.5])
        cache.set("c", [3.0])

        assert cache.get("a") == [1.5]
        assert cache.get("b") is None

    def test_clear(self, clock):
        cache = TTLEmbeddingCache(clock=clock)
        cache.set("a", [1.0])
        cache.clear()

        assert len(cache) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            TTLEmbeddingCache(max_size=0)

    def test_satisfies_protocol(self):
        assert isinstance(TTLEmbeddingCache(), EmbeddingCacheProtocol)


class TestNullEmbeddingCache:

    def test_stores_nothing(self):
        cache = NullEmbeddingCache()
        cache.set("a", [1.0])

        assert cache.get("a") is None
        assert isinstance(cache, EmbeddingCacheProtocol)
