import logging
import threading
import time
from collections import OrderedDict
from typing import Callable

from ...core.text import normalize_query

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 3600
CACHE_MAX_SIZE = 1000


class TTLEmbeddingCache:
    """Bounded query embedding cache with time-based expiry.

    Keys are normalized query text. On overflow the oldest entry is evicted.
    The lock is only held for dict operations, never across an await.
    """

    def __init__(
        self,
        max_size: int = CACHE_MAX_SIZE,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, list[float]]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, text: str) -> list[float] | None:
        key = normalize_query(text)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, embedding = entry
            if now - stored_at >= self._ttl:
                del self._entries[key]
                return None
            return embedding

    def set(self, text: str, embedding: list[float]) -> None:
        key = normalize_query(text)
        now = self._clock()
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (now, embedding)
            while len(self._entries) > self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Embedding cache evicted '{evicted[:50]}'")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NullEmbeddingCache:
    """Cache that stores nothing."""

    def get(self, text: str) -> list[float] | None:
        return None

    def set(self, text: str, embedding: list[float]) -> None:
        return None
