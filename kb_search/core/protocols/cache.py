"""Embedding cache protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingCacheProtocol(Protocol):
    """Protocol for the query embedding cache."""

    def get(self, text: str) -> list[float] | None:
        """Return the cached vector for ``text`` or None."""
        ...

    def set(self, text: str, embedding: list[float]) -> None:
        """Store the vector for ``text``."""
        ...
