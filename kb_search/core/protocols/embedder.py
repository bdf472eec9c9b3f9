"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for the query embedding provider."""

    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            Fixed-dimension embedding vector.

        Raises:
            EmbeddingProviderError: Provider unavailable or over quota.
        """
        ...
