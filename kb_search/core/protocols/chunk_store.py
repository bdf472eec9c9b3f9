"""Chunk store protocol for dependency injection."""
from typing import Protocol, Sequence, runtime_checkable

from ..models.chunk import Candidate, Chunk


@runtime_checkable
class ChunkStoreProtocol(Protocol):
    """Protocol for chunk storage with vector and full-text search."""

    async def vector_search(
        self,
        embedding: list[float],
        limit: int,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> list[Candidate]:
        """Nearest chunks by cosine distance.

        Args:
            embedding: Query vector.
            limit: Maximum number of candidates.
            category: Optional category equality filter.
            min_similarity: Exclude chunks with ``1 - distance`` below this.

        Returns:
            Candidates ordered by similarity, most similar first.
        """
        ...

    async def keyword_search(
        self,
        query: str,
        limit: int,
        category: str | None = None,
    ) -> list[Candidate]:
        """Chunks ranked by lexical relevance to the query.

        Args:
            query: Raw query text.
            limit: Maximum number of candidates.
            category: Optional category equality filter.

        Returns:
            Candidates ordered by text rank; empty if the query has no terms.
        """
        ...

    async def get_by_ids(self, ids: Sequence[str]) -> list[Chunk]:
        """Batch lookup by id. Unknown ids are absent from the result."""
        ...
