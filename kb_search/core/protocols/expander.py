"""Query expander protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class QueryExpanderProtocol(Protocol):
    """Protocol for optional query expansion before search."""

    async def expand(self, query: str) -> str:
        """Return the query enriched with related search terms."""
        ...
