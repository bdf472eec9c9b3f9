"""Exception hierarchy for the retrieval core.

Only embedding failures, invalid queries and a total search outage surface to
callers; every other failure is absorbed by the stage that owns it.
"""
from typing import Any


class KbSearchError(Exception):
    """Base exception for all kb_search errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize error.

        Args:
            message: Human-readable error message.
            details: Extra context for logs.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidQueryError(KbSearchError):
    """Raised when the query text is empty."""


class EmbeddingProviderError(KbSearchError):
    """Raised when the embedding provider cannot embed the query."""

    def __init__(
        self,
        message: str,
        model: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if model:
            details["model"] = model
        super().__init__(message, details)


class ChunkStoreError(KbSearchError):
    """Raised when a chunk store query fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class RelevanceJudgeError(KbSearchError):
    """Raised when the relevance judge call fails."""


class RetrievalError(KbSearchError):
    """Raised when no search branch could run."""
