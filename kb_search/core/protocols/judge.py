"""Relevance judge protocol for dependency injection."""
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class JudgePreview:
    """Bounded candidate preview shown to the judge."""
    id: str
    text: str
    metadata_summary: str


@runtime_checkable
class RelevanceJudgeProtocol(Protocol):
    """Protocol for an external relevance judge."""

    async def rank(
        self,
        query: str,
        previews: list[JudgePreview],
        top_n: int,
    ) -> str:
        """Ask the judge for the most relevant candidate ids.

        Args:
            query: User query.
            previews: Candidate previews.
            top_n: Number of ids requested.

        Returns:
            Raw judge reply, expected to hold a JSON array of ids.
            The reply is untrusted and may be malformed.
        """
        ...
