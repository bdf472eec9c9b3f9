"""Search response model."""
from dataclasses import dataclass, field
from typing import Optional

from .chunk import EnrichedResult, SourceAttribution
from .classification import QueryClassification


@dataclass
class SearchResponse:
    """Search response for the answer generator."""
    results: list[EnrichedResult]
    context: str
    sources: list[SourceAttribution] = field(default_factory=list)
    classification: Optional[QueryClassification] = None

    @property
    def is_empty(self) -> bool:
        """True when nothing relevant was found (not an error)."""
        return not self.results

    @classmethod
    def empty(
        cls, classification: Optional[QueryClassification] = None
    ) -> "SearchResponse":
        return cls(results=[], context="", sources=[], classification=classification)
