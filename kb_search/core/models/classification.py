"""Query classification domain models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Confidence(Enum):
    """Confidence level of a classification."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


@dataclass(frozen=True)
class QueryClassification:
    """Advisory routing hint for one query."""
    primary_category: Optional[str]
    weights: dict[str, float] = field(default_factory=dict)
    confidence: Confidence = Confidence.LOW
    query_type: str = "general"

    def reaches(self, threshold: Confidence) -> bool:
        """Check confidence is at least ``threshold``."""
        return self.confidence.rank >= threshold.rank
