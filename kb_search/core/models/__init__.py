"""Domain models."""
from .chunk import (
    Candidate,
    Chunk,
    ChunkMetadata,
    EnrichedResult,
    FusedResult,
    SourceAttribution,
    SourceSignal,
)
from .classification import Confidence, QueryClassification
from .search import SearchResponse

__all__ = [
    "Candidate",
    "Chunk",
    "ChunkMetadata",
    "EnrichedResult",
    "FusedResult",
    "SourceAttribution",
    "SourceSignal",
    "Confidence",
    "QueryClassification",
    "SearchResponse",
]
