"""Chunk and search result domain models."""
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Optional


class SourceSignal(str, Enum):
    """Search branch that produced a candidate."""
    VECTOR = "vector"
    KEYWORD = "keyword"


@dataclass
class ChunkMetadata:
    """Typed view over the chunk metadata bag.

    Known domain fields are exposed as attributes; every other key is kept
    untouched in ``extra`` so it round-trips through ``to_dict``.
    """
    type: Optional[str] = None  # "parent" | "child"
    source: Optional[str] = None
    parva: Optional[str] = None
    chapter: Optional[Any] = None
    section_title: Optional[str] = None
    speaker: Optional[str] = None
    page: Optional[Any] = None
    extra: dict[str, Any] = field(default_factory=dict)

    KNOWN_FIELDS: ClassVar[tuple[str, ...]] = (
        "type",
        "source",
        "parva",
        "chapter",
        "section_title",
        "speaker",
        "page",
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ChunkMetadata":
        """Build metadata from a raw JSON-like dict."""
        if not data:
            return cls()
        known = {key: data.get(key) for key in cls.KNOWN_FIELDS}
        extra = {k: v for k, v in data.items() if k not in cls.KNOWN_FIELDS}
        return cls(**known, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        """Convert back to a plain dict (unset known fields are omitted)."""
        data = dict(self.extra)
        for key in self.KNOWN_FIELDS:
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @property
    def is_child(self) -> bool:
        return self.type == "child"

    @property
    def is_parent(self) -> bool:
        return self.type == "parent"


@dataclass
class Chunk:
    """Stored unit of source text, as returned by point lookups."""
    id: str
    content: str
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)
    contextual_content: Optional[str] = None
    parent_id: Optional[str] = None
    content_hash: Optional[str] = None
    category: Optional[str] = None
    embedding: Optional[list[float]] = None


@dataclass
class Candidate:
    """Chunk projection produced by one search branch."""
    id: str
    content: str
    source_signal: SourceSignal
    score: float  # similarity for vector, text rank for keyword
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)
    contextual_content: Optional[str] = None
    parent_id: Optional[str] = None
    content_hash: Optional[str] = None
    category: Optional[str] = None


@dataclass
class FusedResult:
    """Deduplicated candidate with its RRF score."""
    id: str
    content: str
    fusion_score: float
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)
    contextual_content: Optional[str] = None
    parent_id: Optional[str] = None
    content_hash: Optional[str] = None
    category: Optional[str] = None
    vector_score: Optional[float] = None
    keyword_score: Optional[float] = None
    signals: list[SourceSignal] = field(default_factory=list)

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "FusedResult":
        return cls(
            id=candidate.id,
            content=candidate.content,
            fusion_score=0.0,
            metadata=candidate.metadata,
            contextual_content=candidate.contextual_content,
            parent_id=candidate.parent_id,
            content_hash=candidate.content_hash,
            category=candidate.category,
        )

    @property
    def similarity(self) -> Optional[float]:
        """Vector similarity, when the vector branch found this chunk."""
        return self.vector_score


@dataclass
class EnrichedResult(FusedResult):
    """Final result, optionally carrying its parent section."""
    parent_content: Optional[str] = None
    parent_metadata: Optional[ChunkMetadata] = None

    @classmethod
    def from_fused(
        cls, result: FusedResult, parent: Optional[Chunk] = None
    ) -> "EnrichedResult":
        values = {f.name: getattr(result, f.name) for f in fields(FusedResult)}
        if parent is not None:
            values["parent_content"] = parent.content
            values["parent_metadata"] = parent.metadata
        return cls(**values)

    @property
    def has_parent(self) -> bool:
        return self.parent_content is not None


@dataclass
class SourceAttribution:
    """Source locator handed to the answer generator."""
    id: str
    source: Optional[str]
    parva: Optional[str]
    chapter: Optional[Any]
    section_title: Optional[str]
    speaker: Optional[str]
    type: Optional[str]
    similarity: Optional[float]
    has_parent: bool

    @classmethod
    def from_result(cls, result: EnrichedResult) -> "SourceAttribution":
        meta = result.metadata
        return cls(
            id=result.id,
            source=meta.source,
            parva=meta.parva,
            chapter=meta.chapter,
            section_title=meta.section_title,
            speaker=meta.speaker,
            type=meta.type,
            similarity=result.similarity,
            has_parent=result.has_parent,
        )
