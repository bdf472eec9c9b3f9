"""
Chunk table ORM mapping.

The table is owned by the ingestion pipeline; this mapping is read only and
mirrors its column names (camelCase where ingestion uses them).
"""

from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import Computed, String, Text
from sqlalchemy.dialects.postgresql import JSONB, TSVECTOR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ...core.models.chunk import Candidate, Chunk, ChunkMetadata, SourceSignal

CHUNK_TABLE = "knowledge_base_chunks"

# Must match the configuration ingestion used for the generated tsk column;
# queries are stemmed with the same one.
TEXT_SEARCH_CONFIG = "english"


class Base(DeclarativeBase):
    """Declarative base for kb_search tables."""


class ChunkRecord(Base):
    """
    Knowledge base chunk row.

    Attributes:
        id: Chunk id
        content: Passage text
        contextual_content: Text that produced the embedding
        embedding: Dense vector
        doc_category: Coarse category (scripture, encyclopedia, commentary)
        chunk_metadata: JSONB metadata bag
        parent_id: Parent section id (child rows only)
        content_hash: Content digest
        tsk: Generated full-text vector over content
    """

    __tablename__ = CHUNK_TABLE

    id: Mapped[str] = mapped_column(String, primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    contextual_content: Mapped[str | None] = mapped_column(
        "contextualContent", Text, nullable=True
    )
    embedding: Mapped[Any] = mapped_column(Vector(), nullable=True)
    doc_category: Mapped[str | None] = mapped_column(
        "docCategory", String, nullable=True, index=True
    )
    chunk_metadata: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    parent_id: Mapped[str | None] = mapped_column("parentId", String, nullable=True)
    content_hash: Mapped[str | None] = mapped_column("contentHash", String, nullable=True)
    tsk: Mapped[Any] = mapped_column(
        TSVECTOR,
        Computed(f"to_tsvector('{TEXT_SEARCH_CONFIG}', content)", persisted=True),
        nullable=True,
    )

    def to_chunk(self) -> Chunk:
        return Chunk(
            id=str(self.id),
            content=self.content,
            metadata=ChunkMetadata.from_dict(self.chunk_metadata),
            contextual_content=self.contextual_content,
            parent_id=self.parent_id,
            content_hash=self.content_hash,
            category=self.doc_category,
        )

    def to_candidate(self, signal: SourceSignal, score: float) -> Candidate:
        return Candidate(
            id=str(self.id),
            content=self.content,
            source_signal=signal,
            score=float(score),
            metadata=ChunkMetadata.from_dict(self.chunk_metadata),
            contextual_content=self.contextual_content,
            parent_id=self.parent_id,
            content_hash=self.content_hash,
            category=self.doc_category,
        )
