"""
Shared test fixtures.

Provides: candidate/result factories, mocked collaborators, a small corpus
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from kb_search.core.models.chunk import (
    Candidate,
    Chunk,
    ChunkMetadata,
    FusedResult,
    SourceSignal,
)


@pytest.fixture
def make_candidate():
    """Factory for search branch candidates."""

    def _make(
        id: str,
        signal: SourceSignal = SourceSignal.VECTOR,
        score: float = 0.5,
        content: str | None = None,
        type: str | None = "child",
        parent_id: str | None = None,
        category: str | None = None,
        **meta,
    ) -> Candidate:
        return Candidate(
            id=id,
            content=content if content is not None else f"content of {id}",
            source_signal=signal,
            score=score,
            metadata=ChunkMetadata(type=type, **meta),
            parent_id=parent_id,
            category=category,
        )

    return _make


@pytest.fixture
def make_fused(make_candidate):
    """Factory for fused results."""

    def _make(id: str, fusion_score: float = 0.01, **kwargs) -> FusedResult:
        result = FusedResult.from_candidate(make_candidate(id, **kwargs))
        result.fusion_score = fusion_score
        return result

    return _make


@pytest.fixture
def mock_embedder():
    """Embedder returning a fixed 3-dim vector."""
    embedder = MagicMock()
    embedder.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return embedder


@pytest.fixture
def mock_chunk_store():
    """Chunk store with empty branches by default."""
    store = MagicMock()
    store.vector_search = AsyncMock(return_value=[])
    store.keyword_search = AsyncMock(return_value=[])
    store.get_by_ids = AsyncMock(return_value=[])
    return store


@pytest.fixture
def mock_judge():
    judge = MagicMock()
    judge.rank = AsyncMock(return_value="[]")
    return judge


@pytest.fixture
def corpus() -> list[Chunk]:
    """Small two-level corpus with 2-dim embeddings."""
    return [
        Chunk(
            id="p1",
            content="Krishna counsels Arjuna on the field of Kurukshetra before the war.",
            metadata=ChunkMetadata(type="parent", parva="Bhishma Parva"),
            category="scripture",
            embedding=[0.0, 1.0],
        ),
        Chunk(
            id="c1",
            content="Krishna said to Arjuna: do your duty without attachment. Krishna smiled.",
            metadata=ChunkMetadata(type="child", parva="Bhishma Parva", speaker="Krishna"),
            parent_id="p1",
            category="scripture",
            embedding=[1.0, 0.0],
        ),
        Chunk(
            id="c2",
            content="Krishna is the eighth avatar of Vishnu.",
            metadata=ChunkMetadata(type="child", source="encyclopedia.pdf"),
            category="encyclopedia",
            embedding=[0.8, 0.6],
        ),
        Chunk(
            id="c3",
            content="Bhishma lay on a bed of arrows.",
            metadata=ChunkMetadata(type="child"),
            category="scripture",
            embedding=[2.0, 0.0],
        ),
        Chunk(
            id="c4",
            content="Drona taught archery to the princes.",
            metadata=ChunkMetadata(type="child"),
            category="commentary",
            embedding=None,
        ),
    ]
