import logging
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import defer

from ...core.exceptions import ChunkStoreError
from ...core.models.chunk import Candidate, Chunk, SourceSignal
from ...core.text import search_terms
from .orm import TEXT_SEARCH_CONFIG, ChunkRecord

logger = logging.getLogger(__name__)


def create_engine(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
) -> AsyncEngine:
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
    )


class PgVectorChunkStore:
    """Chunk store on PostgreSQL with pgvector and full-text search."""

    def __init__(self, engine: AsyncEngine):
        """Initialize store.

        Args:
            engine: Async SQLAlchemy engine (asyncpg driver).
        """
        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(
        cls,
        database_url: str,
        pool_size: int = 5,
        echo: bool = False,
    ) -> "PgVectorChunkStore":
        engine = create_engine(database_url, pool_size=pool_size, echo=echo)
        return cls(engine)

    @staticmethod
    def _light_columns():
        return (defer(ChunkRecord.embedding), defer(ChunkRecord.tsk))

    async def vector_search(
        self,
        embedding: list[float],
        limit: int,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> list[Candidate]:
        distance = ChunkRecord.embedding.cosine_distance(embedding)
        stmt = (
            select(ChunkRecord, distance.label("distance"))
            .options(*self._light_columns())
            .where(ChunkRecord.embedding.is_not(None))
        )
        if category:
            stmt = stmt.where(ChunkRecord.doc_category == category)
        if min_similarity is not None:
            stmt = stmt.where(distance <= 1 - min_similarity)
        stmt = stmt.order_by(distance.asc(), ChunkRecord.id.asc()).limit(limit)

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error(f"Vector search failed: {e}")
            raise ChunkStoreError(f"Vector search failed: {e}", operation="vector_search") from e

        candidates = [
            record.to_candidate(SourceSignal.VECTOR, 1 - float(dist))
            for record, dist in rows
        ]
        logger.debug(f"Vector search: {len(candidates)}/{limit} candidates")
        return candidates

    async def keyword_search(
        self,
        query: str,
        limit: int,
        category: str | None = None,
    ) -> list[Candidate]:
        terms = search_terms(query)
        if not terms:
            logger.info(f"Keyword search: no terms in '{query[:50]}', skipping")
            return []

        ts_query = func.plainto_tsquery(TEXT_SEARCH_CONFIG, " ".join(terms))
        rank = func.ts_rank(ChunkRecord.tsk, ts_query)
        stmt = (
            select(ChunkRecord, rank.label("rank"))
            .options(*self._light_columns())
            .where(ChunkRecord.tsk.op("@@")(ts_query))
        )
        if category:
            stmt = stmt.where(ChunkRecord.doc_category == category)
        stmt = stmt.order_by(rank.desc(), ChunkRecord.id.asc()).limit(limit)

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error(f"Keyword search failed: {e}")
            raise ChunkStoreError(f"Keyword search failed: {e}", operation="keyword_search") from e

        candidates = [
            record.to_candidate(SourceSignal.KEYWORD, float(score))
            for record, score in rows
        ]
        logger.debug(f"Keyword search: {len(candidates)}/{limit} candidates")
        return candidates

    async def get_by_ids(self, ids: Sequence[str]) -> list[Chunk]:
        if not ids:
            return []

        stmt = (
            select(ChunkRecord)
            .options(*self._light_columns())
            .where(ChunkRecord.id.in_(list(ids)))
        )
        try:
            async with self._session_factory() as session:
                records = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Chunk lookup failed: {e}")
            raise ChunkStoreError(f"Chunk lookup failed: {e}", operation="get_by_ids") from e

        return [r.to_chunk() for r in records]

    async def close(self) -> None:
        await self._engine.dispose()
