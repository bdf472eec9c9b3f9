import json
import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

import numpy as np
from rank_bm25 import BM25Okapi

from ...core.models.chunk import Candidate, Chunk, ChunkMetadata, SourceSignal
from ...core.text import search_terms

logger = logging.getLogger(__name__)


def _first(record: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def chunk_from_record(record: dict[str, Any]) -> Chunk:
    """Build a Chunk from a JSON record (camelCase or snake_case keys)."""
    embedding = record.get("embedding")
    return Chunk(
        id=str(record["id"]),
        content=record["content"],
        metadata=ChunkMetadata.from_dict(record.get("metadata")),
        contextual_content=_first(record, "contextualContent", "contextual_content"),
        parent_id=_first(record, "parentId", "parent_id"),
        content_hash=_first(record, "contentHash", "content_hash"),
        category=_first(record, "docCategory", "category"),
        embedding=[float(x) for x in embedding] if embedding else None,
    )


def _to_candidate(chunk: Chunk, signal: SourceSignal, score: float) -> Candidate:
    return Candidate(
        id=chunk.id,
        content=chunk.content,
        source_signal=signal,
        score=float(score),
        metadata=chunk.metadata,
        contextual_content=chunk.contextual_content,
        parent_id=chunk.parent_id,
        content_hash=chunk.content_hash,
        category=chunk.category,
    )


class InMemoryChunkStore:
    """Chunk store held in memory: numpy cosine search and BM25 keyword search.

    Ties keep storage order.
    """

    def __init__(self, chunks: Iterable[Chunk]):
        self._chunks: list[Chunk] = list(chunks)
        self._by_id = {c.id: c for c in self._chunks}

        self._embedded = [i for i, c in enumerate(self._chunks) if c.embedding]
        if self._embedded:
            matrix = np.array(
                [self._chunks[i].embedding for i in self._embedded], dtype=np.float32
            )
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            self._matrix = matrix / norms
        else:
            self._matrix = np.zeros((0, 0), dtype=np.float32)

        self._tokens = [search_terms(c.content) for c in self._chunks]
        self._bm25 = BM25Okapi(self._tokens) if self._chunks else None

        logger.info(
            f"In-memory store: {len(self._chunks)} chunks, "
            f"{len(self._embedded)} with embeddings"
        )

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "InMemoryChunkStore":
        return cls(chunk_from_record(r) for r in records)

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryChunkStore":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("chunks", [])
        return cls.from_records(data)

    def __len__(self) -> int:
        return len(self._chunks)

    async def vector_search(
        self,
        embedding: list[float],
        limit: int,
        category: str | None = None,
        min_similarity: float | None = None,
    ) -> list[Candidate]:
        if not self._embedded or limit <= 0:
            return []

        query = np.asarray(embedding, dtype=np.float32)
        norm = np.linalg.norm(query)
        if norm == 0:
            return []
        similarities = self._matrix @ (query / norm)

        order = np.argsort(-similarities, kind="stable")
        results = []
        for row in order:
            chunk = self._chunks[self._embedded[row]]
            similarity = float(similarities[row])
            if category and chunk.category != category:
                continue
            if min_similarity is not None and similarity < min_similarity:
                continue
            results.append(_to_candidate(chunk, SourceSignal.VECTOR, similarity))
            if len(results) >= limit:
                break
        return results

    async def keyword_search(
        self,
        query: str,
        limit: int,
        category: str | None = None,
    ) -> list[Candidate]:
        terms = search_terms(query)
        if not terms or self._bm25 is None or limit <= 0:
            return []

        scores = self._bm25.get_scores(terms)
        term_set = set(terms)

        matches = [
            i for i, tokens in enumerate(self._tokens)
            if term_set.intersection(tokens)
            and (not category or self._chunks[i].category == category)
        ]
        matches.sort(key=lambda i: (-scores[i], i))

        return [
            _to_candidate(self._chunks[i], SourceSignal.KEYWORD, scores[i])
            for i in matches[:limit]
        ]

    async def get_by_ids(self, ids: Sequence[str]) -> list[Chunk]:
        return [self._by_id[i] for i in dict.fromkeys(ids) if i in self._by_id]
