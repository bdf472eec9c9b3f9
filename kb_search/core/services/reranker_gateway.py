"""Re-ranker gateway - delegates relevance judgment to an external judge."""

import json
import logging
import re
from typing import Any, Sequence

from ..models.chunk import ChunkMetadata, FusedResult
from ..protocols.judge import JudgePreview, RelevanceJudgeProtocol

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def summarize_metadata(metadata: ChunkMetadata) -> str:
    """One-line locator such as ``Parva: X | Section: Y | Type: child``."""
    parts = []
    if metadata.parva:
        parts.append(f"Parva: {metadata.parva}")
    if metadata.chapter is not None:
        parts.append(f"Chapter: {metadata.chapter}")
    if metadata.section_title:
        parts.append(f"Section: {metadata.section_title}")
    if metadata.speaker:
        parts.append(f"Speaker: {metadata.speaker}")
    if metadata.type:
        parts.append(f"Type: {metadata.type}")
    return " | ".join(parts)


def parse_ranked_ids(reply: str) -> list[Any]:
    """Extract the first JSON array from a judge reply.

    Raises:
        ValueError: No array found or the array is not valid JSON.
    """
    text = _CODE_FENCE.sub("", reply or "")
    decoder = json.JSONDecoder()

    # First bracket that decodes to a JSON array; trailing text is ignored.
    start = text.find("[")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return parsed
        start = text.find("[", start + 1)

    raise ValueError("no JSON array in judge reply")


class RerankerGateway:
    """Validates and repairs relevance judge output."""

    def __init__(
        self,
        judge: RelevanceJudgeProtocol,
        preview_chars: int = 300,
    ):
        """Initialize gateway.

        Args:
            judge: External relevance judge.
            preview_chars: Content characters shown per candidate.
        """
        self._judge = judge
        self._preview_chars = preview_chars

    def _preview(self, result: FusedResult) -> JudgePreview:
        return JudgePreview(
            id=result.id,
            text=result.content[:self._preview_chars],
            metadata_summary=summarize_metadata(result.metadata),
        )

    async def rerank(
        self,
        query: str,
        candidates: Sequence[FusedResult],
        top_n: int,
    ) -> list[str]:
        """Rank candidates by relevance to the query.

        Args:
            query: User query.
            candidates: Fused candidates in fused order.
            top_n: Number of ids wanted.

        Returns:
            Up to ``top_n`` distinct ids, all from ``candidates``. Falls back
            to fused order when the judge fails or replies with nothing usable.
        """
        fused_ids = [c.id for c in candidates]
        fallback = fused_ids[:top_n]
        if not candidates or top_n <= 0:
            return fallback

        previews = [self._preview(c) for c in candidates]

        try:
            reply = await self._judge.rank(query, previews, top_n)
            raw_ids = parse_ranked_ids(reply)
        except Exception as e:
            logger.warning(
                f"Rerank: judge failed for '{query[:50]}...', using fused order: {e}",
                exc_info=True,
            )
            return fallback

        known = set(fused_ids)
        ranked: list[str] = []
        rejected = 0
        for raw_id in raw_ids:
            if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
                rejected += 1
                continue
            candidate_id = str(raw_id)
            if candidate_id not in known or candidate_id in ranked:
                rejected += 1
                continue
            ranked.append(candidate_id)
            if len(ranked) >= top_n:
                break

        if rejected:
            logger.warning(f"Rerank: dropped {rejected} invalid id(s) from judge reply")

        if not ranked:
            logger.warning(
                f"Rerank: no valid ids for '{query[:50]}...', using fused order"
            )
            return fallback

        for candidate_id in fused_ids:
            if len(ranked) >= top_n:
                break
            if candidate_id not in ranked:
                ranked.append(candidate_id)

        logger.info(f"Rerank: {len(ranked)}/{len(candidates)} candidates kept")
        return ranked
