"""Rank fusion strategies."""
import logging
import math
from typing import Sequence

from ..models.chunk import Candidate, FusedResult, SourceSignal

logger = logging.getLogger(__name__)

RRF_K = 60


def reciprocal_rank_fusion(
    vector_results: Sequence[Candidate],
    keyword_results: Sequence[Candidate],
    limit: int,
    k: int = RRF_K,
) -> list[FusedResult]:
    """Merge the vector and keyword rankings with Reciprocal Rank Fusion.

    Each list contributes ``1 / (k + rank + 1)`` per chunk, where ``rank`` is
    the zero-based position in that list. A chunk found by both branches sums
    both contributions.

    Args:
        vector_results: Vector branch candidates, best first.
        keyword_results: Keyword branch candidates, best first.
        limit: Maximum number of fused results.
        k: RRF constant.

    Returns:
        One result per distinct chunk id, highest fusion score first. Ties go
        to the better vector position, then keyword position, then id.
    """
    fused: dict[str, FusedResult] = {}
    positions: dict[str, list[float]] = {}

    for branch, results in enumerate((vector_results, keyword_results)):
        seen_in_branch: set[str] = set()
        for rank, candidate in enumerate(results):
            if candidate.id in seen_in_branch:
                continue
            seen_in_branch.add(candidate.id)

            entry = fused.get(candidate.id)
            if entry is None:
                # First-seen payload wins.
                entry = FusedResult.from_candidate(candidate)
                fused[candidate.id] = entry
                positions[candidate.id] = [math.inf, math.inf]

            entry.fusion_score += 1.0 / (k + rank + 1)
            entry.signals.append(candidate.source_signal)
            if candidate.source_signal == SourceSignal.VECTOR:
                entry.vector_score = candidate.score
            else:
                entry.keyword_score = candidate.score
            positions[candidate.id][branch] = rank

    ordered = sorted(
        fused.values(),
        key=lambda r: (-r.fusion_score, positions[r.id][0], positions[r.id][1], r.id),
    )

    if logger.isEnabledFor(logging.DEBUG):
        both = sum(1 for r in ordered if len(r.signals) > 1)
        logger.debug(
            f"RRF: vector={len(vector_results)} keyword={len(keyword_results)} "
            f"unique={len(ordered)} both={both}"
        )

    return ordered[:limit]


def fallback_merge(
    ranked_ids: Sequence[str],
    fused: Sequence[FusedResult],
    limit: int,
) -> list[FusedResult]:
    """Take the reranked ids, then fill from fused order up to ``limit``.

    Args:
        ranked_ids: Ids returned by the reranker, most relevant first.
        fused: Fused results in fused order.
        limit: Requested number of results.

    Returns:
        ``min(limit, len(fused))`` results without duplicates.
    """
    by_id = {r.id: r for r in fused}
    merged: list[FusedResult] = []
    included: set[str] = set()

    for result_id in ranked_ids:
        if len(merged) >= limit:
            break
        if result_id in included or result_id not in by_id:
            continue
        merged.append(by_id[result_id])
        included.add(result_id)

    filled = 0
    for result in fused:
        if len(merged) >= limit:
            break
        if result.id in included:
            continue
        merged.append(result)
        included.add(result.id)
        filled += 1

    if filled:
        logger.info(f"Fallback merge: filled {filled} slot(s) from fused order")

    return merged
