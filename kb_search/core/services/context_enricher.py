"""Parent-context enricher."""

import logging
from typing import Sequence

from ..models.chunk import EnrichedResult, FusedResult
from ..protocols.chunk_store import ChunkStoreProtocol

logger = logging.getLogger(__name__)


class ParentContextEnricher:
    """Attaches parent section text to child results with one batched lookup."""

    def __init__(self, chunk_store: ChunkStoreProtocol):
        self._chunk_store = chunk_store

    async def enrich(self, results: Sequence[FusedResult]) -> list[EnrichedResult]:
        """Enrich child results with their parent section.

        Args:
            results: Results in final order.

        Returns:
            Same order and length. Orphans and non-child results pass through
            without parent content.
        """
        parent_ids: list[str] = []
        for result in results:
            if result.metadata.is_child and result.parent_id:
                if result.parent_id not in parent_ids:
                    parent_ids.append(result.parent_id)

        if not parent_ids:
            return [EnrichedResult.from_fused(r) for r in results]

        try:
            parents = await self._chunk_store.get_by_ids(parent_ids)
        except Exception as e:
            logger.warning(
                f"Enrich: parent lookup failed for {len(parent_ids)} id(s), "
                f"returning results without context: {e}",
                exc_info=True,
            )
            return [EnrichedResult.from_fused(r) for r in results]

        by_id = {p.id: p for p in parents}
        missing = [pid for pid in parent_ids if pid not in by_id]
        if missing:
            logger.warning(f"Enrich: {len(missing)} parent(s) not found: {missing[:5]}")

        enriched = []
        for result in results:
            parent = None
            if result.metadata.is_child and result.parent_id:
                parent = by_id.get(result.parent_id)
            enriched.append(EnrichedResult.from_fused(result, parent))

        logger.debug(
            f"Enrich: {sum(1 for r in enriched if r.has_parent)}/{len(enriched)} "
            f"results with parent context"
        )
        return enriched
