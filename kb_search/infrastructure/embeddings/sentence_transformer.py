import asyncio
import logging
from functools import cached_property

from sentence_transformers import SentenceTransformer

from ...core.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        query_prefix: str = "query: ",
    ):
        self._model_name = model_name
        self._query_prefix = query_prefix

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def warmup(self) -> None:
        _ = self.model
        logger.info("Embedding model warmed up")

    def _encode(self, text: str) -> list[float]:
        return self.model.encode(text, convert_to_numpy=True).tolist()

    async def embed(self, text: str) -> list[float]:
        prepared = self._query_prefix + text.replace("\n", " ")
        try:
            # Model inference blocks; keep it off the event loop.
            return await asyncio.to_thread(self._encode, prepared)
        except Exception as e:
            raise EmbeddingProviderError(
                f"Local embedding failed: {e}", model=self._model_name
            ) from e
