import logging

from openai import AsyncOpenAI, OpenAIError

from ...core.exceptions import EmbeddingProviderError

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embeddings over an OpenAI-compatible API (Ollama by default)."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434/v1",
        model: str = "nomic-embed-text",
        api_key: str = "ollama",
        query_prefix: str = "",
        timeout: float = 30.0,
    ):
        """Initialize embedder.

        Args:
            base_url: API URL.
            model: Embedding model name.
            api_key: API key.
            query_prefix: Text prepended to each query before embedding.
            timeout: Request timeout in seconds.
        """
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout)
        self._model = model
        self._query_prefix = query_prefix

    async def embed(self, text: str) -> list[float]:
        prepared = self._query_prefix + text.replace("\n", " ")
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=prepared,
            )
        except OpenAIError as e:
            logger.error(f"Embedding request failed ({self._model}): {e}")
            raise EmbeddingProviderError(
                f"Embedding request failed: {e}", model=self._model
            ) from e

        if not response.data:
            raise EmbeddingProviderError("Embedding response was empty", model=self._model)
        return list(response.data[0].embedding)
