import logging

from openai import AsyncOpenAI, OpenAIError

from ...core.exceptions import RelevanceJudgeError
from ...core.protocols.judge import JudgePreview

logger = logging.getLogger(__name__)

RERANK_SYSTEM_PROMPT = """You are a relevance judge for a knowledge base search.

You get a question and a list of text passages, each with an ID.
Pick the passages that best help answer the question, most relevant first.

Rules:
- Reply with a JSON array of passage IDs and nothing else.
- Use only IDs from the list. Do not invent IDs.
- Return at most the requested number of IDs."""

RERANK_PROMPT = """Question: {query}

Passages:
{passages}

Return the {top_n} most relevant passage IDs as a JSON array, e.g. ["id1", "id2"]."""

EXPAND_SYSTEM_PROMPT = """You rewrite search queries for a knowledge base.

Add closely related names, synonyms and key terms that help find relevant passages.
Keep the original words. Reply with a single line of search text and nothing else."""


def format_passages(previews: list[JudgePreview]) -> str:
    blocks = []
    for p in previews:
        header = f"ID: {p.id}"
        if p.metadata_summary:
            header += f" ({p.metadata_summary})"
        blocks.append(f"{header}\n{p.text}")
    return "\n\n".join(blocks)


class OllamaClient:
    """LLM client for Ollama (OpenAI-compatible API).

    Serves as the relevance judge and the query expander.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434/v1",
        model: str = "qwen2.5:7b",
        api_key: str = "ollama",
        max_tokens: int = 512,
        temperature: float = 0.0,
        timeout: float = 30.0,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API URL.
            model: Model name.
            api_key: API key (Ollama ignores it).
            max_tokens: Max response tokens.
            temperature: Sampling temperature.
            timeout: Request timeout in seconds.
        """
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def _complete(self, system: str, prompt: str, temperature: float) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self._max_tokens,
            temperature=temperature,
        )
        return response.choices[0].message.content or ""

    async def rank(
        self,
        query: str,
        previews: list[JudgePreview],
        top_n: int,
    ) -> str:
        """Ask the model for the most relevant passage ids.

        Args:
            query: User query.
            previews: Candidate previews.
            top_n: Number of ids requested.

        Returns:
            Raw model reply.

        Raises:
            RelevanceJudgeError: The API call failed.
        """
        prompt = RERANK_PROMPT.format(
            query=query,
            passages=format_passages(previews),
            top_n=top_n,
        )

        try:
            reply = await self._complete(RERANK_SYSTEM_PROMPT, prompt, self._temperature)
        except OpenAIError as e:
            raise RelevanceJudgeError(
                f"Judge request failed: {e}", {"model": self._model}
            ) from e

        logger.debug(f"[judge] reply for '{query[:50]}...': {reply[:200]}")
        return reply

    async def expand(self, query: str) -> str:
        """Rewrite the query with related search terms.

        Raises:
            RelevanceJudgeError: The API call failed.
        """
        try:
            reply = await self._complete(EXPAND_SYSTEM_PROMPT, query, 0.3)
        except OpenAIError as e:
            raise RelevanceJudgeError(
                f"Expansion request failed: {e}", {"model": self._model}
            ) from e

        expanded = " ".join(reply.split())
        logger.info(f"[expand] '{query[:50]}' -> '{expanded[:100]}'")
        return expanded
