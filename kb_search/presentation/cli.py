import asyncio
import logging
import sys
import time

import httpx

from ..config.settings import settings
from ..container import configure_container, container
from ..core.exceptions import KbSearchError
from ..core.protocols.chunk_store import ChunkStoreProtocol
from ..core.services.query_classifier import QueryClassifier
from ..core.services.search_service import SearchService

logger = logging.getLogger(__name__)

USAGE = """Usage: kb-search <command> [args]
Commands:
  search "<query>" [limit]   Run hybrid retrieval and print the context
  classify "<query>"         Show the query classification
  check                      Wait for Ollama and verify models"""


def ensure_ollama_models(attempts: int = 30) -> bool:
    """Wait for Ollama and check the judge and embedding models exist.

    Returns:
        True if all models are ready, False otherwise.
    """
    base_url = settings.llm_base_url.replace("/v1", "")
    wanted = {settings.llm_model}
    if settings.embedding_backend == "openai":
        wanted.add(settings.embedding_model)

    logger.info(f"Checking Ollama models: {', '.join(sorted(wanted))}")

    for attempt in range(attempts):
        try:
            resp = httpx.get(f"{base_url}/api/tags", timeout=5)
        except httpx.HTTPError:
            logger.info(f"Waiting for Ollama... ({attempt + 1}/{attempts})")
            time.sleep(2)
            continue

        if resp.status_code != 200:
            logger.info(f"Ollama returned {resp.status_code}, retrying...")
            time.sleep(2)
            continue

        available = [m["name"] for m in resp.json().get("models", [])]
        missing = [m for m in wanted if not any(m in name for name in available)]
        if missing:
            logger.error(f"Missing models: {', '.join(missing)} (run: ollama pull <model>)")
            return False

        logger.info("All models ready")
        return True

    logger.error("Ollama not available")
    return False


async def _run_search(query: str, limit: int | None) -> int:
    configure_container(settings)
    service = container.resolve(SearchService)
    store = container.resolve(ChunkStoreProtocol)

    try:
        response = await service.search(query, limit)
    except KbSearchError as e:
        logger.error(f"Search failed: {e}")
        return 1
    finally:
        close = getattr(store, "close", None)
        if close is not None:
            await close()

    if response.is_empty:
        print("No relevant information found.")
        return 0

    classification = response.classification
    if classification is not None:
        print(
            f"Query type: {classification.query_type} "
            f"({classification.confidence.value})\n"
        )

    for i, source in enumerate(response.sources, 1):
        similarity = f"{source.similarity:.3f}" if source.similarity is not None else "-"
        locator = " / ".join(
            str(part)
            for part in (source.parva, source.chapter, source.section_title)
            if part
        )
        print(f"[{i}] {source.id}  {locator}  sim={similarity}  parent={source.has_parent}")

    print("\n" + response.context)
    return 0


def cmd_search(args: list[str]) -> int:
    if not args:
        print(USAGE)
        return 1
    limit = None
    if len(args) > 1:
        try:
            limit = int(args[1])
        except ValueError:
            print(USAGE)
            return 1
    return asyncio.run(_run_search(args[0], limit))


def cmd_classify(args: list[str]) -> int:
    if not args:
        print(USAGE)
        return 1
    classifier = QueryClassifier(enabled=settings.classifier_enabled)
    result = classifier.classify(args[0])
    print(f"type:       {result.query_type}")
    print(f"confidence: {result.confidence.value}")
    print(f"primary:    {result.primary_category or '-'}")
    for category, weight in result.weights.items():
        print(f"  {category:<13} {weight:.1f}")
    return 0


def warmup_local_embedder() -> bool:
    """Load the sentence-transformers model so the first query does not pay for it."""
    from ..infrastructure.embeddings.sentence_transformer import (
        SentenceTransformerEmbedder,
    )

    embedder = SentenceTransformerEmbedder(
        settings.embedding_model,
        query_prefix=settings.embedding_query_prefix,
    )
    try:
        embedder.warmup()
    except Exception as e:
        logger.error(f"Embedding model {settings.embedding_model} failed to load: {e}")
        return False
    logger.info(f"Embedding model {settings.embedding_model} loaded")
    return True


def cmd_check(args: list[str]) -> int:
    if not ensure_ollama_models():
        return 1
    if settings.embedding_backend == "sentence_transformers" and not warmup_local_embedder():
        return 1
    return 0


def main():
    """CLI entry point."""
    logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")

    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command, args = sys.argv[1], sys.argv[2:]

    if command == "search":
        sys.exit(cmd_search(args))
    elif command == "classify":
        sys.exit(cmd_classify(args))
    elif command == "check":
        sys.exit(cmd_check(args))
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
