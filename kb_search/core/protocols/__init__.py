"""Protocol interfaces for dependency injection."""
from .cache import EmbeddingCacheProtocol
from .chunk_store import ChunkStoreProtocol
from .embedder import EmbedderProtocol
from .expander import QueryExpanderProtocol
from .judge import JudgePreview, RelevanceJudgeProtocol

__all__ = [
    "EmbeddingCacheProtocol",
    "ChunkStoreProtocol",
    "EmbedderProtocol",
    "QueryExpanderProtocol",
    "JudgePreview",
    "RelevanceJudgeProtocol",
]
