"""Chunk store implementations."""
from .memory_store import InMemoryChunkStore

__all__ = ["InMemoryChunkStore"]
