"""Query text helpers shared by stores and caches."""
import re

_WORD_RE = re.compile(r"\w+", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")


def search_terms(query: str) -> list[str]:
    """Lowercased word tokens with search-operator characters removed.

    Args:
        query: Raw query text.

    Returns:
        Terms in query order; empty when nothing indexable remains.
    """
    return [t for t in _WORD_RE.findall(query.lower()) if t.strip("_")]


def normalize_query(text: str) -> str:
    """Normalize query text for cache keys."""
    return _SPACE_RE.sub(" ", text).strip().lower()
