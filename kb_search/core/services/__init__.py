"""Core business services."""
from .context_enricher import ParentContextEnricher
from .query_classifier import QueryClassifier
from .reranker_gateway import RerankerGateway
from .search_service import SearchService

__all__ = [
    "ParentContextEnricher",
    "QueryClassifier",
    "RerankerGateway",
    "SearchService",
]
