"""Ranking and merging strategies."""
from .fusion import RRF_K, fallback_merge, reciprocal_rank_fusion

__all__ = [
    "RRF_K",
    "fallback_merge",
    "reciprocal_rank_fusion",
]
