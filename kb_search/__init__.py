"""Hybrid retrieval core for a hierarchically chunked knowledge base."""
