"""Semantic retrieval over element embeddings."""

from bimqa.search.semantic import cosine_similarity, rank_by_similarity, semantic_search

__all__ = ["cosine_similarity", "rank_by_similarity", "semantic_search"]
