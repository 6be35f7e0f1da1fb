"""Vector similarity search over the stored element embeddings.

A linear scan per request: partitions hold at most a few thousand
rows, so no index is maintained.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from bimqa.store.database import ElementStore

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*.

    Returns 0.0 if either vector has zero magnitude or the lengths differ.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.size == 0 or va.shape != vb.shape:
        return 0.0
    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(va, vb) / magnitude)


def rank_by_similarity(
    query: Sequence[float],
    candidates: list[tuple[int, Sequence[float]]],
    k: int,
) -> list[tuple[int, float]]:
    """Return the top *k* ``(id, score)`` pairs, best first.

    Ties keep the candidates' original order.
    """
    if k <= 0 or not candidates:
        return []
    scored = [(row_id, cosine_similarity(query, vec)) for row_id, vec in candidates]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:k]


def semantic_search(
    store: ElementStore,
    urn: str,
    query_vector: Sequence[float],
    k: int = 20,
) -> list[int]:
    """Ids of the *k* rows of *urn* most similar to *query_vector*."""
    candidates = store.embeddings(urn)
    if not candidates:
        logger.warning("No embeddings found for urn %s", urn)
        return []
    ranked = rank_by_similarity(query_vector, candidates, k)
    logger.debug("Semantic search over %d vectors -> %d ids", len(candidates), len(ranked))
    return [row_id for row_id, _ in ranked]
