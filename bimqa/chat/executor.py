"""Query execution — turn a QueryPlan into one read against the element store."""

from __future__ import annotations

import logging
import re
from typing import Any

from bimqa.chat.plan import (
    CountResult,
    DistinctResult,
    GroupCountResult,
    GroupRow,
    ListResult,
    QueryPlan,
    QueryResult,
    SumAreaResult,
    Task,
)
from bimqa.embeddings.base import EmbeddingProvider
from bimqa.errors import QueryConstructionError
from bimqa.search.semantic import semantic_search
from bimqa.store.database import ElementStore, RowFilter

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[-+]?\d+(?:[.,]\d+)?")


def parse_area_value(raw: Any) -> float | None:
    """Numeric area from a stored property value, or *None*.

    Numbers are taken as is; strings yield their first decimal number,
    with ``,`` accepted as decimal separator (``"80,25"`` -> 80.25).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    match = _NUMBER.search(str(raw))
    if match is None:
        return None
    try:
        return float(match.group(0).replace(",", "."))
    except ValueError:
        return None


def _semantic_ids(
    store: ElementStore,
    plan: QueryPlan,
    embedder: EmbeddingProvider | None,
) -> list[int] | None:
    """Candidate ids from vector search, or *None* to leave the query unnarrowed."""
    if not plan.use_semantic or not plan.semantic_query:
        return None
    if embedder is None:
        logger.warning("Semantic search requested but no embedding provider configured")
        return None
    try:
        vector = embedder.embed(plan.semantic_query)
        if not vector:
            return None
        ids = semantic_search(store, plan.urn, vector, k=plan.top_k)
    except Exception as exc:
        logger.warning("Semantic retrieval failed, skipping narrowing: %s", exc)
        return None
    return ids or None


def execute_plan(
    store: ElementStore,
    plan: QueryPlan,
    *,
    embedder: EmbeddingProvider | None = None,
) -> QueryResult:
    """Run *plan* against *store*.

    Raises
    ------
    QueryConstructionError
        When ``distinct``/``group_count`` has no target attribute or
        ``sum_area`` has no area key.
    """
    if plan.task in (Task.DISTINCT, Task.GROUP_COUNT) and plan.target_attr is None:
        raise QueryConstructionError(f"Task {plan.task.value!r} needs a target attribute")
    if plan.task is Task.SUM_AREA and not plan.area_key:
        raise QueryConstructionError("Task 'sum_area' needs an area property key")

    flt = RowFilter(
        urn=plan.urn,
        ids=_semantic_ids(store, plan, embedder),
        category=plan.category,
        attr=plan.filter_attr,
        value=plan.filter_value,
    )
    logger.debug("Executing %s with %s", plan.task.value, flt)

    if plan.task is Task.COUNT:
        return CountResult(count=store.count_where(flt))

    if plan.task is Task.DISTINCT:
        return DistinctResult(
            field=plan.target_attr.value,
            values=store.distinct_where(flt, plan.target_attr, limit=plan.limit),
        )

    if plan.task is Task.GROUP_COUNT:
        rows = store.group_count_where(flt, plan.target_attr, limit=plan.limit)
        return GroupCountResult(
            field=plan.target_attr.value,
            rows=[GroupRow(value=v, count=c) for v, c in rows],
        )

    if plan.task is Task.SUM_AREA:
        total = 0.0
        contributing = skipped = 0
        for raw in store.property_values_where(flt, plan.area_key):
            value = parse_area_value(raw)
            if value is None:
                skipped += 1
                continue
            total += value
            contributing += 1
        return SumAreaResult(
            key=plan.area_key, total=total, contributing=contributing, skipped=skipped,
        )

    return ListResult(docs=[row.to_nested() for row in store.rows_where(flt, limit=plan.limit)])
