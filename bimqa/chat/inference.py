"""Inference steps — category, parameters, and filter-value disambiguation.

Every step validates the model output against the live vocabulary of the
partition: anything the model names that the dataset does not contain is
dropped before it can reach the query.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from bimqa.chat import prompts
from bimqa.chat.catalog import CatalogSnapshot
from bimqa.chat.plan import CategoryDecision, ParameterDecision, Task
from bimqa.config import DEFAULT_LIMIT, DEFAULT_TOP_K, VALUE_CANDIDATE_LIMIT
from bimqa.errors import InferenceServiceError
from bimqa.models.element import Attribute
from bimqa.providers.client import InferenceClient
from bimqa.store.database import ElementStore

logger = logging.getLogger(__name__)


def _as_dict(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    raise InferenceServiceError(f"Expected a JSON object, got {type(raw).__name__}")


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def _text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


# ---------------------------------------------------------------------------
# Step 1: category
# ---------------------------------------------------------------------------


def infer_category(
    client: InferenceClient,
    question: str,
    categories: list[str],
    hint: str | None = None,
) -> CategoryDecision:
    """Decide whether *question* is about the dataset, and which category.

    Parameters
    ----------
    client:
        Structured inference client.
    question:
        The raw user question.
    categories:
        Distinct categories of the partition.  The returned category is
        always one of them, or *None*.
    hint:
        Optional lexical hint, passed to the model as a suggestion.

    Raises
    ------
    InferenceServiceError
        When the model gives no usable JSON object.
    """
    raw = _as_dict(client.infer_structured(prompts.intent_prompt(question, categories, hint)))

    category = _text(raw.get("category"))
    if category is not None and category not in categories:
        logger.debug("Dropping category %r: not in catalog", category)
        category = None

    intent = str(raw.get("intent") or "bim").strip().lower()
    return CategoryDecision(
        in_scope=intent != "general",
        task=Task.parse(raw.get("task")),
        category=category,
        limit=_positive_int(raw.get("limit"), DEFAULT_LIMIT),
        notes=str(raw.get("notes") or ""),
    )


# ---------------------------------------------------------------------------
# Step 2: parameters
# ---------------------------------------------------------------------------


def infer_parameters(
    client: InferenceClient,
    question: str,
    decision: CategoryDecision,
    catalog: CatalogSnapshot,
) -> ParameterDecision:
    """Choose filter, target attribute, area key and the semantic flag."""
    plan_so_far = {
        "task": decision.task.value,
        "category": decision.category,
        "limit": decision.limit,
    }
    raw = _as_dict(
        client.infer_structured(prompts.parameter_prompt(question, plan_so_far, catalog))
    )

    filter_attr = Attribute.parse(raw.get("filterParam"))
    target_attr = Attribute.parse(raw.get("targetParam"))
    if raw.get("filterParam") and filter_attr is None:
        logger.debug("Dropping filter attribute %r", raw.get("filterParam"))
    if raw.get("targetParam") and target_attr is None:
        logger.debug("Dropping target attribute %r", raw.get("targetParam"))

    area_key = _text(raw.get("propsFlatKey"))
    if area_key is not None and area_key not in catalog.area_keys:
        logger.debug("Dropping area key %r: not among area keys", area_key)
        area_key = None

    semantic_query = _text(raw.get("semanticQuery"))
    use_semantic = bool(raw.get("useSemanticSearch")) and semantic_query is not None

    limit = raw.get("limit")
    return ParameterDecision(
        use_semantic=use_semantic,
        semantic_query=semantic_query if use_semantic else None,
        top_k=_positive_int(raw.get("topK"), DEFAULT_TOP_K),
        filter_attr=filter_attr,
        filter_value=_text(raw.get("filterValue")) if filter_attr is not None else None,
        target_attr=target_attr,
        area_key=area_key,
        limit=_positive_int(limit, decision.limit) if limit is not None else None,
    )


# ---------------------------------------------------------------------------
# Step 3: value disambiguation
# ---------------------------------------------------------------------------


class Classifier(Protocol):
    """Picks one of *allowed_values* for *question*, or *None*."""

    def classify(self, question: str, allowed_values: list[str]) -> str | None: ...


class LLMClassifier:
    """:class:`Classifier` backed by structured inference.

    Only a value found verbatim in *allowed_values* is returned.
    """

    def __init__(self, client: InferenceClient, label: str) -> None:
        self.client = client
        self.label = label

    def classify(self, question: str, allowed_values: list[str]) -> str | None:
        if not allowed_values:
            return None
        raw = self.client.infer_structured(prompts.value_prompt(question, self.label, allowed_values))
        value = _text(raw.get("value")) if isinstance(raw, dict) else None
        if value is None:
            return None
        if value in allowed_values:
            logger.debug(
                "Classifier chose %r for %s (confidence=%s)",
                value, self.label, raw.get("confidence"),
            )
            return value
        logger.debug("Classifier returned %r, not an allowed value", value)
        return None


def disambiguate_value(
    store: ElementStore,
    classifier: Classifier,
    question: str,
    urn: str,
    attr: Attribute,
    proposed: str,
) -> str:
    """Map *proposed* onto a real value of *attr* within *urn*.

    Returns *proposed* unchanged when it already matches a live value
    (after trimming), when there are no candidates, or when the
    classifier finds no match.
    """
    candidates = store.distinct_values(urn, attr, limit=VALUE_CANDIDATE_LIMIT)
    wanted = proposed.strip()
    if not candidates or any(c.strip() == wanted for c in candidates):
        return proposed
    chosen = classifier.classify(question, candidates)
    if chosen is None:
        logger.debug("No live %s value matches %r", attr.value, proposed)
        return proposed
    logger.debug("Filter value %r -> %r", proposed, chosen)
    return chosen
