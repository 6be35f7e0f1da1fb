"""ChatPipeline — question in, answer out.

Usage::

    from bimqa.chat import ChatPipeline

    pipeline = ChatPipeline(store, client, embedder=embedder)
    response = pipeline.ask(urn, "Có bao nhiêu cửa ở tầng 2?")
    print(response.answer)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import BaseModel

from bimqa.chat import prompts
from bimqa.chat.answer import synthesize_answer
from bimqa.chat.catalog import CatalogCache, CatalogSnapshot
from bimqa.chat.executor import execute_plan
from bimqa.chat.hints import match_category_hint
from bimqa.chat.inference import (
    Classifier,
    LLMClassifier,
    disambiguate_value,
    infer_category,
    infer_parameters,
)
from bimqa.chat.plan import ListResult, QueryPlan
from bimqa.embeddings.base import EmbeddingProvider
from bimqa.errors import DataNotReadyError, InferenceServiceError, ValidationError
from bimqa.providers.client import InferenceClient
from bimqa.store.database import ElementStore

logger = logging.getLogger(__name__)


class ChatResponse(BaseModel):
    """Reply to one question.

    ``hits`` is the raw query result (for ``list`` tasks, the row count
    and the re-nested rows).  ``debug`` is only filled on request.
    """

    answer: str
    hits: dict[str, Any] | None = None
    plan: QueryPlan | None = None
    debug: dict[str, Any] | None = None


class ChatPipeline:
    """Runs catalog, hint, inference, query and answer steps for one partition.

    Parameters
    ----------
    store:
        Element store holding the ingested partitions.
    client:
        Inference client used by every model-backed step.
    embedder:
        Optional embedding provider for semantic narrowing.
    catalog_cache:
        Optional :class:`CatalogCache`; a non-caching one is created
        when omitted.
    classifier_factory:
        Builds the :class:`Classifier` for value disambiguation from an
        attribute label.  Defaults to :class:`LLMClassifier`.
    """

    def __init__(
        self,
        store: ElementStore,
        client: InferenceClient,
        *,
        embedder: EmbeddingProvider | None = None,
        catalog_cache: CatalogCache | None = None,
        classifier_factory: Callable[[str], Classifier] | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.embedder = embedder
        self.catalog_cache = catalog_cache or CatalogCache(store)
        self._classifier_factory = classifier_factory or (lambda label: LLMClassifier(client, label))

    def ask(self, urn: str, question: str, *, debug: bool = False) -> ChatResponse:
        """Answer *question* about partition *urn*.

        Raises
        ------
        ValidationError
            When *urn* or *question* is missing.
        InferenceServiceError
            When the category, parameter or answer step fails.
        QueryConstructionError
            When the inferred plan lacks a field its task needs.
        """
        if not urn or not str(urn).strip():
            raise ValidationError("Missing urn")
        if not question or not str(question).strip():
            raise ValidationError("Missing question")

        try:
            return self._ask(urn, question, debug)
        except DataNotReadyError as exc:
            logger.info("%s", exc)
            return ChatResponse(
                answer=(
                    "Chưa có dữ liệu cho mô hình này. "
                    "Hãy tải snapshot hoặc thuộc tính của mô hình trước khi đặt câu hỏi."
                ),
                hits={"kind": "count", "count": 0},
                debug={"error": str(exc)} if debug else None,
            )

    def _ask(self, urn: str, question: str, debug: bool) -> ChatResponse:
        if self.store.count(urn) == 0:
            raise DataNotReadyError(urn)

        catalog = self.catalog_cache.get(urn)
        hint = match_category_hint(question)
        if hint is not None and hint not in catalog.categories:
            logger.debug("Hint category %s not in catalog, ignored", hint)
            hint = None
        logger.debug("Hint category: %s", hint)

        decision = infer_category(self.client, question, catalog.categories, hint)
        logger.debug("Category decision: %s", decision)

        if not decision.in_scope:
            answer = self.client.infer_text(prompts.general_prompt(question))
            return ChatResponse(
                answer=answer,
                debug=self._debug(catalog, decision=decision.model_dump(mode="json")) if debug else None,
            )

        if decision.category is None and hint is not None:
            decision.category = hint

        params = infer_parameters(self.client, question, decision, catalog)
        plan = QueryPlan.merge(urn, decision, params)

        if plan.filter_attr is not None and plan.filter_value:
            classifier: Classifier = self._classifier_factory(plan.filter_attr.value)
            try:
                plan.filter_value = disambiguate_value(
                    self.store, classifier, question, urn, plan.filter_attr, plan.filter_value,
                )
            except InferenceServiceError as exc:
                logger.warning("Value disambiguation failed, keeping %r: %s", plan.filter_value, exc)

        logger.debug("Final plan: %s", plan)
        result = execute_plan(self.store, plan, embedder=self.embedder)
        logger.debug("Query result: %s", result)

        answer = synthesize_answer(self.client, question, catalog, plan, result)

        if isinstance(result, ListResult):
            hits = {"count": len(result.docs), "docs": result.docs}
        else:
            hits = result.model_dump(mode="json")
        return ChatResponse(
            answer=answer,
            hits=hits,
            plan=plan,
            debug=self._debug(catalog, plan=plan.model_dump(mode="json"), result=hits) if debug else None,
        )

    @staticmethod
    def _debug(catalog: CatalogSnapshot, **extra: Any) -> dict[str, Any]:
        return {"catalog": catalog.model_dump(mode="json"), **extra}
