"""Question answering — catalog, inference steps, query execution and answers."""

from bimqa.chat.catalog import CatalogCache, CatalogSnapshot, build_catalog
from bimqa.chat.executor import execute_plan, parse_area_value
from bimqa.chat.hints import match_category_hint
from bimqa.chat.inference import (
    Classifier,
    LLMClassifier,
    disambiguate_value,
    infer_category,
    infer_parameters,
)
from bimqa.chat.pipeline import ChatPipeline, ChatResponse
from bimqa.chat.plan import QueryPlan, Task

__all__ = [
    "CatalogCache",
    "CatalogSnapshot",
    "ChatPipeline",
    "ChatResponse",
    "Classifier",
    "LLMClassifier",
    "QueryPlan",
    "Task",
    "build_catalog",
    "disambiguate_value",
    "execute_plan",
    "infer_category",
    "infer_parameters",
    "match_category_hint",
    "parse_area_value",
]
