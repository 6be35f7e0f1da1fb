"""QueryPlan and QueryResult — the structured state threaded through the pipeline."""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from bimqa.config import DEFAULT_LIMIT, DEFAULT_TOP_K
from bimqa.models.element import Attribute


class Task(str, enum.Enum):
    """Shape of the final read."""

    COUNT = "count"
    DISTINCT = "distinct"
    GROUP_COUNT = "group_count"
    SUM_AREA = "sum_area"
    LIST = "list"

    @classmethod
    def parse(cls, value: Any) -> Task:
        """Task named by *value*; unknown names fall back to ``count``."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.COUNT


class CategoryDecision(BaseModel):
    """Output of the category inference step."""

    in_scope: bool = True
    task: Task = Task.COUNT
    category: str | None = None
    limit: int = DEFAULT_LIMIT
    notes: str = ""


class ParameterDecision(BaseModel):
    """Output of the parameter inference step."""

    use_semantic: bool = False
    semantic_query: str | None = None
    top_k: int = DEFAULT_TOP_K
    filter_attr: Attribute | None = None
    filter_value: str | None = None
    target_attr: Attribute | None = None
    area_key: str | None = None
    limit: int | None = None


class QueryPlan(BaseModel):
    """Everything the executor needs to build one read."""

    urn: str
    task: Task = Task.COUNT
    category: str | None = None
    limit: int = DEFAULT_LIMIT
    filter_attr: Attribute | None = None
    filter_value: str | None = None
    target_attr: Attribute | None = None
    area_key: str | None = None
    use_semantic: bool = False
    semantic_query: str | None = None
    top_k: int = DEFAULT_TOP_K
    notes: str = ""

    @classmethod
    def merge(cls, urn: str, first: CategoryDecision, second: ParameterDecision) -> QueryPlan:
        return cls(
            urn=urn,
            task=first.task,
            category=first.category,
            limit=second.limit or first.limit or DEFAULT_LIMIT,
            filter_attr=second.filter_attr,
            filter_value=second.filter_value,
            target_attr=second.target_attr,
            area_key=second.area_key,
            use_semantic=second.use_semantic,
            semantic_query=second.semantic_query,
            top_k=second.top_k,
            notes=first.notes,
        )


# -- Results ---------------------------------------------------------------


class CountResult(BaseModel):
    kind: Literal["count"] = "count"
    count: int = 0


class DistinctResult(BaseModel):
    kind: Literal["distinct"] = "distinct"
    field: str
    values: list[str] = Field(default_factory=list)


class GroupRow(BaseModel):
    value: str
    count: int


class GroupCountResult(BaseModel):
    kind: Literal["group_count"] = "group_count"
    field: str
    rows: list[GroupRow] = Field(default_factory=list)


class SumAreaResult(BaseModel):
    kind: Literal["sum_area"] = "sum_area"
    key: str
    total: float = 0.0
    contributing: int = 0
    skipped: int = 0


class ListResult(BaseModel):
    kind: Literal["list"] = "list"
    docs: list[dict[str, Any]] = Field(default_factory=list)


QueryResult = Annotated[
    Union[CountResult, DistinctResult, GroupCountResult, SumAreaResult, ListResult],
    Field(discriminator="kind"),
]


def result_is_empty(result: Any) -> bool:
    """True when *result* carries nothing worth answering from."""
    if isinstance(result, CountResult):
        return result.count == 0
    if isinstance(result, DistinctResult):
        return not result.values
    if isinstance(result, GroupCountResult):
        return not result.rows
    if isinstance(result, SumAreaResult):
        return result.contributing == 0
    if isinstance(result, ListResult):
        return not result.docs
    return True
