"""Tests for query execution — every task shape, area parsing, semantic narrowing."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from bimqa.chat.executor import execute_plan, parse_area_value
from bimqa.chat.plan import (
    CountResult,
    DistinctResult,
    GroupCountResult,
    ListResult,
    QueryPlan,
    SumAreaResult,
    Task,
)
from bimqa.embeddings import OpenAIEmbeddingProvider
from bimqa.errors import InferenceServiceError, QueryConstructionError
from bimqa.models import Attribute, ElementRow, PropertyMap
from bimqa.store import ElementStore

URN = "urn:exec"


def _row(db_id: int, category: str, level: str, area=None, embedding=None, **kw) -> ElementRow:
    props = {"Dimensions.Area": area} if area is not None else {}
    return ElementRow(
        urn=URN, db_id=db_id, name=f"{category} {db_id}", component_type=category,
        level_number=level, props_flat=PropertyMap.from_dict(props), embedding=embedding, **kw,
    )


@pytest.fixture
def store() -> ElementStore:
    s = ElementStore(":memory:")
    s.replace_partition(URN, [
        _row(1, "Floors", "Level 1", area="120.5 m²", embedding=[1.0, 0.0]),
        _row(2, "Floors", "Level 1", area="80,25", embedding=[0.9, 0.1]),
        _row(3, "Floors", "Level 2", embedding=[0.0, 1.0]),
        _row(4, "Floors", "Level 2", area="not a number"),
        _row(5, "Doors", "Level 1", type_name="Single", room_name="Lobby"),
        _row(6, "Doors", "Level 2", type_name="Double", room_name="Office"),
        _row(7, "Doors", "Level 2", type_name="Single", room_name="Office"),
    ])
    return s


def _plan(task: Task, **kw) -> QueryPlan:
    return QueryPlan(urn=URN, task=task, **kw)


# ---------------------------------------------------------------------------
# Area parsing
# ---------------------------------------------------------------------------


class TestParseAreaValue:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (12, 12.0),
            (3.5, 3.5),
            ("120.5 m²", 120.5),
            ("80,25", 80.25),
            ("Area: -4 m2", -4.0),
            ("  7  ", 7.0),
        ],
    )
    def test_parsed(self, raw, expected: float) -> None:
        assert parse_area_value(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, "not a number", "", True, "m²"])
    def test_skipped(self, raw) -> None:
        assert parse_area_value(raw) is None


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TestExecutePlan:
    def test_count_category(self, store: ElementStore) -> None:
        assert execute_plan(store, _plan(Task.COUNT, category="Doors")) == CountResult(count=3)

    def test_count_with_filter(self, store: ElementStore) -> None:
        plan = _plan(Task.COUNT, category="Doors", filter_attr=Attribute.ROOM_NAME, filter_value="Office")
        assert execute_plan(store, plan).count == 2

    def test_count_unknown_value_is_zero(self, store: ElementStore) -> None:
        plan = _plan(Task.COUNT, category="Doors", filter_attr=Attribute.ROOM_NAME, filter_value="Rooftop")
        assert execute_plan(store, plan).count == 0

    def test_count_whole_partition(self, store: ElementStore) -> None:
        assert execute_plan(store, _plan(Task.COUNT)).count == 7

    def test_distinct(self, store: ElementStore) -> None:
        result = execute_plan(store, _plan(Task.DISTINCT, category="Doors", target_attr=Attribute.TYPE_NAME))
        assert isinstance(result, DistinctResult)
        assert result.field == "type_name"
        assert sorted(result.values) == ["Double", "Single"]

    def test_distinct_limit(self, store: ElementStore) -> None:
        plan = _plan(Task.DISTINCT, target_attr=Attribute.LEVEL_NUMBER, limit=1)
        assert len(execute_plan(store, plan).values) == 1

    def test_group_count(self, store: ElementStore) -> None:
        result = execute_plan(store, _plan(Task.GROUP_COUNT, category="Doors", target_attr=Attribute.LEVEL_NUMBER))
        assert isinstance(result, GroupCountResult)
        assert [(r.value, r.count) for r in result.rows] == [("Level 2", 2), ("Level 1", 1)]

    def test_sum_area(self, store: ElementStore) -> None:
        result = execute_plan(store, _plan(Task.SUM_AREA, category="Floors", area_key="Dimensions.Area"))
        assert isinstance(result, SumAreaResult)
        assert result.total == pytest.approx(200.75)
        assert result.contributing == 2
        assert result.skipped == 2
        assert result.key == "Dimensions.Area"

    def test_sum_area_ignores_booleans(self) -> None:
        s = ElementStore(":memory:")
        s.replace_partition(URN, [_row(1, "Floors", "Level 1", area=True), _row(2, "Floors", "Level 1", area=12)])
        result = execute_plan(s, _plan(Task.SUM_AREA, area_key="Dimensions.Area"))
        assert result.total == pytest.approx(12.0)
        assert result.contributing == 1
        assert result.skipped == 1

    def test_list_is_nested(self, store: ElementStore) -> None:
        result = execute_plan(store, _plan(Task.LIST, category="Doors", limit=2))
        assert isinstance(result, ListResult)
        assert [d["dbId"] for d in result.docs] == [5, 6]
        assert result.docs[0]["location"]["room_name"] == "Lobby"

    def test_distinct_needs_target(self, store: ElementStore) -> None:
        with pytest.raises(QueryConstructionError):
            execute_plan(store, _plan(Task.DISTINCT))

    def test_group_count_needs_target(self, store: ElementStore) -> None:
        with pytest.raises(QueryConstructionError):
            execute_plan(store, _plan(Task.GROUP_COUNT))

    def test_sum_area_needs_key(self, store: ElementStore) -> None:
        with pytest.raises(QueryConstructionError):
            execute_plan(store, _plan(Task.SUM_AREA))


# ---------------------------------------------------------------------------
# Semantic narrowing
# ---------------------------------------------------------------------------


class TestSemanticNarrowing:
    def test_narrows_to_top_k(self, store: ElementStore) -> None:
        embedder = MagicMock()
        embedder.embed.return_value = [1.0, 0.0]
        plan = _plan(Task.COUNT, use_semantic=True, semantic_query="sàn bê tông", top_k=2)
        assert execute_plan(store, plan, embedder=embedder).count == 2
        embedder.embed.assert_called_once_with("sàn bê tông")

    def test_narrowing_combines_with_category(self, store: ElementStore) -> None:
        embedder = MagicMock()
        embedder.embed.return_value = [1.0, 0.0]
        plan = _plan(Task.COUNT, category="Doors", use_semantic=True, semantic_query="x", top_k=3)
        assert execute_plan(store, plan, embedder=embedder).count == 0

    def test_embedding_failure_degrades(self, store: ElementStore) -> None:
        embedder = MagicMock()
        embedder.embed.side_effect = InferenceServiceError("down")
        plan = _plan(Task.COUNT, category="Floors", use_semantic=True, semantic_query="x", top_k=1)
        assert execute_plan(store, plan, embedder=embedder).count == 4

    def test_no_embedder_degrades(self, store: ElementStore) -> None:
        plan = _plan(Task.COUNT, use_semantic=True, semantic_query="x", top_k=1)
        assert execute_plan(store, plan).count == 7

    def test_no_vectors_degrades(self) -> None:
        s = ElementStore(":memory:")
        s.replace_partition(URN, [_row(1, "Doors", "Level 1"), _row(2, "Doors", "Level 1")])
        embedder = MagicMock()
        embedder.embed.return_value = [1.0, 0.0]
        plan = _plan(Task.COUNT, use_semantic=True, semantic_query="x", top_k=1)
        assert execute_plan(s, plan, embedder=embedder).count == 2

    def test_malformed_embedding_response_degrades(self, store: ElementStore) -> None:
        resp = MagicMock()
        resp.json.return_value = {"data": [{"index": 0}]}
        session = MagicMock()
        session.post.return_value = resp
        embedder = OpenAIEmbeddingProvider("k", session=session)
        plan = _plan(Task.COUNT, category="Doors", use_semantic=True, semantic_query="x", top_k=1)
        assert execute_plan(store, plan, embedder=embedder).count == 3

    def test_search_failure_degrades(self, store: ElementStore, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(*args, **kwargs):
            raise ValueError("corrupt vector")

        monkeypatch.setattr("bimqa.chat.executor.semantic_search", broken)
        embedder = MagicMock()
        embedder.embed.return_value = [1.0, 0.0]
        plan = _plan(Task.COUNT, category="Floors", use_semantic=True, semantic_query="x", top_k=1)
        assert execute_plan(store, plan, embedder=embedder).count == 4
