"""Tests for cosine similarity and semantic retrieval."""

from __future__ import annotations

import pytest

from bimqa.models import ElementRow
from bimqa.search import cosine_similarity, rank_by_similarity, semantic_search
from bimqa.store import ElementStore


class TestCosineSimilarity:
    def test_identical(self) -> None:
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_orthogonal(self) -> None:
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)

    def test_opposite(self) -> None:
        assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)

    def test_zero_vector(self) -> None:
        assert cosine_similarity([1, 2, 3], [0, 0, 0]) == 0.0

    def test_length_mismatch(self) -> None:
        assert cosine_similarity([1, 2, 3], [1, 2]) == 0.0

    def test_empty(self) -> None:
        assert cosine_similarity([], []) == 0.0


class TestRankBySimilarity:
    def test_order_and_bound(self) -> None:
        candidates = [(1, [0.0, 1.0]), (2, [1.0, 0.0]), (3, [1.0, 1.0])]
        ranked = rank_by_similarity([1.0, 0.0], candidates, k=2)
        assert [i for i, _ in ranked] == [2, 3]
        assert ranked[0][1] >= ranked[1][1]

    def test_ties_keep_input_order(self) -> None:
        candidates = [(5, [1.0, 0.0]), (4, [2.0, 0.0]), (3, [3.0, 0.0])]
        assert [i for i, _ in rank_by_similarity([1.0, 0.0], candidates, k=3)] == [5, 4, 3]

    def test_zero_k(self) -> None:
        assert rank_by_similarity([1.0], [(1, [1.0])], k=0) == []


class TestSemanticSearch:
    @pytest.fixture
    def store(self) -> ElementStore:
        s = ElementStore(":memory:")
        s.replace_partition("urn:a", [
            ElementRow(urn="urn:a", db_id=1, component_type="Walls", embedding=[1.0, 0.0, 0.0]),
            ElementRow(urn="urn:a", db_id=2, component_type="Columns", embedding=[0.9, 0.1, 0.0]),
            ElementRow(urn="urn:a", db_id=3, component_type="Doors", embedding=[0.0, 0.0, 1.0]),
            ElementRow(urn="urn:a", db_id=4, component_type="Windows"),
        ])
        return s

    def test_top_k(self, store: ElementStore) -> None:
        ids = semantic_search(store, "urn:a", [1.0, 0.0, 0.0], k=2)
        rows = {r.id: r.db_id for r in store.get_rows("urn:a")}
        assert [rows[i] for i in ids] == [1, 2]

    def test_bounded_by_rows_with_vectors(self, store: ElementStore) -> None:
        assert len(semantic_search(store, "urn:a", [1.0, 0.0, 0.0], k=100)) == 3

    def test_no_vectors(self, store: ElementStore) -> None:
        assert semantic_search(store, "urn:none", [1.0, 0.0, 0.0], k=5) == []
