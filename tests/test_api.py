"""Tests for the BimQA facade."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from bimqa import BimQA, Settings
from bimqa.aps import TokenCache
from bimqa.errors import ConfigurationError, QueryConstructionError
from bimqa.models import Attribute
from bimqa.providers import InferenceClient, OllamaProvider


def _prop(group: str, name: str, value) -> dict:
    return {"displayCategory": group, "displayName": name, "displayValue": value}


SNAPSHOT = [
    {"dbId": 1, "name": "Door 1", "properties": [
        _prop("__category__", "Category", "Revit Doors"),
        _prop("Constraints", "Level", "Level 1"),
        _prop("Dimensions", "Area", "2,1 m²"),
    ]},
    {"dbId": 2, "name": "Window 2", "properties": [
        _prop("__category__", "Category", "Revit Windows"),
        _prop("Constraints", "Level", "Level 2"),
    ]},
]


@pytest.fixture
def provider() -> MagicMock:
    return MagicMock()


@pytest.fixture
def qa(provider: MagicMock) -> BimQA:
    instance = BimQA(":memory:", InferenceClient(provider))
    yield instance
    instance.close()


class TestBimQA:
    def test_ingest_and_browse(self, qa: BimQA) -> None:
        result = qa.ingest_snapshot("urn:x", SNAPSHOT)
        assert result.inserted == 2
        assert qa.categories("urn:x") == ["Doors", "Windows"]
        assert qa.distinct_values("urn:x", "level_number") == ["Level 1", "Level 2"]
        assert qa.distinct_values("urn:x", Attribute.LEVEL_NUMBER, category="Windows") == ["Level 2"]

    def test_distinct_values_rejects_unknown_attribute(self, qa: BimQA) -> None:
        qa.ingest_snapshot("urn:x", SNAPSHOT)
        with pytest.raises(QueryConstructionError):
            qa.distinct_values("urn:x", "name")

    def test_catalog(self, qa: BimQA) -> None:
        qa.ingest_snapshot("urn:x", SNAPSHOT)
        catalog = qa.catalog("urn:x")
        assert catalog.categories == ["Doors", "Windows"]
        assert catalog.area_keys == ["Dimensions.Area"]

    def test_reingest_invalidates_cached_catalog(self, provider: MagicMock) -> None:
        qa = BimQA(":memory:", InferenceClient(provider), catalog_ttl=600)
        qa.ingest_snapshot("urn:x", SNAPSHOT[:1])
        assert qa.catalog("urn:x").categories == ["Doors"]
        qa.ingest_snapshot("urn:x", SNAPSHOT)
        assert qa.catalog("urn:x").categories == ["Doors", "Windows"]
        qa.close()

    def test_chunked_snapshot(self, qa: BimQA) -> None:
        qa.begin_snapshot("urn:x")
        qa.add_snapshot_chunk("urn:x", SNAPSHOT[:1])
        qa.add_snapshot_chunk("urn:x", SNAPSHOT[1:])
        assert qa.finish_snapshot("urn:x") == 2

    def test_ingest_properties(self, qa: BimQA) -> None:
        qa.ingest_properties("urn:y", [
            {"objectid": 3, "name": "Wall", "properties": {"__category__": {"Category": "Revit Walls"}}},
        ], guid="3d-view")
        assert qa.categories("urn:y") == ["Walls"]

    def test_search(self, qa: BimQA) -> None:
        qa.ingest_snapshot("urn:x", SNAPSHOT)
        assert [r.db_id for r in qa.search("urn:x", "Window")] == [2]

    def test_ask(self, qa: BimQA, provider: MagicMock) -> None:
        qa.ingest_snapshot("urn:x", SNAPSHOT)
        provider.generate.side_effect = [
            json.dumps({"intent": "bim", "task": "count", "category": "Windows"}),
            json.dumps({}),
            "Có 1 cửa sổ.",
        ]
        response = qa.ask("urn:x", "Có bao nhiêu cửa sổ?")
        assert response.hits == {"kind": "count", "count": 1}
        assert response.answer == "Có 1 cửa sổ."

    def test_access_token_requires_credentials(self, qa: BimQA) -> None:
        with pytest.raises(ConfigurationError):
            qa.access_token()

    def test_access_token(self, provider: MagicMock) -> None:
        tokens = TokenCache(lambda scopes: ("tok", 3600))
        qa = BimQA(":memory:", InferenceClient(provider), tokens=tokens)
        assert qa.access_token(["data:read"]) == "tok"


class TestFromSettings:
    def test_minimal_settings(self) -> None:
        qa = BimQA.from_settings(Settings(db_path=":memory:", log_level="WARNING"))
        assert isinstance(qa.client.provider, OllamaProvider)
        assert qa.embedder is None
        assert qa.tokens is None
        assert qa.catalog_cache.ttl == 0.0

    def test_full_settings(self) -> None:
        qa = BimQA.from_settings(Settings(
            db_path=":memory:",
            llm_provider="openai",
            openai_api_key="sk-test",
            embedding_dimensions=256,
            aps_client_id="id",
            aps_client_secret="secret",
            catalog_ttl=60,
        ))
        assert qa.embedder is not None
        assert qa.embedder.dimensions == 256
        assert qa.tokens is not None
        assert qa.catalog_cache.ttl == 60
