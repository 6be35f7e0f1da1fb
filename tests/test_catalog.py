"""Tests for the metadata catalog and its optional cache."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from bimqa.chat.catalog import CatalogCache, build_catalog
from bimqa.models import Attribute, ElementRow, PropertyMap
from bimqa.store import ElementStore


@pytest.fixture
def store() -> ElementStore:
    s = ElementStore(":memory:")
    rows = [
        ElementRow(
            urn="u", db_id=i, component_type="Doors" if i % 2 else "Walls",
            level_number=f"Level {i % 3}", room_name=None if i % 4 else "Lobby",
            props_flat=PropertyMap.from_dict({"Dimensions.Area": i, "Dimensions.Width": 1}),
        )
        for i in range(1, 21)
    ]
    rows.append(ElementRow(
        urn="u", db_id=99, component_type="Floors",
        props_flat=PropertyMap.from_dict({"Other.Gross AREA": 5}),
    ))
    s.replace_partition("u", rows)
    return s


class TestBuildCatalog:
    def test_categories(self, store: ElementStore) -> None:
        assert build_catalog(store, "u").categories == ["Doors", "Floors", "Walls"]

    def test_samples_bounded_and_non_empty(self, store: ElementStore) -> None:
        catalog = build_catalog(store, "u", sample_size=2)
        assert len(catalog.param_samples[Attribute.LEVEL_NUMBER]) == 2
        assert catalog.param_samples[Attribute.ROOM_NAME] == ["Lobby"]
        assert catalog.param_samples[Attribute.MANUFACTURER] == []

    def test_area_keys_case_insensitive(self, store: ElementStore) -> None:
        assert build_catalog(store, "u").area_keys == ["Dimensions.Area", "Other.Gross AREA"]

    def test_area_keys_only_from_scanned_rows(self, store: ElementStore) -> None:
        assert build_catalog(store, "u", area_scan_rows=5).area_keys == ["Dimensions.Area"]

    def test_area_keys_capped(self, store: ElementStore) -> None:
        assert build_catalog(store, "u", max_area_keys=1).area_keys == ["Dimensions.Area"]

    def test_empty_partition(self, store: ElementStore) -> None:
        catalog = build_catalog(store, "missing")
        assert catalog.is_empty
        assert catalog.area_keys == []
        assert all(v == [] for v in catalog.param_samples.values())


class TestCatalogCache:
    def test_ttl_zero_always_rebuilds(self, store: ElementStore) -> None:
        cache = CatalogCache(store)
        with patch("bimqa.chat.catalog.build_catalog", wraps=build_catalog) as spy:
            cache.get("u")
            cache.get("u")
        assert spy.call_count == 2

    def test_ttl_reuses_until_invalidated(self, store: ElementStore) -> None:
        cache = CatalogCache(store, ttl=300)
        with patch("bimqa.chat.catalog.build_catalog", wraps=build_catalog) as spy:
            first = cache.get("u")
            assert cache.get("u") is first
            cache.invalidate("u")
            cache.get("u")
        assert spy.call_count == 2

    def test_ttl_expiry(self, store: ElementStore) -> None:
        ticks = iter([0.0, 5.0, 20.0])
        cache = CatalogCache(store, ttl=10, clock=lambda: next(ticks))
        first = cache.get("u")
        assert cache.get("u") is first
        assert cache.get("u") is not first
