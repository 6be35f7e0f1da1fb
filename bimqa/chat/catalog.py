"""Metadata catalog — the per-partition vocabulary every inference step is grounded on."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable

from pydantic import BaseModel, Field

from bimqa.config import AREA_SCAN_ROWS, MAX_AREA_KEYS, PARAM_SAMPLE_SIZE
from bimqa.models.element import Attribute
from bimqa.store.database import ElementStore

logger = logging.getLogger(__name__)

_AREA_KEY = re.compile(r"area", re.I)

# Attributes sampled for the parameter prompt
SAMPLED_ATTRIBUTES: tuple[Attribute, ...] = (
    Attribute.LEVEL_NUMBER,
    Attribute.ROOM_NAME,
    Attribute.ROOM_TYPE,
    Attribute.SYSTEM_NAME,
    Attribute.SYSTEM_TYPE,
    Attribute.MANUFACTURER,
    Attribute.MODEL_NAME,
    Attribute.OMNICLASS_TITLE,
    Attribute.TYPE_NAME,
    Attribute.FAMILY_NAME,
)


class CatalogSnapshot(BaseModel):
    """Distinct categories, sampled attribute values, and area-like property keys."""

    urn: str
    categories: list[str] = Field(default_factory=list)
    param_samples: dict[Attribute, list[str]] = Field(default_factory=dict)
    area_keys: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.categories


def build_catalog(
    store: ElementStore,
    urn: str,
    *,
    sample_size: int = PARAM_SAMPLE_SIZE,
    area_scan_rows: int = AREA_SCAN_ROWS,
    max_area_keys: int = MAX_AREA_KEYS,
) -> CatalogSnapshot:
    """Compute the catalog of partition *urn*.

    Area keys are collected from the first *area_scan_rows* rows only;
    keys that appear exclusively in later rows are not listed.
    """
    categories = store.categories(urn)
    samples = {
        attr: store.distinct_values(urn, attr, limit=sample_size)
        for attr in SAMPLED_ATTRIBUTES
    }

    area_keys: list[str] = []
    for props in store.property_maps(urn, limit=area_scan_rows):
        for key in props.keys():
            if _AREA_KEY.search(key) and key not in area_keys:
                area_keys.append(key)

    logger.debug(
        "Catalog %s: %d categories, %d area keys", urn, len(categories), len(area_keys),
    )
    return CatalogSnapshot(
        urn=urn,
        categories=categories,
        param_samples=samples,
        area_keys=area_keys[:max_area_keys],
    )


class CatalogCache:
    """Optional time-bounded cache of catalog snapshots, keyed by urn.

    A *ttl* of 0 disables caching.  :meth:`invalidate` must be called
    when a partition is re-ingested.
    """

    def __init__(
        self,
        store: ElementStore,
        *,
        ttl: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, CatalogSnapshot]] = {}

    def get(self, urn: str) -> CatalogSnapshot:
        if self.ttl <= 0:
            return build_catalog(self.store, urn)
        now = self._clock()
        hit = self._entries.get(urn)
        if hit is not None and now - hit[0] < self.ttl:
            return hit[1]
        snapshot = build_catalog(self.store, urn)
        self._entries[urn] = (now, snapshot)
        return snapshot

    def invalidate(self, urn: str | None = None) -> None:
        if urn is None:
            self._entries.clear()
        else:
            self._entries.pop(urn, None)
