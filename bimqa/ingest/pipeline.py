"""Ingestor — viewer element records -> element rows -> store.

Usage::

    from bimqa.ingest import Ingestor

    ingestor = Ingestor(store, embedder=embedder)
    result = ingestor.ingest(urn, elements)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import BaseModel

from bimqa.config import DEFAULT_SNAPSHOT_GUID
from bimqa.embeddings.base import EmbeddingProvider
from bimqa.embeddings.text import build_embedding_text
from bimqa.ingest.flatten import flatten_grouped_properties, flatten_snapshot_properties
from bimqa.ingest.mapping import find_field, infer_category, is_empty, normalize_category
from bimqa.models.element import ElementRow, PropertyMap
from bimqa.store.database import ElementStore

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    """Outcome of one ingest call."""

    urn: str
    guid: str
    inserted: int = 0
    embedded: int = 0


def _as_text(value: Any) -> str | None:
    if is_empty(value):
        return None
    return str(value).strip()


def _component_id(flat: PropertyMap, db_id: int) -> int:
    """Revit ElementId when it is a plain integer, else the viewer dbId."""
    raw = _as_text(find_field(flat, "element_id"))
    if raw is not None and raw.lstrip("-").isdigit():
        return int(raw)
    return db_id


def build_row(urn: str, guid: str, db_id: int, name: str | None, flat: PropertyMap) -> ElementRow:
    """Derive the structured columns of one element from its properties.

    The category is the OmniClass title when present, otherwise the
    normalized raw category, otherwise a guess from type/family/name,
    otherwise ``"Unknown"``.
    """
    type_name = _as_text(find_field(flat, "type_name"))
    family_name = _as_text(find_field(flat, "family_name"))
    omniclass_title = _as_text(find_field(flat, "omniclass_title"))
    omniclass_number = _as_text(find_field(flat, "omniclass_number"))

    category = (
        omniclass_title
        or normalize_category(find_field(flat, "component_type"))
        or infer_category(type_name, family_name, name)
        or "Unknown"
    )

    return ElementRow(
        urn=urn,
        guid=guid,
        db_id=db_id,
        name=_as_text(name),
        component_id=_component_id(flat, db_id),
        component_type=category,
        type_name=type_name,
        family_name=family_name,
        is_asset=_as_text(find_field(flat, "is_asset")),
        level_number=_as_text(find_field(flat, "level_number")),
        room_type=_as_text(find_field(flat, "room_type")),
        room_name=_as_text(find_field(flat, "room_name")),
        system_type=_as_text(find_field(flat, "system_type")),
        system_name=_as_text(find_field(flat, "system_name")),
        manufacturer=_as_text(find_field(flat, "manufacturer")),
        model_name=_as_text(find_field(flat, "model_name")),
        specification=_as_text(find_field(flat, "specification")),
        omniclass_title=omniclass_title,
        omniclass_number=omniclass_number,
        props_flat=flat,
    )


def _db_id(record: dict[str, Any]) -> int | None:
    for key in ("dbId", "objectid", "objectId"):
        if record.get(key) is not None:
            try:
                return int(record[key])
            except (TypeError, ValueError):
                return None
    return None


def rows_from_snapshot(urn: str, elements: list[dict[str, Any]], guid: str) -> list[ElementRow]:
    """Rows from viewer snapshot records ``{dbId, name, properties: [...]}``."""
    return _rows(urn, elements, guid, flatten_snapshot_properties)


def rows_from_properties(urn: str, collection: list[dict[str, Any]], guid: str) -> list[ElementRow]:
    """Rows from Model Derivative records ``{objectid, name, properties: {group: {...}}}``."""
    return _rows(urn, collection, guid, flatten_grouped_properties)


def _rows(
    urn: str,
    records: list[dict[str, Any]],
    guid: str,
    flatten: Callable[[Any], PropertyMap],
) -> list[ElementRow]:
    rows: list[ElementRow] = []
    for record in records or []:
        if not isinstance(record, dict):
            continue
        db_id = _db_id(record)
        if db_id is None:
            logger.debug("Skipping record without dbId: %r", record.get("name"))
            continue
        flat = flatten(record.get("properties"))
        rows.append(build_row(urn, guid, db_id, record.get("name"), flat))
    return rows


class Ingestor:
    """Loads element records into an :class:`ElementStore`.

    Parameters
    ----------
    store:
        Target store.
    embedder:
        Optional :class:`EmbeddingProvider`.  When set, each row gets a
        vector built from :func:`build_embedding_text`; provider failures
        are logged and the rows are stored without vectors.
    """

    def __init__(self, store: ElementStore, embedder: EmbeddingProvider | None = None) -> None:
        self.store = store
        self.embedder = embedder

    def ingest(
        self,
        urn: str,
        elements: list[dict[str, Any]],
        *,
        guid: str | None = None,
    ) -> IngestResult:
        """Replace partition *urn* with the given viewer snapshot records."""
        guid = guid or DEFAULT_SNAPSHOT_GUID
        rows = rows_from_snapshot(urn, elements, guid)
        return self._replace(urn, guid, rows)

    def ingest_properties(
        self,
        urn: str,
        collection: list[dict[str, Any]],
        *,
        guid: str,
    ) -> IngestResult:
        """Replace partition *urn* with Model Derivative property records."""
        rows = rows_from_properties(urn, collection, guid)
        return self._replace(urn, guid, rows)

    # -- Chunked snapshot ----------------------------------------------------

    def begin_snapshot(self, urn: str) -> int:
        """Clear partition *urn* before chunks arrive.  Returns deleted rows."""
        deleted = self.store.delete_partition(urn)
        logger.info("Snapshot started for %s (%d old rows removed)", urn, deleted)
        return deleted

    def add_snapshot_chunk(
        self,
        urn: str,
        elements: list[dict[str, Any]],
        *,
        guid: str | None = None,
    ) -> IngestResult:
        """Append one chunk of snapshot records in its own transaction."""
        guid = guid or DEFAULT_SNAPSHOT_GUID
        rows = rows_from_snapshot(urn, elements, guid)
        embedded = self._embed(rows)
        inserted = self.store.insert_rows(rows)
        return IngestResult(urn=urn, guid=guid, inserted=inserted, embedded=embedded)

    def finish_snapshot(self, urn: str) -> int:
        """Return the partition's row count once all chunks are in."""
        count = self.store.count(urn)
        logger.info("Snapshot finished for %s: %d rows", urn, count)
        return count

    # -- Internal ------------------------------------------------------------

    def _replace(self, urn: str, guid: str, rows: list[ElementRow]) -> IngestResult:
        embedded = self._embed(rows)
        inserted = self.store.replace_partition(urn, rows)
        logger.info("Ingested %d elements for %s (%d embedded)", inserted, urn, embedded)
        return IngestResult(urn=urn, guid=guid, inserted=inserted, embedded=embedded)

    def _embed(self, rows: list[ElementRow]) -> int:
        if self.embedder is None or not rows:
            return 0
        texts = [build_embedding_text(r) for r in rows]
        try:
            vectors = self.embedder.embed_many(texts)
        except Exception as exc:
            logger.warning("Embedding generation failed, continuing without vectors: %s", exc)
            return 0
        embedded = 0
        for row, vec in zip(rows, vectors):
            if vec:
                row.embedding = vec
                row.embedding_model = self.embedder.model or None
                embedded += 1
        return embedded
