"""Searchable text for an element, fed to the embedding provider."""

from __future__ import annotations

from bimqa.models.element import ElementRow


def build_embedding_text(row: ElementRow) -> str:
    """Join the descriptive columns of *row* with ``" | "``.

    Level and room are prefixed with their Vietnamese labels so that
    questions like "tầng 2" land near the right rows.
    """
    parts = [
        row.name,
        row.component_type,
        row.type_name,
        row.family_name,
        f"Tầng {row.level_number}" if row.level_number else None,
        f"Phòng {row.room_name}" if row.room_name else None,
        row.room_type,
        row.system_name,
        row.system_type,
        row.manufacturer,
        row.model_name,
        row.omniclass_title,
    ]
    return " | ".join(p for p in parts if p)
