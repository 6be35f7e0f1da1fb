"""Flatten viewer property payloads into a :class:`PropertyMap`.

Keys are ``"<group>.<name>"``, e.g. ``"Dimensions.Area"``.
"""

from __future__ import annotations

from typing import Any

from bimqa.models.element import PropertyMap


def flatten_snapshot_properties(properties: list[dict[str, Any]] | None) -> PropertyMap:
    """Flatten viewer ``getBulkProperties`` tuples.

    Each tuple carries ``displayCategory``, ``displayName``,
    ``displayValue`` (plus ``type`` and ``units``, which are dropped).
    Tuples without a group or name are skipped.
    """
    flat = PropertyMap()
    if not isinstance(properties, list):
        return flat
    for prop in properties:
        if not isinstance(prop, dict):
            continue
        group = prop.get("displayCategory")
        name = prop.get("displayName")
        if not group or not name:
            continue
        flat.set(f"{group}.{name}", prop.get("displayValue"))
    return flat


def flatten_grouped_properties(properties: dict[str, Any] | None) -> PropertyMap:
    """Flatten the Model Derivative shape ``{group: {name: value}}``."""
    flat = PropertyMap()
    if not isinstance(properties, dict):
        return flat
    for group, props in properties.items():
        if not isinstance(props, dict):
            continue
        for name, value in props.items():
            flat.set(f"{group}.{name}", value)
    return flat
