"""ElementRow — one BIM component as stored in the flat ``elements`` table.

Every row belongs to exactly one partition (``urn``, the model
identifier).  Rows are bulk-replaced per partition on ingest and never
patched in place.
"""

from __future__ import annotations

import enum
import json
from typing import Any, Iterator

from pydantic import BaseModel, Field


class Attribute(str, enum.Enum):
    """Closed set of columns that may appear in a filter or group-by clause.

    Inference output is mapped onto this enum before any SQL is built;
    anything that does not map is dropped.
    """

    LEVEL_NUMBER = "level_number"
    ROOM_NAME = "room_name"
    ROOM_TYPE = "room_type"
    SYSTEM_NAME = "system_name"
    SYSTEM_TYPE = "system_type"
    MANUFACTURER = "manufacturer"
    MODEL_NAME = "model_name"
    TYPE_NAME = "type_name"
    FAMILY_NAME = "family_name"
    OMNICLASS_TITLE = "omniclass_title"

    @classmethod
    def parse(cls, value: Any) -> Attribute | None:
        """Return the member named by *value*, or *None* if it is not allowed."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip()
        # Accept dotted forms such as "location.level_number"
        if "." in key:
            key = key.rsplit(".", 1)[1]
        try:
            return cls(key)
        except ValueError:
            return None


class PropertyEntry(BaseModel):
    """A single flattened property: ``"<group>.<name>" -> value``."""

    group: str
    name: str
    value: Any = None

    @property
    def key(self) -> str:
        return f"{self.group}.{self.name}"


def split_property_key(key: str) -> tuple[str, str]:
    """Split ``"Group.Name"`` on the first dot.

    Keys without a dot get an empty group.  Property names may themselves
    contain dots (``"Dimensions.Area (m.2)"``), so only the first one
    separates the group.
    """
    if "." not in key:
        return "", key
    group, name = key.split(".", 1)
    return group, name


class PropertyMap(BaseModel):
    """Ordered association list of flattened properties.

    A later entry with the same key replaces the earlier one, keeping its
    original position.
    """

    entries: list[PropertyEntry] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, flat: dict[str, Any] | None) -> PropertyMap:
        pm = cls()
        for key, value in (flat or {}).items():
            pm.set(str(key), value)
        return pm

    @classmethod
    def from_json(cls, raw: str | None) -> PropertyMap:
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        return cls.from_dict(data)

    def set(self, key: str, value: Any) -> None:
        group, name = split_property_key(key)
        for i, entry in enumerate(self.entries):
            if entry.group == group and entry.name == name:
                self.entries[i] = PropertyEntry(group=group, name=name, value=value)
                return
        self.entries.append(PropertyEntry(group=group, name=name, value=value))

    def get(self, key: str, default: Any = None) -> Any:
        group, name = split_property_key(key)
        for entry in self.entries:
            if entry.group == group and entry.name == name:
                return entry.value
        return default

    def keys(self) -> list[str]:
        return [e.key if e.group else e.name for e in self.entries]

    def items(self) -> Iterator[tuple[str, Any]]:
        for e in self.entries:
            yield (e.key if e.group else e.name), e.value

    def to_dict(self) -> dict[str, Any]:
        return dict(self.items())

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self.keys()


class ElementRow(BaseModel):
    """The atomic unit of the element table."""

    id: int | None = None
    urn: str
    guid: str | None = None
    db_id: int
    name: str | None = None

    # Basic
    component_id: int | None = None
    component_type: str = "Unknown"
    type_name: str | None = None
    family_name: str | None = None
    is_asset: str | None = None

    # Location
    level_number: str | None = None
    room_type: str | None = None
    room_name: str | None = None

    # System
    system_type: str | None = None
    system_name: str | None = None

    # Equipment
    manufacturer: str | None = None
    model_name: str | None = None
    specification: str | None = None

    # OmniClass
    omniclass_title: str | None = None
    omniclass_number: str | None = None

    props_flat: PropertyMap = Field(default_factory=PropertyMap)
    embedding: list[float] | None = None
    embedding_model: str | None = None

    def to_nested(self) -> dict[str, Any]:
        """Re-group the flat columns into the presentation layout."""
        return {
            "urn": self.urn,
            "guid": self.guid,
            "dbId": self.db_id,
            "name": self.name,
            "basic": {
                "component_type": self.component_type,
                "type_name": self.type_name,
                "family_name": self.family_name,
            },
            "location": {
                "level_number": self.level_number,
                "room_name": self.room_name,
                "room_type": self.room_type,
            },
            "system": {
                "system_type": self.system_type,
                "system_name": self.system_name,
            },
            "equipment": {
                "manufacturer": self.manufacturer,
                "model_name": self.model_name,
            },
            "omniclass": {
                "title": self.omniclass_title,
                "number": self.omniclass_number,
            },
        }
