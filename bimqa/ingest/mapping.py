"""Field mapping — locate logical columns inside flattened viewer properties.

Property keys vary between authoring tools and locales, so each logical
column is found by trying a list of keywords against normalized keys.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

from bimqa.models.element import PropertyMap

# Logical column -> keywords, most specific first
FIELD_KEYWORDS: dict[str, list[str]] = {
    "component_type": [
        "component_type", "category", "revit category", "category name",
    ],
    "type_name": ["type name", "type", "identity data.type name", "typename"],
    "family_name": ["family name", "family", "identity data.family name", "familyname"],
    "is_asset": ["is_asset", "is facility asset", "facility asset", "asset"],
    "level_number": ["level_number", "level name", "base level", "reference level", "level", "story"],
    "room_type": ["room type", "space type"],
    "room_name": ["room_name", "room name", "space name", "room", "space"],
    "system_type": ["system_type", "system type"],
    "system_name": ["system_name", "system name", "system"],
    "manufacturer": ["manufacturer", "mfr", "make"],
    "model_name": ["model_name", "model name", "model"],
    "specification": ["specification", "spec", "description", "comments"],
    "omniclass_title": ["omniclass title"],
    "omniclass_number": ["omniclass number", "omniclass no", "omniclass code"],
    "element_id": ["elementid", "element id", "revit element id"],
}

# Revit category label -> normalized category
CATEGORY_MAP: dict[str, str] = {
    # Structural
    "revit walls": "Walls",
    "revit structural columns": "Columns",
    "revit structural framing": "Beams",
    "revit structural foundations": "Foundations",
    "revit structural rebar": "Reinforcement",
    "revit floors": "Floors",
    "revit ceilings": "Ceilings",
    "revit roofs": "Roofs",
    # Architectural
    "revit doors": "Doors",
    "revit windows": "Windows",
    "revit curtain panels": "Curtain Panels",
    "revit curtain wall mullions": "Curtain Mullions",
    "revit wall sweeps": "Wall Sweeps",
    "revit stairs": "Stairs",
    "revit railings": "Railings",
    # MEP
    "revit pipes": "Pipes",
    "revit pipe fittings": "Pipe Fittings",
    "revit pipe accessories": "Pipe Accessories",
    "revit ducts": "Ducts",
    "revit duct fittings": "Duct Fittings",
    "revit mechanical equipment": "Mechanical Equipment",
    "revit plumbing fixtures": "Plumbing Fixtures",
    "revit lighting fixtures": "Lighting Fixtures",
    "revit electrical fixtures": "Electrical Fixtures",
    "revit electrical equipment": "Electrical Equipment",
    # Other
    "revit furniture": "Furniture",
    "revit casework": "Casework",
    "revit specialty equipment": "Specialty Equipment",
    "revit generic models": "Generic Models",
}

# Category inference from free text, ordered by specificity
_CATEGORY_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("Windows", re.compile(r"window|cửa sổ|cua so", re.I)),
    ("Doors", re.compile(r"door|cửa|cua", re.I)),
    ("Walls", re.compile(r"wall|tường|tuong", re.I)),
    ("Floors", re.compile(r"floor|sàn|\bsan\b", re.I)),
    ("Ceilings", re.compile(r"ceiling|trần|\btran\b", re.I)),
    ("Columns", re.compile(r"column|cột|\bcot\b", re.I)),
    ("Beams", re.compile(r"beam|dầm|\bdam\b", re.I)),
    ("Roofs", re.compile(r"roof|mái|\bmai\b", re.I)),
    ("Stairs", re.compile(r"stair|cầu thang|cau thang", re.I)),
    ("Railings", re.compile(r"railing|lan can", re.I)),
    ("Ducts", re.compile(r"duct|ống gió|ong gio", re.I)),
    ("Pipes", re.compile(r"pipe|ống|\bong\b", re.I)),
    ("Lighting Fixtures", re.compile(r"lighting|đèn|\bden\b", re.I)),
    ("Rooms", re.compile(r"room|phòng|\bphong\b", re.I)),
]

_RX_SEPARATORS = re.compile(r"[_\-]+")
_RX_NON_WORD = re.compile(r"[^\w]+")
_RX_SPACES = re.compile(r"\s+")
_RX_REVIT_PREFIX = re.compile(r"^revit\s+(.+)$")


def strip_accents(text: str) -> str:
    """Remove Vietnamese diacritics: ``"cửa sổ"`` -> ``"cua so"``."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return stripped.replace("đ", "d").replace("Đ", "D")


def normalize_key(s: Any) -> str:
    """Lower-case, turn separators and punctuation into single spaces."""
    text = str(s or "").lower()
    text = _RX_SEPARATORS.sub(" ", text)
    text = _RX_NON_WORD.sub(" ", text)
    return _RX_SPACES.sub(" ", text).strip()


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def find_in_flat(flat: PropertyMap, keywords: list[str]) -> Any:
    """First non-empty value whose normalized key contains a keyword.

    Keywords are tried in order; for each keyword all keys are scanned
    before moving on to the next one.
    """
    entries = [(normalize_key(k), v) for k, v in flat.items() if not is_empty(v)]
    if not entries:
        return None
    for kw in keywords:
        kw_n = normalize_key(kw)
        if not kw_n:
            continue
        for key_n, value in entries:
            if kw_n in key_n:
                return value
    return None


def find_field(flat: PropertyMap, field: str) -> Any:
    """:func:`find_in_flat` with the keyword list registered for *field*."""
    return find_in_flat(flat, FIELD_KEYWORDS[field])


def normalize_category(raw: Any) -> str | None:
    """Map a raw category label onto the normalized vocabulary.

    ``"Revit Doors"`` -> ``"Doors"``; unknown ``"Revit Xyz Abc"`` labels
    are title-cased without the prefix; anything else is returned trimmed.
    """
    if is_empty(raw):
        return None
    text = str(raw).strip()
    lower = _RX_SPACES.sub(" ", text.lower())
    if lower in CATEGORY_MAP:
        return CATEGORY_MAP[lower]
    m = _RX_REVIT_PREFIX.match(lower)
    if m:
        return " ".join(w[:1].upper() + w[1:] for w in m.group(1).split(" "))
    return text


def infer_category(*texts: Any) -> str | None:
    """Guess a category from type/family/element names."""
    combined = " ".join(str(t) for t in texts if t).lower()
    if not combined:
        return None
    candidates = (combined, strip_accents(combined))
    for category, pattern in _CATEGORY_PATTERNS:
        if any(pattern.search(c) for c in candidates):
            return category
    return None
