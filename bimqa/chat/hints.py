"""Lexical category hints — cheap keyword rules run before any inference.

The hint is only a suggestion: it may name a category the partition
does not have, and the pipeline ignores it in that case.
"""

from __future__ import annotations

import re
import unicodedata

from bimqa.ingest.mapping import strip_accents

# (category, accented/English pattern, unaccented pattern), ordered so that
# a more specific term is tried before the broader one containing it.
_HINT_RULES: list[tuple[str, re.Pattern[str], re.Pattern[str]]] = [
    ("Windows", re.compile(r"cửa sổ|\bwindows?\b"), re.compile(r"\bcua so\b|\bwindows?\b")),
    ("Doors", re.compile(r"\bcửa\b|\bdoors?\b"), re.compile(r"\bcua\b|\bdoors?\b")),
    ("Ducts", re.compile(r"ống gió|\bducts?\b"), re.compile(r"\bong gio\b|\bducts?\b")),
    ("Pipes", re.compile(r"\bống\b|\bpipes?\b"), re.compile(r"\bong\b|\bpipes?\b")),
    ("Walls", re.compile(r"\btường\b|\bwalls?\b"), re.compile(r"\btuong\b|\bwalls?\b")),
    ("Floors", re.compile(r"\bsàn\b|\bfloors?\b"), re.compile(r"\bsan\b|\bfloors?\b")),
    ("Columns", re.compile(r"\bcột\b|\bcolumns?\b"), re.compile(r"\bcot\b|\bcolumns?\b")),
    ("Beams", re.compile(r"\bdầm\b|\bbeams?\b"), re.compile(r"\bdam\b|\bbeams?\b")),
    ("Stairs", re.compile(r"cầu thang|\bstairs?\b"), re.compile(r"\bcau thang\b|\bstairs?\b")),
    ("Ceilings", re.compile(r"\btrần\b|\bceilings?\b"), re.compile(r"\btran\b|\bceilings?\b")),
    ("Roofs", re.compile(r"\bmái\b|\broofs?\b"), re.compile(r"\bmai\b|\broofs?\b")),
]


def match_category_hint(question: str) -> str | None:
    """Return the category suggested by keywords in *question*, or *None*.

    Unaccented rules apply only when the question was typed without
    diacritics, so ``"của"`` (of) is never read as ``"cửa"`` (door).
    """
    q = unicodedata.normalize("NFC", question or "").lower().strip()
    if not q:
        return None
    plain = strip_accents(q)
    typed_without_accents = plain == q
    for category, accented, unaccented in _HINT_RULES:
        if accented.search(q):
            return category
        if typed_without_accents and unaccented.search(plain):
            return category
    return None
