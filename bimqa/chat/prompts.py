"""Prompt templates for the planner, value, answer, and general-knowledge steps."""

from __future__ import annotations

import json
from typing import Any

from bimqa.chat.catalog import CatalogSnapshot
from bimqa.config import (
    PROMPT_MAX_AREA_KEYS,
    PROMPT_MAX_CANDIDATES,
    PROMPT_MAX_CATEGORIES,
    PROMPT_MAX_SAMPLES,
)
from bimqa.models.element import Attribute

_ALLOWED_ATTRS = ", ".join(f'"{a.value}"' for a in Attribute)


def _bullets(values: list[str], cap: int) -> str:
    return "\n".join(f"- {v}" for v in values[:cap]) or "- (none)"


def intent_prompt(question: str, categories: list[str], hint: str | None) -> str:
    """Step 1: in-scope check, task, category, limit."""
    return f"""\
You are the PLANNER in a 3-step pipeline: Planner -> Query -> Answer.
The user question is usually in Vietnamese and is about a BIM model.

Step 1 (INTENT): decide whether the user wants data from the BIM database
or a general explanation. Return JSON with:
- intent: "bim" | "general"
- task: "count" | "distinct" | "group_count" | "sum_area" | "list"
- category: one of the provided categories, copied exactly, OR null
- limit: integer (default 20)
- notes: short string

Hints:
- "cửa" usually means Doors; "cửa sổ" means Windows.
- "bao nhiêu" (how many) => count.
- "liệt kê các loại" (list the types) => distinct.
- "theo tầng" (per level) => group_count.
- "diện tích" (area) => sum_area.

Choose the category ONLY from the list. If you are unsure, choose null.

Provided categories:
{_bullets(categories, PROMPT_MAX_CATEGORIES)}

Keyword hint category (may be wrong): {hint or "null"}

User question: {json.dumps(question, ensure_ascii=False)}"""


def parameter_prompt(
    question: str,
    plan_so_far: dict[str, Any],
    catalog: CatalogSnapshot,
) -> str:
    """Step 2: semantic flag, filter, target attribute, area key."""
    samples = "\n".join(
        f"- {attr.value}: [{', '.join(json.dumps(v, ensure_ascii=False) for v in values[:PROMPT_MAX_SAMPLES])}]"
        for attr, values in catalog.param_samples.items()
    ) or "- (none)"
    return f"""\
You are the PLANNER (Step 2: PARAMETERS) for a BIM database query.

Already decided:
{json.dumps(plan_so_far, ensure_ascii=False, indent=2)}

Choose the query parameters and return JSON with:
- useSemanticSearch: boolean (true if the question describes a concept or
  characteristic rather than naming a category or value)
- semanticQuery: string of keywords for semantic search, only if useSemanticSearch=true
- topK: integer, number of semantic candidates (default 100)
- filterParam: null OR one of {_ALLOWED_ATTRS}
- filterValue: null OR string, only if the question explicitly names a value
- targetParam: for task "distinct" or "group_count", one of the same list
- propsFlatKey: for task "sum_area", one key from areaKeys, or null if none fits
- limit: integer

Semantic search:
- true for "kết cấu" (structural), "thiết bị điện" (electrical equipment),
  "trong suốt" (transparent), "chịu lực" (load-bearing), or broad terms
  spanning several categories.
- false when the question names a category such as Doors, Windows, Walls.

Rules:
- count: usually no targetParam; filterParam only for "ở tầng ..." or "phòng ...".
- distinct: targetParam = "type_name" (preferred) or "family_name".
- group_count: targetParam follows the requested grouping (level, room, system...).
- sum_area: propsFlatKey must look like an area field.

paramSamples:
{samples}

areaKeys:
{_bullets(catalog.area_keys, PROMPT_MAX_AREA_KEYS)}

User question: {json.dumps(question, ensure_ascii=False)}"""


def value_prompt(question: str, attribute: str, candidates: list[str]) -> str:
    """Pick one real value for a filter attribute."""
    return f"""\
You help users retrieve building information from a BIM database.

Task: choose the ONE candidate value that best matches what the user
refers to. This is a classification task.
Output JSON: {{"value": <one exact value from the list or null>, "confidence": "high"|"medium"|"low", "reason": "..."}}
If nothing matches, set value to null.

Filter parameter: {attribute}

Candidate values:
{_bullets([str(c) for c in candidates], PROMPT_MAX_CANDIDATES)}

User question: {question}"""


def answer_prompt(
    question: str,
    catalog: CatalogSnapshot,
    plan: dict[str, Any],
    digest: str,
) -> str:
    """Step 3: phrase the query result as a short reply."""
    return f"""\
You are the ANSWER agent (Step 3). Use the query result to answer in the
language of the question (usually Vietnamese).

- Be short, correct, and answer the question directly.
- Use only the numbers and names in the result; do not invent data.
- count: state the number and the category.
- distinct / group_count: list the entries shown and say if more exist.
- sum_area: give the total and note that the unit depends on the model (usually m²).

Available categories (sample): {", ".join(catalog.categories[:15])}

Plan:
{json.dumps(plan, ensure_ascii=False, indent=2)}

Result:
{digest}

User question: {json.dumps(question, ensure_ascii=False)}"""


def general_prompt(question: str) -> str:
    """Out-of-scope questions: answer from general BIM/APS knowledge."""
    return f"""\
Bạn là trợ lý kỹ thuật BIM/APS. Hãy trả lời câu hỏi sau ngắn gọn, chính xác, bằng tiếng Việt.
Nếu cần, đưa ví dụ lệnh curl/PowerShell hoặc hướng dẫn kiểm tra nhanh.

Câu hỏi: {json.dumps(question, ensure_ascii=False)}"""
