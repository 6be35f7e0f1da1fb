"""Answer synthesis — phrase a query result as a short natural-language reply."""

from __future__ import annotations

import logging

from bimqa.chat import prompts
from bimqa.chat.catalog import CatalogSnapshot
from bimqa.chat.plan import (
    CountResult,
    DistinctResult,
    GroupCountResult,
    ListResult,
    QueryPlan,
    QueryResult,
    SumAreaResult,
    result_is_empty,
)
from bimqa.config import ANSWER_MAX_ENTRIES
from bimqa.providers.client import InferenceClient

logger = logging.getLogger(__name__)


def _more(total: int) -> str:
    extra = total - ANSWER_MAX_ENTRIES
    return f"\n(... và {extra} mục khác)" if extra > 0 else ""


def _fmt_number(value: float) -> str:
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def summarize_result(plan: QueryPlan, result: QueryResult) -> str:
    """Deterministic text digest of *result*, bounded to a few entries."""
    scope = plan.category or "tất cả cấu kiện"
    if plan.filter_attr is not None and plan.filter_value:
        scope += f" ({plan.filter_attr.value} = {plan.filter_value})"

    if isinstance(result, CountResult):
        return f"count: {result.count} [{scope}]"

    if isinstance(result, DistinctResult):
        shown = "\n".join(f"- {v}" for v in result.values[:ANSWER_MAX_ENTRIES])
        return f"distinct {result.field} [{scope}]: {len(result.values)}\n{shown}{_more(len(result.values))}"

    if isinstance(result, GroupCountResult):
        shown = "\n".join(f"- {r.value}: {r.count}" for r in result.rows[:ANSWER_MAX_ENTRIES])
        return f"group_count by {result.field} [{scope}]\n{shown}{_more(len(result.rows))}"

    if isinstance(result, SumAreaResult):
        return (
            f"sum_area {result.key} [{scope}]: {_fmt_number(result.total)} "
            f"(from {result.contributing} elements, {result.skipped} skipped; "
            "unit depends on the model, usually m²)"
        )

    if isinstance(result, ListResult):
        lines = []
        for doc in result.docs[:ANSWER_MAX_ENTRIES]:
            basic = doc.get("basic") or {}
            level = (doc.get("location") or {}).get("level_number")
            line = f"- [{doc.get('dbId')}] {doc.get('name') or basic.get('type_name') or '?'}"
            if level:
                line += f" @ {level}"
            lines.append(line)
        return f"list [{scope}]: {len(result.docs)}\n" + "\n".join(lines) + _more(len(result.docs))

    return str(result)


def not_found_answer(plan: QueryPlan) -> str:
    """Reply used when the query matched nothing."""
    suggestions = [
        "Kiểm tra lại tên phòng, tầng hoặc hệ thống (viết đúng như trong mô hình).",
        "Bỏ bớt điều kiện lọc, ví dụ chỉ hỏi theo loại cấu kiện.",
    ]
    if plan.category:
        suggestions.append(f"Thử hỏi: \"Liệt kê các loại {plan.category}\" để xem giá trị có sẵn.")
    else:
        suggestions.append("Nêu rõ loại cấu kiện, ví dụ: cửa, cửa sổ, tường, ống gió.")
    body = "\n".join(f"- {s}" for s in suggestions)
    return f"Không tìm thấy phần tử nào phù hợp với câu hỏi.\nBạn có thể thử:\n{body}"


def synthesize_answer(
    client: InferenceClient,
    question: str,
    catalog: CatalogSnapshot,
    plan: QueryPlan,
    result: QueryResult,
) -> str:
    """Short reply for *question* built from *result*.

    Empty results are answered without calling the inference service.
    """
    if result_is_empty(result):
        return not_found_answer(plan)
    digest = summarize_result(plan, result)
    prompt = prompts.answer_prompt(
        question, catalog, plan.model_dump(mode="json", exclude={"urn"}), digest,
    )
    return client.infer_text(prompt)
