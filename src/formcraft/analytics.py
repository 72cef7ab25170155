"""Per-field statistics over every stored response of a form.

The aggregation is a read-side projection recomputed on each call: responses are
scanned once per field and nothing is cached or written back.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Callable

from formcraft.fields import Answer, FieldType, field_type_of, read_answer
from formcraft.utils import parse_dt

Summarizer = Callable[[dict[str, Any], list[Answer]], dict[str, Any]]


def _key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ", ".join(_key(item) for item in value)
    return str(value)


def _round_half_up(value: float) -> float:
    scaled = value * 100
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled + 0.5) / 100


def percentages(distribution: dict[str, int], denominator: int) -> dict[str, float]:
    return {
        key: _round_half_up(count / denominator * 100) if denominator > 0 else 0
        for key, count in distribution.items()
    }


def _count(keys: list[str]) -> dict[str, int]:
    distribution: dict[str, int] = {}
    for key in keys:
        distribution[key] = distribution.get(key, 0) + 1
    return distribution


def _with_percentages(distribution: dict[str, int], answers: list[Answer]) -> dict[str, Any]:
    return {
        "distribution": distribution,
        "distributionPercentages": percentages(distribution, len(answers)),
    }


def _summarize_single_choice(field: dict[str, Any], answers: list[Answer]) -> dict[str, Any]:
    distribution = _count([_key(answer.value) for answer in answers])
    return _with_percentages(distribution, answers)


def _summarize_multi_choice(field: dict[str, Any], answers: list[Answer]) -> dict[str, Any]:
    # each ticked option counts once, so percentages can add up past 100
    keys = [_key(item) for answer in answers for item in answer.as_list()]
    return _with_percentages(_count(keys), answers)


def _summarize_free_text(field: dict[str, Any], answers: list[Answer]) -> dict[str, Any]:
    return {"responses": [answer.value for answer in answers]}


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).strip())
    except (ValueError, OverflowError):
        return None
    # NaN and infinities cannot be encoded in a JSON reply
    return number if math.isfinite(number) else None


def _compact(number: float) -> int | float:
    return int(number) if number.is_integer() else number


def _summarize_rating(field: dict[str, Any], answers: list[Answer]) -> dict[str, Any]:
    numbers = [n for n in (_as_number(answer.value) for answer in answers) if n is not None]
    distribution = _count([_key(number) for number in numbers])
    summary = _with_percentages(distribution, answers)
    # dividing first keeps the sum of large ratings finite
    mean = sum(n / len(numbers) for n in numbers) if numbers else None
    summary["average"] = _round_half_up(mean) if mean is not None else None
    summary["min"] = _compact(min(numbers)) if numbers else None
    summary["max"] = _compact(max(numbers)) if numbers else None
    return summary


def _as_date(value: Any) -> date | None:
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _summarize_date(field: dict[str, Any], answers: list[Answer]) -> dict[str, Any]:
    days = sorted(d for d in (_as_date(answer.value) for answer in answers) if d is not None)
    return {
        "earliest": days[0].isoformat() if days else None,
        "latest": days[-1].isoformat() if days else None,
        "distribution": _count([day.isoformat() for day in days]),
    }


def _summarize_file(field: dict[str, Any], answers: list[Answer]) -> dict[str, Any]:
    return {"files": [str(item) for answer in answers for item in answer.as_list()]}


_SUMMARIZERS: dict[FieldType, Summarizer] = {
    FieldType.TEXT: _summarize_free_text,
    FieldType.TEXTAREA: _summarize_free_text,
    FieldType.EMAIL: _summarize_free_text,
    FieldType.SELECT: _summarize_single_choice,
    FieldType.RADIO: _summarize_single_choice,
    FieldType.CHECKBOX: _summarize_multi_choice,
    FieldType.RATING: _summarize_rating,
    FieldType.DATE: _summarize_date,
    FieldType.FILE: _summarize_file,
}

_unhandled = set(FieldType) - set(_SUMMARIZERS)
if _unhandled:
    raise RuntimeError(
        "No analytics summarizer for field types: "
        + ", ".join(sorted(t.value for t in _unhandled))
    )


def _submission_order(responses: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(
        responses,
        key=lambda item: (parse_dt(item.get("submitted_at")), item.get("id", "")),
    )


def summarize_field(field: dict[str, Any], responses: list[dict[str, Any]]) -> dict[str, Any]:
    field_type = field_type_of(field)
    answers = [
        answer
        for answer in (read_answer(r.get("response_data", {}), field["id"]) for r in responses)
        if answer.is_present
    ]
    stats: dict[str, Any] = {
        "fieldId": field["id"],
        "label": field.get("label", ""),
        "type": field_type.value,
        "responseCount": len(answers),
    }
    stats.update(_SUMMARIZERS[field_type](field, answers))
    return stats


def aggregate(form: dict[str, Any], responses: list[dict[str, Any]]) -> dict[str, Any]:
    ordered = _submission_order(responses)
    return {
        "formId": form["id"],
        "formTitle": form.get("title", ""),
        "responseCount": len(responses),
        "fieldStatistics": [summarize_field(field, ordered) for field in form.get("fields", [])],
    }
