from __future__ import annotations

import math
from typing import Any

import orjson

from formcraft.errors import DuplicateSubmission, ValidationFailed
from formcraft.fields import AnswerKind, FieldType, field_label, first_field_of_type, read_answer
from formcraft.utils import dumps_json


def _has_non_finite(value: Any) -> bool:
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(_has_non_finite(item) for item in value.values())
    if isinstance(value, list):
        return any(_has_non_finite(item) for item in value)
    return False


def validate_payload_shape(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationFailed("Response data is required and must be an object")
    # both stores must be able to write the payload and read it back as JSON
    try:
        dumps_json(payload)
    except orjson.JSONEncodeError as exc:
        raise ValidationFailed(f"Response data cannot be stored: {exc}") from exc
    if _has_non_finite(payload):
        raise ValidationFailed("Response data must not contain NaN or infinite numbers")
    return payload


def find_missing_fields(form: dict[str, Any], payload: dict[str, Any]) -> list[str]:
    """Labels of required fields with no usable answer, in form field order.

    Presence is the only check: a rating outside its bounds or an option that is
    not in the field's list is still accepted.
    """
    missing: list[str] = []
    for field in form.get("fields", []):
        if not field.get("required"):
            continue
        if not read_answer(payload, field["id"]).is_present:
            missing.append(field_label(field))
    return missing


def validate_response(form: dict[str, Any], payload: dict[str, Any]) -> None:
    missing = find_missing_fields(form, payload)
    if missing:
        raise ValidationFailed(
            f"Missing required fields: {', '.join(missing)}",
            missing,
        )


def _normalized_email(value: Any) -> str:
    return str(value).strip().lower()


def check_duplicate(
    form: dict[str, Any],
    payload: dict[str, Any],
    existing: list[dict[str, Any]],
) -> None:
    """Reject a second response carrying the same address in the form's first email field."""
    if not form.get("prevent_duplicates"):
        return
    email_field = first_field_of_type(form.get("fields", []), FieldType.EMAIL)
    if email_field is None:
        return
    answer = read_answer(payload, email_field["id"])
    if answer.kind is not AnswerKind.TEXT or not answer.is_present:
        return
    candidate = _normalized_email(answer.value)
    for response in existing:
        previous = read_answer(response.get("response_data", {}), email_field["id"])
        if previous.kind is AnswerKind.TEXT and _normalized_email(previous.value) == candidate:
            raise DuplicateSubmission(
                f"A response with this {field_label(email_field)} has already been submitted",
                [field_label(email_field)],
            )
