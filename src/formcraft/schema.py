from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator

from formcraft.config import (
    DESCRIPTION_MAX_LENGTH,
    FIELD_ID_PATTERN,
    PURPOSE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
)
from formcraft.errors import ValidationFailed
from formcraft.fields import (
    CHOICE_TYPES,
    DEFAULT_MAX_RATING,
    DEFAULT_MIN_RATING,
    FIELD_TYPES,
    FieldType,
)
from formcraft.utils import generate_field_id, now_utc, to_iso

FIELD_LIST_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["type"],
        "properties": {
            "id": {"type": ["string", "null"]},
            "type": {"type": "string", "enum": sorted(FIELD_TYPES)},
            "label": {"type": ["string", "null"]},
            "placeholder": {"type": ["string", "null"]},
            "required": {"type": ["boolean", "null"]},
            "options": {"type": ["array", "null"], "items": {"type": ["string", "null"]}},
            "minRating": {"type": ["integer", "null"]},
            "maxRating": {"type": ["integer", "null"]},
            "acceptedFileTypes": {"type": ["string", "null"]},
            "maxFileSize": {"type": ["number", "null"]},
            "order": {"type": ["integer", "null"]},
        },
    },
}

_FIELD_LIST_VALIDATOR = Draft7Validator(FIELD_LIST_SCHEMA)


def _structure_errors(raw_fields: Any) -> tuple[list[str], set[int]]:
    messages: list[str] = []
    broken: set[int] = set()
    for error in sorted(_FIELD_LIST_VALIDATOR.iter_errors(raw_fields), key=lambda err: list(err.path)):
        path = list(error.path)
        if path and isinstance(path[0], int):
            broken.add(path[0])
            attribute = f" ({path[1]})" if len(path) > 1 else ""
            messages.append(f"Field {path[0] + 1}{attribute}: {error.message}")
        else:
            messages.append(f"fields: {error.message}")
    return messages, broken


def parse_fields(raw_fields: Any) -> tuple[list[dict[str, Any]], list[str]]:
    """Normalize an incoming field list.

    Every problem is collected rather than stopping at the first one. Fields are
    named by label in the messages, or by 1-based position when the label is blank.
    """
    if raw_fields is None:
        return [], []
    errors, broken = _structure_errors(raw_fields)
    if not isinstance(raw_fields, list):
        return [], errors

    seen_ids: set[str] = {
        str(raw.get("id")).strip()
        for raw in raw_fields
        if isinstance(raw, dict) and raw.get("id")
    }
    assigned: set[str] = set()
    fields: list[dict[str, Any]] = []

    for index, raw in enumerate(raw_fields):
        if index in broken or not isinstance(raw, dict):
            continue
        label = str(raw.get("label") or "").strip()
        name = label or f"Field {index + 1}"
        if not label:
            errors.append(f"Field {index + 1}: label is required")

        field_id = str(raw.get("id") or "").strip()
        if not field_id:
            field_id = generate_field_id(seen_ids | assigned)
        elif not FIELD_ID_PATTERN.match(field_id):
            errors.append(f"{name}: id may only contain letters, digits, '_' and '-'")
        if field_id in assigned:
            errors.append(f"{name}: duplicate field id ({field_id})")
        assigned.add(field_id)

        field_type = FieldType(raw["type"])
        field: dict[str, Any] = {
            "id": field_id,
            "type": field_type.value,
            "label": label,
            "required": bool(raw.get("required")),
        }
        placeholder = str(raw.get("placeholder") or "").strip()
        if placeholder:
            field["placeholder"] = placeholder

        if field_type in CHOICE_TYPES:
            options = [
                str(option).strip()
                for option in (raw.get("options") or [])
                if option is not None and str(option).strip()
            ]
            if not options:
                errors.append(f"{name}: at least one option is required")
            field["options"] = options
        elif field_type is FieldType.RATING:
            min_rating = raw.get("minRating")
            max_rating = raw.get("maxRating")
            min_rating = DEFAULT_MIN_RATING if min_rating is None else min_rating
            max_rating = DEFAULT_MAX_RATING if max_rating is None else max_rating
            if min_rating >= max_rating:
                errors.append(f"{name}: minRating must be lower than maxRating")
            field["minRating"] = min_rating
            field["maxRating"] = max_rating
        elif field_type is FieldType.FILE:
            accepted = str(raw.get("acceptedFileTypes") or "").strip()
            if accepted:
                field["acceptedFileTypes"] = accepted
            max_size = raw.get("maxFileSize")
            if max_size is not None:
                if max_size <= 0:
                    errors.append(f"{name}: maxFileSize must be positive")
                field["maxFileSize"] = max_size

        fields.append(field)

    return normalize_field_order(fields), errors


def normalize_field_order(fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
    for index, field in enumerate(fields):
        field["order"] = index
    return fields


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return str(value).strip() if value is not None else ""


def validate_form_payload(payload: Any, partial: bool = False) -> dict[str, Any]:
    """Check a create/update body and return the storage-shaped updates.

    With ``partial`` only the keys present in the payload are checked and returned.
    """
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object")

    errors: list[str] = []
    updates: dict[str, Any] = {}

    if not partial or "title" in payload:
        title = _text(payload, "title")
        if not title:
            errors.append("Title is required")
        elif len(title) > TITLE_MAX_LENGTH:
            errors.append(f"Title must be at most {TITLE_MAX_LENGTH} characters")
        updates["title"] = title

    for key, limit in (("description", DESCRIPTION_MAX_LENGTH), ("purpose", PURPOSE_MAX_LENGTH)):
        if not partial or key in payload:
            value = _text(payload, key)
            if len(value) > limit:
                errors.append(f"{key.capitalize()} must be at most {limit} characters")
            updates[key] = value

    if not partial or "fields" in payload:
        fields, field_errors = parse_fields(payload.get("fields"))
        errors.extend(field_errors)
        updates["fields"] = fields

    if not partial or "preventDuplicates" in payload:
        updates["prevent_duplicates"] = bool(payload.get("preventDuplicates"))

    if errors:
        raise ValidationFailed("Form validation failed: " + "; ".join(errors), errors)
    return updates


def suggestion_to_field(suggestion: dict[str, Any]) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "type": suggestion.get("fieldType") or suggestion.get("type") or FieldType.TEXT.value,
        "label": suggestion.get("label"),
        "required": bool(suggestion.get("required")),
    }
    if suggestion.get("placeholder"):
        raw["placeholder"] = suggestion["placeholder"]
    if suggestion.get("options"):
        raw["options"] = suggestion["options"]
    for key in ("minRating", "maxRating", "acceptedFileTypes", "maxFileSize"):
        if suggestion.get(key) is not None:
            raw[key] = suggestion[key]
    return raw


def merge_suggested_fields(
    fields: list[dict[str, Any]], suggestions: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Append suggested fields after the existing ones; suggestions always get fresh ids."""
    combined = [dict(field) for field in fields]
    combined.extend(suggestion_to_field(item) for item in suggestions)
    merged, errors = parse_fields(combined)
    if errors:
        raise ValidationFailed("Suggested fields are invalid: " + "; ".join(errors), errors)
    return merged


def sanitize_form_output(form: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": form["id"],
        "userId": form.get("user_id"),
        "title": form.get("title", ""),
        "description": form.get("description", ""),
        "purpose": form.get("purpose", ""),
        "fields": form.get("fields", []),
        "publishStatus": form.get("publish_status", "draft"),
        "shareableUrl": form.get("shareable_url") or None,
        "preventDuplicates": bool(form.get("prevent_duplicates")),
        "createdAt": to_iso(form.get("created_at") or now_utc()),
        "updatedAt": to_iso(form.get("updated_at") or now_utc()),
    }


def sanitize_response_output(response: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": response["id"],
        "formId": response["form_id"],
        "responseData": response.get("response_data", {}),
        "submittedAt": to_iso(response.get("submitted_at") or now_utc()),
    }
