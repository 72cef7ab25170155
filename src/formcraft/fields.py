from __future__ import annotations

from enum import Enum
from typing import Any, NamedTuple


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    RATING = "rating"
    FILE = "file"


FIELD_TYPES = {member.value for member in FieldType}
CHOICE_TYPES = {FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX}
FREE_TEXT_TYPES = {FieldType.TEXT, FieldType.TEXTAREA, FieldType.EMAIL}

DEFAULT_MIN_RATING = 1
DEFAULT_MAX_RATING = 5


class AnswerKind(str, Enum):
    ABSENT = "absent"
    NULL = "null"
    TEXT = "text"
    LIST = "list"


class Answer(NamedTuple):
    kind: AnswerKind
    value: Any = None

    @property
    def is_present(self) -> bool:
        if self.kind is AnswerKind.TEXT:
            return self.value != ""
        if self.kind is AnswerKind.LIST:
            return len(self.value) > 0
        return False

    def as_list(self) -> list[Any]:
        """Scalars become a one-item list so multi-choice logic can treat both alike."""
        if self.kind is AnswerKind.LIST:
            return [item for item in self.value if item not in (None, "")]
        if self.kind is AnswerKind.TEXT and self.value != "":
            return [self.value]
        return []


def read_answer(data: dict[str, Any], field_id: str) -> Answer:
    if field_id not in data:
        return Answer(AnswerKind.ABSENT)
    value = data[field_id]
    if value is None:
        return Answer(AnswerKind.NULL)
    if isinstance(value, (list, tuple)):
        return Answer(AnswerKind.LIST, list(value))
    return Answer(AnswerKind.TEXT, value)


def field_type_of(field: dict[str, Any]) -> FieldType:
    return FieldType(field["type"])


def field_label(field: dict[str, Any]) -> str:
    return field.get("label") or field.get("id") or ""


def first_field_of_type(
    fields: list[dict[str, Any]], field_type: FieldType
) -> dict[str, Any] | None:
    for field in fields:
        if field.get("type") == field_type.value:
            return field
    return None
