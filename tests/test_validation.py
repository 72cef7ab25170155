from __future__ import annotations

import pytest

from formcraft.errors import DuplicateSubmission, ValidationFailed
from formcraft.validation import (
    check_duplicate,
    find_missing_fields,
    validate_payload_shape,
    validate_response,
)

FORM = {
    "id": "form1",
    "fields": [
        {"id": "f1", "type": "text", "label": "Name", "required": True},
        {"id": "f2", "type": "email", "label": "Email", "required": True},
        {"id": "f3", "type": "textarea", "label": "Comments", "required": False},
        {"id": "f4", "type": "checkbox", "label": "Topics", "required": True, "options": ["A", "B"]},
        {"id": "f5", "type": "rating", "label": "Score", "required": True, "minRating": 1, "maxRating": 5},
    ],
}


def test_empty_payload_lists_every_required_label_in_field_order():
    assert find_missing_fields(FORM, {}) == ["Name", "Email", "Topics", "Score"]


def test_null_and_empty_string_and_empty_list_count_as_missing():
    payload = {"f1": None, "f2": "", "f4": [], "f5": 3}
    assert find_missing_fields(FORM, payload) == ["Name", "Email", "Topics"]


def test_optional_fields_are_never_reported():
    payload = {"f1": "Ann", "f2": "a@b.c", "f4": ["A"], "f5": 4}
    assert find_missing_fields(FORM, payload) == []


def test_presence_is_the_only_check():
    # out-of-range rating and unknown option are accepted
    payload = {"f1": "Ann", "f2": "not-an-email", "f4": ["Z"], "f5": 99}
    validate_response(FORM, payload)


def test_validate_response_message_names_all_missing_labels():
    with pytest.raises(ValidationFailed) as info:
        validate_response(FORM, {"f1": "Ann"})
    assert info.value.message == "Missing required fields: Email, Topics, Score"
    assert info.value.errors == ["Email", "Topics", "Score"]


def test_required_text_scenario():
    form = {"id": "x", "fields": [{"id": "f1", "type": "text", "label": "Name", "required": True}]}
    with pytest.raises(ValidationFailed) as info:
        validate_response(form, {})
    assert "Name" in info.value.message
    validate_response(form, {"f1": "Alice"})


def test_stale_keys_are_tolerated():
    form = {"id": "x", "fields": [{"id": "f1", "type": "text", "label": "Name", "required": True}]}
    validate_response(form, {"f1": "Alice", "gone": "value"})


@pytest.mark.parametrize("payload", [None, "text", ["a"], 3])
def test_payload_must_be_an_object(payload):
    with pytest.raises(ValidationFailed):
        validate_payload_shape(payload)


def _dup_form(prevent: bool = True):
    return {
        "id": "form1",
        "prevent_duplicates": prevent,
        "fields": [
            {"id": "n", "type": "text", "label": "Name", "required": False},
            {"id": "e", "type": "email", "label": "Email", "required": False},
        ],
    }


def test_duplicate_email_is_rejected_case_insensitively():
    existing = [{"id": "r1", "response_data": {"e": "Ann@Example.com"}}]
    with pytest.raises(DuplicateSubmission):
        check_duplicate(_dup_form(), {"e": " ann@example.com "}, existing)


def test_duplicate_check_is_off_unless_enabled():
    existing = [{"id": "r1", "response_data": {"e": "ann@example.com"}}]
    check_duplicate(_dup_form(prevent=False), {"e": "ann@example.com"}, existing)


def test_duplicate_check_ignores_forms_without_email_field():
    form = {"id": "x", "prevent_duplicates": True, "fields": [{"id": "n", "type": "text", "label": "Name"}]}
    existing = [{"id": "r1", "response_data": {"n": "Ann"}}]
    check_duplicate(form, {"n": "Ann"}, existing)


def test_distinct_emails_pass_duplicate_check():
    existing = [{"id": "r1", "response_data": {"e": "ann@example.com"}}]
    check_duplicate(_dup_form(), {"e": "bob@example.com"}, existing)


@pytest.mark.parametrize(
    "payload",
    [{"f1": float("nan")}, {"f1": [float("inf")]}, {"f1": {"n": float("-inf")}}, {"f1": 10**400}],
)
def test_payload_must_be_storable_json(payload):
    with pytest.raises(ValidationFailed):
        validate_payload_shape(payload)
