# tests/test_validation.py

import pytest

from questify.backend.domain import Level, TaskType, ValidationError
from questify.backend.validation import (
    CreateTaskSchema, EditTaskSchema, LoginSchema, RegisterSchema, parse, validate,
)

from conftest import EASY_TASK, JESSICA


def test_valid_register_payload_has_no_violations():
    assert validate(RegisterSchema, JESSICA) is None


def test_short_password_is_reported_with_path_and_kind():
    violations = validate(RegisterSchema, {**JESSICA, "password": "paswd"})

    assert len(violations) == 1
    v = violations[0]
    assert v.path == ["password"]
    assert v.type == "string_too_short"
    assert v.context["min_length"] == 6
    assert v.context["value"] == "paswd"
    assert '"password"' in v.message


def test_missing_fields_are_each_reported():
    violations = validate(LoginSchema, {})

    assert sorted(v.path[0] for v in violations) == ["email", "password"]
    assert {v.type for v in violations} == {"missing"}
    assert all("value" not in v.context for v in violations)


def test_empty_name_and_unknown_key_are_rejected():
    violations = validate(RegisterSchema, {**JESSICA, "name": "", "role": "admin"})

    kinds = {tuple(v.path): v.type for v in violations}
    assert kinds[("name",)] == "string_too_short"
    assert kinds[("role",)] == "extra_forbidden"


def test_non_object_payload_is_a_violation():
    violations = validate(LoginSchema, ["test@test.pl", "test111"])

    assert len(violations) == 1
    assert violations[0].path == []


def test_create_task_defaults_type_and_progress():
    task = parse(CreateTaskSchema, EASY_TASK)

    assert task.level is Level.EASY
    assert task.type is TaskType.TASK
    assert task.progress is False
    assert task.date.year == 2023


@pytest.mark.parametrize(
    "field, value",
    [
        ("level", "Trivial"),
        ("group", "work"),
        ("name", "short"),
        ("date", "not a date"),
        ("type", "QUEST"),
    ],
)
def test_create_task_rejects_bad_field(field, value):
    violations = validate(CreateTaskSchema, {**EASY_TASK, field: value})

    assert [v.path for v in violations] == [[field]]


def test_edit_task_accepts_partial_payload_and_reports_only_present_fields():
    patch = parse(EditTaskSchema, {"progress": True})

    assert patch.changes() == {"progress": True}
    assert parse(EditTaskSchema, {}).changes() == {}


def test_edit_task_applies_create_constraints_to_present_fields():
    violations = validate(EditTaskSchema, {"name": "tiny", "level": None})

    assert sorted(v.path[0] for v in violations) == ["level", "name"]


def test_parse_raises_domain_error_with_violation_list():
    with pytest.raises(ValidationError) as exc_info:
        parse(RegisterSchema, {"email": "x@y.z"})

    err = exc_info.value
    assert err.status_code == 400
    assert isinstance(err.message, list)
    assert {tuple(v["path"]) for v in err.message} == {("name",), ("password",)}
