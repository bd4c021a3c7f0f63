# tests/test_normalize.py

from __future__ import annotations

import pytest

from projectboard.records.models import Project, ProjectMember
from projectboard.records.normalize import (
    Invalid,
    Ok,
    canonical_id,
    normalize_project,
    normalize_task,
    normalize_user,
    parse_many,
    parse_project,
    parse_task,
)

from .fakes import project_row, task_row


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(3, "3"), (3.0, "3"), (" 7 ", "7"), ("u12", "u12"), (None, ""), (True, ""), (float("nan"), "")],
)
def test_canonical_id(raw, expected) -> None:
    assert canonical_id(raw) == expected


def test_numeric_ids_become_strings() -> None:
    raw = project_row(5, "Alpha", 10, members=[(10, "Project Owner"), (11.0, "Dev")])
    p = normalize_project(raw)

    assert p is not None
    assert p.id == "5"
    assert p.project_owner_id == "10"
    assert p.members == (ProjectMember("10", "Project Owner"), ProjectMember("11", "Dev"))


def test_missing_optionals_get_defaults() -> None:
    p = normalize_project({"id": "1", "name": "Alpha", "projectOwnerId": "10"})
    assert p == Project(id="1", name="Alpha", project_owner_id="10", description="", image=None, members=())


def test_bad_member_entries_are_skipped() -> None:
    raw = {"id": 1, "projectOwnerId": 1, "members": [{"userId": 1, "role": "Project Owner"}, "x", {"role": "Dev"}]}
    p = normalize_project(raw)
    assert p is not None
    assert [m.user_id for m in p.members] == ["1"]


def test_normalize_is_idempotent() -> None:
    once = normalize_project(project_row(2, "Beta", 3))
    assert normalize_project(once) is once
    assert normalize_project(once.to_payload()) == once

    task = normalize_task(task_row(7, "Việc", project_id=2, assignee=3))
    assert task is not None
    assert (task.id, task.project_id, task.assignee) == ("7", "2", "3")
    assert normalize_task(task.to_payload()) == task


def test_parse_results_are_tagged() -> None:
    assert isinstance(parse_project(project_row("1", "Alpha", "10")), Ok)
    assert parse_project(["not", "a", "record"]) == Invalid("project record is not an object: list")
    assert isinstance(parse_task({"name": "no id"}), Invalid)


def test_invalid_records_normalize_to_none() -> None:
    assert normalize_project(None) is None
    assert normalize_task({"id": None}) is None
    assert normalize_user("someone") is None


def test_parse_many_skips_invalid_and_tolerates_non_lists() -> None:
    rows = [project_row("1", "Alpha", "10"), {"name": "no id"}, 42]
    assert [p.id for p in parse_many(rows, normalize_project)] == ["1"]
    assert parse_many(None, normalize_project) == []
    assert parse_many({"id": "1"}, normalize_project) == []


def test_user_public_shape_has_no_password() -> None:
    u = normalize_user({"id": 4, "name": "Hoa", "email": "hoa@example.com", "password": "secret"})
    assert u is not None
    assert u.password == "secret"
    assert u.public() == {"id": "4", "name": "Hoa", "email": "hoa@example.com"}
