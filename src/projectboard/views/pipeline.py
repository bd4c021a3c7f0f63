# src/projectboard/views/pipeline.py

"""
Task list view-model: filter -> sort -> group -> display order.

Everything here is a pure function over small in-memory collections.
Two shapes are produced:
- project-scoped: a StatusBoard with the four canonical status groups (always present)
- cross-project ("my tasks"): groups keyed by project, in order of first occurrence
"""

from __future__ import annotations

import functools
import math
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Protocol, TypeVar

from ..records.models import MemberProfile, ProjectTask, Task, TaskPriority, TaskStatus

UNASSIGNED_LABEL = "Chưa phân công"

PRIORITY_RANK: dict[str, int] = {
    TaskPriority.HIGH.value: 3,
    TaskPriority.MEDIUM.value: 2,
    TaskPriority.LOW.value: 1,
}


class SortKey(StrEnum):
    DEADLINE = "deadline"
    PRIORITY = "priority"

    @classmethod
    def parse(cls, raw: str | None) -> SortKey | None:
        """Case-insensitive; empty or unknown means "keep input order"."""
        key = (raw or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            return None


class _Sortable(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def end_date(self) -> str: ...

    @property
    def priority(self) -> str: ...

    @property
    def status(self) -> str: ...


RowT = TypeVar("RowT", bound=_Sortable)
NameResolver = Callable[[str], str]


# ---- filter ----


def filter_rows(
    rows: Iterable[RowT],
    search_term: str | None,
    haystack: Callable[[RowT], Iterable[str]],
) -> list[RowT]:
    """
    Keep rows where any haystack string contains the term (case-insensitive).

    A blank or whitespace-only term keeps everything in input order.
    """
    items = list(rows)
    needle = (search_term or "").strip().lower()
    if not needle:
        return items
    return [r for r in items if any(needle in (s or "").lower() for s in haystack(r))]


def member_name_resolver(members: Iterable[MemberProfile]) -> NameResolver:
    names = {m.user_id: m.name for m in members}

    def resolve(assignee_id: str) -> str:
        if not assignee_id:
            return UNASSIGNED_LABEL
        name = names.get(str(assignee_id))
        return name if name else f"User #{assignee_id}"

    return resolve


def filter_project_tasks(
    tasks: Iterable[Task], search_term: str | None, resolve_name: NameResolver
) -> list[Task]:
    return filter_rows(tasks, search_term, lambda t: (t.name, resolve_name(t.assignee)))


def filter_my_tasks(tasks: Iterable[ProjectTask], search_term: str | None) -> list[ProjectTask]:
    return filter_rows(tasks, search_term, lambda t: (t.name, t.project_name))


# ---- sort ----

_DATE_PARTS = re.compile(r"[/\-]")
_ISO_DATE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})")


def parse_date(raw: str | None) -> date | None:
    """
    Read a task date.

    Accepted: "DD/MM/YYYY", "DD-MM-YYYY", ISO "YYYY-MM-DD" (time suffix ignored).
    """
    s = (raw or "").strip()
    if not s:
        return None

    m = _ISO_DATE.match(s)
    if m:
        year, month, day = (int(p) for p in m.groups())
    else:
        parts = _DATE_PARTS.split(s)
        if len(parts) != 3:
            return None
        try:
            day, month, year = (int(p) for p in parts)
        except ValueError:
            return None

    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_deadline(raw: str | None) -> float:
    """Day ordinal of a deadline string, NaN when it cannot be read."""
    d = parse_date(raw)
    return float(d.toordinal()) if d is not None else math.nan


def _compare_deadline(a: _Sortable, b: _Sortable) -> int:
    da = parse_deadline(a.end_date)
    db = parse_deadline(b.end_date)
    # NaN on either side ranks as equal, so unreadable dates keep their place.
    if math.isnan(da) or math.isnan(db):
        return 0
    return (da > db) - (da < db)


def priority_rank(priority: str | None) -> int:
    return PRIORITY_RANK.get(priority or "", 0)


def sort_rows(rows: Sequence[RowT], sort_key: str | SortKey | None) -> list[RowT]:
    key = sort_key if isinstance(sort_key, SortKey) else SortKey.parse(sort_key)
    items = list(rows)
    if key is SortKey.DEADLINE:
        return sorted(items, key=functools.cmp_to_key(_compare_deadline))
    if key is SortKey.PRIORITY:
        return sorted(items, key=lambda r: -priority_rank(r.priority))
    return items


# ---- group ----


@dataclass(slots=True)
class TaskGroup:
    key: str
    label: str
    rows: list = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(slots=True)
class StatusBoard:
    """
    Project-scoped view: exactly the four canonical groups, in display order.

    `hidden` holds filtered tasks whose status is not canonical. They are not
    rendered in any group; they are listed here so callers can see they exist.
    """

    groups: list[TaskGroup]
    hidden: list = field(default_factory=list)

    def group(self, status: str | TaskStatus) -> TaskGroup:
        for g in self.groups:
            if g.key == str(status):
                return g
        raise KeyError(status)

    @property
    def total(self) -> int:
        return sum(len(g) for g in self.groups)


def group_by_status(rows: Iterable[RowT]) -> StatusBoard:
    buckets: dict[str, list[RowT]] = {}
    for r in rows:
        buckets.setdefault(r.status, []).append(r)

    groups = [
        TaskGroup(key=s.value, label=s.value, rows=buckets.pop(s.value, []))
        for s in TaskStatus.display_order()
    ]
    hidden = [r for rest in buckets.values() for r in rest]
    return StatusBoard(groups=groups, hidden=hidden)


def group_by_project(rows: Iterable[ProjectTask]) -> list[TaskGroup]:
    groups: dict[str, TaskGroup] = {}
    for r in rows:
        key = str(r.project_id)
        g = groups.get(key)
        if g is None:
            g = groups[key] = TaskGroup(key=key, label=r.project_name)
        g.rows.append(r)
    return list(groups.values())


# ---- full pipelines ----


def project_task_board(
    tasks: Iterable[Task],
    *,
    search_term: str | None = "",
    sort_key: str | SortKey | None = None,
    resolve_name: NameResolver | None = None,
) -> StatusBoard:
    """Rows for the project detail table."""
    resolve = resolve_name or member_name_resolver(())
    filtered = filter_project_tasks(tasks, search_term, resolve)
    return group_by_status(sort_rows(filtered, sort_key))


def my_task_groups(
    tasks: Iterable[ProjectTask],
    *,
    search_term: str | None = "",
    sort_key: str | SortKey | None = None,
) -> list[TaskGroup]:
    """Rows for the cross-project "my tasks" table."""
    filtered = filter_my_tasks(tasks, search_term)
    return group_by_project(sort_rows(filtered, sort_key))
