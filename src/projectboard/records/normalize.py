# src/projectboard/records/normalize.py

"""
Normalization boundary between raw REST records and canonical records.

The remote store is loosely typed: ids come back as numbers or strings,
optional fields are missing, members may be absent. parse_* turns a raw record
into Ok(record) or Invalid(reason); everything past this module only sees
canonical records (string ids, defaulted optionals, ordered member tuples).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .models import Project, ProjectMember, Task, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(slots=True, frozen=True)
class Invalid:
    reason: str


ParseResult = Ok[T] | Invalid


@dataclass(frozen=True, slots=True)
class RecordDefaults:
    """Fallbacks for optional fields, resolved once here instead of at every call site."""

    text: str = ""
    description: str = ""
    image: str | None = None
    member_role: str = ""


DEFAULTS = RecordDefaults()


def canonical_id(raw: Any) -> str:
    """
    Decimal string form of an id.

    3 -> "3", 3.0 -> "3", " 7 " -> "7", None -> "".
    """
    if raw is None or isinstance(raw, bool):
        return ""
    if isinstance(raw, float):
        if raw != raw or raw in (float("inf"), float("-inf")):
            return ""
        return str(int(raw)) if raw.is_integer() else str(raw)
    if isinstance(raw, int):
        return str(raw)
    return str(raw).strip()


def _text(raw: Any, default: str) -> str:
    if raw is None:
        return default
    return raw if isinstance(raw, str) else str(raw)


def _members(raw: Any, defaults: RecordDefaults) -> tuple[ProjectMember, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    out: list[ProjectMember] = []
    for m in raw:
        if isinstance(m, ProjectMember):
            out.append(m)
            continue
        if not isinstance(m, Mapping):
            continue
        user_id = canonical_id(m.get("userId"))
        if not user_id:
            continue
        out.append(ProjectMember(user_id=user_id, role=_text(m.get("role"), defaults.member_role)))
    return tuple(out)


def parse_project(raw: Any, *, defaults: RecordDefaults = DEFAULTS) -> ParseResult[Project]:
    if isinstance(raw, Project):
        return Ok(raw)
    if not isinstance(raw, Mapping):
        return Invalid(f"project record is not an object: {type(raw).__name__}")
    pid = canonical_id(raw.get("id"))
    if not pid:
        return Invalid("project record has no id")

    image = raw.get("image")
    return Ok(
        Project(
            id=pid,
            name=_text(raw.get("name"), defaults.text),
            project_owner_id=canonical_id(raw.get("projectOwnerId")),
            description=_text(raw.get("description"), defaults.description),
            image=image if isinstance(image, str) and image else defaults.image,
            members=_members(raw.get("members"), defaults),
        )
    )


def parse_task(raw: Any, *, defaults: RecordDefaults = DEFAULTS) -> ParseResult[Task]:
    if isinstance(raw, Task):
        return Ok(raw)
    if not isinstance(raw, Mapping):
        return Invalid(f"task record is not an object: {type(raw).__name__}")
    tid = canonical_id(raw.get("id"))
    if not tid:
        return Invalid("task record has no id")

    return Ok(
        Task(
            id=tid,
            name=_text(raw.get("name"), defaults.text),
            assignee=canonical_id(raw.get("assignee")),
            status=_text(raw.get("status"), defaults.text),
            start_date=_text(raw.get("startDate"), defaults.text),
            end_date=_text(raw.get("endDate"), defaults.text),
            priority=_text(raw.get("priority"), defaults.text),
            progress=_text(raw.get("progress"), defaults.text),
            project_id=canonical_id(raw.get("projectId")),
        )
    )


def parse_user(raw: Any, *, defaults: RecordDefaults = DEFAULTS) -> ParseResult[User]:
    if isinstance(raw, User):
        return Ok(raw)
    if not isinstance(raw, Mapping):
        return Invalid(f"user record is not an object: {type(raw).__name__}")
    uid = canonical_id(raw.get("id"))
    if not uid:
        return Invalid("user record has no id")
    return Ok(
        User(
            id=uid,
            name=_text(raw.get("name"), defaults.text),
            email=_text(raw.get("email"), defaults.text),
            password=_text(raw.get("password"), defaults.text),
        )
    )


def _unwrap(result: ParseResult[T], kind: str) -> T | None:
    if isinstance(result, Invalid):
        logger.warning("Dropping invalid %s record: %s", kind, result.reason)
        return None
    return result.value


def normalize_project(raw: Any) -> Project | None:
    """Never raises: canonical project or None (reason logged)."""
    return _unwrap(parse_project(raw), "project")


def normalize_task(raw: Any) -> Task | None:
    return _unwrap(parse_task(raw), "task")


def normalize_user(raw: Any) -> User | None:
    return _unwrap(parse_user(raw), "user")


def parse_many(raw: Any, normalize: Callable[[Any], T | None]) -> list[T]:
    """Normalize a JSON array; non-lists become [] and invalid entries are skipped."""
    if not isinstance(raw, Iterable) or isinstance(raw, (str, bytes, Mapping)):
        return []
    out: list[T] = []
    for item in raw:
        rec = normalize(item)
        if rec is not None:
            out.append(rec)
    return out
