# src/projectboard/records/models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

OWNER_ROLE = "Project Owner"
# Older records use this spelling too; both mark the owner entry.
OWNER_ROLE_ALIASES = frozenset({"Project Owner", "Project owner"})


class TaskStatus(StrEnum):
    """Canonical task statuses, in display order."""

    TODO = "To do"
    IN_PROGRESS = "In Progress"
    PENDING = "Pending"
    DONE = "Done"

    @classmethod
    def display_order(cls) -> list[TaskStatus]:
        return [cls.TODO, cls.IN_PROGRESS, cls.PENDING, cls.DONE]

    @classmethod
    def is_canonical(cls, raw: str | None) -> bool:
        return raw in cls._value2member_map_


class TaskPriority(StrEnum):
    LOW = "Thấp"
    MEDIUM = "Trung bình"
    HIGH = "Cao"


class TaskProgress(StrEnum):
    ON_SCHEDULE = "Đúng tiến độ"
    AT_RISK = "Có rủi ro"
    LATE = "Trễ hạn"


@dataclass(slots=True, frozen=True)
class User:
    id: str
    name: str
    email: str
    # passlib hash (or a legacy plaintext value from old records)
    password: str = ""

    def public(self) -> dict[str, str]:
        """Shape that is safe to keep in the session record (no credential)."""
        return {"id": self.id, "name": self.name, "email": self.email}

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email, "password": self.password}


@dataclass(slots=True, frozen=True)
class ProjectMember:
    user_id: str
    role: str

    @property
    def is_owner_role(self) -> bool:
        return self.role in OWNER_ROLE_ALIASES

    def to_payload(self) -> dict[str, Any]:
        return {"userId": self.user_id, "role": self.role}


@dataclass(slots=True, frozen=True)
class Project:
    id: str
    name: str
    project_owner_id: str
    description: str = ""
    image: str | None = None
    members: tuple[ProjectMember, ...] = field(default_factory=tuple)

    def is_owned_by(self, user_id: str | None) -> bool:
        return user_id is not None and self.project_owner_id == str(user_id)

    def has_member(self, user_id: str | None) -> bool:
        if user_id is None:
            return False
        uid = str(user_id)
        return any(m.user_id == uid for m in self.members)

    def is_owner_entry(self, member: ProjectMember) -> bool:
        return member.user_id == self.project_owner_id or member.is_owner_role

    def with_members(self, members: list[ProjectMember] | tuple[ProjectMember, ...]) -> Project:
        return replace(self, members=tuple(members))

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "projectOwnerId": self.project_owner_id,
            "members": [m.to_payload() for m in self.members],
        }


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    name: str
    assignee: str
    # Kept verbatim: a non-canonical value is not coerced (see views.pipeline.StatusBoard.hidden).
    status: str
    start_date: str
    end_date: str
    priority: str
    progress: str
    project_id: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "assignee": self.assignee,
            "status": self.status,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "priority": self.priority,
            "progress": self.progress,
            "projectId": self.project_id,
        }


@dataclass(slots=True, frozen=True)
class ProjectTask:
    """A task joined with its parent project's display fields (cross-project view)."""

    task: Task
    project_name: str
    project_image: str | None = None

    # Delegates used by the view pipeline.
    @property
    def id(self) -> str:
        return self.task.id

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def status(self) -> str:
        return self.task.status

    @property
    def end_date(self) -> str:
        return self.task.end_date

    @property
    def priority(self) -> str:
        return self.task.priority

    @property
    def project_id(self) -> str:
        return self.task.project_id


@dataclass(slots=True, frozen=True)
class MemberProfile:
    """A project member enriched with the user's display data."""

    user_id: str
    role: str
    name: str
    email: str = ""
