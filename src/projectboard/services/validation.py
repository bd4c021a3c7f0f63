# src/projectboard/services/validation.py

"""
Form validation.

Each validate_* returns a {field: message} dict (empty when valid); the
services raise ValidationError with it before touching the network.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from ..records.models import Project, Task, TaskPriority, TaskProgress, TaskStatus
from ..views.pipeline import parse_date

# Login/register accept anything shaped like a@b.c; member invites are stricter.
_LOOSE_EMAIL = re.compile(r"\S+@\S+\.\S+")
_STRICT_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PROJECT_NAME_MIN = 4
PROJECT_DESCRIPTION_MIN = 8
TASK_NAME_MIN, TASK_NAME_MAX = 3, 50
MEMBER_EMAIL_MIN, MEMBER_EMAIL_MAX = 10, 50
MEMBER_ROLE_MIN, MEMBER_ROLE_MAX = 2, 50
PASSWORD_MIN = 8


def _same_name(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def validate_login(email: str, password: str) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not email.strip():
        errors["email"] = "Vui lòng nhập email"
    elif not _LOOSE_EMAIL.search(email):
        errors["email"] = "Email không hợp lệ"
    if not password:
        errors["password"] = "Vui lòng nhập mật khẩu"
    return errors


def validate_registration(name: str, email: str, password: str, confirm_password: str) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not name.strip():
        errors["name"] = "Vui lòng nhập họ và tên"

    if not email.strip():
        errors["email"] = "Vui lòng nhập email"
    elif not _LOOSE_EMAIL.search(email):
        errors["email"] = "Email không hợp lệ"

    if not password:
        errors["password"] = "Vui lòng nhập mật khẩu"
    elif len(password) < PASSWORD_MIN:
        errors["password"] = f"Mật khẩu phải ít nhất {PASSWORD_MIN} ký tự"

    if not confirm_password:
        errors["confirmPassword"] = "Vui lòng xác nhận mật khẩu"
    elif confirm_password != password:
        errors["confirmPassword"] = "Mật khẩu xác nhận không khớp"
    return errors


def validate_project_form(
    name: str,
    description: str,
    *,
    owner_id: str,
    existing: Iterable[Project],
    editing_id: str | None = None,
) -> dict[str, str]:
    """Name must be unique (trimmed, case-insensitive) among the owner's projects."""
    errors: dict[str, str] = {}
    clean_name = name.strip()
    if not clean_name:
        errors["name"] = "Tên dự án không được để trống"
    elif len(clean_name) < PROJECT_NAME_MIN:
        errors["name"] = f"Tên dự án phải có ít nhất {PROJECT_NAME_MIN} ký tự"
    elif any(
        p.is_owned_by(owner_id) and p.id != editing_id and _same_name(p.name, clean_name)
        for p in existing
    ):
        errors["name"] = "Tên dự án đã tồn tại"

    clean_desc = description.strip()
    if not clean_desc:
        errors["description"] = "Mô tả không được để trống"
    elif len(clean_desc) < PROJECT_DESCRIPTION_MIN:
        errors["description"] = f"Mô tả phải có ít nhất {PROJECT_DESCRIPTION_MIN} ký tự"
    return errors


def validate_member_form(email: str, role: str) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not email.strip():
        errors["email"] = "Email không được để trống"
    elif not MEMBER_EMAIL_MIN <= len(email) <= MEMBER_EMAIL_MAX:
        errors["email"] = f"Email phải có độ dài từ {MEMBER_EMAIL_MIN} đến {MEMBER_EMAIL_MAX} ký tự"
    elif not _STRICT_EMAIL.match(email):
        errors["email"] = "Email không đúng định dạng"

    clean_role = role.strip()
    if not clean_role:
        errors["role"] = "Vai trò không được để trống"
    elif not MEMBER_ROLE_MIN <= len(clean_role) <= MEMBER_ROLE_MAX:
        errors["role"] = f"Vai trò phải có độ dài từ {MEMBER_ROLE_MIN} đến {MEMBER_ROLE_MAX} ký tự"
    return errors


@dataclass(slots=True, frozen=True)
class TaskDraft:
    """Task form input. id is set when editing."""

    name: str
    assignee: str
    status: str
    start_date: str
    end_date: str
    priority: str
    progress: str
    id: str | None = None


def validate_task_form(
    draft: TaskDraft,
    *,
    existing: Iterable[Task],
    today: date | None = None,
) -> dict[str, str]:
    errors: dict[str, str] = {}
    today = today or date.today()
    clean_name = draft.name.strip()

    if not clean_name:
        errors["name"] = "Tên nhiệm vụ không được để trống"
    elif not TASK_NAME_MIN <= len(clean_name) <= TASK_NAME_MAX:
        errors["name"] = f"Tên nhiệm vụ phải có độ dài từ {TASK_NAME_MIN} đến {TASK_NAME_MAX} ký tự"

    if not draft.assignee.strip():
        errors["assignee"] = "Chọn người phụ trách"

    if not draft.status:
        errors["status"] = "Chọn trạng thái"
    elif not TaskStatus.is_canonical(draft.status):
        errors["status"] = "Trạng thái không hợp lệ"

    if not draft.priority:
        errors["priority"] = "Chọn độ ưu tiên"
    elif draft.priority not in TaskPriority._value2member_map_:
        errors["priority"] = "Độ ưu tiên không hợp lệ"

    if not draft.progress:
        errors["progress"] = "Chọn tiến độ"
    elif draft.progress not in TaskProgress._value2member_map_:
        errors["progress"] = "Tiến độ không hợp lệ"

    if clean_name and any(
        _same_name(t.name, clean_name) and t.id != draft.id for t in existing
    ):
        errors["name"] = "Tên nhiệm vụ đã tồn tại trong dự án này."

    start = parse_date(draft.start_date)
    end = parse_date(draft.end_date)
    if not draft.start_date:
        errors["startDate"] = "Chọn ngày bắt đầu"
    elif start is None:
        errors["startDate"] = "Ngày bắt đầu không hợp lệ"
    elif start < today:
        errors["startDate"] = "Ngày bắt đầu phải lớn hơn ngày hiện tại"

    if not draft.end_date:
        errors["endDate"] = "Chọn hạn cuối"
    elif end is None:
        errors["endDate"] = "Hạn chót không hợp lệ"
    elif start is not None and end <= start:
        errors["endDate"] = "Hạn chót phải lớn hơn ngày bắt đầu"
    return errors
