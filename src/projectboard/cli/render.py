# src/projectboard/cli/render.py

"""Plain-text rendering of the computed views for the console connector."""

from __future__ import annotations

from collections.abc import Sequence

from ..records.models import MemberProfile, Project, ProjectTask, Task
from ..views.pipeline import NameResolver, StatusBoard, TaskGroup
from ..views.projects import ProjectPage


def render_project_page(page: ProjectPage, *, search_term: str = "") -> str:
    title = "Danh Sách Dự Án"
    if search_term.strip():
        title += f' (tìm: "{search_term.strip()}")'
    lines = [title]
    if not page.rows:
        lines.append("  (không có dự án)")
    for p in page.rows:
        lines.append(f"  [{p.id}] {p.name}")
    lines.append(f"Trang {page.page}/{page.total_pages} · {page.total_items} dự án")
    return "\n".join(lines)


def render_project(project: Project) -> str:
    lines = [f"Dự án [{project.id}] {project.name}"]
    if project.description:
        lines.append(f"  {project.description}")
    if project.image:
        lines.append(f"  Ảnh: {project.image}")
    lines.append(f"  Thành viên: {len(project.members)}")
    return "\n".join(lines)


def render_members(members: Sequence[MemberProfile]) -> str:
    if not members:
        return "Chưa có thành viên nào"
    lines = ["Thành viên:"]
    for m in members:
        email = f" <{m.email}>" if m.email else ""
        lines.append(f"  [{m.user_id}] {m.name}{email} · {m.role}")
    return "\n".join(lines)


def _task_line(t: Task, assignee: str) -> str:
    return f"    [{t.id}] {t.name} · {assignee} · {t.priority} · {t.start_date} → {t.end_date} · {t.progress}"


def render_status_board(board: StatusBoard, resolve_name: NameResolver) -> str:
    lines = ["Danh Sách Nhiệm Vụ"]
    for g in board.groups:
        lines.append(f"  ▼ {g.label} ({len(g)})")
        for t in g.rows:
            lines.append(_task_line(t, resolve_name(t.assignee)))
    if board.hidden:
        lines.append(f"  ({len(board.hidden)} nhiệm vụ có trạng thái không xác định không được hiển thị)")
    return "\n".join(lines)


def render_project_groups(groups: Sequence[TaskGroup]) -> str:
    lines = ["Danh Sách Nhiệm Vụ"]
    if not groups:
        lines.append("  (không có nhiệm vụ)")
    for g in groups:
        lines.append(f"  ▼ {g.label}")
        for row in g.rows:
            pt: ProjectTask = row
            t = pt.task
            lines.append(f"    [{t.id}] {t.name} · {t.priority} · {t.status} · {t.start_date} → {t.end_date} · {t.progress}")
    return "\n".join(lines)
