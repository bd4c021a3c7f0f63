# src/projectboard/services/projects.py

"""
Project operations against the remote store.

Every write follows the same chain:
  precondition check -> fetch latest server copy -> merge -> write -> normalize -> splice into state

Known limitation: new ids are max(existing) + 1 computed on the client, so two
clients creating at the same moment can pick the same id.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from ..core.errors import NotFoundError, ProjectBoardError, TransportError, ValidationError
from ..core.state import CHANNEL_PROJECTS, AppState
from ..records.models import OWNER_ROLE, Project, ProjectMember
from ..records.normalize import normalize_project, parse_many
from .validation import validate_project_form

logger = logging.getLogger(__name__)


def next_project_id(records: Iterable[Any]) -> str:
    """max(numeric ids) + 1 as a string; non-numeric ids are ignored, empty -> "1"."""
    max_id = 0
    for item in records:
        raw = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
        try:
            num = float(raw)
        except (TypeError, ValueError):
            continue
        if num == num and num not in (float("inf"), float("-inf")) and num > max_id:
            max_id = int(num)
    return str(max_id + 1)


def _visible_to(project: Project, user_id: str) -> bool:
    return project.is_owned_by(user_id) or project.has_member(user_id)


def _required(project: Project | None, what: str) -> Project:
    if project is None:
        raise TransportError(f"Phản hồi {what} từ máy chủ không hợp lệ")
    return project


async def fetch_projects(state: AppState, user_id: str) -> list[Project] | None:
    """
    Load the projects the user owns or belongs to.

    Returns None when a newer fetch superseded this one (nothing applied).
    """
    requests = state.requests
    ticket = requests.begin(CHANNEL_PROJECTS)
    state.projects.pending()
    try:
        try:
            raw = await state.remote.list_projects(sorted_by_id=True)
        finally:
            requests.finish(ticket)
    except ProjectBoardError as e:
        if requests.is_current(ticket):
            state.projects.rejected(e.message or "Không thể tải danh sách dự án")
        elif not requests.in_flight(CHANNEL_PROJECTS):
            state.projects.settled()
        raise

    if not requests.is_current(ticket):
        logger.info("Discarding stale project list (ticket=%s)", ticket.seq)
        # A newer fetch still owns the loading flag.
        if not requests.in_flight(CHANNEL_PROJECTS):
            state.projects.settled()
        return None

    uid = str(user_id)
    projects = [p for p in parse_many(raw, normalize_project) if _visible_to(p, uid)]
    state.projects.fetched(projects)
    logger.info("Fetched %d projects for user=%s", len(projects), uid)
    return projects


async def add_project(
    state: AppState,
    *,
    name: str,
    description: str,
    owner_id: str,
    image: str | None = None,
) -> Project:
    owner = str(owner_id)
    errors = validate_project_form(
        name, description, owner_id=owner, existing=state.projects.projects
    )
    if errors:
        raise ValidationError(errors)

    state.projects.pending()
    try:
        current = await state.remote.list_projects()
        payload = Project(
            id=next_project_id(current),
            name=name.strip(),
            description=description.strip(),
            image=image or None,
            project_owner_id=owner,
            members=(ProjectMember(user_id=owner, role=OWNER_ROLE),),
        ).to_payload()

        created = _required(normalize_project(await state.remote.create_project(payload)), "dự án")
    except ProjectBoardError as e:
        state.projects.rejected(e.message)
        raise

    state.projects.added(created)
    logger.info("Project created id=%s owner=%s", created.id, owner)
    return created


async def update_project(state: AppState, project_id: str, patch: dict[str, Any]) -> Project:
    """
    Merge `patch` (raw field names, e.g. {"members": [...]}) over the freshly fetched
    server copy and write it back. Fields not in the patch keep the server's value.
    """
    pid = str(project_id)
    if not pid:
        raise ValidationError({"id": f"Mã dự án không hợp lệ: {project_id!r}"})

    state.projects.pending()
    try:
        try:
            server_copy = await state.remote.get_project(pid)
        except NotFoundError as e:
            raise NotFoundError("Không tìm thấy dự án") from e

        merged = dict(server_copy) if isinstance(server_copy, dict) else {}
        merged.update(patch)
        merged["id"] = pid

        updated = _required(
            normalize_project(await state.remote.replace_project(pid, merged)), "dự án"
        )
    except ProjectBoardError as e:
        state.projects.rejected(e.message)
        raise

    state.projects.updated(updated)
    selected = state.session.selected_project
    if selected is not None and selected.id == updated.id:
        state.session.set_selected_project(updated)
    logger.info("Project updated id=%s fields=%s", pid, sorted(patch))
    return updated


async def edit_project(
    state: AppState,
    project: Project,
    *,
    name: str,
    description: str,
    image: str | None = None,
) -> Project:
    """Validated edit of name/description/image (the "edit project" form)."""
    errors = validate_project_form(
        name,
        description,
        owner_id=project.project_owner_id,
        existing=state.projects.projects,
        editing_id=project.id,
    )
    if errors:
        raise ValidationError(errors)

    return await update_project(
        state,
        project.id,
        {
            "name": name.strip(),
            "description": description.strip(),
            "image": image if image is not None else project.image,
        },
    )


async def delete_project(state: AppState, project_id: str) -> str:
    pid = str(project_id)
    if not pid:
        raise ValidationError({"id": f"Mã dự án không hợp lệ: {project_id!r}"})

    state.projects.pending()
    try:
        try:
            await state.remote.get_project(pid)
        except NotFoundError as e:
            raise NotFoundError(f"Không tìm thấy dự án (id={pid})") from e
        except TransportError as e:
            raise TransportError(f"Không thể kiểm tra dự án (id={pid})", status_code=e.status_code) from e

        await state.remote.delete_project(pid)
    except ProjectBoardError as e:
        state.projects.rejected(e.message)
        raise

    state.projects.deleted(pid)
    selected = state.session.selected_project
    if selected is not None and selected.id == pid:
        state.select_project(None)
    logger.info("Project deleted id=%s", pid)
    return pid
