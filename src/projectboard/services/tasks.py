# src/projectboard/services/tasks.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date

from ..core.errors import NotFoundError, ProjectBoardError, TransportError, ValidationError
from ..core.state import CHANNEL_MY_TASKS, CHANNEL_PROJECT_TASKS, AppState
from ..records.models import Project, ProjectTask, Task, TaskStatus
from ..records.normalize import normalize_project, normalize_task, parse_many
from .validation import TaskDraft, validate_task_form

logger = logging.getLogger(__name__)

# Quick status switch offered in the "my tasks" table.
_STATUS_TOGGLE = {
    TaskStatus.IN_PROGRESS.value: TaskStatus.PENDING.value,
    TaskStatus.PENDING.value: TaskStatus.IN_PROGRESS.value,
}


async def fetch_project_tasks(state: AppState, project_id: str) -> list[Task] | None:
    """Load one project's tasks. None when the result went stale before it arrived."""
    ticket = state.requests.begin(CHANNEL_PROJECT_TASKS)
    try:
        try:
            raw = await state.remote.list_tasks(project_id=str(project_id))
        finally:
            state.requests.finish(ticket)
    except TransportError as e:
        raise TransportError("Không thể tải danh sách nhiệm vụ", status_code=e.status_code) from e

    if not state.requests.is_current(ticket):
        logger.info("Discarding stale task list for project=%s", project_id)
        return None

    tasks = parse_many(raw, normalize_task)
    state.task_view.tasks = tasks
    logger.debug("Fetched %d tasks for project=%s", len(tasks), project_id)
    return tasks


async def save_task(
    state: AppState,
    project: Project,
    draft: TaskDraft,
    *,
    today: date | None = None,
) -> Task:
    """Create (draft.id is None) or replace a task of `project`."""
    errors = validate_task_form(draft, existing=state.task_view.tasks, today=today)
    if errors:
        raise ValidationError(errors)

    payload = {
        "name": draft.name.strip(),
        "assignee": draft.assignee.strip(),
        "status": draft.status,
        "startDate": draft.start_date,
        "endDate": draft.end_date,
        "priority": draft.priority,
        "progress": draft.progress,
        "projectId": project.id,
    }

    try:
        if draft.id:
            payload["id"] = draft.id
            raw = await state.remote.replace_task(draft.id, payload)
        else:
            raw = await state.remote.create_task(payload)
    except NotFoundError as e:
        raise NotFoundError("Không tìm thấy nhiệm vụ") from e
    except TransportError as e:
        raise TransportError("Không thể lưu nhiệm vụ. Vui lòng thử lại.", status_code=e.status_code) from e

    saved = normalize_task(raw)
    if saved is None:
        raise TransportError("Không thể lưu nhiệm vụ. Vui lòng thử lại.")

    tasks = state.task_view.tasks
    for i, t in enumerate(tasks):
        if t.id == saved.id:
            tasks[i] = saved
            break
    else:
        tasks.append(saved)

    logger.info("Task saved id=%s project=%s", saved.id, project.id)
    return saved


async def delete_task(state: AppState, task_id: str) -> None:
    tid = str(task_id)
    try:
        await state.remote.delete_task(tid)
    except NotFoundError as e:
        raise NotFoundError("Không tìm thấy nhiệm vụ") from e
    except TransportError as e:
        raise TransportError("Không thể xóa nhiệm vụ", status_code=e.status_code) from e

    state.task_view.tasks = [t for t in state.task_view.tasks if t.id != tid]
    logger.info("Task deleted id=%s", tid)


def toggled_status(status: str) -> str | None:
    return _STATUS_TOGGLE.get(status)


async def toggle_task_status(state: AppState, task: Task) -> Task | None:
    """
    In Progress <-> Pending via PATCH. Other statuses are left alone (returns None).
    """
    new_status = toggled_status(task.status)
    if new_status is None:
        return None

    try:
        raw = await state.remote.patch_task(task.id, {"status": new_status})
    except NotFoundError as e:
        raise NotFoundError("Không tìm thấy nhiệm vụ") from e
    except ProjectBoardError as e:
        raise TransportError("Không thể cập nhật trạng thái.") from e

    updated = normalize_task(raw)
    if updated is None:
        # Some stores answer PATCH with an empty body; the write still succeeded.
        updated = replace(task, status=new_status)

    state.task_view.my_tasks = [
        ProjectTask(task=updated, project_name=pt.project_name, project_image=pt.project_image)
        if pt.id == updated.id
        else pt
        for pt in state.task_view.my_tasks
    ]
    state.task_view.tasks = [updated if t.id == updated.id else t for t in state.task_view.tasks]
    logger.info("Task status id=%s %s -> %s", task.id, task.status, new_status)
    return updated


async def _with_project(state: AppState, task: Task) -> ProjectTask:
    fallback = f"Dự án #{task.project_id}"
    try:
        project = normalize_project(await state.remote.get_project(task.project_id))
    except ProjectBoardError:
        logger.debug("Project lookup failed for task=%s", task.id, exc_info=True)
        project = None
    if project is None:
        return ProjectTask(task=task, project_name=fallback)
    return ProjectTask(task=task, project_name=project.name or fallback, project_image=project.image)


async def fetch_my_tasks(state: AppState, user_id: str) -> list[ProjectTask] | None:
    """Tasks assigned to user_id across all projects, joined with their project's name."""
    ticket = state.requests.begin(CHANNEL_MY_TASKS)
    uid = str(user_id).strip()
    try:
        try:
            raw = await state.remote.list_tasks()
        except TransportError as e:
            raise TransportError("Không thể tải danh sách nhiệm vụ", status_code=e.status_code) from e

        mine = [t for t in parse_many(raw, normalize_task) if t.assignee.strip() == uid]
        rows = list(await asyncio.gather(*(_with_project(state, t) for t in mine)))
    finally:
        state.requests.finish(ticket)

    if not state.requests.is_current(ticket):
        logger.info("Discarding stale task list for user=%s", uid)
        return None

    state.task_view.my_tasks = rows
    logger.debug("Fetched %d tasks assigned to user=%s", len(rows), uid)
    return rows
