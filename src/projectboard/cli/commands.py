# src/projectboard/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import cast

from ..core.errors import ProjectBoardError, friendly_error_message
from ..core.state import AppState
from ..records.models import Project, TaskStatus
from ..services import auth, members, projects, tasks
from ..services.validation import TaskDraft
from ..views.pipeline import SortKey, member_name_resolver, my_task_groups, project_task_board
from ..views.projects import project_page
from . import render

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /login, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like '/command args "quoted arg"'.
        Returns a reply string or None if not a command.

        ProjectBoardError from a handler becomes its friendly message.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            return "Unbalanced quotes. Use /help to list available commands."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                result = cast(CommandHandler3, handler)(state, args, emit)
            else:
                result = cast(CommandHandler2, handler)(state, args)
            if inspect.isawaitable(result):
                result = await result
        except ProjectBoardError as e:
            logger.info("/%s failed: %s", name, e.message)
            return friendly_error_message(e)
        return cast(str, result)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _require_user(state: AppState) -> str | None:
    user = state.session.user
    return user.id if user else None


def _selected(state: AppState) -> Project | None:
    return state.session.selected_project


_NOT_LOGGED_IN = "Bạn chưa đăng nhập. Dùng /login <email> <mật khẩu>."
_NO_PROJECT = "Chưa chọn dự án. Dùng /project open <id>."


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    user = state.session.user
    selected = _selected(state)
    return (
        "Status:\n"
        f"  User: {f'{user.name} <{user.email}>' if user else '(chưa đăng nhập)'}\n"
        f"  API: {getattr(state.settings, 'api_base_url', '?')}\n"
        f"  Projects cached: {len(state.projects.projects)}\n"
        f"  Selected project: {selected.name if selected else '-'}"
    )


# ---- auth ----


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    user = await auth.login(state, args[0], args[1])
    if emit:
        emit("Đang tải danh sách dự án...")
    await projects.fetch_projects(state, user.id)
    return f"Xin chào, {user.name}!"


async def cmd_register(state: AppState, args: list[str]) -> str:
    if len(args) != 4:
        return 'Usage: /register "<name>" <email> <password> <confirm password>'
    user = await auth.register(
        state, name=args[0], email=args[1], password=args[2], confirm_password=args[3]
    )
    await projects.fetch_projects(state, user.id)
    return f"Đăng ký thành công. Xin chào, {user.name}!"


def cmd_logout(state: AppState, args: list[str]) -> str:
    if state.session.user is None:
        return "Bạn chưa đăng nhập."
    auth.logout(state)
    return "Đã đăng xuất."


# ---- project list ----


def _project_list(state: AppState, owner_id: str) -> str:
    pl = state.projects
    page = project_page(
        pl.projects,
        owner_id=owner_id,
        search_term=pl.search_term,
        page=pl.current_page,
        items_per_page=pl.items_per_page,
    )
    pl.current_page = page.page
    out = render.render_project_page(page, search_term=pl.search_term)
    if pl.error:
        out += f"\n{pl.error}"
    return out


async def cmd_projects(state: AppState, args: list[str]) -> str:
    """
    /projects          -> show the current page (fetches on first use)
    /projects refresh  -> re-fetch from the server
    """
    uid = _require_user(state)
    if uid is None:
        return _NOT_LOGGED_IN
    if (args and args[0].lower() == "refresh") or not state.projects.projects:
        await projects.fetch_projects(state, uid)
    return _project_list(state, uid)


def cmd_search(state: AppState, args: list[str]) -> str:
    uid = _require_user(state)
    if uid is None:
        return _NOT_LOGGED_IN
    state.projects.set_search_term(" ".join(args))
    return _project_list(state, uid)


def cmd_page(state: AppState, args: list[str]) -> str:
    uid = _require_user(state)
    if uid is None:
        return _NOT_LOGGED_IN
    if len(args) != 1 or not args[0].isdigit():
        return "Usage: /page <n>"
    state.projects.set_current_page(int(args[0]))
    return _project_list(state, uid)


# ---- single project ----


@contextmanager
def _dialog(state: AppState, opener: Callable[..., None], *args: Project) -> Iterator[None]:
    """
    Keep a modal open for the duration of one action.

    The project modals move the selection; the detail view's selection is put
    back afterwards (or dropped if that project no longer exists). Acting on
    another project can clear the detail rows on the way, so the open
    project's cached tasks and members are put back with it.
    """
    previous = state.session.selected_project
    view = state.task_view
    tasks_before, members_before = list(view.tasks), list(view.members)
    opener(*args)
    try:
        yield
    finally:
        state.session.close_all_modals()
        restored = state.projects.find(previous.id) if previous is not None else None
        if restored is None:
            state.select_project(None)
        else:
            state.session.set_selected_project(restored)
            if not view.tasks and not view.members:
                view.tasks, view.members = tasks_before, members_before


async def _open_project(state: AppState, project: Project) -> str:
    state.select_project(project)
    await tasks.fetch_project_tasks(state, project.id)
    await members.list_members(state, project)
    return render.render_project(project) + "\n" + _board(state)


async def cmd_project(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /project add "<name>" "<description>" [image_url]
    /project edit <id> "<name>" "<description>" [image_url]
    /project delete <id>
    /project open <id>
    /project close
    """
    uid = _require_user(state)
    if uid is None:
        return _NOT_LOGGED_IN
    if not args:
        return cast(str, cmd_project.__doc__).strip()

    sub, rest = args[0].lower(), args[1:]
    session = state.session

    if sub == "add":
        if len(rest) not in (2, 3):
            return 'Usage: /project add "<name>" "<description>" [image_url]'
        with _dialog(state, session.open_add_project_modal):
            created = await projects.add_project(
                state,
                name=rest[0],
                description=rest[1],
                owner_id=uid,
                image=rest[2] if len(rest) == 3 else None,
            )
        return f"Đã tạo dự án [{created.id}] {created.name}"

    if sub in ("edit", "delete", "open"):
        if not rest:
            return f"Usage: /project {sub} <id> ..."
        project = state.projects.find(rest[0])
        if project is None:
            return f"Không tìm thấy dự án (id={rest[0]})"

        if sub == "open":
            if emit:
                emit(f"Đang mở dự án [{project.id}]...")
            return await _open_project(state, project)

        if sub == "edit":
            if len(rest) not in (3, 4):
                return 'Usage: /project edit <id> "<name>" "<description>" [image_url]'
            with _dialog(state, session.open_edit_project_modal, project):
                updated = await projects.edit_project(
                    state,
                    project,
                    name=rest[1],
                    description=rest[2],
                    image=rest[3] if len(rest) == 4 else None,
                )
            return f"Đã cập nhật dự án [{updated.id}] {updated.name}"

        with _dialog(state, session.open_delete_project_modal, project):
            await projects.delete_project(state, project.id)
        return f"Đã xóa dự án [{project.id}] {project.name}"

    if sub == "close":
        state.select_project(None)
        return "Đã đóng dự án."

    return cast(str, cmd_project.__doc__).strip()


# ---- members ----


async def cmd_members(state: AppState, args: list[str]) -> str:
    project = _selected(state)
    if project is None:
        return _NO_PROJECT
    state.session.open_member_list_modal()
    try:
        profiles = await members.list_members(state, project)
    finally:
        state.session.close_all_modals()
    return render.render_members(profiles or [])


async def cmd_member(state: AppState, args: list[str]) -> str:
    """
    /member add <email> <role...>
    /member remove <userId>
    /member role <userId> <role...>
    """
    project = _selected(state)
    if project is None:
        return _NO_PROJECT
    if not args:
        return cast(str, cmd_member.__doc__).strip()

    sub, rest = args[0].lower(), args[1:]
    if sub == "add" and len(rest) >= 2:
        state.session.open_add_member_modal()
        try:
            updated = await members.add_member(state, project, email=rest[0], role=" ".join(rest[1:]))
        finally:
            state.session.close_all_modals()
    elif sub == "remove" and len(rest) == 1:
        updated = await members.remove_member(state, project, rest[0])
    elif sub == "role" and len(rest) >= 2:
        updated = await members.change_member_role(state, project, rest[0], " ".join(rest[1:]))
    else:
        return cast(str, cmd_member.__doc__).strip()

    profiles = await members.list_members(state, updated)
    return render.render_members(profiles or [])


# ---- tasks ----


def _board(state: AppState) -> str:
    tv = state.task_view
    resolve = member_name_resolver(tv.members)
    board = project_task_board(
        tv.tasks, search_term=tv.search_term, sort_key=tv.sort_key, resolve_name=resolve
    )
    return render.render_status_board(board, resolve)


def _set_view_option(state: AppState, args: list[str]) -> str | None:
    """Shared `search` / `sort` sub-commands of /tasks and /mytasks."""
    tv = state.task_view
    if args and args[0].lower() == "search":
        tv.search_term = " ".join(args[1:])
        return None
    if args and args[0].lower() == "sort":
        raw = args[1] if len(args) > 1 else ""
        key = SortKey.parse(raw)
        if raw and raw.lower() != "none" and key is None:
            return "Usage: sort deadline | priority | none"
        tv.sort_key = key.value if key else ""
        return None
    return None


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                      -> task board of the open project
    /tasks refresh
    /tasks search <term...>
    /tasks sort deadline|priority|none
    """
    project = _selected(state)
    if project is None:
        return _NO_PROJECT
    problem = _set_view_option(state, args)
    if problem:
        return problem
    if args and args[0].lower() == "refresh":
        await tasks.fetch_project_tasks(state, project.id)
    return _board(state)


def _draft_from(args: list[str], task_id: str | None = None) -> TaskDraft | None:
    if len(args) != 7:
        return None
    name, assignee, status, start, end, priority, progress = args
    return TaskDraft(
        id=task_id,
        name=name,
        assignee=assignee,
        status=status,
        start_date=start,
        end_date=end,
        priority=priority,
        progress=progress,
    )


_TASK_FIELDS = '"<name>" <assigneeId> "<status>" <start> <end> "<priority>" "<progress>"'


async def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add <fields...>
    /task edit <id> <fields...>
    /task delete <id>
    /task toggle <id>     (In Progress <-> Pending)
    """
    project = _selected(state)
    if not args:
        return cast(str, cmd_task.__doc__).strip() + f"\n  fields: {_TASK_FIELDS}"
    sub, rest = args[0].lower(), args[1:]

    if sub == "toggle":
        if len(rest) != 1:
            return "Usage: /task toggle <id>"
        task = next((t for t in state.task_view.tasks if t.id == rest[0]), None)
        if task is None:
            task = next((pt.task for pt in state.task_view.my_tasks if pt.id == rest[0]), None)
        if task is None:
            return f"Không tìm thấy nhiệm vụ (id={rest[0]})"
        updated = await tasks.toggle_task_status(state, task)
        if updated is None:
            return f"Chỉ đổi được giữa {TaskStatus.IN_PROGRESS} và {TaskStatus.PENDING}."
        return f"[{updated.id}] {updated.name}: {task.status} → {updated.status}"

    if project is None:
        return _NO_PROJECT
    if not state.task_view.members:
        return "Chưa tải được danh sách thành viên. Vui lòng thử lại sau."

    if sub == "add":
        draft = _draft_from(rest)
        if draft is None:
            return f"Usage: /task add {_TASK_FIELDS}"
        saved = await tasks.save_task(state, project, draft)
        return f"Đã lưu nhiệm vụ [{saved.id}] {saved.name}\n" + _board(state)

    if sub == "edit":
        draft = _draft_from(rest[1:], task_id=rest[0]) if rest else None
        if draft is None:
            return f"Usage: /task edit <id> {_TASK_FIELDS}"
        saved = await tasks.save_task(state, project, draft)
        return f"Đã lưu nhiệm vụ [{saved.id}] {saved.name}\n" + _board(state)

    if sub == "delete" and len(rest) == 1:
        await tasks.delete_task(state, rest[0])
        return _board(state)

    return cast(str, cmd_task.__doc__).strip()


async def cmd_mytasks(state: AppState, args: list[str]) -> str:
    """
    /mytasks                      -> tasks assigned to me, grouped by project
    /mytasks refresh
    /mytasks search <term...>
    /mytasks sort deadline|priority|none
    """
    uid = _require_user(state)
    if uid is None:
        return _NOT_LOGGED_IN
    problem = _set_view_option(state, args)
    if problem:
        return problem
    tv = state.task_view
    if (args and args[0].lower() == "refresh") or not tv.my_tasks:
        await tasks.fetch_my_tasks(state, uid)
    groups = my_task_groups(tv.my_tasks, search_term=tv.search_term, sort_key=tv.sort_key)
    return render.render_project_groups(groups)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show session status.")
registry.register("login", cmd_login, help_text="Log in: /login <email> <password>.")
registry.register("register", cmd_register, help_text='Create an account: /register "<name>" <email> <pw> <pw>.')
registry.register("logout", cmd_logout, help_text="Log out and forget the saved session.")
registry.register("projects", cmd_projects, help_text="List my projects: /projects [refresh].")
registry.register("search", cmd_search, help_text="Filter my projects by name: /search <term>.")
registry.register("page", cmd_page, help_text="Go to a page of the project list: /page <n>.")
registry.register("project", cmd_project, help_text="Project actions: add | edit | delete | open | close.")
registry.register("members", cmd_members, help_text="List members of the open project.")
registry.register("member", cmd_member, help_text="Member actions: add | remove | role.")
registry.register("tasks", cmd_tasks, help_text="Task board of the open project (search/sort/refresh).")
registry.register("task", cmd_task, help_text="Task actions: add | edit | delete | toggle.")
registry.register("mytasks", cmd_mytasks, help_text="Tasks assigned to me across projects.")
