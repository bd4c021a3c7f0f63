# src/projectboard/core/state.py

"""
Application state.

One AppState object is built by the composition root (cli.bootstrap) and passed
by reference to services and connectors. State changes go through the action
methods below; nothing here touches the network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..records.models import MemberProfile, Project, ProjectTask, Task, User
from ..records.normalize import normalize_user
from ..views.projects import filter_projects_by_name, total_pages
from .ports import RemoteStore, SessionStore

logger = logging.getLogger(__name__)

# Request channels used with RequestTracker.
CHANNEL_PROJECTS = "projects"
CHANNEL_PROJECT_TASKS = "project_tasks"
CHANNEL_MEMBERS = "members"
CHANNEL_MY_TASKS = "my_tasks"


@dataclass(slots=True, frozen=True)
class Ticket:
    channel: str
    seq: int


class RequestTracker:
    """
    Liveness check for in-flight fetches.

    begin() hands out a ticket; a newer begin() on the same channel, or
    invalidate(), makes older tickets stale. Results carried by a stale ticket
    must not be applied to state.

    finish() marks a ticket's request as returned; in_flight() tells whether
    any request on the channel is still outstanding.
    """

    def __init__(self) -> None:
        self._seq: dict[str, int] = {}
        self._open: dict[str, int] = {}

    def begin(self, channel: str) -> Ticket:
        seq = self._seq.get(channel, 0) + 1
        self._seq[channel] = seq
        self._open[channel] = self._open.get(channel, 0) + 1
        return Ticket(channel=channel, seq=seq)

    def finish(self, ticket: Ticket) -> None:
        self._open[ticket.channel] = max(0, self._open.get(ticket.channel, 0) - 1)

    def in_flight(self, channel: str) -> bool:
        return self._open.get(channel, 0) > 0

    def is_current(self, ticket: Ticket) -> bool:
        return self._seq.get(ticket.channel, 0) == ticket.seq

    def invalidate(self, *channels: str) -> None:
        for ch in channels:
            self._seq[ch] = self._seq.get(ch, 0) + 1


@dataclass(slots=True)
class ModalFlags:
    add_project: bool = False
    edit_project: bool = False
    delete_project: bool = False
    member_list: bool = False
    add_member: bool = False

    def any_open(self) -> bool:
        return (
            self.add_project
            or self.edit_project
            or self.delete_project
            or self.member_list
            or self.add_member
        )


@dataclass(slots=True)
class SessionState:
    """
    Logged-in user, selected project and modal visibility.

    Modal flags are independent: opening one does not close the others.
    """

    storage: SessionStore | None = None
    user: User | None = None
    selected_project: Project | None = None
    modals: ModalFlags = field(default_factory=ModalFlags)

    # ---- user ----

    def restore_user(self) -> User | None:
        """Load the persisted user at startup (None when absent or unreadable)."""
        if self.storage is None:
            return None
        raw = self.storage.load_user()
        user = normalize_user(raw) if raw is not None else None
        if raw is not None and user is None:
            self.storage.clear_user()
        self.user = user
        return user

    def set_user(self, user: User | None) -> None:
        self.user = user
        if self.storage is None:
            return
        if user is not None:
            self.storage.save_user(user.public())
        else:
            self.storage.clear_user()

    def logout(self) -> None:
        self.set_user(None)
        self.selected_project = None
        self.close_all_modals()

    # ---- selection ----

    def set_selected_project(self, project: Project | None) -> None:
        self.selected_project = project

    # ---- modals ----

    def open_add_project_modal(self) -> None:
        self.modals.add_project = True
        self.selected_project = None

    def open_edit_project_modal(self, project: Project) -> None:
        self.modals.edit_project = True
        self.selected_project = project

    def open_delete_project_modal(self, project: Project) -> None:
        self.modals.delete_project = True
        self.selected_project = project

    def open_member_list_modal(self) -> None:
        self.modals.member_list = True

    def open_add_member_modal(self) -> None:
        self.modals.add_member = True

    def close_all_modals(self) -> None:
        self.modals = ModalFlags()


@dataclass(slots=True)
class ProjectListState:
    """Cached projects visible to the user plus the list view's search/paging."""

    projects: list[Project] = field(default_factory=list)
    loading: bool = False
    error: str | None = None
    search_term: str = ""
    current_page: int = 1
    items_per_page: int = 7

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.projects), self.items_per_page)

    def find(self, project_id: str) -> Project | None:
        pid = str(project_id)
        for p in self.projects:
            if p.id == pid:
                return p
        return None

    # ---- plain actions ----

    def set_search_term(self, term: str) -> None:
        self.search_term = term
        # A new search always starts from the first page.
        self.current_page = 1

    def set_current_page(self, page: int) -> None:
        self.current_page = max(1, int(page))

    # ---- async lifecycle (pending / fulfilled / rejected) ----

    def pending(self) -> None:
        self.loading = True
        self.error = None

    def settled(self) -> None:
        """A discarded (stale) request returned and nothing else is outstanding."""
        self.loading = False

    def rejected(self, message: str) -> None:
        self.loading = False
        self.error = message

    def fetched(self, projects: list[Project]) -> None:
        self.loading = False
        self.projects = list(projects)

    def added(self, project: Project) -> None:
        self.loading = False
        self.projects.append(project)

    def updated(self, project: Project) -> None:
        self.loading = False
        for i, p in enumerate(self.projects):
            if p.id == project.id:
                self.projects[i] = project
                return

    def deleted(self, project_id: str) -> None:
        self.loading = False
        pid = str(project_id)
        self.projects = [p for p in self.projects if p.id != pid]

        matched = filter_projects_by_name(self.projects, self.search_term)
        last_page = total_pages(len(matched), self.items_per_page)
        if self.current_page > last_page:
            self.current_page = last_page


@dataclass(slots=True)
class TaskViewState:
    """Inputs and cached rows for the task tables (project detail and "my tasks")."""

    search_term: str = ""
    sort_key: str = ""
    tasks: list[Task] = field(default_factory=list)
    members: list[MemberProfile] = field(default_factory=list)
    my_tasks: list[ProjectTask] = field(default_factory=list)

    def clear_project_rows(self) -> None:
        self.tasks = []
        self.members = []


@dataclass
class AppState:
    settings: Any
    remote: RemoteStore

    session: SessionState = field(default_factory=SessionState)
    projects: ProjectListState = field(default_factory=ProjectListState)
    task_view: TaskViewState = field(default_factory=TaskViewState)
    requests: RequestTracker = field(default_factory=RequestTracker)

    def select_project(self, project: Project | None) -> None:
        """
        Change the project detail selection.

        Switching projects (or leaving the detail view) drops cached rows and
        makes in-flight detail fetches stale.
        """
        previous = self.session.selected_project
        self.session.set_selected_project(project)
        if previous is None or project is None or previous.id != project.id:
            self.requests.invalidate(CHANNEL_PROJECT_TASKS, CHANNEL_MEMBERS)
            self.task_view.clear_project_rows()
            logger.debug(
                "Selection changed %s -> %s",
                previous.id if previous else None,
                project.id if project else None,
            )
