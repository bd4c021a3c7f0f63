# tests/test_state.py

from __future__ import annotations

import json
from pathlib import Path

from projectboard.cli.bootstrap import create_initial_state
from projectboard.core.state import (
    CHANNEL_MEMBERS,
    CHANNEL_PROJECT_TASKS,
    ModalFlags,
    ProjectListState,
    RequestTracker,
    SessionState,
)
from projectboard.records.models import Project, User
from projectboard.records.normalize import normalize_task
from projectboard.session.storage import UserStorage

from .fakes import FakeRemoteStore, task_row


def _projects(n: int, owner: str = "10") -> list[Project]:
    return [Project(id=str(i), name=f"Dự án {i}", project_owner_id=owner) for i in range(1, n + 1)]


def test_modal_flags_are_independent() -> None:
    s = SessionState()
    p = Project(id="1", name="Alpha", project_owner_id="10")

    s.open_edit_project_modal(p)
    s.open_member_list_modal()
    s.open_add_member_modal()

    assert s.modals.edit_project and s.modals.member_list and s.modals.add_member
    assert not s.modals.add_project
    assert s.selected_project is p

    s.close_all_modals()
    assert s.modals == ModalFlags()
    assert not s.modals.any_open()
    # closing dialogs does not touch the selection
    assert s.selected_project is p


def test_add_modal_clears_selection() -> None:
    s = SessionState(selected_project=Project(id="1", name="Alpha", project_owner_id="10"))
    s.open_add_project_modal()
    assert s.modals.add_project
    assert s.selected_project is None


def test_search_resets_page_and_delete_clamps_it() -> None:
    pl = ProjectListState(projects=_projects(8), items_per_page=7)
    assert pl.total_pages == 2

    pl.set_current_page(2)
    pl.set_search_term("dự án")
    assert pl.current_page == 1

    pl.set_current_page(2)
    pl.deleted("8")
    assert pl.current_page == 1
    assert pl.find("8") is None


def test_lifecycle_reducers() -> None:
    pl = ProjectListState()
    pl.pending()
    assert pl.loading and pl.error is None

    pl.rejected("Không thể tải danh sách dự án")
    assert not pl.loading and pl.error == "Không thể tải danh sách dự án"

    pl.fetched(_projects(2))
    pl.added(Project(id="3", name="Gamma", project_owner_id="10"))
    pl.updated(Project(id="1", name="Alpha 2", project_owner_id="10"))
    assert [p.name for p in pl.projects] == ["Alpha 2", "Dự án 2", "Gamma"]


def test_request_tracker() -> None:
    rt = RequestTracker()
    first = rt.begin("projects")
    assert rt.is_current(first)

    second = rt.begin("projects")
    assert not rt.is_current(first)
    assert rt.is_current(second)

    other = rt.begin("members")
    rt.invalidate("projects")
    assert not rt.is_current(second)
    assert rt.is_current(other)


def test_switching_project_drops_rows_and_stales_detail_fetches(state) -> None:
    alpha, beta = _projects(2)
    state.select_project(alpha)
    state.task_view.tasks = [normalize_task(task_row("1", "Một"))]
    tasks_ticket = state.requests.begin(CHANNEL_PROJECT_TASKS)
    members_ticket = state.requests.begin(CHANNEL_MEMBERS)

    # re-selecting the same project keeps everything
    state.select_project(alpha)
    assert state.requests.is_current(tasks_ticket)
    assert len(state.task_view.tasks) == 1

    state.select_project(beta)
    assert state.session.selected_project is beta
    assert state.task_view.tasks == []
    assert not state.requests.is_current(tasks_ticket)
    assert not state.requests.is_current(members_ticket)


def test_user_storage_never_writes_password(tmp_path: Path) -> None:
    storage = UserStorage(tmp_path / "s" / "session.json")
    storage.save_user({"id": "1", "name": "Lan", "email": "lan@example.com", "password": "x"})

    on_disk = json.loads(storage.path.read_text("utf-8"))
    assert on_disk == {"user": {"id": "1", "name": "Lan", "email": "lan@example.com"}}
    assert storage.load_user() == on_disk["user"]

    storage.clear_user()
    assert storage.load_user() is None
    storage.clear_user()  # clearing twice is fine


def test_session_restored_across_runs(settings) -> None:
    first = create_initial_state(settings=settings, remote=FakeRemoteStore())
    first.session.set_user(User(id="1", name="Lan", email="lan@example.com", password="hash"))

    second = create_initial_state(settings=settings, remote=FakeRemoteStore())
    assert second.session.user == User(id="1", name="Lan", email="lan@example.com")

    second.session.logout()
    third = create_initial_state(settings=settings, remote=FakeRemoteStore())
    assert third.session.user is None


def test_corrupt_session_file_is_cleared(settings) -> None:
    settings.session_path.parent.mkdir(parents=True, exist_ok=True)
    settings.session_path.write_text("{not json", "utf-8")

    state = create_initial_state(settings=settings, remote=FakeRemoteStore())
    assert state.session.user is None
    assert not settings.session_path.exists()


def test_unusable_session_record_is_cleared(settings) -> None:
    settings.session_path.parent.mkdir(parents=True, exist_ok=True)
    settings.session_path.write_text(json.dumps({"user": {"name": "no id"}}), "utf-8")

    state = create_initial_state(settings=settings, remote=FakeRemoteStore())
    assert state.session.user is None
    assert not settings.session_path.exists()
