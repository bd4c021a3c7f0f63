# tests/test_commands.py

from __future__ import annotations

import pytest

from projectboard.cli.commands import CommandRegistry, registry
from projectboard.core.errors import NotFoundError

from .fakes import project_row, task_row


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return f"h2 {args}"

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert await reg.handle(state, '/a x "y z"') == "h2 ['x', 'y z']"
    assert await reg.handle(state, "/BEE", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Unbalanced quotes" in (await reg.handle(state, '/nope "x') or "")


@pytest.mark.asyncio
async def test_registry_turns_errors_into_messages(state) -> None:
    reg = CommandRegistry()

    def broken(state, args):
        raise NotFoundError("Không tìm thấy dự án")

    reg.register("x", broken, "x")
    assert await reg.handle(state, "/x") == "Không tìm thấy dự án"


@pytest.mark.asyncio
async def test_help_lists_commands(state) -> None:
    out = await registry.handle(state, "/help")
    for name in ("/login", "/projects", "/project", "/member", "/task", "/mytasks"):
        assert name in out


@pytest.mark.asyncio
async def test_commands_require_login(state) -> None:
    assert "chưa đăng nhập" in await registry.handle(state, "/projects")
    assert "Chưa chọn dự án" in await registry.handle(state, "/tasks")


@pytest.mark.asyncio
async def test_project_flow(logged_in, remote) -> None:
    remote.users.append({"id": "11", "name": "Minh", "email": "minh.nguyen@example.com", "password": ""})
    remote.tasks += [
        task_row(1, "Khảo sát", project_id=1, status="In Progress", priority="Thấp"),
        task_row(2, "Báo giá", project_id=1, status="Done", priority="Cao"),
    ]

    out = await registry.handle(logged_in, "/projects")
    assert "[1] Alpha" in out

    out = await registry.handle(logged_in, '/project add "Beta" "Dự án thứ hai"')
    assert "Đã tạo dự án [2] Beta" in out
    assert not logged_in.session.modals.any_open()

    out = await registry.handle(logged_in, '/project add "Beta" "Dự án trùng tên"')
    assert out.startswith("name:")

    out = await registry.handle(logged_in, "/project open 1")
    assert "Dự án [1] Alpha" in out
    assert "[1] Khảo sát" in out
    assert logged_in.session.selected_project.id == "1"

    out = await registry.handle(logged_in, "/member add minh.nguyen@example.com Developer")
    assert "Minh" in out
    assert "Developer" in out

    out = await registry.handle(logged_in, "/member remove 10")
    assert out == "Không thể xóa Project Owner"

    out = await registry.handle(logged_in, "/task toggle 1")
    assert "In Progress → Pending" in out

    await registry.handle(logged_in, "/tasks sort priority")
    assert logged_in.task_view.sort_key == "priority"
    assert "Usage" in await registry.handle(logged_in, "/tasks sort name")

    out = await registry.handle(logged_in, "/project delete 2")
    assert "Đã xóa dự án [2] Beta" in out
    # the open project survives deleting another one
    assert logged_in.session.selected_project.id == "1"


@pytest.mark.asyncio
async def test_search_and_paging(logged_in, remote) -> None:
    remote.projects += [project_row(i, f"Dự án {i}", "10") for i in range(2, 10)]
    await registry.handle(logged_in, "/projects")

    out = await registry.handle(logged_in, "/page 2")
    assert "Trang 2/2" in out
    assert "[8] Dự án 8" in out

    out = await registry.handle(logged_in, "/search alpha")
    assert logged_in.projects.current_page == 1
    assert "[1] Alpha" in out
    assert "1 dự án" in out


@pytest.mark.asyncio
async def test_mytasks(logged_in, remote) -> None:
    remote.tasks += [
        task_row(1, "Khảo sát", project_id=1, assignee="10"),
        task_row(2, "Không phải của tôi", project_id=1, assignee="11"),
    ]
    out = await registry.handle(logged_in, "/mytasks")
    assert "▼ Alpha" in out
    assert "Khảo sát" in out
    assert "Không phải của tôi" not in out


@pytest.mark.asyncio
async def test_login_command_emits_progress(state, remote) -> None:
    from projectboard.services.auth import hash_password

    remote.users.append({"id": "3", "name": "Lan", "email": "lan@example.com", "password": hash_password("matkhau123")})
    notes: list[str] = []

    out = await registry.handle(state, "/login lan@example.com matkhau123", emit=notes.append)
    assert out == "Xin chào, Lan!"
    assert notes

    assert await registry.handle(state, "/logout") == "Đã đăng xuất."
    assert state.session.user is None


@pytest.mark.asyncio
async def test_deleting_another_project_keeps_open_project_rows(logged_in, remote) -> None:
    remote.projects.append(project_row(2, "Beta", "10"))
    remote.tasks.append(task_row(1, "Khảo sát", project_id=1))
    await registry.handle(logged_in, "/projects")
    await registry.handle(logged_in, "/project open 1")
    assert len(logged_in.task_view.tasks) == 1

    out = await registry.handle(logged_in, "/project delete 2")
    assert "Đã xóa dự án [2] Beta" in out

    view = logged_in.task_view
    assert logged_in.session.selected_project.id == "1"
    assert [t.id for t in view.tasks] == ["1"]
    assert [m.user_id for m in view.members] == ["10"]

    out = await registry.handle(
        logged_in,
        '/task add "Viết báo cáo" 10 "To do" 2099-01-01 2099-01-31 "Cao" "Đúng tiến độ"',
    )
    assert out.startswith("Đã lưu nhiệm vụ")
    assert len(view.tasks) == 2


@pytest.mark.asyncio
async def test_deleting_the_open_project_closes_it(logged_in, remote) -> None:
    remote.tasks.append(task_row(1, "Khảo sát", project_id=1))
    await registry.handle(logged_in, "/projects")
    await registry.handle(logged_in, "/project open 1")

    await registry.handle(logged_in, "/project delete 1")

    assert logged_in.session.selected_project is None
    assert logged_in.task_view.tasks == []
    assert logged_in.task_view.members == []
