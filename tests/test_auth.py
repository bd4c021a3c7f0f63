# tests/test_auth.py

from __future__ import annotations

import json

import pytest

from projectboard.core.errors import AuthError, ConflictError, ValidationError
from projectboard.records.models import User
from projectboard.services.auth import (
    hash_password,
    login,
    logout,
    next_user_id,
    register,
    verify_password,
)


def test_hash_and_verify() -> None:
    stored = hash_password("matkhau123")
    assert stored != "matkhau123"
    assert verify_password("matkhau123", stored)
    assert not verify_password("sai-mat-khau", stored)
    assert not verify_password("matkhau123", "")


def test_legacy_plaintext_only_when_allowed() -> None:
    assert not verify_password("matkhau123", "matkhau123")
    assert verify_password("matkhau123", "matkhau123", allow_legacy_plaintext=True)
    assert not verify_password("khac", "matkhau123", allow_legacy_plaintext=True)


def test_next_user_id() -> None:
    users = [User(id="1", name="a", email="a"), User(id="u7", name="b", email="b")]
    assert next_user_id(users) == "8"
    assert next_user_id([]) == "1"


@pytest.fixture()
def registered(state, remote):
    remote.users.append(
        {"id": "3", "name": "Lan", "email": "lan@example.com", "password": hash_password("matkhau123")}
    )
    return state


@pytest.mark.asyncio
async def test_login_persists_user_without_password(registered, settings) -> None:
    user = await login(registered, "lan@example.com", "matkhau123")

    assert user == User(id="3", name="Lan", email="lan@example.com")
    assert registered.session.user == user
    on_disk = json.loads(settings.session_path.read_text("utf-8"))
    assert on_disk == {"user": {"id": "3", "name": "Lan", "email": "lan@example.com"}}


@pytest.mark.asyncio
async def test_login_wrong_password(registered) -> None:
    with pytest.raises(AuthError) as ei:
        await login(registered, "lan@example.com", "matkhau-sai")
    message = "Email hoặc mật khẩu không đúng"
    assert ei.value.message == message
    assert ei.value.fields == {"email": message, "password": message}
    assert registered.session.user is None

    with pytest.raises(AuthError) as ei:
        await login(registered, "ai-do@example.com", "matkhau123")
    assert set(ei.value.fields) == {"email", "password"}


@pytest.mark.asyncio
async def test_login_validation(registered, remote) -> None:
    with pytest.raises(ValidationError) as ei:
        await login(registered, "not-an-email", "")
    assert set(ei.value.fields) == {"email", "password"}
    assert remote.calls == []


@pytest.mark.asyncio
async def test_legacy_plaintext_record(state, remote, settings) -> None:
    remote.users.append({"id": "4", "name": "Cũ", "email": "cu@example.com", "password": "matkhau123"})

    with pytest.raises(AuthError):
        await login(state, "cu@example.com", "matkhau123")

    settings.allow_legacy_plaintext = True
    user = await login(state, "cu@example.com", "matkhau123")
    assert user.id == "4"


@pytest.mark.asyncio
async def test_register_hashes_password(registered, remote) -> None:
    user = await register(
        registered,
        name="Minh",
        email="minh@example.com",
        password="baomat2024",
        confirm_password="baomat2024",
    )

    assert user == User(id="4", name="Minh", email="minh@example.com")
    stored = remote.users[-1]["password"]
    assert stored != "baomat2024"
    assert verify_password("baomat2024", stored)
    assert registered.session.user == user


@pytest.mark.asyncio
async def test_register_rejects_taken_email(registered, remote) -> None:
    with pytest.raises(ConflictError):
        await register(
            registered,
            name="Lan 2",
            email="LAN@example.com",
            password="baomat2024",
            confirm_password="baomat2024",
        )
    assert remote.called("create_user") == 0


@pytest.mark.asyncio
async def test_register_validation(registered) -> None:
    with pytest.raises(ValidationError) as ei:
        await register(registered, name="", email="minh@example.com", password="ngan", confirm_password="khac")
    assert set(ei.value.fields) == {"name", "password", "confirmPassword"}


@pytest.mark.asyncio
async def test_logout_clears_session(registered, settings) -> None:
    await login(registered, "lan@example.com", "matkhau123")
    logout(registered)

    assert registered.session.user is None
    assert registered.projects.projects == []
    assert not settings.session_path.exists()
