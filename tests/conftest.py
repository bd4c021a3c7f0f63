# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from projectboard.cli.bootstrap import create_initial_state
from projectboard.core.state import AppState
from projectboard.records.models import User

from .fakes import FakeRemoteStore, project_row


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the services.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="projectboard-test",
        log_level="DEBUG",
        console_enabled=False,
        api_base_url="http://testserver",
        http_timeout_seconds=5.0,
        allow_legacy_plaintext=False,
        items_per_page=7,
        # Paths (tmp per test run)
        data_dir=tmp_path / "data",
        session_path=tmp_path / "data" / "session.json",
    )


@pytest.fixture()
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture()
def state(settings: SimpleNamespace, remote: FakeRemoteStore) -> AppState:
    """
    AppState built through the real composition root, with the REST client
    replaced by the in-memory store. The session file is real (tmp_path).
    """
    return create_initial_state(settings=settings, remote=remote)


@pytest.fixture()
def owner() -> User:
    return User(id="10", name="Chủ Dự Án", email="owner@example.com")


@pytest.fixture()
def logged_in(state: AppState, remote: FakeRemoteStore, owner: User) -> AppState:
    """State with `owner` logged in and one owned project ("1", "Alpha") on the server."""
    remote.users.append({"id": owner.id, "name": owner.name, "email": owner.email, "password": ""})
    remote.projects.append(project_row("1", "Alpha", owner.id))
    state.session.set_user(owner)
    return state
