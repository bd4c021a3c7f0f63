# src/projectboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the REST client and the session file into AppState,
- restores the user saved by a previous run.
"""

from __future__ import annotations

import logging

from ..api.client import RestClient
from ..config import get_settings
from ..core.ports import RemoteStore
from ..core.state import AppState, ProjectListState, SessionState
from ..session.storage import UserStorage

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.session_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, remote: RemoteStore | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    `remote` can be injected (tests use an in-memory store); otherwise a RestClient
    pointed at settings.api_base_url is built.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if remote is None:
        remote = RestClient.from_settings(settings)

    state = AppState(
        settings=settings,
        remote=remote,
        session=SessionState(storage=UserStorage(settings.session_path)),
        projects=ProjectListState(items_per_page=settings.items_per_page),
    )

    user = state.session.restore_user()
    if user is not None:
        logger.info("Restored session for user id=%s", user.id)
    return state
