# src/projectboard/session/storage.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

USER_KEY = "user"


class UserStorage:
    """
    Durable client-side session: one JSON file holding {"user": {...}}.

    Only the public user fields are written (never the credential).
    A file that cannot be read is removed and treated as "logged out".
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_user(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read session from %s; clearing it", self._path)
            self.clear_user()
            return None

        user = data.get(USER_KEY) if isinstance(data, dict) else None
        if not isinstance(user, dict):
            return None
        logger.info("Restored session user id=%s", user.get("id"))
        return user

    def save_user(self, user: dict[str, Any]) -> None:
        public = {k: v for k, v in user.items() if k != "password"}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps({USER_KEY: public}, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)
        logger.debug("Saved session user id=%s to %s", public.get("id"), self._path)

    def clear_user(self) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path.unlink()
        logger.debug("Cleared session at %s", self._path)
