# src/projectboard/services/auth.py

"""
Login / registration against the /user collection.

Passwords are stored as passlib hashes. Records that still carry a plaintext
password only verify when settings.allow_legacy_plaintext is on.
"""

from __future__ import annotations

import hmac
import logging
import re

from passlib.context import CryptContext

from ..core.errors import AuthError, ConflictError, TransportError, ValidationError
from ..core.state import AppState
from ..records.models import User
from ..records.normalize import normalize_user, parse_many
from .validation import validate_login, validate_registration

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

_CREDENTIALS_MESSAGE = "Email hoặc mật khẩu không đúng"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, stored: str, *, allow_legacy_plaintext: bool = False) -> bool:
    if not stored:
        return False
    if pwd_context.identify(stored) is not None:
        return pwd_context.verify(plain_password, stored)
    if allow_legacy_plaintext:
        logger.warning("Verifying a legacy plaintext password record")
        return hmac.compare_digest(plain_password.encode("utf-8"), stored.encode("utf-8"))
    return False


def _allow_legacy(state: AppState) -> bool:
    return bool(getattr(state.settings, "allow_legacy_plaintext", False))


def next_user_id(users: list[User]) -> str:
    """Digits of the last user's id + 1 ("u7" -> "8"); empty collection -> "1"."""
    if not users:
        return "1"
    digits = re.sub(r"\D", "", users[-1].id)
    return str(int(digits) + 1) if digits else str(len(users) + 1)


async def login(state: AppState, email: str, password: str) -> User:
    errors = validate_login(email, password)
    if errors:
        raise ValidationError(errors)

    try:
        raw = await state.remote.list_users(email=email.strip())
    except TransportError as e:
        raise TransportError("Lỗi kết nối máy chủ", status_code=e.status_code) from e

    wanted = email.strip()
    allow_legacy = _allow_legacy(state)
    found = next(
        (
            u
            for u in parse_many(raw, normalize_user)
            if u.email == wanted
            and verify_password(password, u.password, allow_legacy_plaintext=allow_legacy)
        ),
        None,
    )
    if found is None:
        logger.info("Login failed for email=%s", wanted)
        raise AuthError(_CREDENTIALS_MESSAGE)

    user = User(id=found.id, name=found.name, email=found.email)
    state.session.set_user(user)
    logger.info("User logged in id=%s", user.id)
    return user


async def register(
    state: AppState,
    *,
    name: str,
    email: str,
    password: str,
    confirm_password: str,
) -> User:
    errors = validate_registration(name, email, password, confirm_password)
    if errors:
        raise ValidationError(errors)

    try:
        users = parse_many(await state.remote.list_users(), normalize_user)
    except TransportError as e:
        raise TransportError("Lỗi kết nối máy chủ", status_code=e.status_code) from e

    wanted = email.strip().lower()
    if any(u.email.strip().lower() == wanted for u in users):
        raise ConflictError("Email đã được đăng ký")

    payload = User(
        id=next_user_id(users),
        name=name.strip(),
        email=email.strip(),
        password=hash_password(password),
    ).to_payload()

    created = normalize_user(await state.remote.create_user(payload))
    if created is None:
        raise TransportError("Không thể tạo tài khoản")

    user = User(id=created.id, name=created.name, email=created.email)
    state.session.set_user(user)
    logger.info("User registered id=%s", user.id)
    return user


def logout(state: AppState) -> None:
    user = state.session.user
    state.session.logout()
    state.projects.fetched([])
    state.select_project(None)
    state.task_view.my_tasks = []
    logger.info("User logged out id=%s", user.id if user else None)
