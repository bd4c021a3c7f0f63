# src/projectboard/core/errors.py

"""
Error taxonomy shared by services and connectors.

Every error carries a user-facing message (the UI language is Vietnamese).
Services raise; connectors catch ProjectBoardError and show friendly_error_message(exc).
"""

from __future__ import annotations


class ProjectBoardError(Exception):
    """Base class: an operation failed and left prior state untouched."""

    default_message = "Đã xảy ra lỗi"

    def __init__(self, message: str | None = None) -> None:
        self.message = (message or self.default_message).strip()
        super().__init__(self.message)


class ValidationError(ProjectBoardError):
    """Field-level input errors. Raised before anything is sent to the network."""

    default_message = "Dữ liệu không hợp lệ"

    def __init__(self, fields: dict[str, str], message: str | None = None) -> None:
        self.fields = dict(fields)
        if message is None and self.fields:
            message = "; ".join(self.fields.values())
        super().__init__(message)


class NotFoundError(ProjectBoardError):
    default_message = "Không tìm thấy dữ liệu"


class TransportError(ProjectBoardError):
    """Network failure or a non-404 error status from the remote store."""

    default_message = "Không thể kết nối tới máy chủ"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConflictError(ProjectBoardError):
    """Duplicate detected by scanning collections we already fetched."""

    default_message = "Dữ liệu đã tồn tại"


class MemberPolicyError(ProjectBoardError):
    default_message = "Không thể thay đổi thành viên"


class AuthError(ProjectBoardError):
    """Bad credentials. The same message is attached to every credential field."""

    default_message = "Email hoặc mật khẩu không đúng"

    def __init__(self, message: str | None = None, *, fields: tuple[str, ...] = ("email", "password")) -> None:
        super().__init__(message)
        self.fields = {name: self.message for name in fields}


def friendly_error_message(err: Exception) -> str:
    if isinstance(err, ValidationError) and err.fields:
        return "\n".join(f"{field}: {msg}" for field, msg in err.fields.items())
    if isinstance(err, ProjectBoardError):
        return err.message
    msg = str(err).strip()
    return msg or ProjectBoardError.default_message
