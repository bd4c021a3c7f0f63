# src/projectboard/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the services.

Services depend on Protocols instead of concrete implementations, so the REST
client and the session file can be swapped for in-memory fakes in tests.
Payloads are raw JSON values; normalization happens in the services.
"""

from typing import Any, Protocol

JsonRecord = dict[str, Any]


class RemoteStore(Protocol):
    """The REST collection store (json-server style). Raises NotFoundError / TransportError."""

    # projects
    async def list_projects(self, *, sorted_by_id: bool = False) -> list[Any]: ...
    async def get_project(self, project_id: str) -> Any: ...
    async def create_project(self, payload: JsonRecord) -> Any: ...
    async def replace_project(self, project_id: str, payload: JsonRecord) -> Any: ...
    async def delete_project(self, project_id: str) -> None: ...

    # tasks
    async def list_tasks(self, *, project_id: str | None = None) -> list[Any]: ...
    async def create_task(self, payload: JsonRecord) -> Any: ...
    async def replace_task(self, task_id: str, payload: JsonRecord) -> Any: ...
    async def patch_task(self, task_id: str, patch: JsonRecord) -> Any: ...
    async def delete_task(self, task_id: str) -> None: ...

    # users
    async def list_users(self, *, email: str | None = None) -> list[Any]: ...
    async def get_user(self, user_id: str) -> Any: ...
    async def create_user(self, payload: JsonRecord) -> Any: ...


class SessionStore(Protocol):
    """Durable storage for the single authenticated-user record."""

    def load_user(self) -> JsonRecord | None: ...
    def save_user(self, user: JsonRecord) -> None: ...
    def clear_user(self) -> None: ...
