# src/projectboard/api/client.py

"""
HTTP client for the REST collection store (json-server style).

Endpoints:
  /projects, /projects/{id}   (list supports ?_sort=id&_order=asc)
  /task, /task/{id}           (list supports ?projectId=)
  /user, /user/{id}           (list supports ?email=)

Failures are mapped onto the error taxonomy:
- HTTP 404            -> NotFoundError
- other HTTP >= 400   -> TransportError(status_code=...)
- connection/timeouts -> TransportError
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import NotFoundError, TransportError
from ..core.ports import JsonRecord

logger = logging.getLogger(__name__)


class RestClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        base = (base_url or "").strip().rstrip("/")
        if not base:
            raise ValueError("API base URL is not set")
        self._base_url = base
        self._client = httpx.AsyncClient(
            base_url=base,
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json"},
            transport=transport,
        )
        logger.info("RestClient ready base_url=%s timeout=%.1fs", base, timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Any) -> RestClient:
        return cls(
            str(getattr(settings, "api_base_url", "http://localhost:3000")),
            timeout_seconds=float(getattr(settings, "http_timeout_seconds", 10.0)),
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RestClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # ---- low-level ----

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: JsonRecord | None = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError() from e

        logger.debug("%s %s -> %s", method, resp.request.url, resp.status_code)

        if resp.status_code == 404:
            raise NotFoundError()
        if resp.status_code >= 400:
            logger.warning("%s %s returned %s: %s", method, path, resp.status_code, resp.text[:200])
            raise TransportError(
                f"Máy chủ trả về lỗi {resp.status_code}", status_code=resp.status_code
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError("Phản hồi từ máy chủ không hợp lệ") from e

    async def _list(self, path: str, params: dict[str, str] | None = None) -> list[Any]:
        data = await self._request("GET", path, params=params)
        return data if isinstance(data, list) else []

    # ---- projects ----

    async def list_projects(self, *, sorted_by_id: bool = False) -> list[Any]:
        params = {"_sort": "id", "_order": "asc"} if sorted_by_id else None
        return await self._list("/projects", params)

    async def get_project(self, project_id: str) -> Any:
        return await self._request("GET", f"/projects/{project_id}")

    async def create_project(self, payload: JsonRecord) -> Any:
        return await self._request("POST", "/projects", json=payload)

    async def replace_project(self, project_id: str, payload: JsonRecord) -> Any:
        return await self._request("PUT", f"/projects/{project_id}", json=payload)

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    # ---- tasks ----

    async def list_tasks(self, *, project_id: str | None = None) -> list[Any]:
        params = {"projectId": str(project_id)} if project_id else None
        return await self._list("/task", params)

    async def create_task(self, payload: JsonRecord) -> Any:
        return await self._request("POST", "/task", json=payload)

    async def replace_task(self, task_id: str, payload: JsonRecord) -> Any:
        return await self._request("PUT", f"/task/{task_id}", json=payload)

    async def patch_task(self, task_id: str, patch: JsonRecord) -> Any:
        return await self._request("PATCH", f"/task/{task_id}", json=patch)

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/task/{task_id}")

    # ---- users ----

    async def list_users(self, *, email: str | None = None) -> list[Any]:
        params = {"email": email} if email else None
        return await self._list("/user", params)

    async def get_user(self, user_id: str) -> Any:
        return await self._request("GET", f"/user/{user_id}")

    async def create_user(self, payload: JsonRecord) -> Any:
        return await self._request("POST", "/user", json=payload)
