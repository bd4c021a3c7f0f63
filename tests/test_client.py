# tests/test_client.py

from __future__ import annotations

import json

import httpx
import pytest

from projectboard.api.client import RestClient
from projectboard.core.errors import NotFoundError, TransportError


class Recorder:
    """httpx.MockTransport handler answering from a {(method, path): (status, body)} table."""

    def __init__(self, routes: dict[tuple[str, str], tuple[int, object]]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (404, {}))
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


def _client(routes) -> tuple[RestClient, Recorder]:
    rec = Recorder(routes)
    return RestClient("http://testserver/", transport=httpx.MockTransport(rec)), rec


def test_base_url_required() -> None:
    with pytest.raises(ValueError):
        RestClient("   ")


@pytest.mark.asyncio
async def test_list_projects_sorted_query() -> None:
    client, rec = _client({("GET", "/projects"): (200, [{"id": 1}])})
    async with client:
        assert client.base_url == "http://testserver"
        assert await client.list_projects(sorted_by_id=True) == [{"id": 1}]

    params = rec.requests[0].url.params
    assert params["_sort"] == "id"
    assert params["_order"] == "asc"


@pytest.mark.asyncio
async def test_filters_go_into_query_string() -> None:
    client, rec = _client({("GET", "/task"): (200, []), ("GET", "/user"): (200, [])})
    async with client:
        await client.list_tasks(project_id="3")
        await client.list_users(email="lan@example.com")
        await client.list_tasks()

    assert rec.requests[0].url.params["projectId"] == "3"
    assert rec.requests[1].url.params["email"] == "lan@example.com"
    assert "projectId" not in rec.requests[2].url.params


@pytest.mark.asyncio
async def test_writes_send_json_bodies() -> None:
    client, rec = _client(
        {
            ("POST", "/projects"): (201, {"id": "8"}),
            ("PATCH", "/task/4"): (200, {"id": "4", "status": "Pending"}),
            ("DELETE", "/projects/8"): (200, None),
        }
    )
    async with client:
        assert await client.create_project({"id": "8", "name": "Alpha"}) == {"id": "8"}
        assert (await client.patch_task("4", {"status": "Pending"}))["status"] == "Pending"
        assert await client.delete_project("8") is None

    assert json.loads(rec.requests[0].content) == {"id": "8", "name": "Alpha"}
    assert json.loads(rec.requests[1].content) == {"status": "Pending"}
    assert rec.requests[2].method == "DELETE"


@pytest.mark.asyncio
async def test_error_mapping() -> None:
    client, _ = _client({("GET", "/projects/1"): (500, {"error": "boom"})})
    async with client:
        with pytest.raises(NotFoundError):
            await client.get_project("2")
        with pytest.raises(TransportError) as ei:
            await client.get_project("1")
    assert ei.value.status_code == 500


@pytest.mark.asyncio
async def test_non_list_body_becomes_empty_list() -> None:
    client, _ = _client({("GET", "/user"): (200, {"unexpected": True})})
    async with client:
        assert await client.list_users() == []


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = RestClient("http://testserver", transport=httpx.MockTransport(refuse))
    async with client:
        with pytest.raises(TransportError) as ei:
            await client.list_projects()
    assert ei.value.status_code is None
