# tests/test_task_routes.py

from __future__ import annotations

import httpx
import pytest

from taskflow.client.http import ApiClient
from taskflow.client.task_controller import TaskController
from taskflow.provider.memory import InMemoryProvider

from .fakes import STRONG_PASSWORD, register_user


async def _bearer(http: httpx.AsyncClient, provider: InMemoryProvider, email: str) -> dict[str, str]:
    await register_user(provider, email)
    resp = await http.post("/api/auth/login", json={"email": email, "password": STRONG_PASSWORD})
    http.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['data']['session']['accessToken']}"}


@pytest.mark.asyncio
async def test_requires_token(http: httpx.AsyncClient) -> None:
    resp = await http.get("/api/tasks")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized - No token provided"}

    resp = await http.get("/api/tasks", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized - Invalid token"}


@pytest.mark.asyncio
async def test_create_applies_defaults(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    auth = await _bearer(http, provider, "a@b.co")

    resp = await http.post("/api/tasks", json={"title": "  Buy milk ", "description": "   "}, headers=auth)

    assert resp.status_code == 201
    task = resp.json()["task"]
    assert task["title"] == "Buy milk"
    assert task["description"] is None
    assert task["priority"] == "low"
    assert task["deadline"] is None
    assert task["is_completed"] is False


@pytest.mark.asyncio
async def test_create_requires_title(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    auth = await _bearer(http, provider, "a@b.co")

    resp = await http.post("/api/tasks", json={"title": "   "}, headers=auth)

    assert resp.status_code == 400
    assert resp.json() == {"error": "Task title is required"}


@pytest.mark.asyncio
async def test_create_with_priority_and_deadline(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    auth = await _bearer(http, provider, "a@b.co")

    resp = await http.post(
        "/api/tasks",
        json={"title": "Report", "priority": "HIGH", "deadline": "2024-03-01T12:00:00Z"},
        headers=auth,
    )

    task = resp.json()["task"]
    assert task["priority"] == "high"
    assert task["deadline"].startswith("2024-03-01T12:00:00")


@pytest.mark.asyncio
async def test_list_is_newest_first_and_scoped_to_owner(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    alice = await _bearer(http, provider, "alice@b.co")
    bob = await _bearer(http, provider, "bob@b.co")

    for title in ("first", "second", "third"):
        await http.post("/api/tasks", json={"title": title}, headers=alice)
    await http.post("/api/tasks", json={"title": "bob's"}, headers=bob)

    resp = await http.get("/api/tasks", headers=alice)

    assert resp.status_code == 200
    assert [t["title"] for t in resp.json()["tasks"]] == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_other_users_task_is_not_found(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    alice = await _bearer(http, provider, "alice@b.co")
    bob = await _bearer(http, provider, "bob@b.co")
    created = await http.post("/api/tasks", json={"title": "private"}, headers=alice)
    task_id = created.json()["task"]["id"]

    get = await http.get(f"/api/tasks/{task_id}", headers=bob)
    put = await http.put(f"/api/tasks/{task_id}", json={"title": "mine now"}, headers=bob)
    delete = await http.delete(f"/api/tasks/{task_id}", headers=bob)

    assert get.status_code == 404 and get.json() == {"error": "Task not found"}
    assert put.status_code == 404 and put.json() == {"error": "Failed to update task or task not found"}
    assert delete.status_code == 404
    assert provider.tasks[task_id]["title"] == "private"


@pytest.mark.asyncio
async def test_update_changes_only_provided_fields(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    auth = await _bearer(http, provider, "a@b.co")
    created = await http.post(
        "/api/tasks",
        json={"title": "t", "description": "keep", "priority": "medium", "deadline": "2024-03-01T00:00:00Z"},
        headers=auth,
    )
    task = created.json()["task"]

    resp = await http.put(f"/api/tasks/{task['id']}", json={"is_completed": True, "priority": "urgent"}, headers=auth)

    updated = resp.json()["task"]
    assert updated["is_completed"] is True
    # Unknown priority is ignored.
    assert updated["priority"] == "medium"
    assert updated["description"] == "keep"
    assert updated["deadline"] == task["deadline"]
    assert updated["created_at"] == task["created_at"]


@pytest.mark.asyncio
async def test_update_clears_deadline_and_rejects_empty_title(
    http: httpx.AsyncClient, provider: InMemoryProvider
) -> None:
    auth = await _bearer(http, provider, "a@b.co")
    created = await http.post("/api/tasks", json={"title": "t", "deadline": "2024-03-01T00:00:00Z"}, headers=auth)
    task_id = created.json()["task"]["id"]

    cleared = await http.put(f"/api/tasks/{task_id}", json={"deadline": None}, headers=auth)
    empty = await http.put(f"/api/tasks/{task_id}", json={"title": " "}, headers=auth)

    assert cleared.json()["task"]["deadline"] is None
    assert empty.status_code == 400
    assert empty.json() == {"error": "Task title cannot be empty"}


@pytest.mark.asyncio
async def test_delete_then_get_is_404(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    auth = await _bearer(http, provider, "a@b.co")
    created = await http.post("/api/tasks", json={"title": "t"}, headers=auth)
    task_id = created.json()["task"]["id"]

    resp = await http.delete(f"/api/tasks/{task_id}", headers=auth)
    assert resp.json() == {"message": "Task deleted successfully"}

    assert (await http.get(f"/api/tasks/{task_id}", headers=auth)).status_code == 404
    assert (await http.delete(f"/api/tasks/{task_id}", headers=auth)).status_code == 404


@pytest.mark.asyncio
async def test_controller_against_real_handlers(api: ApiClient, provider: InMemoryProvider) -> None:
    await register_user(provider, "a@b.co")
    await api.login("a@b.co", STRONG_PASSWORD)
    ctl = TaskController(api, settle_delay_seconds=0.0)

    await ctl.create("one")
    await ctl.create("two", priority="high")
    assert [t.title for t in ctl.tasks] == ["two", "one"]

    two = ctl.tasks[0]
    assert (await ctl.toggle_complete(two.id, True)).success
    assert (await ctl.update(two.id, description="notes")).success

    await ctl.load()
    reloaded = ctl.get(two.id)
    assert reloaded is not None
    assert reloaded.is_completed is True
    assert reloaded.description == "notes"

    assert (await ctl.delete(two.id)).success
    await ctl.load()
    assert [t.title for t in ctl.tasks] == ["one"]


@pytest.mark.asyncio
async def test_controller_load_without_login_reports_error(api: ApiClient) -> None:
    ctl = TaskController(api, settle_delay_seconds=0.0)

    result = await ctl.load()

    assert not result.success
    assert ctl.error == "Unauthorized - No token provided"
