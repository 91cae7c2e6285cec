"""
TaskFlow Backend - Task API Tests
==================================

What:  End-to-end tests of the HTTP surface through httpx + ASGITransport.

What we test:
    ✅ Status codes per operation (201/200/204/400/404/500)
    ✅ JSON shapes: Task, list + pagination, {"error": ...}
    ✅ Query parameter validation
    ✅ Internal failures never leak driver detail
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport

from taskflow.dependencies import get_task_store
from taskflow.services.task_store import TaskStore

TASK_KEYS = {"id", "text", "completed", "createdAt", "lastModified"}


def _timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def _create(client, text):
    response = await client.post("/api/tasks", json={"text": text})
    assert response.status_code == 201
    return response.json()


class TestScenarios:
    """End-to-end flows from the API contract."""

    @pytest.mark.asyncio
    async def test_create_then_list(self, test_client):
        response = await test_client.post("/api/tasks", json={"text": "Buy milk"})

        assert response.status_code == 201
        body = response.json()
        assert set(body) == TASK_KEYS
        assert body["completed"] is False
        assert body["text"] == "Buy milk"
        assert body["id"]

        listing = await test_client.get("/api/tasks")
        assert listing.status_code == 200
        assert [t["id"] for t in listing.json()["tasks"]] == [body["id"]]

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self, test_client):
        response = await test_client.post("/api/tasks", json={"text": "  "})

        assert response.status_code == 400
        assert response.json() == {"error": "Task text is required"}

        listing = await test_client.get("/api/tasks")
        assert listing.json()["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_complete_one_of_three(self, test_client):
        first = await _create(test_client, "One")
        second = await _create(test_client, "Two")
        third = await _create(test_client, "Three")

        response = await test_client.put(f"/api/tasks/{second['id']}", json={"completed": True})
        assert response.status_code == 200
        assert response.json()["completed"] is True
        assert response.json()["text"] == "Two"

        done = await test_client.get("/api/tasks", params={"completed": "true"})
        assert [t["id"] for t in done.json()["tasks"]] == [second["id"]]

        open_tasks = await test_client.get("/api/tasks", params={"completed": "false"})
        assert {t["id"] for t in open_tasks.json()["tasks"]} == {first["id"], third["id"]}

    @pytest.mark.asyncio
    async def test_delete_twice(self, test_client):
        task = await _create(test_client, "Buy milk")

        first = await test_client.delete(f"/api/tasks/{task['id']}")
        assert first.status_code == 204
        assert first.content == b""

        second = await test_client.delete(f"/api/tasks/{task['id']}")
        assert second.status_code == 404
        assert second.json() == {"error": "Task not found"}

    @pytest.mark.asyncio
    async def test_second_page_of_fifteen(self, test_client, make_tasks):
        await make_tasks(15)

        response = await test_client.get("/api/tasks", params={"page": 2, "limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert len(body["tasks"]) == 5
        assert body["pagination"] == {"total": 15, "page": 2, "limit": 10, "pages": 2}
        assert response.headers["X-Total-Count"] == "15"


class TestTaskRoutes:

    @pytest.mark.asyncio
    async def test_get_single_task(self, test_client):
        task = await _create(test_client, "Buy milk")

        response = await test_client.get(f"/api/tasks/{task['id']}")

        assert response.status_code == 200
        assert response.json() == task

    @pytest.mark.asyncio
    async def test_toggle_route(self, test_client):
        task = await _create(test_client, "Buy milk")

        once = await test_client.patch(f"/api/tasks/{task['id']}/toggle")
        twice = await test_client.patch(f"/api/tasks/{task['id']}/toggle")

        assert once.status_code == 200
        assert once.json()["completed"] is True
        assert twice.json()["completed"] is False
        assert _timestamp(twice.json()["lastModified"]) > _timestamp(once.json()["lastModified"])

    @pytest.mark.asyncio
    async def test_update_missing_task(self, test_client):
        response = await test_client.put("/api/tasks/12345", json={"text": "Nope"})
        assert response.status_code == 404
        assert response.json() == {"error": "Task not found"}

    @pytest.mark.asyncio
    async def test_update_missing_task_with_blank_text(self, test_client):
        response = await test_client.put("/api/tasks/999", json={"text": "  "})
        assert response.status_code == 404
        assert response.json() == {"error": "Task not found"}

    @pytest.mark.asyncio
    async def test_toggle_missing_task(self, test_client):
        response = await test_client.patch("/api/tasks/12345/toggle")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_text_keeps_completed(self, test_client):
        task = await _create(test_client, "Buy milk")
        await test_client.put(f"/api/tasks/{task['id']}", json={"completed": True})

        response = await test_client.put(f"/api/tasks/{task['id']}", json={"text": "Buy oat milk"})

        assert response.json()["text"] == "Buy oat milk"
        assert response.json()["completed"] is True

    @pytest.mark.asyncio
    async def test_update_with_blank_text_is_rejected(self, test_client):
        task = await _create(test_client, "Buy milk")

        response = await test_client.put(f"/api/tasks/{task['id']}", json={"text": " "})

        assert response.status_code == 400
        assert (await test_client.get(f"/api/tasks/{task['id']}")).json()["text"] == "Buy milk"

    @pytest.mark.asyncio
    async def test_update_rejects_non_boolean_completed(self, test_client):
        task = await _create(test_client, "Buy milk")

        response = await test_client.put(f"/api/tasks/{task['id']}", json={"completed": "yes"})

        assert response.status_code == 400
        assert "completed" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_text_too_long(self, test_client):
        response = await test_client.post("/api/tasks", json={"text": "a" * 501})
        assert response.status_code == 400
        assert response.json() == {"error": "Task text cannot exceed 500 characters"}

    @pytest.mark.asyncio
    async def test_missing_text_field(self, test_client):
        response = await test_client.post("/api/tasks", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Task text is required"}

    @pytest.mark.asyncio
    async def test_search_and_sort_query(self, test_client):
        for text in ["walk dog", "Buy MILK", "milk cow"]:
            await _create(test_client, text)

        response = await test_client.get(
            "/api/tasks", params={"search": "milk", "sortBy": "text", "sortOrder": "asc"}
        )

        assert [t["text"] for t in response.json()["tasks"]] == ["Buy MILK", "milk cow"]

    @pytest.mark.asyncio
    async def test_oversized_limit_is_capped(self, test_client, make_tasks):
        await make_tasks(3)

        response = await test_client.get("/api/tasks", params={"limit": 200})

        assert response.status_code == 200
        assert response.json()["pagination"] == {"total": 3, "page": 1, "limit": 100, "pages": 1}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"page": 0},
            {"limit": 0},
            {"sortBy": "priority"},
            {"sortOrder": "sideways"},
            {"completed": "maybe"},
        ],
    )
    async def test_invalid_query_is_400(self, test_client, params):
        response = await test_client.get("/api/tasks", params=params)

        assert response.status_code == 400
        assert set(response.json()) == {"error"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    async def test_non_integer_id_is_400(self, test_client, method):
        kwargs = {"json": {"completed": True}} if method == "put" else {}

        response = await getattr(test_client, method)("/api/tasks/abc", **kwargs)

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid task_id")


class TestServiceRoutes:

    @pytest.mark.asyncio
    async def test_root_descriptor(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.json() == {"name": "TaskFlow API", "version": "1.0.0"}

    @pytest.mark.asyncio
    async def test_health_ok(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "connected"

    @pytest.mark.asyncio
    async def test_health_reports_database_down(self, app, broken_session_factory):
        app.dependency_overrides[get_task_store] = lambda: TaskStore(broken_session_factory)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"


class TestErrorResponses:
    """5xx bodies are generic; detail stays in the logs."""

    @pytest.mark.asyncio
    async def test_database_error_is_generic_500(self, app, broken_session_factory):
        app.dependency_overrides[get_task_store] = lambda: TaskStore(broken_session_factory)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/tasks")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}
        assert "connection refused" not in response.text

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic_500(self, app):
        store = AsyncMock(spec=TaskStore)
        store.create.side_effect = RuntimeError("secret stack detail")
        app.dependency_overrides[get_task_store] = lambda: store
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/tasks", json={"text": "Buy milk"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}
        assert "secret" not in response.text

    @pytest.mark.asyncio
    async def test_store_not_initialized(self):
        from taskflow.main import create_app

        transport = ASGITransport(app=create_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/tasks")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal Server Error"}
