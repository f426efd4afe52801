"""HTTP surface for /api/tasks, run against the in-memory database."""

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.database import get_db
from app.core.timeutils import utcnow
from app.main import app

from factories import ACTIVE_PROJECT, ALICE, ARCHIVED_PROJECT, BOB, CAROL


@pytest_asyncio.fixture
async def client(seeded):
    async def override_get_db():
        async with seeded() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def payload(**overrides):
    body = {
        "title": "Fix login bug",
        "description": "Users are logged out after password reset",
        "priority": "HIGH",
        "due_date": (utcnow() + timedelta(days=7)).isoformat(),
        "assignee_ids": [ALICE],
        "project_id": ACTIVE_PROJECT,
    }
    body.update(overrides)
    return body


async def create(client, **overrides):
    resp = await client.post("/api/tasks", json=payload(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_root(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert "running" in resp.json()["message"]


@pytest.mark.asyncio
async def test_create_and_fetch(client):
    resp = await client.post("/api/tasks", json=payload(status="COMPLETED"))
    assert resp.status_code == 201
    data = resp.json()
    assert resp.headers["location"].endswith(f"/api/tasks/{data['id']}")
    assert data["status"] == "PENDING"
    assert data["priority"] == "HIGH"
    assert data["completed_at"] is None
    assert data["overdue"] is False
    assert data["hours_until_due"] >= 167
    assert data["project"] == {"id": ACTIVE_PROJECT, "name": "Website", "active": True}
    assert [a["username"] for a in data["assignees"]] == ["alice"]

    fetched = await client.get(f"/api/tasks/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Fix login bug"
    assert fetched.json()["comment_count"] == 0


@pytest.mark.asyncio
async def test_create_rejects_malformed_input(client):
    resp = await client.post("/api/tasks", json=payload(title="ab"))
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "Validation Failed"
    assert "title" in body["errors"]


@pytest.mark.asyncio
async def test_create_rejects_past_due_date(client):
    resp = await client.post(
        "/api/tasks", json=payload(due_date=(utcnow() - timedelta(days=1)).isoformat())
    )
    assert resp.status_code == 422
    assert "due_date" in resp.json()["errors"]


@pytest.mark.asyncio
async def test_create_with_unknown_assignee(client):
    resp = await client.post("/api/tasks", json=payload(assignee_ids=[ALICE, 99]))
    assert resp.status_code == 404
    body = resp.json()
    assert "99" in body["message"]
    assert body["errors"]["missing_ids"] == [99]
    assert body["path"] == "/api/tasks"


@pytest.mark.asyncio
async def test_create_with_inactive_assignee(client):
    resp = await client.post("/api/tasks", json=payload(assignee_ids=[CAROL]))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Business Rule Violation"
    assert "carol" in resp.json()["message"]


@pytest.mark.asyncio
async def test_create_in_archived_project(client):
    resp = await client.post("/api/tasks", json=payload(project_id=ARCHIVED_PROJECT))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_missing_task(client):
    resp = await client.get("/api/tasks/9999")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Task not found with ID: 9999"


@pytest.mark.asyncio
async def test_partial_update(client):
    task = await create(client, assignee_ids=[ALICE, BOB])

    resp = await client.put(f"/api/tasks/{task['id']}", json={"title": "Fix logout bug"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Fix logout bug"
    assert data["description"] == task["description"]
    assert data["status"] == task["status"]
    assert sorted(a["id"] for a in data["assignees"]) == [ALICE, BOB]

    resp = await client.put(f"/api/tasks/{task['id']}", json={"assignee_ids": []})
    assert resp.status_code == 200
    assert resp.json()["assignees"] == []


@pytest.mark.asyncio
async def test_update_rejects_null_title(client):
    task = await create(client)
    resp = await client.put(f"/api/tasks/{task['id']}", json={"title": None})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_rejects_blank_title_like_create(client):
    task = await create(client)
    resp = await client.put(
        f"/api/tasks/{task['id']}", json={"title": "   ", "assignee_ids": [99]}
    )
    assert resp.status_code == 422
    assert "title" in resp.json()["errors"]

    created = await client.post("/api/tasks", json=payload(title="   "))
    assert created.status_code == 422


@pytest.mark.asyncio
async def test_update_status_to_completed(client):
    task = await create(client)
    resp = await client.put(f"/api/tasks/{task['id']}", json={"status": "COMPLETED"})
    assert resp.status_code == 200
    assert resp.json()["completed_at"] is not None


@pytest.mark.asyncio
async def test_delete(client):
    task = await create(client)
    resp = await client.delete(f"/api/tasks/{task['id']}")
    assert resp.status_code == 204
    assert (await client.get(f"/api/tasks/{task['id']}")).status_code == 404
    assert (await client.delete(f"/api/tasks/{task['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_workflow_endpoints(client):
    task = await create(client)
    task_id = task["id"]

    resp = await client.post(f"/api/tasks/{task_id}/start")
    assert resp.status_code == 200
    assert resp.json()["status"] == "IN_PROGRESS"
    assert resp.json()["start_date"] is not None

    resp = await client.post(f"/api/tasks/{task_id}/block", json={"reason": "Waiting for QA"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "BLOCKED"
    assert "Waiting for QA" in resp.json()["notes"]

    resp = await client.post(f"/api/tasks/{task_id}/complete")
    assert resp.status_code == 400
    assert resp.json()["errors"]["current_status"] == "BLOCKED"

    assert (await client.post(f"/api/tasks/{task_id}/start")).status_code == 200
    resp = await client.post(f"/api/tasks/{task_id}/complete")
    assert resp.json()["status"] == "COMPLETED"

    resp = await client.post(f"/api/tasks/{task_id}/cancel")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Business Rule Violation"
