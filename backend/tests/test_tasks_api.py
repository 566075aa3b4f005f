"""Tests for task endpoints."""

from uuid import uuid4


async def create_task(client, headers, text, priority="medium"):
    response = await client.post("/tasks/", json={"text": text, "priority": priority}, headers=headers)
    assert response.status_code == 201
    return response.json()


async def test_requires_auth(client):
    response = await client.get("/tasks/")
    assert response.status_code == 401


async def test_create_and_get(client, auth_headers, user):
    created = await create_task(client, auth_headers, "  Finish essay  ", "high")

    assert created["text"] == "Finish essay"
    assert created["priority"] == "high"
    assert created["completed"] is False
    assert created["user_id"] == str(user.id)

    response = await client.get(f"/tasks/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == created


async def test_rejects_blank_text_and_bad_priority(client, auth_headers):
    response = await client.post("/tasks/", json={"text": "   "}, headers=auth_headers)
    assert response.status_code == 422

    response = await client.post("/tasks/", json={"text": "x", "priority": "urgent"}, headers=auth_headers)
    assert response.status_code == 422


async def test_list_filters_and_counts(client, auth_headers):
    read = await create_task(client, auth_headers, "Read chapter 2", "high")
    await create_task(client, auth_headers, "Email advisor", "low")
    await create_task(client, auth_headers, "Read paper", "low")
    await client.post(f"/tasks/{read['id']}/toggle", headers=auth_headers)

    response = await client.get("/tasks/", params={"q": "read", "status": "pending"}, headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert [t["text"] for t in body["tasks"]] == ["Read paper"]
    assert body["counts"] == {
        "completed_count": 1,
        "total_count": 3,
        "filtered_completed_count": 0,
        "filtered_total_count": 1,
        "is_filtered": True,
    }


async def test_invalid_filter_value(client, auth_headers):
    response = await client.get("/tasks/", params={"status": "done"}, headers=auth_headers)
    assert response.status_code == 422


async def test_toggle_twice_restores(client, auth_headers):
    task = await create_task(client, auth_headers, "Submit form")

    first = await client.post(f"/tasks/{task['id']}/toggle", headers=auth_headers)
    second = await client.post(f"/tasks/{task['id']}/toggle", headers=auth_headers)

    assert first.json()["completed"] is True
    assert second.json()["completed"] is False


async def test_update(client, auth_headers):
    task = await create_task(client, auth_headers, "Draft")

    response = await client.patch(
        f"/tasks/{task['id']}", json={"text": "Final draft", "priority": "low"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["text"] == "Final draft"
    assert response.json()["priority"] == "low"


async def test_delete(client, auth_headers):
    task = await create_task(client, auth_headers, "Temporary")

    response = await client.delete(f"/tasks/{task['id']}", headers=auth_headers)
    assert response.status_code == 204

    response = await client.get(f"/tasks/{task['id']}", headers=auth_headers)
    assert response.status_code == 404


async def test_other_users_tasks_are_hidden(client, auth_headers, other_auth_headers):
    task = await create_task(client, auth_headers, "Private")

    assert (await client.get(f"/tasks/{task['id']}", headers=other_auth_headers)).status_code == 404
    assert (await client.delete(f"/tasks/{task['id']}", headers=other_auth_headers)).status_code == 404
    listing = await client.get("/tasks/", headers=other_auth_headers)
    assert listing.json()["tasks"] == []


async def test_missing_task(client, auth_headers):
    response = await client.post(f"/tasks/{uuid4()}/toggle", headers=auth_headers)
    assert response.status_code == 404


async def test_mutations_publish_changes(client, auth_headers, user, feed):
    queue = feed.subscribe(user.id)

    task = await create_task(client, auth_headers, "Watch me")
    await client.post(f"/tasks/{task['id']}/toggle", headers=auth_headers)

    assert [queue.get_nowait(), queue.get_nowait()] == ["tasks", "tasks"]


async def test_analysis(client, auth_headers, analyzer):
    task = await create_task(client, auth_headers, "Email prof@uni.edu about the meeting", "high")

    response = await client.post(f"/tasks/{task['id']}/analysis", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["task_text"] == "Email prof@uni.edu about the meeting"
    assert body["analysis"]["suggestedSteps"] == analyzer.steps
    assert [a["type"] for a in body["suggestive_actions"]] == ["email", "calendar"]
    assert analyzer.calls == [("Email prof@uni.edu about the meeting", "high")]
