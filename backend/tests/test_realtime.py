"""Tests for the change feed and realtime snapshot helpers."""

import asyncio
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException

from studyflow.api.routes.realtime import load_snapshot, parse_collections, stream_snapshots
from studyflow.db import session as db_session
from studyflow.db.models import AITask, Task
from studyflow.services.realtime import ChangeFeed


class TestChangeFeed:
    def test_publish_reaches_only_that_users_subscribers(self):
        feed = ChangeFeed()
        alice, bob = uuid4(), uuid4()
        alice_queue = feed.subscribe(alice)
        bob_queue = feed.subscribe(bob)

        feed.publish(alice, "tasks")

        assert alice_queue.get_nowait() == "tasks"
        assert bob_queue.empty()

    def test_fan_out_to_every_stream(self):
        feed = ChangeFeed()
        user_id = uuid4()
        queues = [feed.subscribe(user_id) for _ in range(3)]

        feed.publish(user_id, "documents")

        assert all(q.get_nowait() == "documents" for q in queues)

    def test_unsubscribe(self):
        feed = ChangeFeed()
        user_id = uuid4()
        queue = feed.subscribe(user_id)
        assert feed.subscriber_count(user_id) == 1

        feed.unsubscribe(user_id, queue)
        feed.publish(user_id, "tasks")

        assert feed.subscriber_count(user_id) == 0
        assert queue.empty()

    def test_full_queue_drops_change(self):
        feed = ChangeFeed(max_queue_size=1)
        user_id = uuid4()
        queue = feed.subscribe(user_id)

        feed.publish(user_id, "tasks")
        feed.publish(user_id, "ai_tasks")

        assert queue.qsize() == 1
        assert queue.get_nowait() == "tasks"

    def test_unknown_collection(self):
        with pytest.raises(ValueError):
            ChangeFeed().publish(uuid4(), "notes")

    async def test_subscriber_wakes_on_publish(self):
        feed = ChangeFeed()
        user_id = uuid4()
        queue = feed.subscribe(user_id)

        waiter = asyncio.create_task(queue.get())
        feed.publish(user_id, "ai_tasks")

        assert await asyncio.wait_for(waiter, timeout=1) == "ai_tasks"


class TestParseCollections:
    def test_subset(self):
        assert parse_collections("tasks, ai_tasks") == ["tasks", "ai_tasks"]

    @pytest.mark.parametrize("raw", ["", " , ", "tasks,notes"])
    def test_invalid(self, raw):
        with pytest.raises(HTTPException) as exc_info:
            parse_collections(raw)
        assert exc_info.value.status_code == 400


class TestLoadSnapshot:
    async def test_tasks_scoped_to_user(self, session_factory, db, user, other_user, storage):
        async with session_factory() as setup:
            setup.add_all(
                [
                    Task(user_id=user.id, text="Mine", priority="high"),
                    Task(user_id=other_user.id, text="Theirs", priority="low"),
                ]
            )
            await setup.commit()

        items = await load_snapshot(db, storage, user.id, "tasks")

        assert [item["text"] for item in items] == ["Mine"]
        assert items[0]["priority"] == "high"
        assert items[0]["user_id"] == str(user.id)

    async def test_ai_tasks(self, session_factory, db, user, storage):
        document_id = uuid4()
        async with session_factory() as setup:
            setup.add(AITask(user_id=user.id, document_id=document_id, text="Update resume"))
            await setup.commit()

        items = await load_snapshot(db, storage, user.id, "ai_tasks")

        assert len(items) == 1
        assert items[0]["document_id"] == str(document_id)
        assert items[0]["ai_generated"] is True

    async def test_empty_documents(self, db, user, storage):
        assert await load_snapshot(db, storage, user.id, "documents") == []


async def test_stream_rejects_unknown_collection(client, auth_headers):
    response = await client.get("/realtime/stream?collections=notes", headers=auth_headers)
    assert response.status_code == 400


async def test_stream_subscribes_only_while_iterated(session_factory, user, storage, feed, monkeypatch):
    monkeypatch.setattr(db_session, "AsyncSessionLocal", session_factory)

    response = await stream_snapshots(
        current_user=SimpleNamespace(id=user.id),
        storage=storage,
        feed=feed,
        collections="tasks",
    )
    assert feed.subscriber_count(user.id) == 0

    events = response.body_iterator
    first = await events.__anext__()
    assert first["event"] == "snapshot"
    assert feed.subscriber_count(user.id) == 1

    await events.aclose()
    assert feed.subscriber_count(user.id) == 0
