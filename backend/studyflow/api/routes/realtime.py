"""Server-Sent Events stream of per-user collection snapshots."""

import json
import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sse_starlette.sse import EventSourceResponse

from studyflow.api.deps import CurrentUser, Feed, Storage
from studyflow.api.routes.documents import to_document_read
from studyflow.api.routes.tasks import list_user_tasks
from studyflow.db import session as db_session
from studyflow.db.models import AITask, Document
from studyflow.schemas.documents import AITaskRead
from studyflow.schemas.tasks import TaskRead
from studyflow.services.realtime import COLLECTIONS
from studyflow.services.s3 import S3Service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])


async def load_snapshot(
    db: AsyncSession,
    storage: S3Service,
    user_id: UUID,
    collection: str,
) -> list[dict]:
    """Current contents of one collection for a user, newest first, as JSON-ready dicts."""
    if collection == "tasks":
        tasks = await list_user_tasks(db, user_id)
        return [TaskRead.model_validate(t).model_dump(mode="json") for t in tasks]

    if collection == "documents":
        result = await db.execute(
            select(Document).where(Document.user_id == user_id).order_by(Document.uploaded_at.desc())
        )
        return [to_document_read(storage, d).model_dump(mode="json") for d in result.scalars()]

    if collection == "ai_tasks":
        result = await db.execute(
            select(AITask).where(AITask.user_id == user_id).order_by(AITask.created_at.desc())
        )
        return [AITaskRead.model_validate(t).model_dump(mode="json") for t in result.scalars()]

    raise ValueError(f"Unknown collection: {collection}")


def parse_collections(raw: str) -> list[str]:
    wanted = [c.strip() for c in raw.split(",") if c.strip()]
    unknown = [c for c in wanted if c not in COLLECTIONS]
    if unknown or not wanted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"collections must be a comma-separated subset of: {', '.join(COLLECTIONS)}",
        )
    return wanted


@router.get("/stream")
async def stream_snapshots(
    current_user: CurrentUser,
    storage: Storage,
    feed: Feed,
    collections: str = ",".join(COLLECTIONS),
):
    """
    Stream collection snapshots.

    Sends one 'snapshot' event per requested collection on connect, then a
    fresh snapshot of a collection every time it changes. Each event's data
    is {"collection": ..., "items": [...]}.
    """
    wanted = parse_collections(collections)
    user_id = current_user.id

    async def snapshot_event(collection: str) -> dict:
        # A fresh session per snapshot so each one sees the latest committed state
        async with db_session.AsyncSessionLocal() as db:
            items = await load_snapshot(db, storage, user_id, collection)
        return {
            "event": "snapshot",
            "data": json.dumps({"collection": collection, "items": items}),
        }

    async def event_generator():
        queue = feed.subscribe(user_id)
        try:
            for collection in wanted:
                yield await snapshot_event(collection)

            while True:
                collection = await queue.get()
                if collection in wanted:
                    yield await snapshot_event(collection)
        except Exception:
            logger.exception("Realtime stream failed for user %s", user_id)
            yield {"event": "error", "data": "Realtime stream interrupted."}
        finally:
            feed.unsubscribe(user_id, queue)

    return EventSourceResponse(event_generator())
