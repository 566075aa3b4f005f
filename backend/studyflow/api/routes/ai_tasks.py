"""Routes for AI-generated tasks."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from studyflow.api.deps import CurrentUser, DbSession, Feed, get_user_resource_or_404
from studyflow.db.models import AITask
from studyflow.schemas.documents import AITaskRead

router = APIRouter(prefix="/ai-tasks", tags=["ai-tasks"])


@router.get("/", response_model=list[AITaskRead])
async def list_ai_tasks(
    current_user: CurrentUser,
    db: DbSession,
    document_id: UUID | None = None,
) -> list[AITaskRead]:
    """List AI-generated tasks, newest first, optionally for one document."""
    query = select(AITask).where(AITask.user_id == current_user.id)
    if document_id:
        query = query.where(AITask.document_id == document_id)
    query = query.order_by(AITask.created_at.desc())

    result = await db.execute(query)
    return [AITaskRead.model_validate(t) for t in result.scalars()]


@router.post("/{ai_task_id}/toggle", response_model=AITaskRead)
async def toggle_ai_task(
    ai_task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    feed: Feed,
) -> AITaskRead:
    """Flip an AI task's completed flag."""
    ai_task = await get_user_resource_or_404(db, AITask, ai_task_id, current_user.id)
    ai_task.completed = not ai_task.completed
    await db.commit()
    await db.refresh(ai_task)
    feed.publish(current_user.id, "ai_tasks")
    return AITaskRead.model_validate(ai_task)


@router.delete("/{ai_task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ai_task(
    ai_task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    feed: Feed,
) -> None:
    """Delete a single AI task."""
    ai_task = await get_user_resource_or_404(db, AITask, ai_task_id, current_user.id)
    await db.delete(ai_task)
    await db.commit()
    feed.publish(current_user.id, "ai_tasks")
