"""Task CRUD, filtering and AI analysis routes."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from studyflow.api.deps import Analyzer, CurrentUser, DbSession, Feed, get_user_resource_or_404
from studyflow.db.models import Task
from studyflow.schemas.analysis import AnalysisResponse
from studyflow.schemas.tasks import (
    PriorityFilterType,
    StatusFilterType,
    TaskCreate,
    TaskListResponse,
    TaskRead,
    TaskUpdate,
)
from studyflow.services.task_filters import filter_tasks, summarize
from studyflow.services.text_actions import extract_suggestive_actions

router = APIRouter(prefix="/tasks", tags=["tasks"])


async def list_user_tasks(db, user_id: UUID) -> list[Task]:
    """All tasks for a user, newest first."""
    result = await db.execute(
        select(Task).where(Task.user_id == user_id).order_by(Task.created_at.desc())
    )
    return list(result.scalars().all())


@router.get("/", response_model=TaskListResponse)
async def list_tasks(
    current_user: CurrentUser,
    db: DbSession,
    q: str | None = None,
    priority: PriorityFilterType = "all",
    status: StatusFilterType = "all",
) -> TaskListResponse:
    """
    List tasks for the current user.

    Filters (combined with AND):
    - q: Case-insensitive search in task text
    - priority: all, low, medium, high
    - status: all, completed, pending
    """
    tasks = await list_user_tasks(db, current_user.id)
    filtered = filter_tasks(tasks, search=q, priority=priority, status=status)
    return TaskListResponse(
        tasks=[TaskRead.model_validate(t) for t in filtered],
        counts=summarize(tasks, filtered, search=q, priority=priority, status=status),
    )


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser,
    db: DbSession,
    feed: Feed,
) -> TaskRead:
    """Create a new task."""
    task = Task(user_id=current_user.id, completed=False, **data.model_dump())
    db.add(task)
    await db.commit()
    await db.refresh(task)
    feed.publish(current_user.id, "tasks")
    return TaskRead.model_validate(task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> TaskRead:
    """Get a specific task by ID."""
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    return TaskRead.model_validate(task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    current_user: CurrentUser,
    db: DbSession,
    feed: Feed,
) -> TaskRead:
    """Update a task. Last write wins."""
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(task, key, value)
    await db.commit()
    await db.refresh(task)
    feed.publish(current_user.id, "tasks")
    return TaskRead.model_validate(task)


@router.post("/{task_id}/toggle", response_model=TaskRead)
async def toggle_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    feed: Feed,
) -> TaskRead:
    """Flip a task's completed flag."""
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    task.completed = not task.completed
    await db.commit()
    await db.refresh(task)
    feed.publish(current_user.id, "tasks")
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    feed: Feed,
) -> None:
    """Delete a task."""
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    await db.delete(task)
    await db.commit()
    feed.publish(current_user.id, "tasks")


@router.post("/{task_id}/analysis", response_model=AnalysisResponse)
async def analyze_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    analyzer: Analyzer,
) -> AnalysisResponse:
    """
    Ask the language model to break a task down.

    Always succeeds: any model or parsing failure yields the static
    fallback analysis.
    """
    task = await get_user_resource_or_404(db, Task, task_id, current_user.id)
    analysis = await analyzer.analyze_task(task.text, task.priority)
    return AnalysisResponse(
        task_text=task.text,
        analysis=analysis,
        suggestive_actions=extract_suggestive_actions(task.text),
    )
