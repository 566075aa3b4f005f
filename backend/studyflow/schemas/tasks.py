"""Task schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from studyflow.schemas.base import BaseSchema

# Type aliases for enums (used as literals for API validation)
PriorityType = Literal["low", "medium", "high"]
PriorityFilterType = Literal["all", "low", "medium", "high"]
StatusFilterType = Literal["all", "completed", "pending"]


class TaskCreate(BaseSchema):
    """Schema for creating a task."""

    text: str = Field(..., min_length=1)
    priority: PriorityType = "medium"


class TaskUpdate(BaseSchema):
    """Schema for updating a task. All fields optional."""

    text: str | None = Field(None, min_length=1)
    priority: PriorityType | None = None
    completed: bool | None = None


class TaskRead(BaseSchema):
    """Schema for reading task data."""

    id: UUID
    user_id: UUID
    text: str
    completed: bool
    priority: PriorityType
    created_at: datetime


class TaskCounts(BaseModel):
    """Completion counters for the full and filtered task lists."""

    completed_count: int
    total_count: int
    filtered_completed_count: int
    filtered_total_count: int
    is_filtered: bool


class TaskListResponse(BaseModel):
    """Filtered tasks plus counters."""

    tasks: list[TaskRead]
    counts: TaskCounts
