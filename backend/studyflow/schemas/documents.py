"""Pydantic schemas for document and AI-task operations."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from studyflow.schemas.base import BaseSchema, IDMixin
from studyflow.schemas.tasks import PriorityType

DocumentCategoryType = Literal["certificate", "resume", "transcript", "id", "other"]


class DocumentBase(BaseSchema):
    """Base document schema."""

    name: str
    content_type: str
    size_bytes: int
    category: DocumentCategoryType
    page_count: int | None = None


class DocumentRead(DocumentBase, IDMixin):
    """Document with a retrieval URL (presigned S3 URL or inline data URL)."""

    user_id: UUID
    url: str
    is_inline: bool
    uploaded_at: datetime


class RejectedUpload(BaseModel):
    """A file from an upload batch that was not stored."""

    filename: str
    reason: str


class DocumentUploadResponse(BaseModel):
    """Result of a sequential upload batch."""

    documents: list[DocumentRead]
    rejected: list[RejectedUpload]
    ai_tasks_created: int


class DocumentListResponse(BaseModel):
    """List of documents."""

    documents: list[DocumentRead]
    total: int


class AITaskRead(BaseSchema, IDMixin):
    """AI-generated task."""

    user_id: UUID
    document_id: UUID
    text: str
    completed: bool
    priority: PriorityType
    ai_generated: bool
    created_at: datetime
