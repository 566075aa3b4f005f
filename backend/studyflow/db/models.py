"""
SQLAlchemy 2.0 Models for StudyFlow.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys and every domain row carries the owning
user_id, which scopes every query.

Column types are kept dialect-neutral (Uuid, DateTime, func.now()) so the
same models run on PostgreSQL in production and SQLite in tests.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyflow.db.base import Base


# =============================================================================
# ENUMS
# =============================================================================


class TaskPriority(str, PyEnum):
    """Priority of a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DocumentCategory(str, PyEnum):
    """Category an uploaded document is filed under."""

    CERTIFICATE = "certificate"
    RESUME = "resume"
    TRANSCRIPT = "transcript"
    ID = "id"
    OTHER = "other"


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Core user account.

    Decoupled from auth providers - a user is linked to one or more
    auth_identities (currently only Google).
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    auth_identities: Mapped[list["AuthIdentity"]] = relationship(
        "AuthIdentity", back_populates="user", cascade="all, delete-orphan"
    )
    tasks: Mapped[list["Task"]] = relationship(
        "Task", back_populates="user", cascade="all, delete-orphan"
    )
    documents: Mapped[list["Document"]] = relationship(
        "Document", back_populates="user", cascade="all, delete-orphan"
    )
    ai_tasks: Mapped[list["AITask"]] = relationship(
        "AITask", back_populates="user", cascade="all, delete-orphan"
    )


class AuthIdentity(Base):
    """
    OAuth provider identity linked to a user.

    Does NOT store OAuth access/refresh tokens - we only verify id_tokens at login.
    """

    __tablename__ = "auth_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
        Index("idx_auth_identities_provider_lookup", "provider", "provider_user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)  # 'google'
    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)  # Provider's 'sub' claim
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # For audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_login_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="auth_identities")


class Task(Base):
    """
    User-created to-do item.

    Mutated only by direct field updates; last write wins.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_user_created_at", "user_id", "created_at"),
        CheckConstraint(
            "priority IN ('low', 'medium', 'high')",
            name="valid_task_priority",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="tasks")


class Document(Base):
    """
    Uploaded file metadata.

    The bytes live either in S3 (storage_key set) or inline as a base64
    data URL (inline_data set) for small files and failed S3 uploads.
    PDF text is extracted at upload time to give the AI analysis context.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_user_uploaded_at", "user_id", "uploaded_at"),
        CheckConstraint(
            "category IN ('certificate', 'resume', 'transcript', 'id', 'other')",
            name="valid_document_category",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # File metadata
    name: Mapped[str] = mapped_column(String(), nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(), nullable=False, server_default="application/octet-stream"
    )
    size_bytes: Mapped[int] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="other")

    # Where the bytes live
    storage_key: Mapped[Optional[str]] = mapped_column(String(), unique=True, nullable=True)
    inline_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # data: URL

    # Extracted content (PDF only)
    extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    page_count: Mapped[Optional[int]] = mapped_column(nullable=True)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="documents")

    @property
    def is_inline(self) -> bool:
        return self.storage_key is None


class AITask(Base):
    """
    To-do item generated from an AI analysis of a document.

    document_id has no foreign key; deleting a document removes its
    AI tasks explicitly, one by one.
    """

    __tablename__ = "ai_tasks"
    __table_args__ = (
        Index("idx_ai_tasks_user_created_at", "user_id", "created_at"),
        Index("idx_ai_tasks_document_id", "document_id"),
        CheckConstraint(
            "priority IN ('low', 'medium', 'high')",
            name="valid_ai_task_priority",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    document_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    ai_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="ai_tasks")
