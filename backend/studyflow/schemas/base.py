"""Shared schema configuration and mixins."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base for schemas that are read from ORM rows or validated from request bodies."""

    model_config = ConfigDict(
        from_attributes=True,  # Build directly from SQLAlchemy rows
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class IDMixin(BaseModel):
    """UUID primary key."""

    id: UUID


class TimestampMixin(BaseModel):
    """Row creation and last-update times."""

    created_at: datetime
    updated_at: datetime
