"""User schemas."""

from uuid import UUID

from studyflow.schemas.base import BaseSchema, IDMixin, TimestampMixin


class UserRead(BaseSchema, IDMixin, TimestampMixin):
    """Identity object returned to the client after sign-in."""

    id: UUID
    email: str | None
    name: str
