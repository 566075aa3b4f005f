"""
FastAPI dependencies for authentication, ownership scoping and adapters.

Security model:
- JWT stored in HttpOnly cookie (recommended) or Authorization header
- Every task/document/AI-task query is scoped by user_id at the SQL level
- No global "current user" state - the user is always passed explicitly

The storage and analyzer dependencies return the module singletons; tests
swap them through app.dependency_overrides.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated, TypeVar
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyflow.config import get_settings
from studyflow.db.base import Base
from studyflow.db.models import User
from studyflow.db.session import get_db
from studyflow.services.realtime import ChangeFeed, change_feed
from studyflow.services.s3 import S3Service, s3_service
from studyflow.services.task_analyzer import TaskAnalyzer, task_analyzer

settings = get_settings()

ModelT = TypeVar("ModelT", bound=Base)


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(user_id: UUID) -> str:
    """
    Create a JWT access token for a user.

    Token payload contains only:
    - sub: user_id as string (standard JWT subject claim)
    - exp: expiration timestamp

    Token is stateless; revocation requires a token blocklist (not implemented).
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID | None:
    """
    Decode and validate a JWT access token.

    Returns user_id if valid, None if invalid/expired.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        return UUID(user_id_str)
    except (JWTError, ValueError):
        return None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    Extract JWT token from request.

    Checked in order:
    1. HttpOnly cookie named 'access_token'
    2. Authorization header: 'Bearer <token>'
    """
    if access_token:
        return access_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Validate JWT and return the current authenticated user.

    Raises 401 if the token is missing, invalid or expired, or if the
    user no longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = decode_access_token(token)
    if user_id is None:
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


# =============================================================================
# ADAPTERS
# =============================================================================


def get_storage() -> S3Service:
    return s3_service


def get_analyzer() -> TaskAnalyzer:
    return task_analyzer


def get_change_feed() -> ChangeFeed:
    return change_feed


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Storage = Annotated[S3Service, Depends(get_storage)]
Analyzer = Annotated[TaskAnalyzer, Depends(get_analyzer)]
Feed = Annotated[ChangeFeed, Depends(get_change_feed)]


# =============================================================================
# QUERY HELPERS (enforce user scoping at query level)
# =============================================================================


async def get_user_resource_or_404(
    db: AsyncSession,
    model: type[ModelT],
    resource_id: UUID,
    user_id: UUID,
) -> ModelT:
    """
    Fetch a user-owned resource by ID.

    Usage:
        task = await get_user_resource_or_404(db, Task, task_id, current_user.id)

    Returns 404 both when the row is missing and when another user owns it,
    so resource existence is not revealed.
    """
    result = await db.execute(
        select(model).where(model.id == resource_id, model.user_id == user_id)
    )
    resource = result.scalar_one_or_none()

    if resource is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")

    return resource
