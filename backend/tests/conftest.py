"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; required values must exist first.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test-secret")
os.environ.setdefault("AWS_S3_BUCKET", "studyflow-test")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")

from collections.abc import AsyncGenerator
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studyflow.api.deps import (
    create_access_token,
    get_analyzer,
    get_change_feed,
    get_storage,
)
from studyflow.db.base import Base
from studyflow.db.models import User
from studyflow.db.session import get_db
from studyflow.main import app
from studyflow.schemas.analysis import AIAnalysis
from studyflow.services.realtime import ChangeFeed
from studyflow.services.s3 import StorageError


# =============================================================================
# FAKE ADAPTERS
# =============================================================================


class FakeStorage:
    """In-memory stand-in for S3Service."""

    def __init__(self, fail_upload: bool = False, fail_delete: bool = False):
        self.objects: dict[str, bytes] = {}
        self.metadata: dict[str, dict[str, str]] = {}
        self.deleted: list[str] = []
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete

    async def upload_document(self, file_key, file_data, content_type, metadata=None):
        if self.fail_upload:
            raise StorageError("Failed to upload document to S3: AccessDenied")
        self.objects[file_key] = file_data
        self.metadata[file_key] = metadata or {}

    async def delete_document(self, file_key):
        if self.fail_delete:
            raise StorageError("Failed to delete document from S3: network down")
        self.objects.pop(file_key, None)
        self.deleted.append(file_key)

    def generate_download_url(self, file_key, filename=None):
        return f"https://storage.test/{file_key}"


class FakeAnalyzer:
    """Returns a fixed analysis and records every call."""

    def __init__(self, steps: list[str] | None = None):
        self.steps = ["Read the document", "Update the summary", "Share it"] if steps is None else steps
        self.calls: list[tuple[str, str]] = []

    async def analyze_task(self, task_text: str, priority: str) -> AIAnalysis:
        self.calls.append((task_text, priority))
        return AIAnalysis(
            summary="Test analysis",
            suggested_steps=list(self.steps),
            estimated_time="1 hour",
            difficulty="Easy",
        )


def _make_llm_client(reply: str | None = None, error: Exception | None = None) -> SimpleNamespace:
    """Fake AsyncAnthropic exposing only messages.create."""
    if error is not None:
        create = AsyncMock(side_effect=error)
    else:
        create = AsyncMock(return_value=SimpleNamespace(content=[SimpleNamespace(text=reply)]))
    return SimpleNamespace(messages=SimpleNamespace(create=create))


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


async def _create_user(session_factory, email: str, name: str) -> User:
    async with session_factory() as session:
        user = User(email=email, name=name)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest.fixture
async def user(session_factory) -> User:
    return await _create_user(session_factory, "student@example.edu", "Test Student")


@pytest.fixture
async def other_user(session_factory) -> User:
    return await _create_user(session_factory, "other@example.edu", "Other Student")


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def other_auth_headers(other_user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(other_user.id)}"}


# =============================================================================
# APP
# =============================================================================


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed(max_queue_size=10)


@pytest.fixture
async def client(session_factory, storage, analyzer, feed) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    app.dependency_overrides[get_change_feed] = lambda: feed

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_llm_client():
    """Factory for fake language model clients."""
    return _make_llm_client
