"""Pydantic schemas for API request/response validation."""

from studyflow.schemas.user import UserRead
from studyflow.schemas.auth import GoogleAuthRequest, TokenResponse
from studyflow.schemas.tasks import (
    TaskCounts,
    TaskCreate,
    TaskListResponse,
    TaskRead,
    TaskUpdate,
)
from studyflow.schemas.analysis import (
    AIAnalysis,
    ActionExtractRequest,
    AnalysisRequest,
    AnalysisResource,
    AnalysisResponse,
    ContextualAction,
    SuggestiveAction,
)
from studyflow.schemas.documents import (
    AITaskRead,
    DocumentListResponse,
    DocumentRead,
    DocumentUploadResponse,
    RejectedUpload,
)

__all__ = [
    # User
    "UserRead",
    # Auth
    "GoogleAuthRequest",
    "TokenResponse",
    # Tasks
    "TaskCounts",
    "TaskCreate",
    "TaskListResponse",
    "TaskRead",
    "TaskUpdate",
    # Analysis
    "AIAnalysis",
    "ActionExtractRequest",
    "AnalysisRequest",
    "AnalysisResource",
    "AnalysisResponse",
    "ContextualAction",
    "SuggestiveAction",
    # Documents
    "AITaskRead",
    "DocumentListResponse",
    "DocumentRead",
    "DocumentUploadResponse",
    "RejectedUpload",
]
