"""API routes package."""

from studyflow.api.routes import (
    ai_tasks,
    analysis,
    auth,
    documents,
    realtime,
    tasks,
)

__all__ = [
    "ai_tasks",
    "analysis",
    "auth",
    "documents",
    "realtime",
    "tasks",
]
