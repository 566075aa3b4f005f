"""
Document workflow: upload validation, storage placement, AI task generation
and best-effort cascade deletion.

Storage placement:
- Files below settings.inline_storage_max_bytes are kept inline as a
  base64 data URL on the document row.
- Larger files go to S3. If the S3 upload fails and the file is below
  settings.inline_fallback_max_bytes, it is kept inline instead.

Deletion is not transactional across S3 and the database: a failed blob
delete is logged and the metadata row and AI tasks are removed anyway,
which can leave an orphaned object in the bucket.
"""

import base64
import logging
import re
import time
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyflow.config import get_settings
from studyflow.db.models import AITask, Document
from studyflow.services.s3 import S3Service, StorageError
from studyflow.services.task_analyzer import TaskAnalyzer

logger = logging.getLogger(__name__)
settings = get_settings()

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/jpg",
        "text/plain",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
ALLOWED_EXTENSIONS = re.compile(r"\.(pdf|jpg|jpeg|png|txt|doc|docx)$")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

AI_TASK_PRIORITY = "medium"
DOCUMENT_ANALYSIS_PRIORITY = "high"


class UploadRejected(Exception):
    """A single file in an upload batch failed validation."""

    def __init__(self, filename: str, reason: str, status_code: int = 400):
        super().__init__(reason)
        self.filename = filename
        self.reason = reason
        self.status_code = status_code


@dataclass
class StoredFile:
    """Where an uploaded file's bytes ended up."""

    storage_key: str | None = None
    inline_data: str | None = None


# =============================================================================
# UPLOAD
# =============================================================================


def validate_upload(filename: str, content_type: str | None, size: int) -> None:
    """
    Check size and type of an uploaded file.

    A file passes the type check if either its MIME type is allowed or its
    name ends in an allowed extension.

    Raises:
        UploadRejected: 413 when too large, 415 when the type is unsupported
    """
    if size > settings.max_upload_size_bytes:
        max_mb = settings.max_upload_size_bytes // (1024 * 1024)
        raise UploadRejected(
            filename,
            f"File {filename} is too large. Maximum size is {max_mb}MB.",
            status_code=413,
        )
    if content_type not in ALLOWED_CONTENT_TYPES and not ALLOWED_EXTENSIONS.search(filename.lower()):
        raise UploadRejected(
            filename,
            f"File type {content_type} is not supported.",
            status_code=415,
        )


def safe_filename(filename: str, timestamp_ms: int | None = None) -> str:
    """Prefix a millisecond timestamp and replace unsafe characters with '_'."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{timestamp_ms}_{_UNSAFE_FILENAME_CHARS.sub('_', filename)}"


def to_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> tuple[bytes, str]:
    """Split a base64 data URL into (bytes, content_type)."""
    header, _, payload = data_url.partition(",")
    if not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Not a base64 data URL")
    content_type = header[len("data:"):-len(";base64")] or "application/octet-stream"
    return base64.b64decode(payload), content_type


def upload_error_message(error: Exception) -> str:
    """Map an upload failure to a user-facing message."""
    message = str(error)
    if "cors" in message.lower():
        return "Upload failed due to browser security settings. Please try again or contact support."
    if "permission" in message.lower() or "accessdenied" in message.lower():
        return "Permission denied. Please ensure you are logged in and try again."
    return "Upload failed. Please check your internet connection and try again."


async def store_document_bytes(
    storage: S3Service,
    user_id: UUID,
    filename: str,
    data: bytes,
    content_type: str,
    category: str,
) -> StoredFile:
    """
    Place file bytes inline or in S3.

    Raises:
        StorageError: If S3 fails and the file is too large to keep inline
    """
    size = len(data)
    if size < settings.inline_storage_max_bytes:
        return StoredFile(inline_data=to_data_url(data, content_type))

    file_key = f"documents/{user_id}/{safe_filename(filename)}"
    try:
        await storage.upload_document(
            file_key,
            data,
            content_type,
            metadata={
                "originalName": filename,
                "uploadedBy": str(user_id),
                "category": category,
            },
        )
        return StoredFile(storage_key=file_key)
    except StorageError as e:
        logger.error("Storage upload failed for %s, falling back to base64: %s", filename, e)
        if size < settings.inline_fallback_max_bytes:
            return StoredFile(inline_data=to_data_url(data, content_type))
        raise StorageError("File too large and storage upload failed") from e


def retrieval_url(storage: S3Service, document: Document) -> str:
    """URL a client can fetch the document from."""
    if document.inline_data is not None:
        return document.inline_data
    return storage.generate_download_url(document.storage_key, filename=document.name)


# =============================================================================
# AI TASKS
# =============================================================================


def context_prompt(filename: str, category: str, extracted_text: str | None = None) -> str:
    """Build the category-specific analysis prompt for a document."""
    base = f'I\'ve uploaded a document "{filename}" of type "{category}".'

    if category == "certificate":
        prompt = (
            f"{base} This is a certificate document. What tasks should I complete to effectively "
            "use this certificate for job applications, portfolio building, or skill verification?"
        )
    elif category == "resume":
        prompt = (
            f"{base} This is my resume/CV. What tasks should I do to improve, update, or "
            "effectively use this resume for job applications?"
        )
    elif category == "transcript":
        prompt = (
            f"{base} This is an academic transcript. What tasks should I complete to leverage "
            "this transcript for applications, career advancement, or further education?"
        )
    elif category == "id":
        prompt = (
            f"{base} This is an identification document. What organizational or administrative "
            "tasks should I complete related to this document?"
        )
    else:
        prompt = (
            f"{base} What relevant tasks should I complete related to this document for "
            "organization, processing, or follow-up actions?"
        )

    if extracted_text and extracted_text.strip():
        excerpt = extracted_text.strip()[: settings.document_context_max_chars]
        prompt += f"\n\nDocument excerpt:\n{excerpt}"
    return prompt


def fallback_tasks(filename: str, category: str) -> list[str]:
    """Static task list used when the analysis yields no steps."""
    base_tasks = [f"Review and organize {filename}", f"Ensure {filename} is up to date"]

    if category == "certificate":
        extra = [
            "Add certificate to portfolio",
            "Update resume with new certification",
            "Share achievement on professional networks",
        ]
    elif category == "resume":
        extra = [
            "Review resume for accuracy and relevance",
            "Tailor resume for specific job applications",
            "Update contact information and skills",
        ]
    elif category == "transcript":
        extra = [
            "Verify transcript accuracy",
            "Use transcript for academic applications",
            "Calculate GPA if needed",
        ]
    elif category == "id":
        extra = [
            "Store document securely",
            "Create backup copies",
            "Note expiration date if applicable",
        ]
    else:
        extra = [
            "File document appropriately",
            "Create backup if important",
        ]
    return base_tasks + extra


async def generate_ai_tasks(
    db: AsyncSession,
    analyzer: TaskAnalyzer,
    document: Document,
) -> list[AITask]:
    """
    Analyze a document and add one AI task per suggested step.

    Re-running appends another batch; nothing is de-duplicated.
    """
    logger.info("Generating AI tasks for document %s (%s)", document.name, document.category)
    prompt = context_prompt(document.name, document.category, document.extracted_text)
    analysis = await analyzer.analyze_task(prompt, DOCUMENT_ANALYSIS_PRIORITY)

    steps = analysis.suggested_steps
    if not steps:
        logger.warning("No suggested steps for document %s, using fallback tasks", document.id)
        steps = fallback_tasks(document.name, document.category)

    ai_tasks = [
        AITask(
            user_id=document.user_id,
            document_id=document.id,
            text=step,
            completed=False,
            priority=AI_TASK_PRIORITY,
            ai_generated=True,
        )
        for step in steps
    ]
    db.add_all(ai_tasks)
    await db.flush()
    logger.info("Created %d AI tasks for document %s", len(ai_tasks), document.id)
    return ai_tasks


async def list_document_ai_tasks(db: AsyncSession, document: Document) -> list[AITask]:
    result = await db.execute(
        select(AITask)
        .where(AITask.user_id == document.user_id, AITask.document_id == document.id)
        .order_by(AITask.created_at.asc())
    )
    return list(result.scalars().all())


async def analysis_text_for_document(
    db: AsyncSession,
    analyzer: TaskAnalyzer,
    document: Document,
) -> str:
    """
    Text to analyze for a document: its AI task texts joined with '. '.

    Generates the AI tasks first when the document has none, and falls back
    to the document's context prompt if there is still nothing to join.
    """
    ai_tasks = await list_document_ai_tasks(db, document)
    if not ai_tasks:
        ai_tasks = await generate_ai_tasks(db, analyzer, document)

    task_text = ". ".join(task.text for task in ai_tasks)
    if not task_text:
        task_text = context_prompt(document.name, document.category, document.extracted_text)
    return task_text


# =============================================================================
# DELETION
# =============================================================================


async def delete_document(
    db: AsyncSession,
    storage: S3Service,
    document: Document,
) -> int:
    """
    Delete a document's blob, its metadata row and its AI tasks, in that order.

    A storage failure is logged and swallowed. Every AI task whose
    document_id matches is deleted regardless.

    Returns:
        Number of AI tasks deleted
    """
    if document.storage_key:
        try:
            await storage.delete_document(document.storage_key)
        except Exception:
            logger.error(
                "Error deleting from storage (key=%s), continuing with metadata deletion",
                document.storage_key,
                exc_info=True,
            )

    ai_tasks = await list_document_ai_tasks(db, document)

    await db.delete(document)
    for task in ai_tasks:
        await db.delete(task)
    await db.flush()

    logger.info("Deleted document %s and %d AI tasks", document.id, len(ai_tasks))
    return len(ai_tasks)
