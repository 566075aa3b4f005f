"""API routes for document upload, retrieval, analysis and deletion."""

import logging
from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, Response, UploadFile, status
from fastapi.responses import RedirectResponse
from sqlalchemy import select

from studyflow.api.deps import (
    Analyzer,
    CurrentUser,
    DbSession,
    Feed,
    Storage,
    get_user_resource_or_404,
)
from studyflow.config import get_settings, sanitize_error
from studyflow.db.models import Document
from studyflow.schemas.analysis import AnalysisResponse
from studyflow.schemas.documents import (
    DocumentCategoryType,
    DocumentListResponse,
    DocumentRead,
    DocumentUploadResponse,
    RejectedUpload,
)
from studyflow.services import pdf_processor
from studyflow.services.documents import (
    DOCUMENT_ANALYSIS_PRIORITY,
    UploadRejected,
    analysis_text_for_document,
    decode_data_url,
    delete_document as delete_document_cascade,
    generate_ai_tasks,
    list_document_ai_tasks,
    retrieval_url,
    store_document_bytes,
    upload_error_message,
    validate_upload,
)
from studyflow.services.s3 import S3Service, attachment_disposition
from studyflow.services.text_actions import extract_suggestive_actions

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/documents", tags=["documents"])


def to_document_read(storage: S3Service, document: Document) -> DocumentRead:
    return DocumentRead(
        id=document.id,
        user_id=document.user_id,
        name=document.name,
        content_type=document.content_type,
        size_bytes=document.size_bytes,
        category=document.category,
        page_count=document.page_count,
        url=retrieval_url(storage, document),
        is_inline=document.is_inline,
        uploaded_at=document.uploaded_at,
    )


async def _extract_pdf_text(filename: str, content_type: str, data: bytes) -> tuple[str | None, int | None]:
    if not pdf_processor.is_pdf(content_type, filename):
        return None, None
    result = await pdf_processor.extract_text(data)
    if result is None:
        logger.info("No text extracted from %s", filename)
        return None, None
    return result.text, result.page_count


# =============================================================================
# UPLOAD
# =============================================================================


@router.post("/upload", response_model=DocumentUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_documents(
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
    analyzer: Analyzer,
    feed: Feed,
    files: list[UploadFile] = File(...),
    category: DocumentCategoryType = Form("other"),
) -> DocumentUploadResponse:
    """
    Upload one or more documents, one after another.

    For each file:
    1. Validate size and type (rejections are reported, the batch continues)
    2. Store inline (small files) or in S3
    3. Extract text if it is a PDF
    4. Save metadata and generate AI tasks from an analysis of the document

    A storage or database failure stops the batch; files already processed
    stay saved.
    """
    stored: list[DocumentRead] = []
    rejected: list[RejectedUpload] = []
    ai_tasks_created = 0

    for upload in files:
        filename = upload.filename or "untitled"
        content_type = upload.content_type or "application/octet-stream"
        # At most one byte past the limit
        data = await upload.read(settings.max_upload_size_bytes + 1)

        try:
            validate_upload(filename, content_type, len(data))
        except UploadRejected as e:
            logger.info("Rejected upload %s: %s", filename, e.reason)
            rejected.append(RejectedUpload(filename=filename, reason=e.reason))
            continue

        try:
            placement = await store_document_bytes(
                storage, current_user.id, filename, data, content_type, category
            )
            extracted_text, page_count = await _extract_pdf_text(filename, content_type, data)

            document = Document(
                user_id=current_user.id,
                name=filename,
                content_type=content_type,
                size_bytes=len(data),
                category=category,
                storage_key=placement.storage_key,
                inline_data=placement.inline_data,
                extracted_text=extracted_text,
                page_count=page_count,
            )
            db.add(document)
            await db.flush()

            ai_tasks = await generate_ai_tasks(db, analyzer, document)
            await db.commit()
            await db.refresh(document)
        except Exception as e:
            logger.error("Error uploading file %s", filename, exc_info=True)
            await db.rollback()
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=upload_error_message(e),
            )

        ai_tasks_created += len(ai_tasks)
        stored.append(to_document_read(storage, document))
        feed.publish(current_user.id, "documents")
        feed.publish(current_user.id, "ai_tasks")

    if not stored and rejected:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=" ".join(r.reason for r in rejected),
        )

    return DocumentUploadResponse(
        documents=stored,
        rejected=rejected,
        ai_tasks_created=ai_tasks_created,
    )


# =============================================================================
# RETRIEVAL
# =============================================================================


@router.get("/", response_model=DocumentListResponse)
async def list_documents(
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
    category: DocumentCategoryType | None = None,
) -> DocumentListResponse:
    """List the user's documents, newest first, optionally by category."""
    query = select(Document).where(Document.user_id == current_user.id)
    if category is not None:
        query = query.where(Document.category == category)
    query = query.order_by(Document.uploaded_at.desc())

    result = await db.execute(query)
    documents = result.scalars().all()
    return DocumentListResponse(
        documents=[to_document_read(storage, d) for d in documents],
        total=len(documents),
    )


@router.get("/{document_id}", response_model=DocumentRead)
async def get_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
) -> DocumentRead:
    """Get a document with its retrieval URL."""
    document = await get_user_resource_or_404(db, Document, document_id, current_user.id)
    return to_document_read(storage, document)


@router.get("/{document_id}/download")
async def download_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
) -> Response:
    """
    Download a document.

    Inline documents are decoded and returned as an attachment; S3
    documents redirect to a presigned URL.
    """
    document = await get_user_resource_or_404(db, Document, document_id, current_user.id)

    if document.inline_data is None:
        return RedirectResponse(
            url=storage.generate_download_url(document.storage_key, filename=document.name),
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )

    try:
        content, media_type = decode_data_url(document.inline_data)
    except ValueError as e:
        logger.error("Corrupt inline data for document %s", document.id, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=sanitize_error(e, generic_message="Failed to read document."),
        )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": attachment_disposition(document.name)},
    )


# =============================================================================
# ANALYSIS & DELETION
# =============================================================================


@router.post("/{document_id}/analysis", response_model=AnalysisResponse)
async def analyze_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    analyzer: Analyzer,
    feed: Feed,
) -> AnalysisResponse:
    """
    Analyze a document's AI tasks.

    If the document has no AI tasks yet they are generated first.
    """
    document = await get_user_resource_or_404(db, Document, document_id, current_user.id)

    had_tasks = bool(await list_document_ai_tasks(db, document))
    task_text = await analysis_text_for_document(db, analyzer, document)
    await db.commit()
    if not had_tasks:
        feed.publish(current_user.id, "ai_tasks")

    analysis = await analyzer.analyze_task(task_text, DOCUMENT_ANALYSIS_PRIORITY)
    return AnalysisResponse(
        task_text=task_text,
        analysis=analysis,
        suggestive_actions=extract_suggestive_actions(task_text),
    )


@router.post("/{document_id}/ai-tasks", status_code=status.HTTP_201_CREATED)
async def regenerate_ai_tasks(
    document_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    analyzer: Analyzer,
    feed: Feed,
) -> dict[str, int]:
    """Generate another batch of AI tasks. Existing tasks are kept."""
    document = await get_user_resource_or_404(db, Document, document_id, current_user.id)
    ai_tasks = await generate_ai_tasks(db, analyzer, document)
    await db.commit()
    feed.publish(current_user.id, "ai_tasks")
    return {"ai_tasks_created": len(ai_tasks)}


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
    feed: Feed,
) -> None:
    """
    Delete a document: its stored file, its metadata, then its AI tasks.

    A storage failure is logged and does not stop the rest of the
    deletion, so the stored object may be left behind.
    """
    document = await get_user_resource_or_404(db, Document, document_id, current_user.id)
    try:
        await delete_document_cascade(db, storage, document)
        await db.commit()
    except Exception as e:
        logger.error("Error deleting document %s", document_id, exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=sanitize_error(e, generic_message="Failed to delete document. Please try again."),
        )

    feed.publish(current_user.id, "documents")
    feed.publish(current_user.id, "ai_tasks")
