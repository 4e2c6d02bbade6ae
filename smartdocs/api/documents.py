"""
Document API endpoints
Generation from a project idea, the document library and export
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from smartdocs.database import get_db
from smartdocs.api.deps import get_current_user, get_llm_service, get_prompt_builder
from smartdocs.models.user import User
from smartdocs.models.document import Document
from smartdocs.schemas.document import (
    DocumentGenerateRequest,
    MultiDocumentGenerateRequest,
    AnalyzeRequest,
    DocumentUpdate,
    ExportRequest,
)
from smartdocs.core.exceptions import http_400_bad_request, http_404_not_found
from smartdocs.middleware.rate_limiter import generation_rate_limit
from smartdocs.services.document_service import DocumentService
from smartdocs.services.export_service import (
    DOCX_CONTENT_TYPE,
    HTML_CONTENT_TYPE,
    MARKDOWN_CONTENT_TYPE,
    SUPPORTED_FORMATS,
    build_docx,
    build_print_html,
    markdown_to_html,
    safe_filename,
    word_count,
)
from smartdocs.utils.time import isoformat

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

DOCUMENT_STATUSES = {"generated", "draft", "final"}


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    return DocumentService(db, llm=get_llm_service(), prompts=get_prompt_builder())


def serialize_document(document: Document, include_content: bool = True) -> dict:
    data = {
        "id": document.id,
        "title": document.title,
        "type": document.type,
        "status": document.status,
        "project_id": document.project_id,
        "tokens_used": document.tokens_used,
        "ai_model": document.ai_model,
        "generation_time": document.generation_time,
        "metadata": dict(document.metadata_ or {}),
        "created_at": isoformat(document.created_at),
        "updated_at": isoformat(document.updated_at),
    }
    if include_content:
        data["content"] = document.content
    return data


def get_owned_document(db: Session, user: User, document_id: UUID) -> Document:
    document = db.query(Document).filter(Document.id == document_id, Document.user_id == user.id).first()
    if not document:
        raise http_404_not_found("Document not found")
    return document


@router.post("/generate")
@generation_rate_limit()
async def generate_document(
    request: Request,
    payload: DocumentGenerateRequest,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    """
    Generate a document from a free-text project idea

    The idea is analyzed first. If it is too thin and no answers were
    supplied, the response carries needs_more_info with questions to ask
    instead of a document.

    Args:
        payload: Idea, document type, extracted file texts, answers, project and provider

    Returns:
        dict: The generated document summary, or the follow-up questions

    Raises:
        HTTPException: 404 for a foreign project, 429 when tokens run out,
            503 when every AI provider fails
    """
    return await service.generate_from_idea(
        current_user,
        payload.project_idea,
        document_type=payload.document_type,
        uploaded_files=payload.uploaded_files,
        additional_info=payload.additional_info,
        project_id=payload.project_id,
        provider=payload.provider,
    )


@router.post("/generate-multi")
@generation_rate_limit()
async def generate_multiple_documents(
    request: Request,
    payload: MultiDocumentGenerateRequest,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    """Generate one document per requested type; failures are reported per type"""
    return await service.generate_multi(
        current_user,
        payload.project_idea,
        payload.document_types,
        uploaded_files=payload.uploaded_files,
        additional_info=payload.additional_info,
        project_id=payload.project_id,
        provider=payload.provider,
    )


@router.post("/analyze")
async def analyze_project(
    payload: AnalyzeRequest,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    """Run only the analysis step (no tokens are charged)"""
    return await service.analyze_project_idea(payload.project_idea, payload.uploaded_files)


@router.post("/export")
async def export_document(
    payload: ExportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Export a document as Word (docx) or print-ready HTML (pdf)

    The pdf format returns an HTML page styled for the browser's
    "Save as PDF".

    Raises:
        HTTPException: 400 for missing fields or an unsupported format,
            404 for an unknown document
    """
    if not payload.document_id or not payload.format:
        raise http_400_bad_request("Document ID and format are required")
    export_format = payload.format.lower()
    if export_format not in SUPPORTED_FORMATS:
        raise http_400_bad_request("Unsupported format")

    document = get_owned_document(db, current_user, payload.document_id)
    filename = safe_filename(document.title)

    if export_format == "docx":
        return Response(
            content=build_docx(document.content),
            media_type=DOCX_CONTENT_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}.docx"'},
        )

    return Response(
        content=build_print_html(document.title, document.content),
        media_type=HTML_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}.html"'},
    )


@router.get("")
async def list_documents(
    page: int = 1,
    limit: int = 10,
    type: Optional[str] = None,
    status: Optional[str] = None,
    project_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    List the caller's documents, most recently updated first

    Content is left out of the listing; fetch a single document for it.
    """
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.query(Document).filter(Document.user_id == current_user.id)
    if type:
        query = query.filter(Document.type == type)
    if status:
        query = query.filter(Document.status == status)
    if project_id:
        query = query.filter(Document.project_id == project_id)

    total = query.count()
    documents = (
        query.order_by(Document.updated_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "documents": [serialize_document(d, include_content=False) for d in documents],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.get("/{document_id}")
async def get_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return serialize_document(get_owned_document(db, current_user, document_id))


@router.patch("/{document_id}")
async def update_document(
    document_id: UUID,
    update: DocumentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update title, content or status

    Raises:
        HTTPException: 400 for an unknown status, 404 for an unknown document
    """
    document = get_owned_document(db, current_user, document_id)
    changes = update.model_dump(exclude_unset=True)

    if changes.get("status") is not None and changes["status"] not in DOCUMENT_STATUSES:
        raise http_400_bad_request("Invalid status")

    for field, value in changes.items():
        if value is not None:
            setattr(document, field, value)

    db.commit()
    db.refresh(document)
    return serialize_document(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    document = get_owned_document(db, current_user, document_id)
    db.delete(document)
    db.commit()
    logger.info(f"Deleted document {document_id} for user {current_user.id}")
    return None


@router.get("/{document_id}/download")
async def download_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Raw markdown as an attachment"""
    document = get_owned_document(db, current_user, document_id)
    return Response(
        content=document.content,
        media_type=MARKDOWN_CONTENT_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{safe_filename(document.title)}.md"',
            "Cache-Control": "no-cache",
        },
    )


@router.get("/{document_id}/preview")
async def preview_document(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Escaped HTML rendering for in-app preview"""
    document = get_owned_document(db, current_user, document_id)
    return {
        "id": document.id,
        "title": document.title,
        "type": document.type,
        "html": markdown_to_html(document.content),
        "word_count": word_count(document.content),
        "created_at": isoformat(document.created_at),
    }
