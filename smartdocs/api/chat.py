"""
Chat API endpoints
Guided conversations and conversation-driven document generation
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from smartdocs.database import get_db
from smartdocs.api.deps import get_current_user, get_llm_service, get_prompt_builder
from smartdocs.models.user import User
from smartdocs.models.message import Message
from smartdocs.schemas.chat import (
    ConversationRequest,
    ConversationResponse,
    AdvancedConversationRequest,
    GenerateDocumentRequest,
    GenerateSuiteRequest,
)
from smartdocs.core.exceptions import http_400_bad_request, http_404_not_found
from smartdocs.middleware.rate_limiter import chat_rate_limit, generation_rate_limit
from smartdocs.services.conversation_service import ConversationService
from smartdocs.services.document_service import DocumentService
from smartdocs.utils.time import isoformat

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def get_conversation_service(db: Session = Depends(get_db)) -> ConversationService:
    return ConversationService(db, llm=get_llm_service(), prompts=get_prompt_builder())


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    return DocumentService(db, llm=get_llm_service(), prompts=get_prompt_builder())


@router.post("/conversation", response_model=ConversationResponse)
@chat_rate_limit()
async def conversation(
    request: Request,
    payload: ConversationRequest,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    """
    One turn of a standard requirements conversation

    The assistant asks questions until it has enough to write a BRD.
    can_generate_document turns true once the reply signals readiness
    after at least four turns, or unconditionally after eight.

    Args:
        payload: Message, optional conversation_id, prior history and project_id
        current_user: Authenticated user
        service: Conversation service

    Returns:
        ConversationResponse: Assistant reply, conversation id and readiness flag

    Raises:
        HTTPException: 400 for an empty message, 404 for a foreign project
    """
    message = (payload.message or "").strip()
    if not message:
        raise http_400_bad_request("Message is required")

    return await service.chat(
        current_user,
        message,
        payload.conversation_id,
        payload.message_history,
        project_id=payload.project_id,
    )


@router.post("/advanced-conversation")
@chat_rate_limit()
async def advanced_conversation(
    request: Request,
    payload: AdvancedConversationRequest,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    """
    One turn of an advanced business planning conversation

    Returns the reply plus the planning session (current step, completed
    steps, required documents) and a confidence score.
    """
    message = (payload.message or "").strip()
    if not message:
        raise http_400_bad_request("Message is required")

    return await service.advanced_chat(
        current_user,
        message,
        payload.conversation_id,
        payload.message_history,
        payload.country,
        planning_session_id=payload.planning_session_id,
    )


@router.post("/generate-document")
@generation_rate_limit()
async def generate_document(
    request: Request,
    payload: GenerateDocumentRequest,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    """
    Generate a BRD from a conversation

    Raises:
        HTTPException: 404 for an unknown conversation, 429 when tokens run out
    """
    return await service.generate_from_conversation(current_user, payload.conversation_id)


@router.post("/generate-document-suite")
@generation_rate_limit()
async def generate_document_suite(
    request: Request,
    payload: GenerateSuiteRequest,
    current_user: User = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service)
):
    """
    Generate BRD, PRD, business plan, feasibility study and investor pitch
    from an advanced conversation

    Raises:
        HTTPException: 400 without conversation_id, 404 for an unknown
            conversation, 429 when fewer than 15,000 tokens remain
    """
    if not payload.conversation_id:
        raise http_400_bad_request("Conversation ID is required")

    return await service.generate_suite(
        current_user,
        payload.conversation_id,
        payload.planning_session_id,
        payload.country,
    )


@router.get("/conversations")
async def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    """The caller's conversations, most recently active first"""
    conversations = service.list_conversations(current_user)

    counts = {}
    if conversations:
        counts = dict(
            db.query(Message.conversation_id, func.count(Message.id))
            .filter(Message.conversation_id.in_([c.id for c in conversations]))
            .group_by(Message.conversation_id)
            .all()
        )

    return [
        {
            "id": c.id,
            "title": c.title,
            "status": c.status,
            "project_id": c.project_id,
            "metadata": dict(c.metadata_ or {}),
            "message_count": counts.get(c.id, 0),
            "created_at": isoformat(c.created_at),
            "updated_at": isoformat(c.updated_at),
        }
        for c in conversations
    ]


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    """
    A conversation with its messages in chronological order

    Raises:
        HTTPException: 404 if the conversation is missing or belongs to someone else
    """
    conversation = service.get_owned(current_user, conversation_id)
    if not conversation:
        raise http_404_not_found("Conversation not found")

    return {
        "id": conversation.id,
        "title": conversation.title,
        "status": conversation.status,
        "project_id": conversation.project_id,
        "metadata": dict(conversation.metadata_ or {}),
        "created_at": isoformat(conversation.created_at),
        "updated_at": isoformat(conversation.updated_at),
        "messages": [
            {
                "id": m.id,
                "role": m.role,
                "content": m.content,
                "metadata": dict(m.metadata_ or {}),
                "created_at": isoformat(m.created_at),
            }
            for m in conversation.messages
        ],
    }


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service)
):
    """Delete a conversation and its messages"""
    service.delete_conversation(current_user, conversation_id)
    return None
