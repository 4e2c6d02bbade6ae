"""
Project session endpoints
Save and resume a project workspace across tabs and devices
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from smartdocs.database import get_db
from smartdocs.api.deps import get_current_user
from smartdocs.models.user import User
from smartdocs.schemas.session import SessionSaveRequest, SessionEndRequest
from smartdocs.services.session_service import SessionService

router = APIRouter(prefix="/projects", tags=["sessions"])


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    return SessionService(db)


@router.post("/{project_id}/session/save")
async def save_session(
    project_id: UUID,
    payload: SessionSaveRequest,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """
    Save the workspace in a single transaction

    Updates the project, upserts the conversation and replaces its
    messages, then upserts the session row keyed by conversation.

    Raises:
        HTTPException: 404 for an unknown project or a foreign conversation,
            500 when the transaction fails
    """
    return service.save(current_user, project_id, payload)


@router.post("/{project_id}/session/resume")
async def resume_session(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Latest conversation, session and summaries needed to continue work"""
    return service.resume(current_user, project_id)


@router.post("/{project_id}/session/end")
async def end_session(
    project_id: UUID,
    payload: Optional[SessionEndRequest] = None,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    conversation_id = payload.conversation_id if payload else None
    return service.end(current_user, project_id, conversation_id)


@router.get("/{project_id}/session/history")
async def session_history(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Last ten sessions with durations"""
    return service.history(current_user, project_id)
