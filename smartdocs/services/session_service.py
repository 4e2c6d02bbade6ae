"""
Project Session Service - Save and resume multi-tab project workspaces

A save writes the project, its conversation with the full message list and
the ProjectSession row in a single transaction: either everything is stored
or nothing is.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from smartdocs.core.exceptions import http_400_bad_request, http_404_not_found
from smartdocs.models.conversation import Conversation
from smartdocs.models.conversation_summary import ConversationSummary
from smartdocs.models.message import Message
from smartdocs.models.project import Project
from smartdocs.models.project_session import ProjectSession
from smartdocs.models.user import User
from smartdocs.schemas.session import SessionMessage, SessionSaveRequest
from smartdocs.services.project_service import PROJECT_STAGES
from smartdocs.utils.time import ensure_utc, isoformat, utcnow
from smartdocs.utils.tokens import estimate_text_tokens

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "default"
RESUME_SUMMARY_COUNT = 3
HISTORY_LIMIT = 10


def session_key_for(conversation_id: Optional[UUID]) -> str:
    return str(conversation_id) if conversation_id else DEFAULT_SESSION_KEY


def session_tokens(messages: List[SessionMessage]) -> int:
    return sum(estimate_text_tokens(m.content or "") for m in messages)


def session_duration_minutes(session: ProjectSession, now=None) -> int:
    started = ensure_utc(session.started_at)
    if started is None:
        return 0
    ended = ensure_utc(session.ended_at) or ensure_utc(now) or utcnow()
    return max(int((ended - started).total_seconds() // 60), 0)


class SessionService:
    """
    Persist and restore project workspace state

    Usage:
        service = SessionService(db)
        result = service.save(user, project_id, SessionSaveRequest(...))
        state = service.resume(user, project_id)
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_project(self, user: User, project_id: UUID) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id, Project.user_id == user.id).first()
        if not project:
            raise http_404_not_found("Project not found")
        return project

    def _upsert_conversation(
        self,
        user: User,
        project: Project,
        conversation_id: UUID,
        tokens: int,
        message_count: int,
    ) -> Conversation:
        conversation = self.db.query(Conversation).filter(Conversation.id == conversation_id).first()
        if conversation is not None and conversation.user_id != user.id:
            raise http_404_not_found("Conversation not found")

        if conversation is None:
            conversation = Conversation(
                id=conversation_id,
                user_id=user.id,
                project_id=project.id,
                status="active",
                metadata_={},
            )
            self.db.add(conversation)

        conversation.project_id = project.id
        conversation.metadata_ = {
            **(conversation.metadata_ or {}),
            "active_tokens": tokens,
            "message_count": message_count,
        }
        self.db.flush()
        return conversation

    def _replace_messages(self, conversation: Conversation, messages: List[SessionMessage]) -> None:
        self.db.query(Message).filter(Message.conversation_id == conversation.id).delete(synchronize_session=False)
        now = utcnow()
        for item in messages:
            message = Message(
                conversation_id=conversation.id,
                role=item.role,
                content=item.content or "",
                metadata_={**(item.metadata or {}), "token_count": estimate_text_tokens(item.content or "")},
                created_at=item.timestamp or now,
            )
            if item.id is not None:
                message.id = item.id
            self.db.add(message)
        self.db.expire(conversation, ["messages"])

    def save(self, user: User, project_id: UUID, request: SessionSaveRequest) -> Dict[str, Any]:
        """
        Save the workspace

        Raises:
            HTTPException 400 "Invalid stage" for a stage outside ProjectStage
            HTTPException 404 when the project (or the conversation) is not the user's
            HTTPException 500 "Failed to save session" when the transaction fails
        """
        project = self._get_project(user, project_id)
        if request.stage is not None and request.stage not in PROJECT_STAGES:
            raise http_400_bad_request("Invalid stage")
        tokens = session_tokens(request.messages)
        message_count = len(request.messages)
        now = utcnow()

        try:
            if request.stage is not None:
                project.stage = request.stage
            if request.confidence is not None:
                project.confidence = request.confidence
            project.last_activity = now
            project.metadata_ = {
                **(project.metadata_ or {}),
                "current_tab": request.current_tab,
                "ui_state": request.ui_state,
                "last_saved": now.isoformat(),
            }

            if request.conversation_id is not None:
                conversation = self._upsert_conversation(
                    user, project, request.conversation_id, tokens, message_count
                )
                if request.messages:
                    self._replace_messages(conversation, request.messages)

            key = session_key_for(request.conversation_id)
            session = (
                self.db.query(ProjectSession)
                .filter(ProjectSession.project_id == project.id, ProjectSession.session_key == key)
                .first()
            )
            if session is None:
                session = ProjectSession(
                    project_id=project.id,
                    session_key=key,
                    started_at=now,
                )
                self.db.add(session)

            session.conversation_id = request.conversation_id
            session.stage = request.stage or project.stage
            session.confidence = request.confidence if request.confidence is not None else project.confidence
            session.tokens_used = tokens
            session.ended_at = None
            session.session_data = {
                **request.session_data,
                "message_count": message_count,
                "current_tab": request.current_tab,
                "ui_state": request.ui_state,
            }

            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save session for project {project_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to save session",
            )

        logger.info(f"Saved session {key} for project {project_id} ({message_count} messages)")
        return {
            "success": True,
            "saved_at": now.isoformat(),
            "session_data": {
                "project_id": project.id,
                "conversation_id": request.conversation_id,
                "stage": session.stage,
                "confidence": session.confidence,
                "tokens_used": tokens,
                "message_count": message_count,
            },
        }

    def resume(self, user: User, project_id: UUID) -> Dict[str, Any]:
        project = self._get_project(user, project_id)

        conversation = (
            self.db.query(Conversation)
            .filter(Conversation.project_id == project.id)
            .order_by(Conversation.updated_at.desc())
            .first()
        )
        session = (
            self.db.query(ProjectSession)
            .filter(ProjectSession.project_id == project.id)
            .order_by(ProjectSession.updated_at.desc())
            .first()
        )
        summaries = (
            self.db.query(ConversationSummary)
            .filter(ConversationSummary.project_id == project.id)
            .order_by(ConversationSummary.created_at.desc())
            .limit(RESUME_SUMMARY_COUNT)
            .all()
        )

        now = utcnow()
        project.last_activity = now
        if session is not None and session.ended_at is None:
            session.session_data = {**(session.session_data or {}), "resumed_at": now.isoformat()}
        self.db.commit()

        conversation_state = None
        if conversation is not None:
            messages = (
                self.db.query(Message)
                .filter(Message.conversation_id == conversation.id)
                .order_by(Message.created_at.asc())
                .all()
            )
            conversation_state = {
                "id": conversation.id,
                "title": conversation.title,
                "status": conversation.status,
                "messages": [
                    {
                        "id": m.id,
                        "role": m.role,
                        "content": m.content,
                        "timestamp": isoformat(m.created_at),
                        "metadata": dict(m.metadata_ or {}),
                    }
                    for m in messages
                ],
                "total_messages": len(messages),
                "active_tokens": (conversation.metadata_ or {}).get("active_tokens", 0),
            }

        session_state = None
        if session is not None:
            session_state = {
                "id": session.id,
                "conversation_id": session.conversation_id,
                "stage": session.stage,
                "confidence": session.confidence,
                "tokens_used": session.tokens_used,
                "session_data": dict(session.session_data or {}),
                "started_at": isoformat(session.started_at),
                "ended_at": isoformat(session.ended_at),
                "is_active": session.ended_at is None,
            }

        return {
            "success": True,
            "session_state": {
                "project": {
                    "id": project.id,
                    "name": project.name,
                    "description": project.description,
                    "status": project.status,
                    "stage": project.stage,
                    "confidence": project.confidence,
                    "industry": project.industry,
                    "metadata": dict(project.metadata_ or {}),
                    "last_activity": isoformat(project.last_activity),
                },
                "conversation": conversation_state,
                "session": session_state,
                "summaries": [
                    {
                        "id": s.id,
                        "summary": s.summary,
                        "message_range": s.message_range,
                        "original_token_count": s.original_token_count,
                        "summary_token_count": s.summary_token_count,
                        "created_at": isoformat(s.created_at),
                    }
                    for s in summaries
                ],
                "context_info": {
                    "total_summaries": len(summaries),
                    "has_active_session": bool(session_state and session_state["is_active"]),
                    "can_continue": conversation is not None,
                    "last_activity": isoformat(project.last_activity),
                },
            },
        }

    def end(self, user: User, project_id: UUID, conversation_id: Optional[UUID] = None) -> Dict[str, Any]:
        project = self._get_project(user, project_id)
        session = (
            self.db.query(ProjectSession)
            .filter(
                ProjectSession.project_id == project.id,
                ProjectSession.session_key == session_key_for(conversation_id),
            )
            .first()
        )
        if not session:
            raise http_404_not_found("Session not found")

        session.ended_at = utcnow()
        self.db.commit()
        return {
            "success": True,
            "ended_at": isoformat(session.ended_at),
            "duration_minutes": session_duration_minutes(session),
        }

    def history(self, user: User, project_id: UUID) -> Dict[str, Any]:
        project = self._get_project(user, project_id)
        sessions = (
            self.db.query(ProjectSession)
            .filter(ProjectSession.project_id == project.id)
            .order_by(ProjectSession.started_at.desc())
            .limit(HISTORY_LIMIT)
            .all()
        )
        now = utcnow()
        return {
            "sessions": [
                {
                    "id": s.id,
                    "conversation_id": s.conversation_id,
                    "started_at": isoformat(s.started_at),
                    "ended_at": isoformat(s.ended_at),
                    "duration_minutes": session_duration_minutes(s, now),
                    "message_count": (s.session_data or {}).get("message_count", 0),
                    "stage": s.stage,
                    "confidence": s.confidence,
                    "tokens_used": s.tokens_used,
                    "is_active": s.ended_at is None,
                }
                for s in sessions
            ],
            "has_active_sessions": any(s.ended_at is None for s in sessions),
        }
