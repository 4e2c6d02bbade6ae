"""
Project Service - CRUD, tier limits and dashboard summaries for projects
"""

import logging
import math
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from smartdocs.core.exceptions import http_400_bad_request, http_403_forbidden, http_404_not_found
from smartdocs.core.plans import SubscriptionTier, get_project_limit, parse_tier
from smartdocs.models.conversation import Conversation
from smartdocs.models.conversation_summary import ConversationSummary
from smartdocs.models.document import Document
from smartdocs.models.message import Message
from smartdocs.models.project import Project
from smartdocs.models.project_session import ProjectSession
from smartdocs.models.user import User
from smartdocs.schemas.project import ProjectStage, ProjectStatus
from smartdocs.utils.time import isoformat, relative_time, utcnow

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "name": Project.name,
    "created": Project.created_at,
    "updated": Project.updated_at,
    "last_activity": Project.last_activity,
}

PROJECT_STATUSES = {s.value for s in ProjectStatus}
PROJECT_STAGES = {s.value for s in ProjectStage}


def progress_color(confidence: int) -> str:
    if confidence >= 80:
        return "green"
    if confidence >= 60:
        return "blue"
    if confidence >= 40:
        return "yellow"
    return "gray"


def activity_summary(document_count: int, conversation_count: int) -> str:
    if not document_count and not conversation_count:
        return "No activity yet"
    return f"{document_count} documents · {conversation_count} conversations"


def serialize_project(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "industry": project.industry,
        "status": project.status,
        "stage": project.stage,
        "confidence": project.confidence,
        "metadata": dict(project.metadata_ or {}),
        "last_activity": isoformat(project.last_activity),
        "created_at": isoformat(project.created_at),
        "updated_at": isoformat(project.updated_at),
    }


class ProjectService:
    """
    Project workspace management

    Usage:
        service = ProjectService(db)
        project = service.create(user, name="Delivery app")
    """

    def __init__(self, db: Session):
        self.db = db

    def get_owned(self, user: User, project_id: UUID) -> Project:
        """
        Raises:
            HTTPException 404 if the project is missing or belongs to someone else
        """
        project = self.db.query(Project).filter(Project.id == project_id, Project.user_id == user.id).first()
        if not project:
            raise http_404_not_found("Project not found")
        return project

    def _counts(self, project_ids: List[UUID]) -> Dict[str, Dict[UUID, int]]:
        if not project_ids:
            return {"documents": {}, "conversations": {}, "sessions": {}}

        def grouped(model):
            rows = (
                self.db.query(model.project_id, func.count(model.id))
                .filter(model.project_id.in_(project_ids))
                .group_by(model.project_id)
                .all()
            )
            return dict(rows)

        return {
            "documents": grouped(Document),
            "conversations": grouped(Conversation),
            "sessions": grouped(ProjectSession),
        }

    def list_projects(
        self,
        user: User,
        page: int = 1,
        limit: int = 12,
        status: str = "all",
        industry: Optional[str] = None,
        sort_by: str = "last_activity",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        page = max(page, 1)
        limit = min(max(limit, 1), 50)

        query = self.db.query(Project).filter(Project.user_id == user.id)
        if status and status != "all":
            query = query.filter(Project.status == status)
        if industry:
            query = query.filter(Project.industry == industry)

        column = SORT_COLUMNS.get(sort_by, Project.last_activity)
        query = query.order_by(column.asc() if sort_order == "asc" else column.desc())

        total = query.count()
        projects = query.offset((page - 1) * limit).limit(limit).all()
        counts = self._counts([p.id for p in projects])

        items = []
        for project in projects:
            item = serialize_project(project)
            item["document_count"] = counts["documents"].get(project.id, 0)
            item["conversation_count"] = counts["conversations"].get(project.id, 0)
            item["session_count"] = counts["sessions"].get(project.id, 0)
            items.append(item)

        total_pages = math.ceil(total / limit) if total else 0
        return {
            "projects": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total_count": total,
                "total_pages": total_pages,
                "has_next_page": page < total_pages,
                "has_prev_page": page > 1,
            },
        }

    def create(
        self,
        user: User,
        name: Optional[str],
        description: Optional[str] = None,
        industry: Optional[str] = None,
        initial_brief: Optional[str] = None,
    ) -> Project:
        """
        Create a project within the tier's project limit

        Raises:
            HTTPException 400 for a blank name
            HTTPException 403 when the tier limit is reached
        """
        if not name or not name.strip():
            raise http_400_bad_request("Project name is required")

        tier = parse_tier(user.subscription_tier)
        limit = get_project_limit(tier)
        current_count = (
            self.db.query(func.count(Project.id))
            .filter(Project.user_id == user.id, Project.status != ProjectStatus.ARCHIVED.value)
            .scalar()
        )
        if current_count >= limit:
            raise http_403_forbidden({
                "error": f"Project limit reached. Your {tier.value} plan allows {limit} projects.",
                "upgrade_required": tier == SubscriptionTier.FREE,
                "current_count": current_count,
                "limit": limit,
            })

        project = Project(
            user_id=user.id,
            name=name.strip(),
            description=description,
            industry=industry,
            status=ProjectStatus.ACTIVE.value,
            stage=ProjectStage.INITIAL.value,
            confidence=0,
            metadata_={"initial_brief": initial_brief} if initial_brief else {},
            last_activity=utcnow(),
        )
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Created project {project.id} for user {user.id}")
        return project

    def get_detail(self, user: User, project_id: UUID) -> Dict[str, Any]:
        project = self.get_owned(user, project_id)

        documents = (
            self.db.query(Document)
            .filter(Document.project_id == project.id)
            .order_by(Document.updated_at.desc())
            .all()
        )
        conversations = (
            self.db.query(Conversation)
            .filter(Conversation.project_id == project.id)
            .order_by(Conversation.updated_at.desc())
            .all()
        )
        message_counts = dict(
            self.db.query(Message.conversation_id, func.count(Message.id))
            .filter(Message.conversation_id.in_([c.id for c in conversations]))
            .group_by(Message.conversation_id)
            .all()
        ) if conversations else {}
        sessions = (
            self.db.query(ProjectSession)
            .filter(ProjectSession.project_id == project.id)
            .order_by(ProjectSession.updated_at.desc())
            .all()
        )
        summaries = (
            self.db.query(ConversationSummary)
            .filter(ConversationSummary.project_id == project.id)
            .order_by(ConversationSummary.created_at.desc())
            .limit(5)
            .all()
        )

        data = serialize_project(project)
        data["documents"] = [
            {
                "id": d.id,
                "title": d.title,
                "type": d.type,
                "status": d.status,
                "tokens_used": d.tokens_used,
                "created_at": isoformat(d.created_at),
            }
            for d in documents
        ]
        data["conversations"] = [
            {
                "id": c.id,
                "title": c.title,
                "status": c.status,
                "message_count": message_counts.get(c.id, 0),
                "updated_at": isoformat(c.updated_at),
            }
            for c in conversations
        ]
        data["sessions"] = [
            {
                "id": s.id,
                "conversation_id": s.conversation_id,
                "stage": s.stage,
                "confidence": s.confidence,
                "tokens_used": s.tokens_used,
                "started_at": isoformat(s.started_at),
                "ended_at": isoformat(s.ended_at),
            }
            for s in sessions
        ]
        data["summaries"] = [
            {
                "id": s.id,
                "summary": s.summary,
                "message_range": s.message_range,
                "created_at": isoformat(s.created_at),
            }
            for s in summaries
        ]
        data["stats"] = {
            "total_documents": len(documents),
            "total_conversations": len(conversations),
            "total_messages": sum(message_counts.values()),
            "total_sessions": len(sessions),
            "total_tokens_used": sum(d.tokens_used or 0 for d in documents),
        }
        return data

    def update(self, user: User, project_id: UUID, changes: Dict[str, Any]) -> Project:
        """
        Apply a partial update; metadata is merged, not replaced

        Raises:
            HTTPException 400 for an unknown status or stage, or confidence outside 0..100
        """
        project = self.get_owned(user, project_id)

        status = changes.get("status")
        if status is not None and status not in PROJECT_STATUSES:
            raise http_400_bad_request("Invalid status")
        stage = changes.get("stage")
        if stage is not None and stage not in PROJECT_STAGES:
            raise http_400_bad_request("Invalid stage")
        confidence = changes.get("confidence")
        if confidence is not None and not 0 <= confidence <= 100:
            raise http_400_bad_request("Confidence must be between 0 and 100")

        for field in ("name", "description", "industry", "status", "stage", "confidence"):
            if changes.get(field) is not None:
                setattr(project, field, changes[field])

        if changes.get("metadata"):
            project.metadata_ = {**(project.metadata_ or {}), **changes["metadata"]}

        project.last_activity = utcnow()
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete(self, user: User, project_id: UUID, permanent: bool = False) -> Dict[str, Any]:
        project = self.get_owned(user, project_id)

        if permanent:
            self.db.delete(project)
            self.db.commit()
            logger.info(f"Permanently deleted project {project_id}")
            return {"success": True, "message": "Project deleted permanently"}

        project.status = ProjectStatus.ARCHIVED.value
        project.last_activity = utcnow()
        self.db.commit()
        logger.info(f"Archived project {project_id}")
        return {"success": True, "message": "Project archived"}

    def recent(self, user: User, limit: int = 4) -> List[Dict[str, Any]]:
        limit = min(max(limit, 1), 10)
        projects = (
            self.db.query(Project)
            .filter(Project.user_id == user.id, Project.status != ProjectStatus.ARCHIVED.value)
            .order_by(Project.last_activity.desc())
            .limit(limit)
            .all()
        )
        counts = self._counts([p.id for p in projects])
        now = utcnow()

        items = []
        for project in projects:
            documents = counts["documents"].get(project.id, 0)
            conversations = counts["conversations"].get(project.id, 0)
            item = serialize_project(project)
            item.update({
                "document_count": documents,
                "conversation_count": conversations,
                "last_activity_text": relative_time(project.last_activity, now),
                "activity_summary": activity_summary(documents, conversations),
                "progress_color": progress_color(project.confidence or 0),
            })
            items.append(item)
        return items
