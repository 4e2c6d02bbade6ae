"""
ProjectSession Model - Saved workspace state for a project
"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class ProjectSession(Base):
    """
    One row per (project, conversation) workspace

    session_key is the conversation id, or "default" when the workspace has
    no conversation yet. A session is active while ended_at is NULL.
    """

    __tablename__ = "project_sessions"
    __table_args__ = (
        UniqueConstraint("project_id", "session_key", name="uq_project_sessions_project_key"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="SET NULL"))
    session_key = Column(String(64), nullable=False)

    stage = Column(String(20))
    confidence = Column(Integer, default=0)
    tokens_used = Column(Integer, default=0)
    session_data = Column(MutableDict.as_mutable(JSON), default=dict)

    started_at = Column(DateTime(timezone=True), default=utcnow)
    ended_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, index=True)

    # Relationships
    project = relationship("Project", back_populates="sessions")

    def __repr__(self):
        return f"<ProjectSession(id={self.id}, project_id={self.project_id}, key={self.session_key})>"
