"""
Project Model - Workspace grouping conversations, documents and sessions
"""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class Project(Base):
    """
    Project model - a business idea being worked on over several sessions

    Attributes:
        id: Unique project identifier (UUID)
        user_id: Owner
        name / description / industry: Display fields
        status: active, paused, completed, archived
        stage: initial, research, analysis, generation
        confidence: 0-100 readiness score shown as progress
        metadata: current_tab, ui_state, last_saved, initial_brief, ...
        last_activity: Touched on every save, resume and update

    Relationships:
        conversations, documents, sessions, summaries

    Cascade Delete:
        - Deleting a project deletes its sessions, conversations and summaries
        - Documents are kept and detached (project_id set to NULL)
    """

    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text)
    industry = Column(String(100))

    status = Column(String(20), nullable=False, default="active", index=True)
    stage = Column(String(20), nullable=False, default="initial")
    confidence = Column(Integer, nullable=False, default=0)
    metadata_ = Column("metadata", MutableDict.as_mutable(JSON), default=dict)  # metadata is reserved by SQLAlchemy

    last_activity = Column(DateTime(timezone=True), default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="projects")
    conversations = relationship("Conversation", back_populates="project", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="project")
    sessions = relationship("ProjectSession", back_populates="project", cascade="all, delete-orphan")
    summaries = relationship("ConversationSummary", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"
