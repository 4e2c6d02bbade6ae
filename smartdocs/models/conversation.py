"""
Conversation Model - Chat threads that lead to document generation
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class Conversation(Base):
    """
    Conversation model - a chat thread with the business analyst assistant

    Status transitions:
        active -> ready_for_generation -> document_generated

    Metadata keys used:
        mode, country, planning_session, last_activity, message_count,
        active_tokens, document_id, document_suite_id, completed_at
    """

    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), index=True)

    title = Column(String(255))
    status = Column(String(30), nullable=False, default="active")
    metadata_ = Column("metadata", MutableDict.as_mutable(JSON), default=dict)  # metadata is reserved by SQLAlchemy

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="conversations")
    project = relationship("Project", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )
    summaries = relationship("ConversationSummary", back_populates="conversation", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Conversation(id={self.id}, status={self.status}, user_id={self.user_id})>"
