"""
ConversationSummary Model - Condensed history of older messages
"""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class ConversationSummary(Base):
    __tablename__ = "conversation_summaries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), index=True)

    summary = Column(Text, nullable=False)
    original_token_count = Column(Integer, nullable=False, default=0)
    summary_token_count = Column(Integer, nullable=False, default=0)
    message_range = Column(String(255))

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    conversation = relationship("Conversation", back_populates="summaries")
    project = relationship("Project", back_populates="summaries")

    def __repr__(self):
        return f"<ConversationSummary(id={self.id}, conversation_id={self.conversation_id})>"
