"""
Message Model - Individual messages in a conversation
"""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class Message(Base):
    """
    Chat message model

    Attributes:
        role: 'user', 'assistant' or 'system'
        content: Message text
        metadata: token_count, summarized, summary_id, planning_step, ...
        created_at: Set in Python so messages inserted in one flush keep their order
    """

    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)

    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    metadata_ = Column("metadata", MutableDict.as_mutable(JSON), default=dict)  # metadata is reserved by SQLAlchemy

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")

    def __repr__(self):
        return f"<Message(id={self.id}, role={self.role}, conversation_id={self.conversation_id})>"
