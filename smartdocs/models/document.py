"""
Document Model - Generated business documents
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, JSON, DateTime, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class Document(Base):
    """
    Document model - AI generated BRD, PRD, business plan, ...

    Attributes:
        id: Unique document identifier (UUID)
        user_id: Owner (for fast ownership checks)
        project_id: Optional project the document belongs to
        title: Document title
        content: Markdown body
        type: BRD, PRD, Business Plan, Feasibility Study, Investor Pitch, ...
        status: generated, draft, final
        tokens_used: Tokens charged for the generation
        ai_model: Model that produced the content ("fallback" when offline)
        generation_time: Milliseconds spent generating
        metadata: conversation_id, suite_id, country, ...
    """

    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="SET NULL"), index=True)

    title = Column(String(512), nullable=False)
    content = Column(Text, nullable=False, default="")
    type = Column(String(50), nullable=False, default="BRD", index=True)
    status = Column(String(20), nullable=False, default="generated", index=True)

    tokens_used = Column(Integer, nullable=False, default=0)
    ai_model = Column(String(100))
    generation_time = Column(Integer)
    metadata_ = Column("metadata", MutableDict.as_mutable(JSON), default=dict)  # metadata is reserved by SQLAlchemy

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="documents")
    project = relationship("Project", back_populates="documents")

    def __repr__(self):
        return f"<Document(id={self.id}, type={self.type}, status={self.status})>"
