"""
Feedback Model - User ratings, bug reports and testimonials
"""

from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class Feedback(Base):
    """
    Feedback model

    category: feature, bug, improvement, praise, complaint
    status: pending, in_review, approved, rejected, implemented
    Approved public entries are shown as testimonials.
    """

    __tablename__ = "feedback"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False, default=0)
    category = Column(String(30), index=True)
    type = Column(String(30))
    email = Column(String(255))
    name = Column(String(255))

    status = Column(String(20), nullable=False, default="pending", index=True)
    is_public = Column(Boolean, nullable=False, default=False)
    admin_response = Column(Text)
    approved_at = Column(DateTime(timezone=True))
    approved_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))
    metadata_ = Column("metadata", MutableDict.as_mutable(JSON), default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<Feedback(id={self.id}, category={self.category}, status={self.status})>"
