"""
ContactRequest Model - Messages sent through the contact form
"""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class ContactRequest(Base):
    __tablename__ = "contact_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="general")

    status = Column(String(20), nullable=False, default="open", index=True)
    priority = Column(String(10), nullable=False, default="medium")
    admin_notes = Column(Text)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ContactRequest(id={self.id}, type={self.type}, status={self.status})>"
