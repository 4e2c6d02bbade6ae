"""
AdminActivity Model - Audit log of back office actions
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class AdminActivity(Base):
    __tablename__ = "admin_activities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    admin_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)
    target_id = Column(String(255), index=True)
    details = Column(MutableDict.as_mutable(JSON), default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    admin = relationship("User")

    def __repr__(self):
        return f"<AdminActivity(admin_id={self.admin_id}, action={self.action})>"
