"""
SystemSetting Model - Runtime configuration editable from the back office
"""

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from smartdocs.database import Base


class SystemSetting(Base):
    __tablename__ = "system_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text)
    category = Column(String(50), nullable=False, default="general")
    description = Column(String(512))
    is_secret = Column(Boolean, nullable=False, default=False)
    is_editable = Column(Boolean, nullable=False, default=True)
    updated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<SystemSetting(key={self.key}, category={self.category})>"
