"""
UsageHistory Model - Audit trail of token-consuming operations
"""

from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.ext.mutable import MutableDict
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class UsageHistory(Base):
    __tablename__ = "usage_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    operation = Column(String(50), nullable=False)
    tokens_used = Column(Integer, nullable=False, default=0)
    success = Column(Boolean, nullable=False, default=True)
    metadata_ = Column("metadata", MutableDict.as_mutable(JSON), default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    def __repr__(self):
        return f"<UsageHistory(user_id={self.user_id}, operation={self.operation}, tokens={self.tokens_used})>"
