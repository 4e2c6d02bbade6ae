"""
EmailToken Model - One-time tokens for email verification and password reset
"""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from smartdocs.database import Base


class EmailToken(Base):
    """
    Single-use token sent by email

    type is "email_verification" (24h) or "password_reset" (1h).
    Rows are marked used instead of deleted so reuse can be reported;
    the periodic cleanup task removes used and expired rows.
    """

    __tablename__ = "email_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    token = Column(String(128), unique=True, nullable=False, index=True)
    type = Column(String(30), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<EmailToken(id={self.id}, type={self.type}, used={self.used})>"
