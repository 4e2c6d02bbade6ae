"""
ReferralReward Model - Tokens granted to a referrer
"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from smartdocs.database import Base


class ReferralReward(Base):
    __tablename__ = "referral_rewards"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    referred_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(30), nullable=False, default="signup")
    tokens = Column(Integer, nullable=False, default=0)
    description = Column(String(255))
    claimed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    referred = relationship("User", foreign_keys=[referred_id])

    def __repr__(self):
        return f"<ReferralReward(id={self.id}, user_id={self.user_id}, tokens={self.tokens})>"
