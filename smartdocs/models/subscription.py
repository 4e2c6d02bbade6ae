"""
Subscription Model - Paid plan periods (Moyasar one-off charges)
"""

from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
import uuid

from smartdocs.database import Base


class Subscription(Base):
    """
    Subscription period record

    status: ACTIVE, CANCELLED, EXPIRED
    billing_cycle: MONTHLY, ANNUAL
    amount: Major currency units (e.g. 14.25 SAR)
    """

    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    tier = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    billing_cycle = Column(String(10), nullable=False, default="MONTHLY")
    amount = Column(Float, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="SAR")

    moyasar_payment_id = Column(String(255), index=True)
    stripe_subscription_id = Column(String(255), index=True)
    tokens_included = Column(Integer, nullable=False, default=0)

    starts_at = Column(DateTime(timezone=True))
    ends_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Subscription(id={self.id}, tier={self.tier}, status={self.status})>"
