"""
Payment Model - Charges reported by Stripe and Moyasar webhooks
"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class Payment(Base):
    """
    Payment record

    amount is in minor units (cents or halalas).
    status: succeeded, failed, refunded
    """

    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    provider = Column(String(20), nullable=False)
    provider_payment_id = Column(String(255), index=True)
    amount = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, index=True)
    description = Column(String(512))

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    user = relationship("User", back_populates="payments")

    def __repr__(self):
        return f"<Payment(id={self.id}, provider={self.provider}, status={self.status})>"
