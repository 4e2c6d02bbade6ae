"""
User Model - Authentication, subscription state and token quota
"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.ext.mutable import MutableList
import uuid

from smartdocs.database import Base
from smartdocs.utils.time import utcnow


class User(Base):
    """
    User model for authentication, billing and quota tracking

    Attributes:
        id: Unique user identifier (UUID)
        email: User email (unique, indexed for fast lookup)
        hashed_password: Bcrypt hashed password
        role: user, admin or super_admin
        admin_permissions: Permission flags checked by admin route guards
        subscription_tier: FREE, HOBBY, PROFESSIONAL, BUSINESS, ENTERPRISE
        subscription_status: active, canceled, past_due, suspended, ...
        tokens_used / tokens_limit: Monthly token quota
        stripe_* / moyasar_customer_id: Payment provider references
        referral_code: Code other users enter at signup
        referred_by_id: User whose referral code was used

    Relationships:
        api_keys, projects, conversations, documents (one-to-many, cascade)
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255))
    hashed_password = Column(String(255))
    role = Column(String(20), nullable=False, default="user")
    admin_permissions = Column(MutableList.as_mutable(JSON), default=list)
    is_active = Column(Boolean, default=True)
    email_verified = Column(DateTime(timezone=True))

    # Profile
    language = Column(String(5), default="en")
    company_name = Column(String(255))
    industry = Column(String(100))

    # Subscription
    subscription_tier = Column(String(20), nullable=False, default="FREE", index=True)
    subscription_status = Column(String(20), default="active")
    billing_cycle = Column(String(10), default="monthly")
    subscription_starts_at = Column(DateTime(timezone=True))
    subscription_ends_at = Column(DateTime(timezone=True))
    stripe_customer_id = Column(String(255), unique=True, index=True)
    stripe_subscription_id = Column(String(255), unique=True, index=True)
    moyasar_customer_id = Column(String(255))

    # Token quota
    tokens_used = Column(Integer, nullable=False, default=0)
    tokens_limit = Column(Integer, nullable=False, default=10000)

    # Referrals
    referral_code = Column(String(20), unique=True, index=True)
    referred_by_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))
    total_referral_tokens = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    api_keys = relationship("APIKey", back_populates="user", cascade="all, delete-orphan")
    projects = relationship("Project", back_populates="user", cascade="all, delete-orphan")
    conversations = relationship("Conversation", back_populates="user", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="user", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="user", cascade="all, delete-orphan")
    referred_by = relationship("User", remote_side=[id], backref="referrals")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, tier={self.subscription_tier})>"
