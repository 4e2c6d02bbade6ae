"""
API Key Model - Bearer tokens used for API authentication
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from smartdocs.database import Base


class APIKey(Base):
    """
    API Key model for token-based authentication

    Attributes:
        id: Unique key identifier (UUID)
        user_id: Foreign key to users table
        key_hash: SHA-256 hash of the API key (for verification)
        key_prefix: First chars of key (for identification, e.g., "sd_AbC12xy")
        name: Human-readable name for the key ("signup", "login", ...)
        expires_at: Optional expiration timestamp
        last_used_at: Last time key was used for authentication
        created_at: Key creation timestamp

    Security:
        - API key is hashed with SHA-256 before storage
        - Original key is only shown once upon creation
    """

    __tablename__ = "api_keys"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    key_hash = Column(String(255), unique=True, nullable=False, index=True)
    key_prefix = Column(String(20), nullable=False)
    name = Column(String(255))

    expires_at = Column(DateTime(timezone=True))
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="api_keys")

    def __repr__(self):
        return f"<APIKey(id={self.id}, prefix={self.key_prefix}, user_id={self.user_id})>"
