"""
Pydantic Schemas for User endpoints
"""

from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime
from uuid import UUID


class UserProfile(BaseModel):
    """Current user profile"""
    id: UUID
    name: Optional[str]
    email: str
    subscription_tier: str
    subscription_status: Optional[str]
    language: Optional[str]
    company_name: Optional[str]
    industry: Optional[str]
    email_verified: Optional[datetime]
    role: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Profile fields a user can change (all optional)"""
    name: Optional[str] = Field(None, max_length=255)
    language: Optional[Literal["en", "ar"]] = None
    company_name: Optional[str] = Field(None, max_length=255)
    industry: Optional[str] = Field(None, max_length=100)


class TokenUsageResponse(BaseModel):
    used: int
    limit: int
    remaining: int
    percentage: int
    tier: str
    status: str = Field(..., description="safe, warning or critical")
