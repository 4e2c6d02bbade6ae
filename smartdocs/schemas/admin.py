"""
Pydantic Schemas for Admin endpoints
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID


class AdminUserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: str = "user"
    subscription_tier: str = "FREE"
    company_name: Optional[str] = None
    industry: Optional[str] = None


class AdminUserUpdate(BaseModel):
    """
    Profile and plan fields only; role changes go through the change_role action
    """
    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    subscription_tier: Optional[str] = None
    subscription_status: Optional[str] = None
    company_name: Optional[str] = None
    industry: Optional[str] = None
    language: Optional[str] = None
    is_active: Optional[bool] = None
    tokens_limit: Optional[int] = Field(None, ge=0)


class UserActionRequest(BaseModel):
    """
    Back office action on a user

    role is used by change_role, tokens_limit by adjust_tokens and
    permissions by set_permissions.
    """
    action: str
    role: Optional[str] = None
    tokens_limit: Optional[int] = None
    permissions: Optional[List[str]] = None
    reason: Optional[str] = None


class SubscriptionUpdate(BaseModel):
    tier: Optional[str] = None
    status: Optional[str] = None
    tokens_limit: Optional[int] = Field(None, ge=0)


class FeedbackStatusUpdate(BaseModel):
    status: str
    admin_response: Optional[str] = None
    is_public: Optional[bool] = None


class ContactUpdate(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    admin_notes: Optional[str] = None


class SettingUpdate(BaseModel):
    value: str
