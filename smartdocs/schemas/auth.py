"""
Pydantic Schemas for Authentication endpoints
Signup, login, email verification and password reset
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class SignupRequest(BaseModel):
    """Signup payload (presence and length are checked by the handler to return 400)"""
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = None
    referral_code: Optional[str] = Field(None, max_length=20)
    locale: str = Field(default="en", description="Email language (en or ar)")


class SignupResponse(BaseModel):
    """Returned once on signup; the API key cannot be retrieved again"""
    user_id: UUID
    email: str
    api_key: str = Field(..., description="Full API key (only shown once)")
    message: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    user_id: UUID
    email: str
    api_key: str = Field(..., description="Newly issued API key (only shown once)")


class VerifyEmailRequest(BaseModel):
    token: Optional[str] = None


class EmailRequest(BaseModel):
    """Resend verification / forgot password"""
    email: Optional[str] = None
    locale: str = "en"


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class APIKeyResponse(BaseModel):
    """Stored API key (never includes the key itself)"""
    id: UUID
    key_prefix: str
    name: Optional[str]
    created_at: Optional[datetime]
    last_used_at: Optional[datetime]
    expires_at: Optional[datetime]

    class Config:
        from_attributes = True
