"""
Pydantic Schemas for Feedback and Contact endpoints
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class FeedbackCreate(BaseModel):
    title: Optional[str] = None
    message: Optional[str] = None
    rating: Optional[int] = None
    category: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


class FeedbackSubmitPayload(BaseModel):
    """JSON part of the multipart widget submission"""
    type: str = "general"
    message: str = ""
    email: Optional[str] = None
    url: Optional[str] = None
    user_agent: Optional[str] = None
    console_logs: Optional[List[str]] = None


class ContactCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = Field(default="general")
