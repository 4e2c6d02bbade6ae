"""
Pydantic Schemas for project session persistence
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime
from uuid import UUID


class SessionMessage(BaseModel):
    """Message as held by the client workspace"""
    id: Optional[UUID] = None
    role: str
    content: str = ""
    timestamp: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class SessionSaveRequest(BaseModel):
    conversation_id: Optional[UUID] = None
    stage: Optional[str] = None
    confidence: Optional[int] = Field(None, ge=0, le=100)
    session_data: Dict[str, Any] = Field(default_factory=dict)
    messages: List[SessionMessage] = Field(default_factory=list)
    current_tab: str = "chat"
    ui_state: Dict[str, Any] = Field(default_factory=dict)


class SessionEndRequest(BaseModel):
    conversation_id: Optional[UUID] = None
