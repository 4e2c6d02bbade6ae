"""
Pydantic Schemas for Chat endpoints
Guided conversations and conversation-driven document generation
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID


class HistoryMessage(BaseModel):
    """Prior turn sent by the client"""
    role: str
    content: str


class ConversationRequest(BaseModel):
    message: Optional[str] = None
    conversation_id: Optional[UUID] = None
    message_history: List[HistoryMessage] = Field(default_factory=list)
    project_id: Optional[UUID] = None


class AdvancedConversationRequest(BaseModel):
    message: Optional[str] = None
    conversation_id: Optional[UUID] = None
    planning_session_id: Optional[str] = None
    country: str = Field(default="global", description="'saudi-arabia' or any other value for global")
    message_history: List[HistoryMessage] = Field(default_factory=list)


class ConversationResponse(BaseModel):
    message: str
    conversation_id: UUID
    can_generate_document: bool


class GenerateDocumentRequest(BaseModel):
    conversation_id: UUID


class GenerateSuiteRequest(BaseModel):
    conversation_id: Optional[UUID] = None
    planning_session_id: Optional[str] = None
    country: str = "global"
