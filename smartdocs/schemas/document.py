"""
Pydantic Schemas for Document endpoints
Generation, library management and export
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from uuid import UUID


class DocumentGenerateRequest(BaseModel):
    project_idea: str = Field(..., min_length=1)
    document_type: str = "BRD"
    uploaded_files: List[str] = Field(default_factory=list)
    additional_info: Dict[str, Any] = Field(default_factory=dict, description="Answers keyed by question")
    project_id: Optional[UUID] = None
    provider: Optional[str] = Field(None, description="Preferred LLM provider: openai or gemini")


class MultiDocumentGenerateRequest(BaseModel):
    project_idea: str = Field(..., min_length=1)
    document_types: List[str] = Field(..., min_length=1)
    uploaded_files: List[str] = Field(default_factory=list)
    additional_info: Dict[str, Any] = Field(default_factory=dict)
    project_id: Optional[UUID] = None
    provider: Optional[str] = None


class AnalyzeRequest(BaseModel):
    project_idea: str = Field(..., min_length=1)
    uploaded_files: List[str] = Field(default_factory=list)


class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=512)
    content: Optional[str] = None
    status: Optional[str] = None


class ExportRequest(BaseModel):
    document_id: Optional[UUID] = None
    format: Optional[str] = None
