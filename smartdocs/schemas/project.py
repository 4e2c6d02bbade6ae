"""
Pydantic Schemas for Project endpoints
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from enum import Enum


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ProjectStage(str, Enum):
    INITIAL = "initial"
    RESEARCH = "research"
    ANALYSIS = "analysis"
    GENERATION = "generation"


class ProjectCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    industry: Optional[str] = Field(None, max_length=100)
    initial_brief: Optional[str] = None


class ProjectUpdate(BaseModel):
    """
    Partial update

    status, stage and confidence are validated in the handler so that bad
    values produce 400 instead of 422.
    """
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    industry: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = None
    stage: Optional[str] = None
    confidence: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
