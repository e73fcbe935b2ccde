"""
Pydantic schemas for question management
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from campaign_quiz.schemas.common import QuestionType


class QuestionCreate(BaseModel):
    """Schema for adding a question to a campaign"""
    type: QuestionType
    text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=1)
    correct_answers: List[int] = Field(..., min_length=1, description="Indices into options")
    points: int = Field(0, ge=0)
    image_url: Optional[str] = Field(None, max_length=2048)
    day_number: Optional[int] = Field(None, ge=0, description="Test campaigns only, 0-based")


class QuestionPatch(BaseModel):
    type: Optional[QuestionType] = None
    text: Optional[str] = Field(None, min_length=1)
    options: Optional[List[str]] = Field(None, min_length=1)
    correct_answers: Optional[List[int]] = Field(None, min_length=1)
    points: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=2048)
    day_number: Optional[int] = Field(None, ge=0)

    class Config:
        extra = "forbid"


class QuestionResponse(BaseModel):
    """Full question, including the answer key (admin only)"""
    id: UUID
    campaign_id: UUID
    type: str
    text: str
    options: List[str]
    correct_answers: List[int]
    points: int
    image_url: Optional[str] = None
    day_number: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
