"""
Pydantic schemas for campaign-related requests and responses
"""
from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime


class CampaignCreate(BaseModel):
    """Schema for creating a campaign"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=2048)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    participant_limit: Optional[int] = Field(None, ge=1)
    is_test_campaign: bool = False
    total_test_days: Optional[int] = Field(None, ge=1, description="Defaults to 7 for test campaigns")
    learning_materials_url: Optional[str] = Field(None, max_length=2048)
    learning_materials_backup_url: Optional[str] = Field(None, max_length=2048)


class CampaignPatch(BaseModel):
    """
    Partial campaign update

    Only fields that are present are applied; an explicit null clears the
    field. expected_version turns the write into a compare-and-swap.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=2048)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    participant_limit: Optional[int] = Field(None, ge=1)
    is_test_campaign: Optional[bool] = None
    current_test_day: Optional[int] = Field(None, ge=0)
    total_test_days: Optional[int] = Field(None, ge=1)
    learning_materials_url: Optional[str] = Field(None, max_length=2048)
    learning_materials_backup_url: Optional[str] = Field(None, max_length=2048)
    expected_version: Optional[int] = Field(None, ge=1)

    class Config:
        extra = "forbid"


class CampaignResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_by: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool
    effective_active: bool
    has_questions: bool
    participant_limit: Optional[int] = None
    participant_count: Optional[int] = None
    is_test_campaign: bool
    current_test_day: Optional[int] = None
    total_test_days: Optional[int] = None
    learning_materials_url: Optional[str] = None
    learning_materials_last_verified: Optional[datetime] = None
    learning_materials_backup_url: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TestDayUpdate(BaseModel):
    """Move a test campaign directly to a day (0-based)"""
    day: int


class TestDayResponse(BaseModel):
    campaign_id: UUID
    current_test_day: int
    total_test_days: int
    message: str


class LearningMaterialsVerification(BaseModel):
    campaign_id: UUID
    url: Optional[str] = None
    is_valid: bool
    verified_at: Optional[datetime] = None
    error: Optional[str] = None
