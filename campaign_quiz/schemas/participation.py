"""
Pydantic schemas for campaign membership
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class ParticipationStatus(BaseModel):
    campaign_id: UUID
    user_id: str
    is_participant: bool
    participant_count: int
    participant_limit: Optional[int] = None


class ParticipantResponse(BaseModel):
    """Admin view of a participant; score is the cached value"""
    user_id: str
    first_name: str
    last_name: str
    email: str
    score: int
    completed_questions: List[str]
    joined_at: Optional[datetime] = None
