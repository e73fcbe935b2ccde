"""
Pydantic schemas for quiz sessions and answer submission
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID


class QuizQuestionView(BaseModel):
    """Question as shown to a participant, without the answer key"""
    id: UUID
    type: str
    text: str
    options: List[str]
    points: int
    image_url: Optional[str] = None
    day_number: Optional[int] = None

    class Config:
        from_attributes = True


class SessionView(BaseModel):
    campaign_id: UUID
    is_test_campaign: bool
    current_test_day: Optional[int] = None
    total_test_days: Optional[int] = None
    questions: List[QuizQuestionView]
    state: str
    current_question_index: Optional[int] = None
    current_question_id: Optional[UUID] = None
    attempts_on_current: int = 0
    completed_today: bool
    session_complete: bool
    total_score: int


class SubmissionRequest(BaseModel):
    question_id: UUID
    selected_answers: List[int] = Field(..., description="Option indices chosen")


class SubmissionResult(BaseModel):
    """Outcome of one graded attempt"""
    response_id: UUID
    question_id: UUID
    is_correct: bool
    points_earned: int
    attempt_number: int
    state: str
    can_retry: bool
    next_question_id: Optional[UUID] = None
    session_complete: bool
    advance_after_seconds: float
    total_score: int
    day_advanced: bool = False
    final_day_reached: bool = False


class ScoreResponse(BaseModel):
    user_id: str
    campaign_id: UUID
    total_score: int
