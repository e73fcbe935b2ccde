"""
Question management API endpoints
"""
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campaign_quiz.api.deps import require_admin
from campaign_quiz.database import get_db
from campaign_quiz.schemas.account import SuccessResponse
from campaign_quiz.schemas.question import QuestionCreate, QuestionPatch, QuestionResponse
from campaign_quiz.services.question_service import question_service
from campaign_quiz.services.session_state import AuthSession

router = APIRouter(tags=["questions"])
logger = logging.getLogger(__name__)


@router.get("/api/campaigns/{campaign_id}/questions", response_model=List[QuestionResponse])
async def list_questions(
    campaign_id: UUID,
    day_number: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_admin),
):
    """
    Questions of a campaign with their answer keys, in creation order

    Participants read questions through the quiz session instead, which
    leaves the answer keys out.
    """
    return question_service.list_questions(db, campaign_id, day_number=day_number)


@router.post("/api/campaigns/{campaign_id}/questions", response_model=QuestionResponse, status_code=201)
async def create_question(
    campaign_id: UUID,
    question: QuestionCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_admin),
):
    return question_service.create(db, session, campaign_id, question.model_dump())


@router.patch("/api/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: UUID,
    patch: QuestionPatch,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_admin),
):
    return question_service.update(db, session, question_id, patch.model_dump(exclude_unset=True))


@router.delete("/api/questions/{question_id}", response_model=SuccessResponse)
async def delete_question(
    question_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_admin),
):
    question_service.delete(db, session, question_id)
    return {"success": True}
