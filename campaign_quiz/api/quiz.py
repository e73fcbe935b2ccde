"""
Quiz session and answer submission API endpoints
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campaign_quiz.api.deps import get_current_session
from campaign_quiz.database import get_db
from campaign_quiz.schemas.quiz import ScoreResponse, SessionView, SubmissionRequest, SubmissionResult
from campaign_quiz.services.quiz_service import quiz_service
from campaign_quiz.services.session_state import AuthSession

router = APIRouter(prefix="/api/campaigns", tags=["quiz"])
logger = logging.getLogger(__name__)


@router.get("/{campaign_id}/session", response_model=SessionView)
async def get_session(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    """
    Today's questions and the caller's position among them

    - test campaigns show only the current test day's questions
    - completed_today is true once every question was answered correctly
      or ran out of attempts today
    """
    return quiz_service.get_session(db, session, campaign_id)


@router.post("/{campaign_id}/submissions", response_model=SubmissionResult, status_code=201)
async def submit_answer(
    campaign_id: UUID,
    submission: SubmissionRequest,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    """
    Submit an answer to the current question

    Grading is exact set equality. An incorrect first attempt can be retried
    once; the client waits advance_after_seconds before showing the next
    question.
    """
    result = quiz_service.submit_answer(
        db, session, campaign_id, submission.question_id, submission.selected_answers
    )
    logger.info(
        f"Submission graded: user={session.user_id} campaign={campaign_id} "
        f"correct={result['is_correct']} state={result['state']}"
    )
    return result


@router.get("/{campaign_id}/score", response_model=ScoreResponse)
async def get_score(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    return quiz_service.total_score(db, session, campaign_id)
