"""
Quiz service - server-side driver for the progression state machine

Nothing about a session is stored between requests: each call rebuilds the
QuizSession from today's ledger entries and applies at most one submission.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from campaign_quiz.config import settings
from campaign_quiz.errors import Conflict, InvalidArgument, PermissionDenied, Unauthenticated
from campaign_quiz.models import Campaign, Question, UserResponse
from campaign_quiz.services.campaign_service import campaign_service
from campaign_quiz.services.participation_service import participation_service
from campaign_quiz.services.question_service import question_service
from campaign_quiz.services.quiz_session import QuizSession, SessionQuestion
from campaign_quiz.services.response_ledger import response_ledger
from campaign_quiz.services.session_state import AuthSession
from campaign_quiz.utils.cache import cache_service

logger = logging.getLogger(__name__)


def _resolves(response: UserResponse, max_attempts: int) -> bool:
    return bool(response.is_correct) or (response.attempt_number or 0) >= max_attempts


class QuizService:
    """Service for quiz sessions, answer submission and per-campaign scores"""

    def _require_signed_in(self, caller: Optional[AuthSession]) -> None:
        if caller is None or not caller.is_authenticated:
            raise Unauthenticated("Sign in to take quizzes")

    def _load(
        self,
        db: Session,
        campaign: Campaign,
        user_id: str,
        now: Optional[datetime] = None,
    ):
        """Today's question set, today's matching responses and the rebuilt session"""
        questions: List[Question] = question_service.list_for_session(db, campaign)
        responses = response_ledger.responses_today(
            db, user_id, campaign.id, [question.id for question in questions], now=now
        )
        session = QuizSession.from_history(
            [SessionQuestion.from_model(question) for question in questions],
            [(response.question_id, response.is_correct) for response in responses],
            max_attempts=settings.MAX_ATTEMPTS_PER_QUESTION,
        )
        return questions, responses, session

    def completed_today(self, question_count: int, responses: List[UserResponse]) -> bool:
        """
        True once today's resolving responses cover the whole question set

        A first incorrect attempt with a retry still pending is not counted.
        """
        if question_count == 0:
            return False
        max_attempts = settings.MAX_ATTEMPTS_PER_QUESTION
        resolved = {str(r.question_id) for r in responses if _resolves(r, max_attempts)}
        return len(resolved) >= question_count

    def get_session(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Current quiz position of the caller in a campaign

        Participants and administrators may read a session; questions are
        returned without their answer keys.
        """
        self._require_signed_in(caller)
        campaign = campaign_service.get(db, campaign_id)
        if not caller.is_admin and not participation_service.is_participant(db, caller.user_id, campaign.id):
            raise PermissionDenied("Join the campaign to see its questions")

        questions, responses, session = self._load(db, campaign, caller.user_id, now)
        current = session.current_question

        return {
            "campaign_id": campaign.id,
            "is_test_campaign": bool(campaign.is_test_campaign),
            "current_test_day": campaign.current_test_day,
            "total_test_days": campaign.total_test_days,
            "questions": questions,
            "state": session.state.value,
            "current_question_index": None if current is None else session.current_index,
            "current_question_id": None if current is None else current.id,
            "attempts_on_current": session.attempts if current is not None else 0,
            "completed_today": self.completed_today(len(questions), responses),
            "session_complete": session.is_complete,
            "total_score": response_ledger.total_score(db, caller.user_id, campaign.id),
        }

    def submit_answer(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
        question_id: Any,
        selected_answers: List[int],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Grade one attempt and append it to the ledger

        Args:
            question_id: must be the session's current question
            selected_answers: option indices; duplicates are ignored

        Raises:
            PermissionDenied: caller has not joined the campaign
            Conflict: campaign inactive, done for today, or not the current question
            InvalidArgument: empty or malformed selection
            Internal: the ledger append failed; the attempt was not recorded
        """
        self._require_signed_in(caller)
        campaign = campaign_service.get(db, campaign_id)
        if not campaign_service.get_effective_active(campaign):
            raise Conflict("Campaign is not active")
        if not participation_service.is_participant(db, caller.user_id, campaign.id):
            raise PermissionDenied("Join the campaign before submitting answers")

        questions, responses, session = self._load(db, campaign, caller.user_id, now)
        if session.is_complete or self.completed_today(len(questions), responses):
            raise Conflict("You have already completed today's questions. Come back tomorrow!")

        current = session.current_question
        if str(question_id) != current.id:
            raise Conflict("Answer the current question first")

        selection = list(dict.fromkeys(selected_answers or []))
        if not selection:
            raise InvalidArgument("Select at least one answer before submitting")
        if current.type == "multiple_choice" and len(selection) > 1:
            raise InvalidArgument("Multiple choice questions take exactly one answer")
        for index in selection:
            session.select(index)

        attempt = session.submit()
        response = response_ledger.append(
            db,
            user_id=caller.user_id,
            question_id=attempt.question_id,
            campaign_id=campaign.id,
            selected_answers=list(attempt.selected_answers),
            is_correct=attempt.is_correct,
            points_earned=attempt.points_earned,
            attempt_number=attempt.attempt_number,
            is_test_response=bool(campaign.is_test_campaign),
        )
        state = session.record(attempt)
        can_retry = session.can_retry

        day_advanced = False
        final_day_reached = False
        current_test_day = campaign.current_test_day
        if caller.is_admin and campaign.is_test_campaign and attempt.resolves:
            try:
                current_test_day = campaign_service.advance_test_day(db, caller, campaign.id).current_test_day
                day_advanced = True
            except Conflict:
                final_day_reached = True
                logger.info(f"Campaign {campaign.id} is on its final test day")

        participation_service.record_progress(
            db,
            caller.user_id,
            campaign.id,
            question_id=attempt.question_id,
            points_earned=attempt.points_earned,
            resolved=attempt.resolves,
            current_test_day=current_test_day if campaign.is_test_campaign else None,
        )

        session.advance()
        cache_service.invalidate_leaderboard()

        # A new test day swaps the question set; the client reloads the session
        next_question = None if day_advanced else session.current_question

        return {
            "response_id": response.id,
            "question_id": response.question_id,
            "is_correct": attempt.is_correct,
            "points_earned": attempt.points_earned,
            "attempt_number": attempt.attempt_number,
            "state": state.value,
            "can_retry": can_retry,
            "next_question_id": next_question.id if next_question else None,
            "session_complete": session.is_complete,
            "advance_after_seconds": settings.ADVANCE_DELAY_SECONDS,
            "total_score": response_ledger.total_score(db, caller.user_id, campaign.id),
            "day_advanced": day_advanced,
            "final_day_reached": final_day_reached,
        }

    def total_score(self, db: Session, caller: Optional[AuthSession], campaign_id: Any) -> Dict[str, Any]:
        """Caller's score in a campaign, always summed from the ledger"""
        self._require_signed_in(caller)
        campaign = campaign_service.get(db, campaign_id)
        return {
            "user_id": caller.user_id,
            "campaign_id": campaign.id,
            "total_score": response_ledger.total_score(db, caller.user_id, campaign.id),
        }


# Global instance
quiz_service = QuizService()
