"""
Response ledger - append-only record of answer submissions

The ledger is the only source of truth for scores.
"""
import logging
import uuid
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Iterable, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_quiz.config import settings
from campaign_quiz.errors import Internal
from campaign_quiz.models import UserResponse
from campaign_quiz.models.types import as_utc, utcnow

logger = logging.getLogger(__name__)


def completion_timezone() -> tzinfo:
    if settings.COMPLETION_TIMEZONE.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.COMPLETION_TIMEZONE)


def local_date(value: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of a stored timestamp in the completion timezone"""
    return as_utc(value).astimezone(tz or completion_timezone()).date()


class ResponseLedger:
    """Append and read user responses"""

    def append(
        self,
        db: Session,
        *,
        user_id: Any,
        question_id: Any,
        campaign_id: Any,
        selected_answers: List[int],
        is_correct: bool,
        points_earned: int,
        attempt_number: int,
        is_test_response: bool = False,
    ) -> UserResponse:
        """
        Append one attempt

        Raises:
            Internal: the write failed; nothing was recorded
        """
        response = UserResponse(
            user_id=uuid.UUID(str(user_id)),
            question_id=uuid.UUID(str(question_id)),
            campaign_id=uuid.UUID(str(campaign_id)),
            selected_answers=sorted(selected_answers),
            is_correct=is_correct,
            points_earned=points_earned,
            attempt_number=attempt_number,
            is_test_response=is_test_response,
            created_at=utcnow(),
        )
        try:
            db.add(response)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error submitting answer for user {user_id}, question {question_id}: {str(e)}")
            raise Internal("Failed to submit answer. Please try again.")

        logger.info(
            f"Response recorded: user={user_id} question={question_id} "
            f"attempt={attempt_number} correct={is_correct} points={points_earned}"
        )
        return response

    def list_for_user(self, db: Session, user_id: Any, campaign_id: Any) -> List[UserResponse]:
        """A user's responses in one campaign, newest first"""
        return db.query(UserResponse).filter(
            UserResponse.user_id == uuid.UUID(str(user_id)),
            UserResponse.campaign_id == uuid.UUID(str(campaign_id)),
        ).order_by(UserResponse.created_at.desc()).all()

    def responses_on(
        self,
        db: Session,
        user_id: Any,
        campaign_id: Any,
        day: date,
        question_ids: Optional[Iterable[Any]] = None,
    ) -> List[UserResponse]:
        """
        Responses whose created_at falls on a calendar date, oldest first

        The date comparison happens in the completion timezone after fetching,
        so it does not depend on how the backend stores time zones.
        """
        tz = completion_timezone()
        wanted = {str(qid) for qid in question_ids} if question_ids is not None else None
        responses = [
            response for response in self.list_for_user(db, user_id, campaign_id)
            if local_date(response.created_at, tz) == day
            and (wanted is None or str(response.question_id) in wanted)
        ]
        responses.reverse()
        return responses

    def responses_today(
        self,
        db: Session,
        user_id: Any,
        campaign_id: Any,
        question_ids: Optional[Iterable[Any]] = None,
        now: Optional[datetime] = None,
    ) -> List[UserResponse]:
        today = local_date(now or utcnow())
        return self.responses_on(db, user_id, campaign_id, today, question_ids)

    def total_score(self, db: Session, user_id: Any, campaign_id: Any) -> int:
        """Sum of points_earned for (user, campaign); 0 if the ledger cannot be read"""
        try:
            total = db.query(func.coalesce(func.sum(UserResponse.points_earned), 0)).filter(
                UserResponse.user_id == uuid.UUID(str(user_id)),
                UserResponse.campaign_id == uuid.UUID(str(campaign_id)),
            ).scalar()
            return int(total or 0)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error calculating total score: {str(e)}")
            return 0


# Global instance
response_ledger = ResponseLedger()
