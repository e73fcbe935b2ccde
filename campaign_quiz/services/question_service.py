"""
Question repository - CRUD scoped by campaign and test day
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from campaign_quiz.errors import InvalidArgument, NotFound, PermissionDenied
from campaign_quiz.models import Campaign, Question
from campaign_quiz.models.types import utcnow
from campaign_quiz.schemas.common import QUESTION_TYPES
from campaign_quiz.services.campaign_service import campaign_service
from campaign_quiz.services.session_state import AuthSession

logger = logging.getLogger(__name__)

QUESTION_FIELDS = ("type", "text", "options", "correct_answers", "points", "image_url", "day_number")


class QuestionService:
    """Service for question persistence and answer-key validation"""

    def _require_admin(self, caller: Optional[AuthSession], action: str) -> None:
        if caller is None or not caller.is_admin:
            raise PermissionDenied(f"Only administrators can {action}")

    def validate(self, campaign: Campaign, data: Dict[str, Any]) -> None:
        """
        Check a complete question document against its campaign

        Raises:
            InvalidArgument: describing the first rule that fails
        """
        if data.get("type") not in QUESTION_TYPES:
            raise InvalidArgument("Question type must be multiple_choice or select_all")
        if not (data.get("text") or "").strip():
            raise InvalidArgument("Question text is required")

        options = data.get("options") or []
        if not options:
            raise InvalidArgument("At least one option is required")
        if any(not isinstance(option, str) or not option.strip() for option in options):
            raise InvalidArgument("All options must be filled out")

        correct = data.get("correct_answers") or []
        if not correct:
            raise InvalidArgument("Please select at least one correct answer")
        if len(set(correct)) != len(correct):
            raise InvalidArgument("Correct answers must not repeat")
        if any(index < 0 or index >= len(options) for index in correct):
            raise InvalidArgument("Correct answers must reference existing options")
        if data["type"] == "multiple_choice" and len(correct) != 1:
            raise InvalidArgument("Multiple choice questions have exactly one correct answer")

        points = data.get("points")
        if not isinstance(points, int) or points < 0:
            raise InvalidArgument("Points must be 0 or greater")

        day_number = data.get("day_number")
        if campaign.is_test_campaign:
            if day_number is None:
                raise InvalidArgument("day_number is required for test campaign questions")
            if day_number < 0 or day_number > campaign.total_test_days - 1:
                raise InvalidArgument(f"day_number must be between 0 and {campaign.total_test_days - 1}")
        elif day_number is not None:
            raise InvalidArgument("day_number only applies to test campaigns")

    def list_questions(
        self,
        db: Session,
        campaign_id: Any,
        day_number: Optional[int] = None,
    ) -> List[Question]:
        """
        Questions of a campaign in creation order

        Args:
            day_number: restrict to one test day when given
        """
        campaign = campaign_service.get(db, campaign_id)
        query = db.query(Question).filter(Question.campaign_id == campaign.id)
        if day_number is not None:
            query = query.filter(Question.day_number == day_number)
        return query.order_by(Question.created_at.asc()).all()

    def list_for_session(self, db: Session, campaign: Campaign) -> List[Question]:
        """The question set a participant sees today"""
        if campaign.is_test_campaign:
            return self.list_questions(db, campaign.id, day_number=campaign.current_test_day or 0)
        return self.list_questions(db, campaign.id)

    def get(self, db: Session, question_id: Any) -> Question:
        try:
            key = uuid.UUID(str(question_id))
        except ValueError:
            raise NotFound("Question not found")
        question = db.get(Question, key)
        if not question:
            raise NotFound("Question not found")
        return question

    def create(
        self,
        db: Session,
        caller: Optional[AuthSession],
        campaign_id: Any,
        data: Dict[str, Any],
    ) -> Question:
        self._require_admin(caller, "create questions")
        campaign = campaign_service.get(db, campaign_id)
        self.validate(campaign, data)

        question = Question(
            campaign_id=campaign.id,
            **{field: data.get(field) for field in QUESTION_FIELDS},
        )
        db.add(question)
        if not campaign.has_questions:
            campaign.has_questions = True
            campaign.version = campaign.version + 1
        db.commit()

        logger.info(f"Question created: {question.id} in campaign {campaign.id}")
        return question

    def update(
        self,
        db: Session,
        caller: Optional[AuthSession],
        question_id: Any,
        updates: Dict[str, Any],
    ) -> Question:
        """Merge a patch into the stored question and re-validate the whole document"""
        self._require_admin(caller, "update questions")
        unknown = sorted(set(updates) - set(QUESTION_FIELDS))
        if unknown:
            raise InvalidArgument(f"Unknown fields: {', '.join(unknown)}")

        question = self.get(db, question_id)
        campaign = campaign_service.get(db, question.campaign_id)

        merged = {field: getattr(question, field) for field in QUESTION_FIELDS}
        merged.update(updates)
        self.validate(campaign, merged)

        for field, value in updates.items():
            setattr(question, field, value)
        question.updated_at = utcnow()
        db.commit()

        logger.info(f"Question updated: {question.id} fields={sorted(updates)}")
        return question

    def delete(self, db: Session, caller: Optional[AuthSession], question_id: Any) -> None:
        self._require_admin(caller, "delete questions")
        question = self.get(db, question_id)
        campaign = campaign_service.get(db, question.campaign_id)
        db.delete(question)
        db.flush()

        remaining = db.query(Question).filter(Question.campaign_id == campaign.id).count()
        if campaign.has_questions != (remaining > 0):
            campaign.has_questions = remaining > 0
            campaign.version = campaign.version + 1
        db.commit()
        logger.info(f"Question deleted: {question_id} ({remaining} left in campaign {campaign.id})")


# Global instance
question_service = QuestionService()
