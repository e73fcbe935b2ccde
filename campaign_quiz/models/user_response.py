"""
UserResponse model - append-only answer ledger
"""
from sqlalchemy import Column, Integer, Boolean, DateTime, Uuid, func
from campaign_quiz.database import Base
from campaign_quiz.models.types import JSONDocument, utcnow
import uuid


class UserResponse(Base):
    """
    User responses table - one row per submission attempt, never updated

    points_earned is fixed at submission time so later edits to a question's
    points do not change historical scores.
    """
    __tablename__ = "user_responses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    question_id = Column(Uuid, nullable=False, index=True)
    campaign_id = Column(Uuid, nullable=False, index=True)
    selected_answers = Column(JSONDocument, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    points_earned = Column(Integer, nullable=False, default=0)
    attempt_number = Column(Integer, nullable=False)
    is_test_response = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    def __repr__(self):
        return (
            f"<UserResponse(user_id={self.user_id}, question_id={self.question_id}, "
            f"attempt={self.attempt_number}, correct={self.is_correct})>"
        )
