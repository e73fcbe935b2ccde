"""
CampaignParticipant model - campaign membership
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, Uuid, func
from campaign_quiz.database import Base
from campaign_quiz.models.types import JSONDocument, utcnow
import uuid


class CampaignParticipant(Base):
    """
    Campaign participants table

    score and completed_questions are a convenience cache; the response
    ledger is the authority for scoring.
    """
    __tablename__ = "campaign_participants"
    __table_args__ = (
        UniqueConstraint("user_id", "campaign_id", name="uq_campaign_participants_user_campaign"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    campaign_id = Column(Uuid, ForeignKey("campaigns.id"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    score = Column(Integer, nullable=False, default=0)
    completed_questions = Column(JSONDocument, nullable=False, default=list)
    current_test_day = Column(Integer)

    def __repr__(self):
        return f"<CampaignParticipant(user_id={self.user_id}, campaign_id={self.campaign_id})>"
