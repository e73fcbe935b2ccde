"""
Question model - multiple choice and select-all questions
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Uuid, func
from campaign_quiz.database import Base
from campaign_quiz.models.types import JSONDocument, utcnow
import uuid


class Question(Base):
    """
    Questions table - options are index-addressed, correct_answers holds indices
    """
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid, ForeignKey("campaigns.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # multiple_choice | select_all
    text = Column(Text, nullable=False)
    options = Column(JSONDocument, nullable=False)  # ["Option A", "Option B"]
    correct_answers = Column(JSONDocument, nullable=False)  # [0, 2]
    points = Column(Integer, nullable=False, default=0)
    image_url = Column(String(2048))
    day_number = Column(Integer, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Question(id={self.id}, campaign_id={self.campaign_id}, type={self.type})>"
