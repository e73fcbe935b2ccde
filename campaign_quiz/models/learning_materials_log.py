"""
LearningMaterialsLog model - audit trail of learning materials URL changes
"""
from sqlalchemy import Column, String, Text, DateTime, Uuid, func
from campaign_quiz.database import Base
from campaign_quiz.models.types import utcnow
import uuid


class LearningMaterialsLog(Base):
    __tablename__ = "learning_materials_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid, nullable=False, index=True)
    type = Column(String(20), nullable=False)  # add | update | verify
    url = Column(String(2048), nullable=False)
    status = Column(String(20), nullable=False)  # success | error
    error = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
