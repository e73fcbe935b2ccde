"""
Campaign model - time-boxed containers of questions
"""
from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, Uuid, func
from campaign_quiz.database import Base
from campaign_quiz.models.types import utcnow
import uuid


class Campaign(Base):
    """
    Campaigns table

    current_test_day / total_test_days are only set for test campaigns.
    version is bumped on every write and backs compare-and-swap updates.
    """
    __tablename__ = "campaigns"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    image_url = Column(String(2048))
    created_by = Column(Uuid)
    start_date = Column(DateTime(timezone=True))
    end_date = Column(DateTime(timezone=True))
    is_active = Column(Boolean, nullable=False, default=True)
    has_questions = Column(Boolean, nullable=False, default=False)
    participant_limit = Column(Integer)

    is_test_campaign = Column(Boolean, nullable=False, default=False)
    current_test_day = Column(Integer)
    total_test_days = Column(Integer)

    learning_materials_url = Column(String(2048))
    learning_materials_last_verified = Column(DateTime(timezone=True))
    learning_materials_backup_url = Column(String(2048))

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Campaign(id={self.id}, title={self.title}, test={self.is_test_campaign})>"
