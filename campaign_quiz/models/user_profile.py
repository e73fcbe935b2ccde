"""
UserProfile model - one profile document per identity
"""
from sqlalchemy import Column, String, DateTime, Uuid, func
from campaign_quiz.database import Base
from campaign_quiz.models.types import utcnow


class UserProfile(Base):
    """
    Users table - profile fields shown on the leaderboard and admin screens

    The id is the identity provider's account id; a profile is written in a
    separate step from the identity, so an identity may exist without one.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True)
    email = Column(String(320), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    department = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default="learner")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<UserProfile(id={self.id}, email={self.email}, role={self.role})>"
