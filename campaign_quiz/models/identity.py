"""
Identity model - accounts owned by the local identity provider
"""
from sqlalchemy import Column, String, DateTime, Uuid, func
from campaign_quiz.database import Base
from campaign_quiz.models.types import JSONDocument, utcnow
import uuid


class Identity(Base):
    """
    Identities table - credentials, display name and custom claims
    """
    __tablename__ = "identities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255))
    claims = Column(JSONDocument, nullable=False, default=dict)  # {"role": "admin", "admin": true}
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Identity(id={self.id}, email={self.email})>"
