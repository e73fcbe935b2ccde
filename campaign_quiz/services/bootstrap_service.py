"""
Startup bootstrap
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from campaign_quiz.config import settings
from campaign_quiz.models import UserProfile
from campaign_quiz.services.identity_provider import IdentityProvider, role_claims

logger = logging.getLogger(__name__)


def ensure_first_admin(db: Session, provider: IdentityProvider) -> Optional[str]:
    """
    Make sure FIRST_ADMIN_EMAIL exists as an administrator with a profile

    Without an administrator nobody could call the admin account operations,
    so this is the only path that grants the role outside of them.

    Returns:
        The admin's user id, or None when no bootstrap admin is configured
    """
    if not settings.FIRST_ADMIN_EMAIL or not settings.FIRST_ADMIN_PASSWORD:
        return None

    email = settings.FIRST_ADMIN_EMAIL.strip().lower()
    record = provider.find_identity_by_email(email)
    if record is None:
        uid = provider.create_identity(email, settings.FIRST_ADMIN_PASSWORD, "Initial Admin")
        logger.info(f"Bootstrap admin identity created: {uid}")
    else:
        uid = record.uid

    if record is None or not record.claims.get("admin"):
        provider.set_claims(uid, role_claims("admin"))

    if not db.get(UserProfile, uuid.UUID(uid)):
        db.add(UserProfile(
            id=uuid.UUID(uid),
            email=email,
            first_name="Initial",
            last_name="Admin",
            department="Learning and Development",
            role="admin",
        ))
        db.commit()
        logger.info(f"Bootstrap admin profile created: {uid}")

    return uid
