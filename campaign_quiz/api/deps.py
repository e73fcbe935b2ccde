"""
Shared API dependencies: identity provider and caller session
"""
import logging
import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from campaign_quiz.database import get_db
from campaign_quiz.errors import PermissionDenied, Unauthenticated
from campaign_quiz.models import UserProfile
from campaign_quiz.services.identity_provider import (
    IdentityProvider,
    IdentityProviderError,
    identity_provider,
)
from campaign_quiz.services.session_state import AuthSession

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_identity_provider() -> IdentityProvider:
    return identity_provider


def build_session(db: Session, provider: IdentityProvider, token: Optional[str]) -> AuthSession:
    """Turn a bearer token into a signed-in session with its profile loaded"""
    session = AuthSession()
    if not token:
        return session

    try:
        payload = provider.verify_token(token)
        user_key = uuid.UUID(payload["sub"])
    except (IdentityProviderError, ValueError) as e:
        logger.warning(f"Rejected access token: {str(e)}")
        raise Unauthenticated("Invalid or expired access token")

    claims = {key: payload[key] for key in ("role", "admin") if key in payload}
    session.signed_in(str(user_key), payload.get("email"), claims)
    session.profile_loaded(db.get(UserProfile, user_key))
    return session


def get_optional_session(
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
    token: Optional[str] = Depends(oauth2_scheme),
) -> AuthSession:
    return build_session(db, provider, token)


def get_current_session(session: AuthSession = Depends(get_optional_session)) -> AuthSession:
    if not session.is_authenticated:
        raise Unauthenticated("Authentication required")
    return session


def require_admin(session: AuthSession = Depends(get_current_session)) -> AuthSession:
    if not session.is_admin:
        raise PermissionDenied("Administrator access required")
    return session
