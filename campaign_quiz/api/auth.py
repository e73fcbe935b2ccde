"""
Authentication and own-profile API endpoints
"""
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campaign_quiz.api.deps import get_current_session, get_identity_provider, get_optional_session
from campaign_quiz.database import get_db
from campaign_quiz.errors import AlreadyExists, Internal, InvalidArgument, Unauthenticated
from campaign_quiz.models import UserProfile
from campaign_quiz.schemas.auth import (
    LoginRequest,
    ProfileCreate,
    ProfileResponse,
    RegisterRequest,
    SessionResponse,
    TokenResponse,
)
from campaign_quiz.schemas.account import SuccessResponse
from campaign_quiz.services.account_service import account_service
from campaign_quiz.services.identity_provider import AuthToken, IdentityProvider, IdentityProviderError
from campaign_quiz.services.session_state import AuthSession

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


def profile_to_dict(profile: Optional[UserProfile]) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None
    return {
        "id": str(profile.id),
        "email": profile.email,
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "department": profile.department,
        "role": profile.role,
        "created_at": profile.created_at,
        "updated_at": profile.updated_at,
    }


def _token_response(db: Session, token: AuthToken) -> TokenResponse:
    profile = db.get(UserProfile, uuid.UUID(token.uid))
    return TokenResponse(
        access_token=token.access_token,
        token_type=token.token_type,
        user_id=token.uid,
        role=(profile.role if profile else None) or token.claims.get("role") or "learner",
        is_admin=bool(token.claims.get("admin")),
        is_new_user=profile is None,
        expires_at=token.expires_at,
    )


@router.post("/api/auth/register", response_model=TokenResponse, status_code=201)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """
    Self sign-up

    The new account is a learner with no profile yet; the client follows up
    with POST /api/users/me/profile.
    """
    try:
        uid = provider.create_identity(request.email, request.password)
        provider.set_claims(uid, {"role": "learner"})
        token = provider.authenticate(request.email, request.password)
    except IdentityProviderError as e:
        logger.warning(f"Registration failed for {request.email}: {e}")
        if e.code == "auth/email-already-exists":
            raise AlreadyExists(e.message)
        if e.code in ("auth/invalid-email", "auth/invalid-password"):
            raise InvalidArgument(e.message)
        raise Internal(f"{e.code}: {e.message}")

    logger.info(f"User registered: {uid}")
    return _token_response(db, token)


@router.post("/api/auth/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    try:
        token = provider.authenticate(request.email, request.password)
    except IdentityProviderError as e:
        logger.warning(f"Login failed for {request.email}: {e.code}")
        raise Unauthenticated("Invalid email or password")
    return _token_response(db, token)


@router.get("/api/auth/me", response_model=SessionResponse)
async def me(session: AuthSession = Depends(get_optional_session)):
    """Session state of the caller; signed_out when no token is sent"""
    return {
        "status": session.status.value,
        "user_id": session.user_id,
        "email": session.email,
        "role": session.role if session.is_authenticated else None,
        "is_admin": session.is_admin,
        "is_new_user": session.is_new_user,
        "profile": profile_to_dict(session.profile),
    }


@router.post("/api/auth/logout", response_model=SuccessResponse)
async def logout(session: AuthSession = Depends(get_current_session)):
    # Tokens are stateless; the client drops it
    logger.info(f"User signed out: {session.user_id}")
    session.signed_out()
    return {"success": True}


@router.post("/api/users/me/profile", response_model=ProfileResponse, status_code=201)
async def create_profile(
    request: ProfileCreate,
    db: Session = Depends(get_db),
    session: AuthSession = Depends(get_current_session),
):
    profile = account_service.create_own_profile(
        db,
        session,
        first_name=request.first_name,
        last_name=request.last_name,
        department=request.department,
    )
    return profile_to_dict(profile)
