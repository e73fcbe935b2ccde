"""
Admin account management API endpoints
"""
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campaign_quiz.api.auth import profile_to_dict
from campaign_quiz.api.deps import get_identity_provider, require_admin
from campaign_quiz.database import get_db
from campaign_quiz.schemas.account import (
    CreateUserRequest,
    CreateUserResponse,
    ResetPasswordRequest,
    SuccessResponse,
    UpdateUserResponse,
    UserPatch,
)
from campaign_quiz.schemas.auth import ProfileResponse
from campaign_quiz.services.account_service import account_service
from campaign_quiz.services.identity_provider import IdentityProvider
from campaign_quiz.services.session_state import AuthSession

router = APIRouter(prefix="/api/admin/users", tags=["admin"])
logger = logging.getLogger(__name__)


@router.post("", response_model=CreateUserResponse, status_code=201)
async def create_user(
    request: CreateUserRequest,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
    session: AuthSession = Depends(require_admin),
):
    """
    Create an account: identity, role claims and profile

    require_admin runs before the body is validated, so a non-admin caller
    gets 403 whatever it sends. The service repeats the check.
    """
    return account_service.create_account(
        db,
        provider,
        session,
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        department=request.department,
        role=request.role,
    )


@router.get("", response_model=List[ProfileResponse])
async def list_users(
    db: Session = Depends(get_db),
    session: AuthSession = Depends(require_admin),
):
    return [profile_to_dict(profile) for profile in account_service.list_accounts(db, session)]


@router.patch("/{user_id}", response_model=UpdateUserResponse)
async def update_user(
    user_id: str,
    patch: UserPatch,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
    session: AuthSession = Depends(require_admin),
):
    return account_service.update_account(
        db, provider, session, user_id, patch.model_dump(exclude_unset=True)
    )


@router.delete("/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
    session: AuthSession = Depends(require_admin),
):
    return account_service.delete_account(db, provider, session, user_id)


@router.post("/{user_id}/reset-password", response_model=SuccessResponse)
async def reset_password(
    user_id: str,
    request: ResetPasswordRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
    session: AuthSession = Depends(require_admin),
):
    return account_service.reset_password(provider, session, user_id, request.new_password)
