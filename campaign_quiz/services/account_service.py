"""
Identity & profile gateway

Admin account operations that keep the identity provider and the ``users``
profile table in step. Provider and profile writes are separate systems, so a
failure between them is reported, not rolled back.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campaign_quiz.errors import (
    AlreadyExists,
    Internal,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)
from campaign_quiz.models import UserProfile
from campaign_quiz.models.types import utcnow
from campaign_quiz.schemas.common import DEPARTMENTS, ROLES
from campaign_quiz.services.identity_provider import IdentityProvider, IdentityProviderError
from campaign_quiz.services.session_state import AuthSession
from campaign_quiz.utils.cache import cache_service

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"first_name", "last_name", "department", "role"}


def _parse_user_id(user_id: Any) -> uuid.UUID:
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        raise NotFound("User not found")


def _provider_failure(error: IdentityProviderError, fallback: str) -> Internal:
    return Internal(f"{error.code}: {error.message or fallback}")


class AccountService:
    """Privileged account lifecycle operations"""

    def _require_admin(self, caller: Optional[AuthSession], action: str) -> None:
        if caller is None or not caller.is_admin:
            logger.warning(f"Rejected non-admin attempt to {action}: {caller!r}")
            raise PermissionDenied(f"Only administrators can {action}")

    def reset_password(
        self,
        provider: IdentityProvider,
        caller: Optional[AuthSession],
        user_id: str,
        new_password: str,
    ) -> Dict[str, Any]:
        self._require_admin(caller, "reset passwords")

        if not user_id or not new_password:
            raise InvalidArgument("Missing required fields")

        try:
            provider.update_identity(str(user_id), password=new_password)
        except IdentityProviderError as e:
            logger.error(f"Error resetting password for {user_id}: {e}")
            if e.code == "auth/user-not-found":
                raise NotFound(f"{e.code}: User not found")
            if e.code == "auth/invalid-password":
                raise InvalidArgument(f"{e.code}: {e.message}")
            raise _provider_failure(e, "Failed to reset password")

        logger.info(f"Password reset for user {user_id} by {caller.user_id}")
        return {"success": True}

    def create_account(
        self,
        db: Session,
        provider: IdentityProvider,
        caller: Optional[AuthSession],
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        department: str,
        role: str,
    ) -> Dict[str, Any]:
        """
        Create identity, role claims and profile

        Returns:
            {"user_id": <provider id>}
        """
        self._require_admin(caller, "create users")

        if not email or not password or not first_name or not last_name:
            raise InvalidArgument("All fields are required")
        if role not in ROLES:
            raise InvalidArgument("Invalid role specified")
        if department not in DEPARTMENTS:
            raise InvalidArgument("Invalid department specified")

        try:
            uid = provider.create_identity(email, password, f"{first_name} {last_name}")
            provider.set_claims(uid, {"role": role})
        except IdentityProviderError as e:
            logger.error(f"Error creating user {email}: {e}")
            raise _provider_failure(e, "Failed to create user")

        now = utcnow()
        profile = UserProfile(
            id=uuid.UUID(uid),
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            department=department,
            role=role,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(profile)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Identity {uid} created but profile write failed, identity is orphaned: {e}")
            raise Internal(f"Failed to create user profile: {str(e)}")

        cache_service.invalidate_leaderboard()
        logger.info(f"User created: {uid} ({role}) by {caller.user_id}")
        return {"user_id": uid}

    def update_account(
        self,
        db: Session,
        provider: IdentityProvider,
        caller: Optional[AuthSession],
        user_id: str,
        updates: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Apply a profile patch, pushing name and role changes to the provider

        Args:
            updates: Only the fields to change; unknown fields are rejected
        """
        self._require_admin(caller, "update users")

        if not user_id:
            raise InvalidArgument("User ID is required")
        if not updates:
            raise InvalidArgument("No updates provided")

        unknown = sorted(set(updates) - UPDATABLE_FIELDS)
        if unknown:
            raise InvalidArgument(f"Unknown fields: {', '.join(unknown)}")
        if "role" in updates and updates["role"] not in ROLES:
            raise InvalidArgument("Invalid role specified")
        if "department" in updates and updates["department"] not in DEPARTMENTS:
            raise InvalidArgument("Invalid department specified")
        for key in ("first_name", "last_name"):
            if key in updates and not (updates[key] or "").strip():
                raise InvalidArgument(f"{key} cannot be empty")

        profile = db.get(UserProfile, _parse_user_id(user_id))
        if not profile:
            raise NotFound("User not found")

        try:
            if "first_name" in updates or "last_name" in updates:
                first_name = updates.get("first_name", profile.first_name)
                last_name = updates.get("last_name", profile.last_name)
                provider.update_identity(str(user_id), display_name=f"{first_name} {last_name}".strip())

            if updates.get("role"):
                provider.set_claims(str(user_id), {"role": updates["role"]})
        except IdentityProviderError as e:
            logger.error(f"Error updating user {user_id}: {e}")
            if e.code == "auth/user-not-found":
                raise NotFound(f"{e.code}: User not found")
            if e.code == "auth/invalid-display-name":
                raise InvalidArgument(f"{e.code}: Invalid name format")
            raise _provider_failure(e, "Failed to update user")

        try:
            for key, value in updates.items():
                if value is not None:
                    setattr(profile, key, value)
            profile.updated_at = utcnow()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Provider updated for {user_id} but profile write failed: {e}")
            raise Internal(f"Failed to update user: {str(e)}")

        cache_service.invalidate_leaderboard()
        logger.info(f"User updated: {user_id} fields={sorted(updates)}")
        return {"success": True, "user_id": str(user_id)}

    def delete_account(
        self,
        db: Session,
        provider: IdentityProvider,
        caller: Optional[AuthSession],
        user_id: str,
    ) -> Dict[str, Any]:
        self._require_admin(caller, "delete users")

        try:
            provider.delete_identity(str(user_id))
        except IdentityProviderError as e:
            logger.error(f"Error deleting user {user_id}: {e}")
            raise _provider_failure(e, "Failed to delete user")

        try:
            profile = db.get(UserProfile, _parse_user_id(user_id))
            if profile:
                db.delete(profile)
                db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Identity {user_id} deleted but profile delete failed, profile is orphaned: {e}")
            raise Internal(f"Failed to delete user profile: {str(e)}")

        cache_service.invalidate_leaderboard()
        logger.info(f"User deleted: {user_id} by {caller.user_id}")
        return {"success": True}

    def list_accounts(self, db: Session, caller: Optional[AuthSession]) -> List[UserProfile]:
        self._require_admin(caller, "list users")
        return db.query(UserProfile).order_by(UserProfile.created_at.desc()).all()

    def create_own_profile(
        self,
        db: Session,
        caller: Optional[AuthSession],
        *,
        first_name: str,
        last_name: str,
        department: str,
    ) -> UserProfile:
        """First-login step: the signed-in identity writes its own profile"""
        if caller is None or not caller.is_authenticated:
            raise Unauthenticated("Sign in to create a profile")
        if department not in DEPARTMENTS:
            raise InvalidArgument("Invalid department specified")

        user_key = uuid.UUID(caller.user_id)
        if db.get(UserProfile, user_key):
            raise AlreadyExists("Profile already exists")

        now = utcnow()
        profile = UserProfile(
            id=user_key,
            email=caller.email or "",
            first_name=first_name,
            last_name=last_name,
            department=department,
            role=caller.claims.get("role") or "learner",
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(profile)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error creating user profile for {caller.user_id}: {e}")
            raise Internal("Failed to create user profile")

        caller.profile_loaded(profile)
        logger.info(f"Profile created for user {caller.user_id}")
        return profile


# Global instance
account_service = AccountService()
