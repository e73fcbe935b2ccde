"""
Caller session state

An explicit per-request object built by the auth dependency and passed to
services, instead of ambient global auth state.
"""
from enum import Enum
from typing import Any, Dict, Optional

from campaign_quiz.errors import Conflict
from campaign_quiz.models import UserProfile


class SessionStatus(str, Enum):
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"
    PROFILE_LOADED = "profile_loaded"


class AuthSession:
    """
    Transitions: signed_out -> signed_in -> profile_loaded, and back to
    signed_out from any state.
    """

    def __init__(self):
        self.status = SessionStatus.SIGNED_OUT
        self.user_id: Optional[str] = None
        self.email: Optional[str] = None
        self.claims: Dict[str, Any] = {}
        self.profile: Optional[UserProfile] = None

    def signed_in(self, user_id: str, email: Optional[str], claims: Dict[str, Any]) -> "AuthSession":
        if self.status != SessionStatus.SIGNED_OUT:
            raise Conflict(f"Cannot sign in from state {self.status.value}")
        self.user_id = str(user_id)
        self.email = email
        self.claims = dict(claims or {})
        self.status = SessionStatus.SIGNED_IN
        return self

    def profile_loaded(self, profile: Optional[UserProfile]) -> "AuthSession":
        if self.status == SessionStatus.SIGNED_OUT:
            raise Conflict("Cannot load a profile without a signed-in user")
        self.profile = profile
        self.status = SessionStatus.PROFILE_LOADED
        return self

    def signed_out(self) -> "AuthSession":
        self.status = SessionStatus.SIGNED_OUT
        self.user_id = None
        self.email = None
        self.claims = {}
        self.profile = None
        return self

    @property
    def is_authenticated(self) -> bool:
        return self.status != SessionStatus.SIGNED_OUT

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and bool(self.claims.get("admin"))

    @property
    def role(self) -> str:
        if self.profile is not None and self.profile.role:
            return self.profile.role
        return self.claims.get("role") or "learner"

    @property
    def is_new_user(self) -> bool:
        """Signed in, profile looked up, and none exists yet"""
        return self.status == SessionStatus.PROFILE_LOADED and self.profile is None

    def __repr__(self):
        return f"<AuthSession(status={self.status.value}, user_id={self.user_id}, admin={self.is_admin})>"
