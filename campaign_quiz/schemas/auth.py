"""
Pydantic schemas for authentication and the caller's own profile
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from campaign_quiz.schemas.common import Department


class RegisterRequest(BaseModel):
    """Self sign-up; the account starts as a learner without a profile"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str
    is_admin: bool
    is_new_user: bool
    expires_at: datetime


class ProfileCreate(BaseModel):
    """First-login profile details"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    department: Department


class ProfileResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    department: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SessionResponse(BaseModel):
    """Current caller state as seen by the server"""
    status: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    is_admin: bool = False
    is_new_user: bool = False
    profile: Optional[ProfileResponse] = None
