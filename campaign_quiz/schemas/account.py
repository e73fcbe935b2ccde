"""
Pydantic schemas for the admin account operations
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from campaign_quiz.schemas.common import Department, Role


class CreateUserRequest(BaseModel):
    """Schema for createUser"""
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    department: Department
    role: Role = "learner"


class CreateUserResponse(BaseModel):
    user_id: str


class UserPatch(BaseModel):
    """
    Partial profile update for updateUser

    Every field is optional; unknown fields are rejected. role is a plain
    string so the service can report an invalid role itself.
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    department: Optional[Department] = None
    role: Optional[str] = None

    class Config:
        extra = "forbid"


class UpdateUserResponse(BaseModel):
    success: bool = True
    user_id: str


class ResetPasswordRequest(BaseModel):
    new_password: str = ""


class SuccessResponse(BaseModel):
    success: bool = True
