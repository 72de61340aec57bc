"""
Authentication schemas.

Request/response models for signup, signin and the current-user endpoint.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from mindflow.models.member import MemberRole
from mindflow.models.user import UserRole


def check_password_strength(v: str) -> str:
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one number")
    return v


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: UserRole = UserRole.student

    @field_validator("password")
    @classmethod
    def password_must_contain_number(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("role")
    @classmethod
    def role_must_be_self_assignable(cls, v: UserRole) -> UserRole:
        if v == UserRole.admin:
            raise ValueError("Admin accounts cannot be created through signup")
        return v


# ---------------------------------------------------------------------------
# Signin
# ---------------------------------------------------------------------------

class SigninRequest(BaseModel):
    """Request body for POST /auth/signin."""

    email: EmailStr
    password: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    """Public user representation returned in API responses."""

    id: UUID
    email: str
    name: str
    role: UserRole
    created_at: datetime

    model_config = {"from_attributes": True}


class MembershipSummary(BaseModel):
    organization_id: UUID
    organization_name: str
    organization_slug: str
    role: MemberRole
    is_owner: bool


class MeResponse(UserResponse):
    """Response for GET /auth/me: current user with org memberships."""

    memberships: list[MembershipSummary]
