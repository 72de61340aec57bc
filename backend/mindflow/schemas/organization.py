"""
Organization schemas.

Request/response models for organization, member and team management endpoints.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from mindflow.models.member import MemberRole, MemberStatus
from mindflow.models.organization import SubscriptionTier

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")


def check_slug(v: str) -> str:
    if not SLUG_PATTERN.match(v):
        raise ValueError(
            "Slug must be lowercase alphanumeric and hyphens only, "
            "and cannot start or end with a hyphen"
        )
    return v


# ---------------------------------------------------------------------------
# Organization
# ---------------------------------------------------------------------------

class OrganizationCreateRequest(BaseModel):
    """Request body for POST /organizations."""

    name: str = Field(min_length=3, max_length=100)
    slug: str = Field(min_length=2, max_length=50)
    school_code: str | None = Field(default=None, max_length=50)
    subscription_tier: SubscriptionTier = SubscriptionTier.basic

    @field_validator("slug")
    @classmethod
    def slug_must_be_valid(cls, v: str) -> str:
        return check_slug(v)


class OrganizationUpdateRequest(BaseModel):
    """Request body for PATCH /organizations/{organization_id}."""

    name: str | None = Field(default=None, min_length=3, max_length=100)
    school_code: str | None = Field(default=None, max_length=50)


class OrganizationResponse(BaseModel):
    """Organization detail response."""

    id: UUID
    name: str
    slug: str
    school_code: str | None
    subscription_tier: SubscriptionTier
    max_teams: int
    max_members_per_team: int
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="meta")
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberResponse(BaseModel):
    """Single org member with user info and role."""

    id: UUID
    user_id: UUID
    email: str
    name: str
    role: MemberRole
    department: str | None
    status: MemberStatus
    is_owner: bool
    joined_at: datetime


class MemberRoleUpdateRequest(BaseModel):
    """Request body for PATCH /organizations/{organization_id}/members/{user_id}."""

    role: MemberRole
    department: str | None = Field(default=None, max_length=100)


class MembersListResponse(BaseModel):
    members: list[MemberResponse]
    total: int


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

class TeamCreateRequest(BaseModel):
    """Request body for POST /organizations/{organization_id}/teams."""

    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=2, max_length=50)
    description: str | None = None
    department_code: str | None = Field(default=None, max_length=50)
    category: str | None = Field(default=None, max_length=50)
    max_members: int | None = Field(default=None, ge=1)

    @field_validator("slug")
    @classmethod
    def slug_must_be_valid(cls, v: str) -> str:
        return check_slug(v)


class TeamResponse(BaseModel):
    id: UUID
    organization_id: UUID
    name: str
    slug: str
    description: str | None
    department_code: str | None
    category: str | None
    max_members: int
    created_by: UUID
    created_at: datetime
    member_count: int = 0

    model_config = {"from_attributes": True}


class TeamsListResponse(BaseModel):
    teams: list[TeamResponse]
    total: int
