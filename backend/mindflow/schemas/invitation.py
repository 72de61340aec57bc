"""
Invitation schemas.

Request/response models for the invitation lifecycle endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from mindflow.models.invitation import InvitationStatus
from mindflow.models.member import MemberRole
from mindflow.schemas.auth import UserResponse, check_password_strength


class InviteRequest(BaseModel):
    """Request body for POST /organizations/{organization_id}/invitations."""

    email: EmailStr
    role: MemberRole
    department: str | None = Field(default=None, max_length=100)
    team_id: UUID | None = None


class InvitationResponse(BaseModel):
    """Invitation as seen by members of the inviting organization."""

    id: UUID
    organization_id: UUID
    email: str
    role: MemberRole
    department: str | None
    team_id: UUID | None
    status: InvitationStatus
    expires_at: datetime
    accepted_at: datetime | None
    rejected_at: datetime | None
    created_at: datetime
    is_expired: bool


class InvitationsListResponse(BaseModel):
    invitations: list[InvitationResponse]
    total: int


# ---------------------------------------------------------------------------
# Public (token holder) views
# ---------------------------------------------------------------------------

class OrganizationSummary(BaseModel):
    id: UUID
    name: str
    slug: str


class InviterSummary(BaseModel):
    id: UUID
    name: str
    email: str


class InvitationDetailResponse(BaseModel):
    """Public info about an invitation (shown before accepting)."""

    id: UUID
    email: str
    role: MemberRole
    department: str | None
    status: InvitationStatus
    expires_at: datetime
    is_expired: bool
    organization: OrganizationSummary
    inviter: InviterSummary


class InvitationAcceptRequest(BaseModel):
    """Request body for POST /invitations/{token}/accept."""

    name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_must_contain_number(cls, v: str) -> str:
        return check_password_strength(v)


class InvitationAcceptResponse(BaseModel):
    user: UserResponse
    organization: OrganizationSummary
    member_id: UUID


class InvitationRejectRequest(BaseModel):
    """Request body for POST /invitations/{token}/reject."""

    reason: str | None = Field(default=None, max_length=500)


class InvitationRejectResponse(BaseModel):
    invitation_id: UUID
    email: str
    organization: OrganizationSummary
    inviter: InviterSummary
    rejected_at: datetime


class InvitationResendResponse(BaseModel):
    invitation_id: UUID
    email: str
    expires_at: datetime
