"""
Organization management endpoints.

Create, update, member management, teams and invitations.
Reads require membership; mutations require the organization owner.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.database import get_db
from mindflow.core.dependencies import (
    get_current_user,
    get_member_organization,
    get_owned_organization,
    get_redis,
)
from mindflow.models.organization import Organization
from mindflow.models.user import User
from mindflow.schemas.common import ActionResponse, DataResponse
from mindflow.schemas.invitation import (
    InvitationResendResponse,
    InvitationResponse,
    InvitationsListResponse,
    InviteRequest,
)
from mindflow.schemas.organization import (
    MemberResponse,
    MemberRoleUpdateRequest,
    MembersListResponse,
    OrganizationCreateRequest,
    OrganizationResponse,
    OrganizationUpdateRequest,
    TeamCreateRequest,
    TeamResponse,
    TeamsListResponse,
)
from mindflow.services.invitation_service import InvitationService
from mindflow.services.organization_service import OrganizationService

router = APIRouter()


def get_org_service(db: AsyncSession = Depends(get_db)) -> OrganizationService:
    """Dependency that constructs OrganizationService."""
    return OrganizationService(db=db)


def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> InvitationService:
    return InvitationService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Create / List Organizations
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ActionResponse[OrganizationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new organization",
)
async def create_organization(
    data: OrganizationCreateRequest,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_org_service),
) -> ActionResponse[OrganizationResponse]:
    """
    Create a new organization.

    - Slug must be globally unique (lowercase alphanumeric + hyphens)
    - Team limits follow the subscription tier
    - Creator becomes the owner and an admin member
    """
    org = await service.create_organization(data, current_user)
    return ActionResponse(message="Organization created", data=org)


@router.get(
    "",
    response_model=DataResponse[list[OrganizationResponse]],
    summary="List organizations the current user belongs to",
)
async def list_organizations(
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_org_service),
) -> DataResponse[list[OrganizationResponse]]:
    return DataResponse(data=await service.list_user_organizations(current_user))


# ---------------------------------------------------------------------------
# Get / Update Organization
# ---------------------------------------------------------------------------

@router.get(
    "/{organization_id}",
    response_model=DataResponse[OrganizationResponse],
    summary="Get organization",
)
async def get_organization(
    org: Organization = Depends(get_member_organization),
) -> DataResponse[OrganizationResponse]:
    return DataResponse(data=OrganizationResponse.model_validate(org))


@router.patch(
    "/{organization_id}",
    response_model=ActionResponse[OrganizationResponse],
    summary="Update organization name or school code",
)
async def update_organization(
    data: OrganizationUpdateRequest,
    org: Organization = Depends(get_owned_organization),
    service: OrganizationService = Depends(get_org_service),
) -> ActionResponse[OrganizationResponse]:
    updated = await service.update_organization(org, data)
    return ActionResponse(message="Organization updated", data=updated)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get(
    "/{organization_id}/members",
    response_model=DataResponse[MembersListResponse],
    summary="List organization members",
)
async def list_members(
    org: Organization = Depends(get_member_organization),
    service: OrganizationService = Depends(get_org_service),
) -> DataResponse[MembersListResponse]:
    return DataResponse(data=await service.list_members(org))


@router.patch(
    "/{organization_id}/members/{user_id}",
    response_model=ActionResponse[MemberResponse],
    summary="Change a member's role",
)
async def update_member(
    user_id: UUID,
    data: MemberRoleUpdateRequest,
    org: Organization = Depends(get_owned_organization),
    service: OrganizationService = Depends(get_org_service),
) -> ActionResponse[MemberResponse]:
    member = await service.update_member(org, user_id, data)
    return ActionResponse(message="Member updated", data=member)


@router.delete(
    "/{organization_id}/members/{user_id}",
    response_model=ActionResponse[None],
    summary="Remove a member",
)
async def remove_member(
    user_id: UUID,
    org: Organization = Depends(get_owned_organization),
    service: OrganizationService = Depends(get_org_service),
) -> ActionResponse[None]:
    await service.remove_member(org, user_id)
    return ActionResponse(message="Member removed")


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

@router.post(
    "/{organization_id}/teams",
    response_model=ActionResponse[TeamResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a team",
)
async def create_team(
    data: TeamCreateRequest,
    org: Organization = Depends(get_owned_organization),
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_org_service),
) -> ActionResponse[TeamResponse]:
    team = await service.create_team(org, data, current_user)
    return ActionResponse(message="Team created", data=team)


@router.get(
    "/{organization_id}/teams",
    response_model=DataResponse[TeamsListResponse],
    summary="List teams",
)
async def list_teams(
    org: Organization = Depends(get_member_organization),
    service: OrganizationService = Depends(get_org_service),
) -> DataResponse[TeamsListResponse]:
    return DataResponse(data=await service.list_teams(org))


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@router.post(
    "/{organization_id}/invitations",
    response_model=ActionResponse[InvitationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone to the organization",
)
async def create_invitation(
    data: InviteRequest,
    org: Organization = Depends(get_owned_organization),
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> ActionResponse[InvitationResponse]:
    """
    Send an invitation email.

    - Fails with 409 if the email is already a member or has a pending invite
    - The invitation is removed again if the email cannot be sent
    """
    invitation = await service.create_invitation(org, data, current_user)
    return ActionResponse(message=f"Invitation sent to {invitation.email}", data=invitation)


@router.get(
    "/{organization_id}/invitations",
    response_model=DataResponse[InvitationsListResponse],
    summary="List invitations",
)
async def list_invitations(
    org: Organization = Depends(get_member_organization),
    service: InvitationService = Depends(get_invitation_service),
) -> DataResponse[InvitationsListResponse]:
    return DataResponse(data=await service.list_invitations(org))


@router.post(
    "/{organization_id}/invitations/{invitation_id}/resend",
    response_model=ActionResponse[InvitationResendResponse],
    summary="Resend a pending invitation",
)
async def resend_invitation(
    invitation_id: UUID,
    org: Organization = Depends(get_owned_organization),
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
) -> ActionResponse[InvitationResendResponse]:
    result = await service.resend_invitation(org, invitation_id, current_user)
    return ActionResponse(message=f"Invitation resent to {result.email}", data=result)


@router.delete(
    "/{organization_id}/invitations/{invitation_id}",
    response_model=ActionResponse[None],
    summary="Delete an invitation",
)
async def delete_invitation(
    invitation_id: UUID,
    org: Organization = Depends(get_owned_organization),
    service: InvitationService = Depends(get_invitation_service),
) -> ActionResponse[None]:
    await service.delete_invitation(org, invitation_id)
    return ActionResponse(message="Invitation deleted")
