"""
Organization business logic.

Handles org creation, member management and teams.
All queries scoped by organization_id.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.exceptions import Conflict, Forbidden, NotFound
from mindflow.models.base import utcnow
from mindflow.models.member import MemberRole, OrganizationMember
from mindflow.models.organization import TIER_LIMITS, Organization
from mindflow.models.team import Team, TeamMember
from mindflow.models.user import User
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
from mindflow.services.membership import add_member

logger = logging.getLogger(__name__)

DEFAULT_TEAM_SLUG = "general"


class OrganizationService:
    """Handles all organization operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Create Organization
    # -----------------------------------------------------------------------

    async def create_organization(
        self, data: OrganizationCreateRequest, owner: User
    ) -> OrganizationResponse:
        """
        Create a new organization.

        - Validates slug uniqueness
        - Derives team limits from the subscription tier
        - Creates the default "General" team
        - Adds the creator as the sole admin member
        """
        existing = await self.db.execute(
            select(Organization.id).where(Organization.slug == data.slug)
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict("Organization with this slug already exists", code="SLUG_TAKEN")

        max_teams, max_members_per_team = TIER_LIMITS[data.subscription_tier]
        org = Organization(
            name=data.name,
            slug=data.slug,
            school_code=data.school_code,
            subscription_tier=data.subscription_tier,
            max_teams=max_teams,
            max_members_per_team=max_members_per_team,
            meta={"type": "school", "created_by": str(owner.id), "created_at": utcnow().isoformat()},
            created_by=owner.id,
        )
        self.db.add(org)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race against a concurrent create with the same slug
            raise Conflict("Organization with this slug already exists", code="SLUG_TAKEN")

        self.db.add(
            Team(
                organization_id=org.id,
                name="General",
                slug=DEFAULT_TEAM_SLUG,
                description="Default team for general courses and activities",
                category="default",
                max_members=max_members_per_team,
                created_by=owner.id,
            )
        )
        await self.db.flush()
        await add_member(self.db, org.id, owner.id, MemberRole.admin, department="Administration")
        await self.db.refresh(org)

        logger.info("Organization created: id=%s slug=%s owner=%s", org.id, org.slug, owner.id)
        return OrganizationResponse.model_validate(org)

    # -----------------------------------------------------------------------
    # Read / Update Organization
    # -----------------------------------------------------------------------

    async def list_user_organizations(self, user: User) -> list[OrganizationResponse]:
        result = await self.db.execute(
            select(Organization)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .where(OrganizationMember.user_id == user.id)
            .order_by(Organization.created_at)
        )
        return [OrganizationResponse.model_validate(org) for org in result.scalars().all()]

    async def update_organization(
        self, org: Organization, data: OrganizationUpdateRequest
    ) -> OrganizationResponse:
        if data.name is not None:
            org.name = data.name
        if data.school_code is not None:
            org.school_code = data.school_code

        await self.db.flush()
        await self.db.refresh(org)
        return OrganizationResponse.model_validate(org)

    # -----------------------------------------------------------------------
    # Members
    # -----------------------------------------------------------------------

    @staticmethod
    def _member_response(org: Organization, member: OrganizationMember, user: User) -> MemberResponse:
        return MemberResponse(
            id=member.id,
            user_id=member.user_id,
            email=user.email,
            name=user.name,
            role=member.role,
            department=member.department,
            status=member.status,
            is_owner=org.created_by == member.user_id,
            joined_at=member.created_at,
        )

    async def list_members(self, org: Organization) -> MembersListResponse:
        """List all members of an organization with user details."""
        result = await self.db.execute(
            select(OrganizationMember, User)
            .join(User, OrganizationMember.user_id == User.id)
            .where(OrganizationMember.organization_id == org.id)
            .order_by(OrganizationMember.created_at)
        )
        members = [self._member_response(org, member, user) for member, user in result.all()]
        return MembersListResponse(members=members, total=len(members))

    async def _get_member(self, org: Organization, user_id: UUID) -> tuple[OrganizationMember, User]:
        result = await self.db.execute(
            select(OrganizationMember, User)
            .join(User, OrganizationMember.user_id == User.id)
            .where(
                OrganizationMember.organization_id == org.id,
                OrganizationMember.user_id == user_id,
            )
        )
        row = result.one_or_none()
        if row is None:
            raise NotFound("Member not found", code="MEMBER_NOT_FOUND")
        return row[0], row[1]

    async def update_member(
        self, org: Organization, target_user_id: UUID, data: MemberRoleUpdateRequest
    ) -> MemberResponse:
        """Change a member's role and department. The owner's membership is fixed."""
        member, user = await self._get_member(org, target_user_id)

        if member.user_id == org.created_by:
            raise Forbidden("Cannot change the owner's role", code="CANNOT_CHANGE_OWNER")

        member.role = data.role
        if data.department is not None:
            member.department = data.department
        await self.db.flush()
        await self.db.refresh(member)
        return self._member_response(org, member, user)

    async def remove_member(self, org: Organization, target_user_id: UUID) -> None:
        member, _ = await self._get_member(org, target_user_id)

        if member.user_id == org.created_by:
            raise Forbidden("Cannot remove the organization owner", code="CANNOT_REMOVE_OWNER")

        await self.db.delete(member)
        await self.db.flush()
        logger.info("Member removed: organization_id=%s user_id=%s", org.id, target_user_id)

    # -----------------------------------------------------------------------
    # Teams
    # -----------------------------------------------------------------------

    async def create_team(
        self, org: Organization, data: TeamCreateRequest, creator: User
    ) -> TeamResponse:
        """
        Create a team inside the organization.

        - Slug must be unique within the organization
        - Organization must be below its tier's team limit
        """
        existing = await self.db.execute(
            select(Team.id).where(Team.organization_id == org.id, Team.slug == data.slug)
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict(
                "Team with this slug already exists in this organization", code="TEAM_SLUG_TAKEN"
            )

        team_count = await self.db.scalar(
            select(func.count(Team.id)).where(Team.organization_id == org.id)
        )
        if (team_count or 0) >= org.max_teams:
            raise Conflict(
                f"Organization has reached its limit of {org.max_teams} teams",
                code="TEAM_LIMIT_REACHED",
            )

        team = Team(
            organization_id=org.id,
            name=data.name,
            slug=data.slug,
            description=data.description,
            department_code=data.department_code,
            category=data.category,
            max_members=min(data.max_members or 50, org.max_members_per_team),
            created_by=creator.id,
        )
        self.db.add(team)
        await self.db.flush()
        await self.db.refresh(team)
        return TeamResponse.model_validate(team)

    async def list_teams(self, org: Organization) -> TeamsListResponse:
        result = await self.db.execute(
            select(Team, func.count(TeamMember.id))
            .outerjoin(TeamMember, TeamMember.team_id == Team.id)
            .where(Team.organization_id == org.id)
            .group_by(Team.id)
            .order_by(Team.created_at)
        )
        teams = []
        for team, member_count in result.all():
            response = TeamResponse.model_validate(team)
            response.member_count = member_count
            teams.append(response)
        return TeamsListResponse(teams=teams, total=len(teams))
