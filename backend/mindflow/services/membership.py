"""
Membership authorization checks.

Every organization-scoped operation is gated by one of these.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.exceptions import Conflict, Forbidden, NotFound
from mindflow.models.member import MemberRole, MemberStatus, OrganizationMember
from mindflow.models.organization import Organization


async def is_member(db: AsyncSession, organization_id: UUID, user_id: UUID) -> bool:
    result = await db.execute(
        select(
            exists().where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
        )
    )
    return bool(result.scalar())


async def is_owner(db: AsyncSession, organization_id: UUID, user_id: UUID) -> bool:
    result = await db.execute(
        select(Organization.created_by).where(Organization.id == organization_id)
    )
    created_by = result.scalar_one_or_none()
    return created_by is not None and created_by == user_id


async def load_organization(db: AsyncSession, organization_id: UUID) -> Organization:
    result = await db.execute(select(Organization).where(Organization.id == organization_id))
    org = result.scalar_one_or_none()
    if org is None:
        raise NotFound("Organization not found", code="ORG_NOT_FOUND")
    return org


async def require_member(db: AsyncSession, organization_id: UUID, user_id: UUID) -> Organization:
    """Return the organization if the user belongs to it, raise otherwise."""
    org = await load_organization(db, organization_id)
    if not await is_member(db, organization_id, user_id):
        raise Forbidden("You are not a member of this organization", code="NOT_A_MEMBER")
    return org


async def require_owner(
    db: AsyncSession, organization_id: UUID, user_id: UUID, action: str = "manage this organization"
) -> Organization:
    """Return the organization if the user created it, raise otherwise."""
    org = await load_organization(db, organization_id)
    if org.created_by != user_id:
        raise Forbidden(f"Only the organization owner can {action}", code="NOT_OWNER")
    return org


async def add_member(
    db: AsyncSession,
    organization_id: UUID,
    user_id: UUID,
    role: MemberRole,
    department: str | None = None,
) -> OrganizationMember:
    """
    Insert a membership row.

    The (organization_id, user_id) unique constraint is the final arbiter;
    a duplicate surfaces as ALREADY_MEMBER.
    """
    member = OrganizationMember(
        organization_id=organization_id,
        user_id=user_id,
        role=role,
        department=department,
        status=MemberStatus.active,
    )
    db.add(member)
    try:
        await db.flush()
    except IntegrityError:
        raise Conflict("User is already a member of this organization", code="ALREADY_MEMBER")
    return member
