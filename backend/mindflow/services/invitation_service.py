"""
Invitation lifecycle.

pending --accept--> accepted, pending --reject--> rejected. Both are terminal.
Expiry is derived from expires_at whenever an invitation is used; it is never
written back as a status. Accept and reject claim the invitation with a single
conditional UPDATE so that only one of several concurrent requests wins.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

import redis.asyncio as aioredis
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.config import settings
from mindflow.core.exceptions import (
    AlreadyProcessed,
    Conflict,
    EmailDeliveryError,
    Expired,
    Forbidden,
    InternalError,
    NotFound,
    Unauthorized,
    ValidationError,
)
from mindflow.core.security import create_invitation_token, hash_password, verify_password
from mindflow.models.base import utcnow
from mindflow.models.invitation import Invitation, InvitationStatus
from mindflow.models.member import MemberRole, OrganizationMember
from mindflow.models.organization import Organization
from mindflow.models.team import Team, TeamMember
from mindflow.models.user import User, UserRole
from mindflow.schemas.auth import UserResponse
from mindflow.schemas.invitation import (
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationDetailResponse,
    InvitationRejectResponse,
    InvitationResendResponse,
    InvitationResponse,
    InvitationsListResponse,
    InviteRequest,
    InviterSummary,
    OrganizationSummary,
)
from mindflow.services.auth_service import AuthService
from mindflow.services.email_service import send_invitation_email
from mindflow.services.membership import add_member, is_member

logger = logging.getLogger(__name__)


def _invitation_response(invitation: Invitation) -> InvitationResponse:
    return InvitationResponse(
        id=invitation.id,
        organization_id=invitation.organization_id,
        email=invitation.email,
        role=invitation.role,
        department=invitation.department,
        team_id=invitation.team_id,
        status=invitation.status,
        expires_at=invitation.expires_at,
        accepted_at=invitation.accepted_at,
        rejected_at=invitation.rejected_at,
        created_at=invitation.created_at,
        is_expired=invitation.is_expired(),
    )


def _ensure_usable(invitation: Invitation) -> None:
    """
    Raise if the invitation can no longer be acted upon.

    Expiry wins over the stored status.
    """
    if invitation.is_expired():
        raise Expired("Invitation has expired")
    if invitation.accepted_at is not None or invitation.status == InvitationStatus.accepted:
        raise AlreadyProcessed("Invitation has already been accepted")
    if invitation.status == InvitationStatus.rejected:
        raise AlreadyProcessed("Invitation has already been rejected")


class InvitationService:
    """Handles creation, lookup and state transitions of invitations."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    async def _get_by_token(self, token: str) -> Invitation:
        result = await self.db.execute(select(Invitation).where(Invitation.token == token))
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise NotFound("Invalid invitation token", code="INVITATION_NOT_FOUND")
        return invitation

    async def _get_in_org(self, organization_id: UUID, invitation_id: UUID) -> Invitation:
        result = await self.db.execute(
            select(Invitation).where(
                Invitation.id == invitation_id,
                Invitation.organization_id == organization_id,
            )
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise NotFound("Invitation not found", code="INVITATION_NOT_FOUND")
        return invitation

    async def _summaries(self, invitation: Invitation) -> tuple[OrganizationSummary, InviterSummary]:
        result = await self.db.execute(
            select(Organization, User)
            .select_from(Invitation)
            .join(Organization, Organization.id == Invitation.organization_id)
            .join(User, User.id == Invitation.inviter_id)
            .where(Invitation.id == invitation.id)
        )
        org, inviter = result.one()
        return (
            OrganizationSummary(id=org.id, name=org.name, slug=org.slug),
            InviterSummary(id=inviter.id, name=inviter.name, email=inviter.email),
        )

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create_invitation(
        self, org: Organization, data: InviteRequest, inviter: User
    ) -> InvitationResponse:
        """
        Invite an email address to the organization.

        - Rejects emails that already belong to a member
        - Rejects a second pending, unexpired invitation for the same email
        - Sends the email; if that fails the invitation is deleted again
        """
        email = data.email.lower()

        existing_member = await self.db.execute(
            select(OrganizationMember.id)
            .join(User, OrganizationMember.user_id == User.id)
            .where(OrganizationMember.organization_id == org.id, User.email == email)
        )
        if existing_member.scalar_one_or_none() is not None:
            raise Conflict("User is already a member of this organization", code="ALREADY_MEMBER")

        existing_invite = await self.db.execute(
            select(Invitation.id).where(
                Invitation.organization_id == org.id,
                Invitation.email == email,
                Invitation.status == InvitationStatus.pending,
                Invitation.expires_at > utcnow(),
            )
        )
        if existing_invite.scalar_one_or_none() is not None:
            raise Conflict("Invitation already sent to this email", code="INVITE_EXISTS")

        if data.team_id is not None:
            team_id = await self.db.scalar(
                select(Team.id).where(Team.id == data.team_id, Team.organization_id == org.id)
            )
            if team_id is None:
                raise ValidationError("Team does not belong to this organization", code="INVALID_TEAM")

        invitation = Invitation(
            organization_id=org.id,
            email=email,
            role=data.role,
            department=data.department,
            team_id=data.team_id,
            token=create_invitation_token(),
            status=InvitationStatus.pending,
            expires_at=utcnow() + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
            inviter_id=inviter.id,
        )
        self.db.add(invitation)
        await self.db.flush()

        try:
            await send_invitation_email(
                to_email=email,
                org_name=org.name,
                inviter_name=inviter.name,
                role=data.role.value,
                invitation_token=invitation.token,
            )
        except EmailDeliveryError:
            logger.warning(
                "Invitation email failed, removing invitation id=%s email=%s", invitation.id, email
            )
            await self.db.delete(invitation)
            await self.db.flush()
            raise InternalError("Failed to send invitation email", code="EMAIL_FAILED")

        logger.info("Invitation created: id=%s organization_id=%s", invitation.id, org.id)
        return _invitation_response(invitation)

    # -----------------------------------------------------------------------
    # List / Fetch
    # -----------------------------------------------------------------------

    async def list_invitations(self, org: Organization) -> InvitationsListResponse:
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.organization_id == org.id)
            .order_by(Invitation.created_at.desc())
        )
        invitations = [_invitation_response(i) for i in result.scalars().all()]
        return InvitationsListResponse(invitations=invitations, total=len(invitations))

    async def get_invitation(self, token: str) -> InvitationDetailResponse:
        invitation = await self._get_by_token(token)
        organization, inviter = await self._summaries(invitation)
        return InvitationDetailResponse(
            id=invitation.id,
            email=invitation.email,
            role=invitation.role,
            department=invitation.department,
            status=invitation.status,
            expires_at=invitation.expires_at,
            is_expired=invitation.is_expired(),
            organization=organization,
            inviter=inviter,
        )

    # -----------------------------------------------------------------------
    # Accept
    # -----------------------------------------------------------------------

    async def claim_pending(self, invitation: Invitation, **values) -> None:
        """
        Move a pending invitation to a terminal state.

        The UPDATE only matches a row that is still pending, so of several
        concurrent claims exactly one succeeds and the rest raise.
        """
        claimed = await self.db.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation.id,
                Invitation.accepted_at.is_(None),
                Invitation.status == InvitationStatus.pending,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise AlreadyProcessed("Invitation has already been processed")
        await self.db.refresh(invitation)

    async def _add_to_team(self, team_id: UUID, member: OrganizationMember, role: MemberRole) -> None:
        team = await self.db.get(Team, team_id)
        if team is None:
            return
        size = await self.db.scalar(
            select(func.count()).select_from(TeamMember).where(TeamMember.team_id == team_id)
        )
        if size >= team.max_members:
            raise Conflict(f"Team '{team.name}' is full", code="TEAM_FULL")
        self.db.add(TeamMember(team_id=team_id, member_id=member.id, role=role))
        await self.db.flush()

    async def accept_invitation(
        self, token: str, data: InvitationAcceptRequest
    ) -> tuple[InvitationAcceptResponse, str]:
        """
        Accept an invitation on behalf of its email address.

        - An existing account must prove ownership with its own password;
          the submitted name is ignored for it
        - Claims the invitation atomically (first caller wins)
        - Creates the user if the email has no account yet
        - Creates the membership (and team membership, if any)
        - Starts a session for the user

        Any failure after the claim rolls the whole request back, so the
        invitation stays pending. Returns (response, session_token).
        """
        invitation = await self._get_by_token(token)
        _ensure_usable(invitation)

        result = await self.db.execute(select(User).where(User.email == invitation.email))
        user = result.scalar_one_or_none()
        if user is not None:
            if user.password_hash is None or not verify_password(data.password, user.password_hash):
                raise Unauthorized("Invalid email or password", code="INVALID_CREDENTIALS")
            if not user.is_active:
                raise Forbidden("Account is disabled", code="ACCOUNT_DISABLED")

        await self.claim_pending(invitation, status=InvitationStatus.accepted, accepted_at=utcnow())

        if user is None:
            user = User(
                email=invitation.email,
                name=data.name,
                password_hash=hash_password(data.password),
                role=UserRole.instructor if invitation.role == MemberRole.instructor else UserRole.student,
            )
            self.db.add(user)
            await self.db.flush()
            await self.db.refresh(user)

        if await is_member(self.db, invitation.organization_id, user.id):
            raise Conflict("You are already a member of this organization", code="ALREADY_MEMBER")

        member = await add_member(
            self.db, invitation.organization_id, user.id, invitation.role, invitation.department
        )
        if invitation.team_id is not None:
            await self._add_to_team(invitation.team_id, member, invitation.role)

        organization, _ = await self._summaries(invitation)
        session_token = await AuthService(self.db, self.redis).start_session(user)

        logger.info(
            "Invitation accepted: id=%s organization_id=%s user_id=%s",
            invitation.id, invitation.organization_id, user.id,
        )
        response = InvitationAcceptResponse(
            user=UserResponse.model_validate(user),
            organization=organization,
            member_id=member.id,
        )
        return response, session_token

    # -----------------------------------------------------------------------
    # Reject
    # -----------------------------------------------------------------------

    async def reject_invitation(self, token: str, reason: str | None = None) -> InvitationRejectResponse:
        """Decline an invitation. The optional reason is stored with it."""
        invitation = await self._get_by_token(token)
        _ensure_usable(invitation)

        now = utcnow()
        await self.claim_pending(
            invitation, status=InvitationStatus.rejected, rejected_at=now, rejection_reason=reason
        )

        organization, inviter = await self._summaries(invitation)
        logger.info("Invitation rejected: id=%s email=%s", invitation.id, invitation.email)
        return InvitationRejectResponse(
            invitation_id=invitation.id,
            email=invitation.email,
            organization=organization,
            inviter=inviter,
            rejected_at=now,
        )

    # -----------------------------------------------------------------------
    # Resend / Delete (owner only, enforced by the router)
    # -----------------------------------------------------------------------

    async def resend_invitation(
        self, org: Organization, invitation_id: UUID, sender: User
    ) -> InvitationResendResponse:
        """Re-send the email for a pending invitation. Token and expiry are unchanged."""
        invitation = await self._get_in_org(org.id, invitation_id)

        if invitation.is_expired():
            raise Expired("Cannot resend expired invitations")
        if invitation.status != InvitationStatus.pending:
            raise AlreadyProcessed("Can only resend pending invitations")

        try:
            await send_invitation_email(
                to_email=invitation.email,
                org_name=org.name,
                inviter_name=sender.name,
                role=invitation.role.value,
                invitation_token=invitation.token,
            )
        except EmailDeliveryError:
            raise InternalError("Failed to send invitation email", code="EMAIL_FAILED")

        return InvitationResendResponse(
            invitation_id=invitation.id,
            email=invitation.email,
            expires_at=invitation.expires_at,
        )

    async def delete_invitation(self, org: Organization, invitation_id: UUID) -> None:
        invitation = await self._get_in_org(org.id, invitation_id)
        await self.db.delete(invitation)
        await self.db.flush()
        logger.info("Invitation deleted: id=%s organization_id=%s", invitation_id, org.id)
