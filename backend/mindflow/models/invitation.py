"""
Invitation ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindflow.models.base import Base, UUIDMixin, as_utc, utcnow
from mindflow.models.member import MemberRole

if TYPE_CHECKING:
    from mindflow.models.organization import Organization


class InvitationStatus(str, enum.Enum):
    """
    Stored invitation states.

    Expiry is never stored; it is derived from ``expires_at`` on access.
    """

    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class Invitation(Base, UUIDMixin):
    """Tokenized, time-limited offer for an email address to join an organization."""

    __tablename__ = "invitations"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[MemberRole] = mapped_column(
        Enum(MemberRole, name="member_role", native_enum=False, length=20), nullable=False
    )
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    team_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    status: Mapped[InvitationStatus] = mapped_column(
        Enum(InvitationStatus, name="invitation_status", native_enum=False, length=20),
        nullable=False,
        default=InvitationStatus.pending,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    inviter_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="invitations"
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        return as_utc(self.expires_at) < (now or utcnow())

    def __repr__(self) -> str:
        return (
            f"<Invitation id={self.id} email={self.email!r} "
            f"organization_id={self.organization_id} status={self.status}>"
        )
