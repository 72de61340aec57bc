"""
Organization ORM model.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindflow.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from mindflow.models.invitation import Invitation
    from mindflow.models.member import OrganizationMember
    from mindflow.models.team import Team


class SubscriptionTier(str, enum.Enum):
    basic = "basic"
    premium = "premium"


# (max_teams, max_members_per_team)
TIER_LIMITS: dict[SubscriptionTier, tuple[int, int]] = {
    SubscriptionTier.basic: (5, 50),
    SubscriptionTier.premium: (20, 200),
}


class Organization(Base, UUIDMixin, TimestampMixin):
    """Represents a tenant organization, typically a school."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    school_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    subscription_tier: Mapped[SubscriptionTier] = mapped_column(
        Enum(SubscriptionTier, name="subscription_tier", native_enum=False, length=20),
        nullable=False,
        default=SubscriptionTier.basic,
    )
    max_teams: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    max_members_per_team: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    # "metadata" is reserved by the declarative base
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    created_by: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    # Relationships
    members: Mapped[list[OrganizationMember]] = relationship(
        "OrganizationMember", back_populates="organization", cascade="all, delete-orphan"
    )
    teams: Mapped[list[Team]] = relationship(
        "Team", back_populates="organization", cascade="all, delete-orphan"
    )
    invitations: Mapped[list[Invitation]] = relationship(
        "Invitation", back_populates="organization", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} slug={self.slug!r}>"
