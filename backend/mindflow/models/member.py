"""
OrganizationMember ORM model.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindflow.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from mindflow.models.organization import Organization
    from mindflow.models.user import User


class MemberRole(str, enum.Enum):
    """Organization-scoped member role."""

    admin = "admin"
    instructor = "instructor"
    member = "member"
    student = "student"


class MemberStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class OrganizationMember(Base, UUIDMixin, TimestampMixin):
    """Join table linking users to organizations with a role."""

    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[MemberRole] = mapped_column(
        Enum(MemberRole, name="member_role", native_enum=False, length=20), nullable=False
    )
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[MemberStatus] = mapped_column(
        Enum(MemberStatus, name="member_status", native_enum=False, length=20),
        nullable=False,
        default=MemberStatus.active,
    )

    # Relationships
    organization: Mapped[Organization] = relationship(
        "Organization", back_populates="members"
    )
    user: Mapped[User] = relationship(
        "User", back_populates="org_memberships"
    )

    def __repr__(self) -> str:
        return (
            f"<OrganizationMember organization_id={self.organization_id} "
            f"user_id={self.user_id} role={self.role}>"
        )
