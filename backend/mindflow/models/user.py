"""
User ORM model.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mindflow.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from mindflow.models.member import OrganizationMember


class UserRole(str, enum.Enum):
    """Platform-wide role. Independent of any organization membership role."""

    student = "student"
    instructor = "instructor"
    admin = "admin"


class User(Base, UUIDMixin, TimestampMixin):
    """Represents an authenticated user with local credentials."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", native_enum=False, length=20),
        nullable=False,
        default=UserRole.student,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    org_memberships: Mapped[list[OrganizationMember]] = relationship(
        "OrganizationMember", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"
