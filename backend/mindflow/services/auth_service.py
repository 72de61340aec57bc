"""
Authentication business logic.

Handles signup, signin, signout and server-side session bookkeeping.
All business logic lives here; routers only handle HTTP concerns.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.config import settings
from mindflow.core.exceptions import Conflict, Forbidden, Unauthorized
from mindflow.core.security import (
    create_session_token,
    hash_password,
    session_redis_key,
    verify_password,
)
from mindflow.models.member import OrganizationMember
from mindflow.models.organization import Organization
from mindflow.models.user import User
from mindflow.schemas.auth import (
    MeResponse,
    MembershipSummary,
    SigninRequest,
    SignupRequest,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Handles all authentication operations."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Sessions
    # -----------------------------------------------------------------------

    async def start_session(self, user: User) -> str:
        """Issue a session token and register its jti in Redis."""
        token, jti = create_session_token(str(user.id))
        await self.redis.setex(session_redis_key(jti), settings.session_max_age, str(user.id))
        return token

    async def end_session(self, jti: str) -> None:
        await self.redis.delete(session_redis_key(jti))

    # -----------------------------------------------------------------------
    # Signup
    # -----------------------------------------------------------------------

    async def signup(self, data: SignupRequest) -> tuple[User, str]:
        """
        Register a new user.

        - Validates email uniqueness
        - Hashes password
        - Creates user record
        - Starts a session

        Returns (user, session_token).
        """
        existing = await self.db.execute(
            select(User).where(User.email == data.email.lower())
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict("Email is already registered", code="EMAIL_TAKEN")

        user = User(
            email=data.email.lower(),
            name=data.name,
            password_hash=hash_password(data.password),
            role=data.role,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)

        logger.info("User registered: user_id=%s role=%s", user.id, user.role.value)
        return user, await self.start_session(user)

    # -----------------------------------------------------------------------
    # Signin
    # -----------------------------------------------------------------------

    async def signin(self, data: SigninRequest) -> tuple[User, str]:
        """
        Authenticate user with email + password.

        Raises 401 for invalid credentials (never reveals which field is wrong).
        """
        result = await self.db.execute(
            select(User).where(User.email == data.email.lower())
        )
        user = result.scalar_one_or_none()

        if user is None or user.password_hash is None:
            raise Unauthorized("Invalid email or password", code="INVALID_CREDENTIALS")

        if not verify_password(data.password, user.password_hash):
            raise Unauthorized("Invalid email or password", code="INVALID_CREDENTIALS")

        if not user.is_active:
            raise Forbidden("Account is disabled", code="ACCOUNT_DISABLED")

        return user, await self.start_session(user)

    # -----------------------------------------------------------------------
    # Me
    # -----------------------------------------------------------------------

    async def get_me(self, user: User) -> MeResponse:
        """Return the user's profile with all organization memberships."""
        result = await self.db.execute(
            select(OrganizationMember, Organization)
            .join(Organization, OrganizationMember.organization_id == Organization.id)
            .where(OrganizationMember.user_id == user.id)
            .order_by(Organization.name)
        )
        memberships = [
            MembershipSummary(
                organization_id=org.id,
                organization_name=org.name,
                organization_slug=org.slug,
                role=member.role,
                is_owner=org.created_by == user.id,
            )
            for member, org in result.all()
        ]
        return MeResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            created_at=user.created_at,
            memberships=memberships,
        )
