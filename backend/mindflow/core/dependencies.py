"""
FastAPI dependency injection functions.

Provides database sessions, Redis, current user from the session cookie,
global role enforcement and organization membership checks.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.config import settings
from mindflow.core.database import get_db
from mindflow.core.exceptions import Forbidden, Unauthorized
from mindflow.core.security import decode_session_token, session_redis_key
from mindflow.models.organization import Organization
from mindflow.models.user import User, UserRole
from mindflow.services import membership

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False; the session cookie is the primary source)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


async def get_redis(request: Request) -> aioredis.Redis:
    """Return the Redis client opened in the application lifespan."""
    return request.app.state.redis


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> User:
    """
    Validate the session token and return the authenticated User.

    Raises 401 if:
    - No session cookie or Bearer token
    - Token is invalid or expired
    - Session was revoked (missing from Redis)
    - User does not exist or is inactive
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token is None and credentials is not None:
        token = credentials.credentials
    if not token:
        raise Unauthorized("Authentication required", code="MISSING_SESSION")

    try:
        payload = decode_session_token(token)
    except JWTError:
        raise Unauthorized("Session is invalid or expired", code="INVALID_SESSION")

    user_id: str = payload.get("sub", "")
    jti: str = payload.get("jti", "")

    if not await redis.exists(session_redis_key(jti)):
        raise Unauthorized("Session has been revoked", code="SESSION_REVOKED")

    result = await db.execute(select(User).where(User.id == UUID(user_id)))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise Unauthorized("User not found or inactive", code="USER_NOT_FOUND")

    request.state.session_jti = jti
    return user


def require_user_role(*roles: UserRole):
    """
    Dependency factory that enforces the platform-wide role.

    Usage:
        @router.get("/...")
        async def endpoint(user: User = Depends(require_user_role(UserRole.instructor))):
            ...
    """
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise Forbidden(
                f"Required role: {[r.value for r in roles]}", code="INSUFFICIENT_ROLE"
            )
        return current_user

    return role_checker


# ---------------------------------------------------------------------------
# Organization membership + ownership
# ---------------------------------------------------------------------------

async def get_member_organization(
    organization_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Organization:
    """Resolve the organization and verify the current user is a member."""
    return await membership.require_member(db, organization_id, current_user.id)


async def get_owned_organization(
    organization_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Organization:
    """Resolve the organization and verify the current user is its owner."""
    return await membership.require_owner(db, organization_id, current_user.id)
