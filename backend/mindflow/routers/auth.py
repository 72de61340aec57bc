"""
Authentication endpoints.

Signup, signin, signout, me.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

import redis.asyncio as aioredis

from mindflow.core.config import settings
from mindflow.core.database import get_db
from mindflow.core.dependencies import get_current_user, get_redis
from mindflow.models.user import User
from mindflow.schemas.auth import MeResponse, SigninRequest, SignupRequest, UserResponse
from mindflow.schemas.common import ActionResponse, DataResponse
from mindflow.services.auth_service import AuthService

router = APIRouter()


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> AuthService:
    """Dependency that constructs AuthService."""
    return AuthService(db=db, redis=redis)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

@router.post(
    "/signup",
    response_model=ActionResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def signup(
    data: SignupRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> ActionResponse[UserResponse]:
    """
    Create a new user account and sign it in.

    - Email must be globally unique
    - Password must be min 8 chars and contain at least 1 number
    - Role may be student or instructor
    """
    user, token = await service.signup(data)
    set_session_cookie(response, token)
    return ActionResponse(message="Account created", data=UserResponse.model_validate(user))


# ---------------------------------------------------------------------------
# Signin
# ---------------------------------------------------------------------------

@router.post(
    "/signin",
    response_model=ActionResponse[UserResponse],
    summary="Sign in with email and password",
)
async def signin(
    data: SigninRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> ActionResponse[UserResponse]:
    user, token = await service.signin(data)
    set_session_cookie(response, token)
    return ActionResponse(message="Signed in", data=UserResponse.model_validate(user))


# ---------------------------------------------------------------------------
# Signout
# ---------------------------------------------------------------------------

@router.post(
    "/signout",
    response_model=ActionResponse[None],
    summary="Sign out and revoke the session",
)
async def signout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> ActionResponse[None]:
    """Removes the session from Redis and clears the cookie."""
    await service.end_session(request.state.session_jti)
    clear_session_cookie(response)
    return ActionResponse(message="Signed out")


# ---------------------------------------------------------------------------
# Me
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    response_model=DataResponse[MeResponse],
    summary="Get current user profile",
)
async def get_me(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> DataResponse[MeResponse]:
    return DataResponse(data=await service.get_me(current_user))
