"""
Public invitation endpoints.

Addressed by the opaque token from the invitation email, so none of these
require an existing session.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from mindflow.routers.auth import set_session_cookie
from mindflow.routers.organizations import get_invitation_service
from mindflow.schemas.common import ActionResponse, DataResponse
from mindflow.schemas.invitation import (
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationDetailResponse,
    InvitationRejectRequest,
    InvitationRejectResponse,
)
from mindflow.services.invitation_service import InvitationService

router = APIRouter()


@router.get(
    "/{token}",
    response_model=DataResponse[InvitationDetailResponse],
    summary="Get invitation details",
)
async def get_invitation(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
) -> DataResponse[InvitationDetailResponse]:
    """Organization and inviter summaries plus an is_expired flag."""
    return DataResponse(data=await service.get_invitation(token))


@router.post(
    "/{token}/accept",
    response_model=ActionResponse[InvitationAcceptResponse],
    summary="Accept an invitation",
)
async def accept_invitation(
    token: str,
    data: InvitationAcceptRequest,
    response: Response,
    service: InvitationService = Depends(get_invitation_service),
) -> ActionResponse[InvitationAcceptResponse]:
    """
    Join the organization.

    - 400 EXPIRED once the invitation is past its expiry
    - 400 ALREADY_PROCESSED when it was accepted or rejected before
    - Creates the account if the invited email has none, then signs it in
    """
    result, token_value = await service.accept_invitation(token, data)
    set_session_cookie(response, token_value)
    return ActionResponse(
        message=f"Welcome to {result.organization.name}",
        data=result,
    )


@router.post(
    "/{token}/reject",
    response_model=ActionResponse[InvitationRejectResponse],
    summary="Reject an invitation",
)
async def reject_invitation(
    token: str,
    data: InvitationRejectRequest | None = None,
    service: InvitationService = Depends(get_invitation_service),
) -> ActionResponse[InvitationRejectResponse]:
    result = await service.reject_invitation(token, data.reason if data else None)
    return ActionResponse(message="Invitation rejected", data=result)
