"""
Transactional email via Resend.

Sends synchronously from the request path; callers decide how to react
to an ``EmailDeliveryError``.
"""

from __future__ import annotations

import asyncio
import logging
import os

from jinja2 import Environment, FileSystemLoader, select_autoescape

from mindflow.core.config import settings
from mindflow.core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "emails")

env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)


def build_invitation_url(token: str) -> str:
    return f"{settings.FRONTEND_URL}/auth/accept-invitation?token={token}"


def render_invitation_email(
    inviter_name: str,
    org_name: str,
    role: str,
    accept_url: str,
) -> str:
    """Inviter and organization names are user input; the template autoescapes them."""
    return env.get_template("invitation.html").render(
        inviter_name=inviter_name,
        org_name=org_name,
        role=role,
        accept_url=accept_url,
        expire_days=settings.INVITATION_EXPIRE_DAYS,
    )


def _send_via_resend(to_email: str, subject: str, html: str) -> str:
    import resend

    resend.api_key = settings.RESEND_API_KEY

    params: resend.Emails.SendParams = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    response = resend.Emails.send(params)
    return response["id"]


async def send_email(to_email: str, subject: str, html: str) -> str:
    """
    Send one email and return the provider message id.

    Raises:
        EmailDeliveryError: If the provider is not configured or rejects the message.
    """
    if not settings.RESEND_API_KEY:
        raise EmailDeliveryError("Email provider is not configured")

    try:
        message_id = await asyncio.to_thread(_send_via_resend, to_email, subject, html)
    except Exception as exc:
        logger.warning("Email to %s failed: %s", to_email, exc)
        raise EmailDeliveryError(str(exc)) from exc

    logger.info("Email sent to %s (message_id=%s)", to_email, message_id)
    return message_id


async def send_invitation_email(
    to_email: str,
    org_name: str,
    inviter_name: str,
    role: str,
    invitation_token: str,
) -> str:
    """Send the organization invitation email carrying the acceptance link."""
    html = render_invitation_email(
        inviter_name=inviter_name,
        org_name=org_name,
        role=role,
        accept_url=build_invitation_url(invitation_token),
    )
    return await send_email(
        to_email,
        f"You're invited to join {org_name} on MindFlow",
        html,
    )
