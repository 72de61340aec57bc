"""
Security utilities.

Password hashing, session token creation/validation, invitation tokens.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt as _bcrypt
from jose import JWTError, jwt

from mindflow.core.config import settings


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt (cost=12)."""
    password_bytes = password.encode("utf-8")[:72]
    salt = _bcrypt.gensalt(rounds=12)
    return _bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    return _bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------

def create_session_token(user_id: str) -> tuple[str, str]:
    """
    Create a signed session token.

    Args:
        user_id: The user's UUID as string.

    Returns:
        Tuple of (encoded_token, jti) so jti can be stored in Redis.
    """
    now = datetime.now(UTC)
    expire = now + timedelta(days=settings.SESSION_EXPIRE_DAYS)
    jti = str(uuid.uuid4())
    payload: dict[str, Any] = {
        "sub": user_id,
        "jti": jti,
        "type": "session",
        "iat": now,
        "exp": expire,
    }
    token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, jti


def decode_session_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        JWTError: If the token is invalid, expired, tampered or of the wrong type.
    """
    payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != "session":
        raise JWTError("Not a session token")
    return payload


def session_redis_key(jti: str) -> str:
    """Redis key for a live session. Format: session:{jti}"""
    return f"session:{jti}"


# ---------------------------------------------------------------------------
# Invitation tokens
# ---------------------------------------------------------------------------

def create_invitation_token() -> str:
    """Generate an opaque url-safe invitation token."""
    return secrets.token_urlsafe(32)
