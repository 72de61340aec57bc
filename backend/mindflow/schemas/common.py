"""
Response envelopes shared by all endpoints.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Plain read response: ``{"data": ...}``."""

    data: T


class ActionResponse(BaseModel, Generic[T]):
    """Mutation response: ``{"success": true, "message": ..., "data": ...}``."""

    success: bool = True
    message: str
    data: T | None = None


class ErrorResponse(BaseModel):
    error: str
    code: str
