"""
Gradebook schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class GradeCreateRequest(BaseModel):
    """Request body for POST /grades (manual gradebook entry)."""

    student_id: UUID
    course_id: UUID
    title: str | None = Field(default=None, max_length=200)
    score: float = Field(ge=0)
    max_score: float = Field(gt=0)
    category: str = Field(default="assignment", min_length=1, max_length=50)
    feedback: str | None = None


class GradeResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    course_id: UUID
    course_title: str
    quiz_id: UUID | None
    title: str | None
    score: float
    max_score: float
    percentage: float
    letter_grade: str
    category: str
    feedback: str | None
    created_at: datetime


class GradeListResponse(BaseModel):
    grades: list[GradeResponse]
    total: int
    average_percentage: float | None
