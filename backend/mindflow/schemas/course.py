"""
Course schemas.

Request/response models for course authoring, enrollment and lesson progress.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from mindflow.models.course import CourseStatus


# ---------------------------------------------------------------------------
# Course
# ---------------------------------------------------------------------------

class CourseCreateRequest(BaseModel):
    """Request body for POST /courses."""

    title: str = Field(min_length=3, max_length=200)
    description: str | None = None
    thumbnail: str | None = Field(default=None, max_length=500)
    organization_id: UUID | None = None


class CourseUpdateRequest(BaseModel):
    """Request body for PATCH /courses/{course_id}."""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = None
    thumbnail: str | None = Field(default=None, max_length=500)


class CourseStatusUpdateRequest(BaseModel):
    status: CourseStatus


class CourseResponse(BaseModel):
    id: UUID
    title: str
    description: str | None
    thumbnail: str | None
    status: CourseStatus
    created_by: UUID
    organization_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CourseListResponse(BaseModel):
    courses: list[CourseResponse]
    total: int


# ---------------------------------------------------------------------------
# Modules / Lessons
# ---------------------------------------------------------------------------

class ModuleCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    order: int | None = Field(default=None, ge=0)


class LessonCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str | None = None
    video_url: str | None = Field(default=None, max_length=500)
    duration_minutes: int | None = Field(default=None, ge=0)
    order: int | None = Field(default=None, ge=0)


class LessonResponse(BaseModel):
    id: UUID
    module_id: UUID
    title: str
    content: str | None
    video_url: str | None
    duration_minutes: int | None
    order: int

    model_config = {"from_attributes": True}


class ModuleResponse(BaseModel):
    id: UUID
    course_id: UUID
    title: str
    order: int
    lessons: list[LessonResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class CourseDetailResponse(CourseResponse):
    modules: list[ModuleResponse]
    total_lessons: int
    enrollment_count: int


# ---------------------------------------------------------------------------
# Enrollment / Progress
# ---------------------------------------------------------------------------

class EnrollmentResponse(BaseModel):
    id: UUID
    student_id: UUID
    course_id: UUID
    enrolled_at: datetime

    model_config = {"from_attributes": True}


class LessonProgressRequest(BaseModel):
    completed: bool


class LessonProgressResponse(BaseModel):
    lesson_id: UUID
    completed: bool
    completed_at: datetime | None
    course_progress: int
