"""
Dashboard schemas.

Read-only summaries for the student and instructor dashboards.
"""

from __future__ import annotations

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from mindflow.models.course import CourseStatus


# ---------------------------------------------------------------------------
# Student
# ---------------------------------------------------------------------------

class StudentProgressStats(BaseModel):
    lessons_completed: int
    total_lessons: int


class EnrolledCourseSummary(BaseModel):
    id: UUID
    title: str
    thumbnail: str | None
    progress: int
    status: Literal["active", "completed"]
    last_accessed: dt.datetime | None
    total_lessons: int
    completed_lessons: int
    enrolled_at: dt.datetime


class StudentDashboardResponse(BaseModel):
    progress_stats: StudentProgressStats
    enrolled_courses: list[EnrolledCourseSummary]
    total_enrollments: int
    completed_courses: int


# ---------------------------------------------------------------------------
# Instructor
# ---------------------------------------------------------------------------

class PlatformStats(BaseModel):
    total_courses: int
    total_students: int
    total_enrollments: int
    average_completion_rate: int
    courses_this_week: int
    enrollments_this_week: int


class InstructorCourseSummary(BaseModel):
    id: UUID
    title: str
    description: str | None
    thumbnail: str | None
    created_at: dt.datetime
    enrollment_count: int
    completion_rate: int
    status: CourseStatus


class CourseManagement(BaseModel):
    courses: list[InstructorCourseSummary]
    draft_courses: int
    published_courses: int
    archived_courses: int
    total_students_enrolled: int


class StudentProgressRow(BaseModel):
    id: UUID
    name: str
    email: str
    enrolled_courses: int
    completed_lessons: int
    total_lessons: int
    completion_rate: int
    last_activity: dt.datetime | None
    enrolled_at: dt.datetime
    status: Literal["active", "inactive", "completed"]


class EnrollmentTrendPoint(BaseModel):
    date: dt.date
    enrollments: int
    completions: int


class TopStudent(BaseModel):
    id: UUID
    name: str
    email: str
    completion_rate: int
    completed_lessons: int
    courses_completed: int


class InstructorDashboardResponse(BaseModel):
    platform_stats: PlatformStats
    course_management: CourseManagement
    student_progress: list[StudentProgressRow]
    enrollment_trends: list[EnrollmentTrendPoint]
    top_students: list[TopStudent]
