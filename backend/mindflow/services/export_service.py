"""
Export formatting.

Turns dashboard data into downloadable CSV text or PDF bytes.
PDFs are rendered from Jinja2 templates and converted with WeasyPrint.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Sequence
from urllib.parse import quote
from uuid import UUID

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from mindflow.core.exceptions import NotFound, ValidationError
from mindflow.models.base import utcnow
from mindflow.models.user import User
from mindflow.schemas.dashboard import (
    EnrolledCourseSummary,
    EnrollmentTrendPoint,
    InstructorCourseSummary,
    StudentProgressRow,
)
from mindflow.services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "reports")

env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
PDF_MEDIA_TYPE = "application/pdf"

EXPORT_FORMATS = ("csv", "pdf")
COURSE_ANALYTICS_TYPES = ("courses", "enrollment-trends")


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    media_type: str
    filename: str

    @property
    def content_disposition(self) -> str:
        """
        Header value with an ASCII fallback name and the exact UTF-8 name.

        Header values must be latin-1 encodable, so non-ASCII names only
        travel percent-encoded in ``filename*``.
        """
        return (
            f'attachment; filename="{ascii_filename(self.filename)}"; '
            f"filename*=UTF-8''{quote(self.filename, safe='')}"
        )


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def ascii_filename(name: str) -> str:
    """Strip accents and collapse anything outside [A-Za-z0-9.-] into single underscores."""
    decomposed = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^A-Za-z0-9.-]+", "_", decomposed)


def export_filename(name: str, extension: str, today: date | None = None) -> str:
    """``<name>_<YYYY-MM-DD>.<ext>``"""
    today = today or utcnow().date()
    return f"{name}_{today.isoformat()}.{extension}"


def format_date(value: date | datetime | None, missing: str = "") -> str:
    if value is None:
        return missing
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def format_percent(value: int) -> str:
    return f"{value}%"


def to_csv(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """
    Serialize rows as CSV with the header first.

    Fields containing a comma, quote or newline are quoted and embedded
    quotes doubled. None becomes an empty field.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(header)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def _html_to_pdf(html: str) -> bytes:
    from weasyprint import HTML

    return HTML(string=html).write_pdf()


def render_pdf(template_name: str, context: dict[str, Any]) -> bytes:
    template = env.get_template(template_name)
    html = template.render(report=context)
    return _html_to_pdf(html)


def _check_format(fmt: str) -> str:
    fmt = (fmt or "").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(
            f"Invalid format '{fmt}'. Expected one of: {', '.join(EXPORT_FORMATS)}",
            code="INVALID_FORMAT",
        )
    return fmt


# ---------------------------------------------------------------------------
# CSV layouts
# ---------------------------------------------------------------------------

def course_analytics_csv(courses: Sequence[InstructorCourseSummary]) -> str:
    return to_csv(
        ["courseTitle", "enrollmentCount", "completionRate", "createdAt", "status"],
        (
            [
                c.title,
                c.enrollment_count,
                format_percent(c.completion_rate),
                format_date(c.created_at),
                c.status.value,
            ]
            for c in courses
        ),
    )


def enrollment_trends_csv(trends: Sequence[EnrollmentTrendPoint]) -> str:
    return to_csv(
        ["date", "enrollments", "completions"],
        ([format_date(t.date), t.enrollments, t.completions] for t in trends),
    )


def student_progress_csv(students: Sequence[StudentProgressRow]) -> str:
    return to_csv(
        [
            "studentName",
            "studentEmail",
            "enrolledCourses",
            "completedLessons",
            "totalLessons",
            "completionRate",
            "lastActivity",
            "enrolledAt",
            "status",
        ],
        (
            [
                s.name,
                s.email,
                s.enrolled_courses,
                s.completed_lessons,
                s.total_lessons,
                format_percent(s.completion_rate),
                format_date(s.last_activity, missing="Never"),
                format_date(s.enrolled_at),
                s.status,
            ]
            for s in students
        ),
    )


def progress_report_csv(courses: Sequence[EnrolledCourseSummary]) -> str:
    return to_csv(
        ["courseName", "progress", "completedLessons", "totalLessons", "status", "lastAccessed"],
        (
            [
                c.title,
                format_percent(c.progress),
                c.completed_lessons,
                c.total_lessons,
                c.status,
                format_date(c.last_accessed, missing="Never"),
            ]
            for c in courses
        ),
    )


# ---------------------------------------------------------------------------
# Export Service
# ---------------------------------------------------------------------------

class ExportService:
    """Builds export files for instructors and students."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.dashboards = DashboardService(db)

    async def course_analytics(
        self, instructor: User, fmt: str, export_type: str = "courses"
    ) -> ExportFile:
        fmt = _check_format(fmt)
        if export_type not in COURSE_ANALYTICS_TYPES:
            raise ValidationError(
                f"Invalid export type '{export_type}'", code="INVALID_EXPORT_TYPE"
            )
        if export_type == "enrollment-trends" and fmt != "csv":
            raise ValidationError(
                "Enrollment trends are only available as CSV", code="INVALID_FORMAT"
            )

        dashboard = await self.dashboards.get_instructor_dashboard(instructor)

        if export_type == "enrollment-trends":
            return ExportFile(
                content=enrollment_trends_csv(dashboard.enrollment_trends).encode("utf-8"),
                media_type=CSV_MEDIA_TYPE,
                filename=export_filename("enrollment_trends", "csv"),
            )

        if fmt == "csv":
            return ExportFile(
                content=course_analytics_csv(dashboard.course_management.courses).encode("utf-8"),
                media_type=CSV_MEDIA_TYPE,
                filename=export_filename("course_analytics", "csv"),
            )

        pdf = await run_in_threadpool(
            render_pdf,
            "course_analytics.html",
            {
                "instructor": instructor.name,
                "generated_on": format_date(utcnow()),
                "stats": dashboard.platform_stats,
                "management": dashboard.course_management,
            },
        )
        logger.info("Course analytics PDF exported: instructor=%s", instructor.id)
        return ExportFile(
            content=pdf,
            media_type=PDF_MEDIA_TYPE,
            filename=export_filename("course_analytics", "pdf"),
        )

    async def student_progress(
        self, instructor: User, fmt: str, student_id: UUID | None = None
    ) -> ExportFile:
        """
        Progress of students enrolled in the instructor's courses.

        CSV covers every student, or just one when student_id is given.
        PDF is a single-student report and requires student_id.
        """
        fmt = _check_format(fmt)
        if fmt == "pdf" and student_id is None:
            raise ValidationError(
                "PDF format requires a specific student ID", code="STUDENT_ID_REQUIRED"
            )

        dashboard = await self.dashboards.get_instructor_dashboard(instructor)
        students = dashboard.student_progress
        if student_id is not None:
            students = [s for s in students if s.id == student_id]
            if not students:
                raise NotFound("Student not found", code="STUDENT_NOT_FOUND")

        if fmt == "csv":
            return ExportFile(
                content=student_progress_csv(students).encode("utf-8"),
                media_type=CSV_MEDIA_TYPE,
                filename=export_filename("student_progress", "csv"),
            )

        student = students[0]
        pdf = await run_in_threadpool(
            render_pdf,
            "student_progress.html",
            {
                "instructor": instructor.name,
                "generated_on": format_date(utcnow()),
                "student": student,
                "last_activity": format_date(student.last_activity, missing="Never"),
            },
        )
        safe_name = re.sub(r"\s+", "_", student.name)
        return ExportFile(
            content=pdf,
            media_type=PDF_MEDIA_TYPE,
            filename=export_filename(f"student_progress_{safe_name}", "pdf"),
        )

    async def progress_report(self, student: User, fmt: str) -> ExportFile:
        fmt = _check_format(fmt)
        dashboard = await self.dashboards.get_student_dashboard(student)

        if fmt == "csv":
            return ExportFile(
                content=progress_report_csv(dashboard.enrolled_courses).encode("utf-8"),
                media_type=CSV_MEDIA_TYPE,
                filename=export_filename("my_progress_report", "csv"),
            )

        pdf = await run_in_threadpool(
            render_pdf,
            "progress_report.html",
            {
                "student": {"name": student.name or "Student", "email": student.email},
                "generated_on": format_date(utcnow()),
                "dashboard": dashboard,
                "courses": [
                    {
                        "title": c.title,
                        "progress": format_percent(c.progress),
                        "completed_lessons": c.completed_lessons,
                        "total_lessons": c.total_lessons,
                        "status": c.status,
                        "last_accessed": format_date(c.last_accessed, missing="Never"),
                    }
                    for c in dashboard.enrolled_courses
                ],
            },
        )
        return ExportFile(
            content=pdf,
            media_type=PDF_MEDIA_TYPE,
            filename=export_filename("my_progress_report", "pdf"),
        )
