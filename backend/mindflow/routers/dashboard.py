"""
Dashboard and export endpoints, one router per global role.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.database import get_db
from mindflow.core.dependencies import require_user_role
from mindflow.models.user import User, UserRole
from mindflow.schemas.common import DataResponse
from mindflow.schemas.dashboard import InstructorDashboardResponse, StudentDashboardResponse
from mindflow.services.dashboard_service import DashboardService
from mindflow.services.export_service import ExportFile, ExportService

student_router = APIRouter()
instructor_router = APIRouter()

require_student = require_user_role(UserRole.student)
require_instructor = require_user_role(UserRole.instructor, UserRole.admin)


def get_dashboard_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(db=db)


def get_export_service(db: AsyncSession = Depends(get_db)) -> ExportService:
    return ExportService(db=db)


def file_response(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": export.content_disposition},
    )


# ---------------------------------------------------------------------------
# Student
# ---------------------------------------------------------------------------

@student_router.get(
    "/dashboard",
    response_model=DataResponse[StudentDashboardResponse],
    summary="Student dashboard",
)
async def student_dashboard(
    current_user: User = Depends(require_student),
    service: DashboardService = Depends(get_dashboard_service),
) -> DataResponse[StudentDashboardResponse]:
    return DataResponse(data=await service.get_student_dashboard(current_user))


@student_router.get(
    "/export/progress-report",
    summary="Download my progress report",
    response_class=Response,
)
async def export_progress_report(
    format: str = Query("csv"),
    current_user: User = Depends(require_student),
    service: ExportService = Depends(get_export_service),
) -> Response:
    return file_response(await service.progress_report(current_user, format))


# ---------------------------------------------------------------------------
# Instructor
# ---------------------------------------------------------------------------

@instructor_router.get(
    "/dashboard",
    response_model=DataResponse[InstructorDashboardResponse],
    summary="Instructor dashboard",
)
async def instructor_dashboard(
    current_user: User = Depends(require_instructor),
    service: DashboardService = Depends(get_dashboard_service),
) -> DataResponse[InstructorDashboardResponse]:
    """
    Analytics over the instructor's own courses.

    Platform stats, course management, per-student progress,
    30-day enrollment trends and the top 5 students.
    """
    return DataResponse(data=await service.get_instructor_dashboard(current_user))


@instructor_router.get(
    "/export/course-analytics",
    summary="Download course analytics",
    response_class=Response,
)
async def export_course_analytics(
    format: str = Query("csv"),
    type: str = Query("courses"),
    current_user: User = Depends(require_instructor),
    service: ExportService = Depends(get_export_service),
) -> Response:
    """type=courses (CSV or PDF) or type=enrollment-trends (CSV only)."""
    return file_response(await service.course_analytics(current_user, format, type))


@instructor_router.get(
    "/export/student-progress",
    summary="Download student progress",
    response_class=Response,
)
async def export_student_progress(
    format: str = Query("csv"),
    student_id: UUID | None = Query(None, alias="studentId"),
    current_user: User = Depends(require_instructor),
    service: ExportService = Depends(get_export_service),
) -> Response:
    """PDF exports cover one student and need studentId."""
    return file_response(await service.student_progress(current_user, format, student_id))
