"""
Course endpoints.

Authoring for instructors, browsing, enrollment and lesson progress for students.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.database import get_db
from mindflow.core.dependencies import get_current_user, require_user_role
from mindflow.models.course import CourseStatus
from mindflow.models.user import User, UserRole
from mindflow.schemas.common import ActionResponse, DataResponse
from mindflow.schemas.course import (
    CourseCreateRequest,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CourseStatusUpdateRequest,
    CourseUpdateRequest,
    EnrollmentResponse,
    LessonCreateRequest,
    LessonProgressRequest,
    LessonProgressResponse,
    LessonResponse,
    ModuleCreateRequest,
    ModuleResponse,
)
from mindflow.services.course_service import CourseService

router = APIRouter()

require_author = require_user_role(UserRole.instructor, UserRole.admin)
require_student = require_user_role(UserRole.student)


def get_course_service(db: AsyncSession = Depends(get_db)) -> CourseService:
    """Dependency that constructs CourseService."""
    return CourseService(db=db)


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=DataResponse[CourseListResponse],
    summary="List published courses",
)
async def list_courses(
    current_user: User = Depends(get_current_user),
    service: CourseService = Depends(get_course_service),
) -> DataResponse[CourseListResponse]:
    return DataResponse(data=await service.list_published())


@router.get(
    "/mine",
    response_model=DataResponse[CourseListResponse],
    summary="List courses created by the current instructor",
)
async def list_my_courses(
    current_user: User = Depends(require_author),
    service: CourseService = Depends(get_course_service),
) -> DataResponse[CourseListResponse]:
    return DataResponse(data=await service.list_for_instructor(current_user))


@router.get(
    "/{course_id}",
    response_model=DataResponse[CourseDetailResponse],
    summary="Get a course with its modules and lessons",
)
async def get_course(
    course_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CourseService = Depends(get_course_service),
) -> DataResponse[CourseDetailResponse]:
    return DataResponse(data=await service.get_course_detail(course_id, current_user))


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ActionResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
)
async def create_course(
    data: CourseCreateRequest,
    current_user: User = Depends(require_author),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[CourseResponse]:
    """New courses start as drafts."""
    course = await service.create_course(data, current_user)
    return ActionResponse(message="Course created", data=course)


@router.patch(
    "/{course_id}",
    response_model=ActionResponse[CourseResponse],
    summary="Update a course",
)
async def update_course(
    course_id: UUID,
    data: CourseUpdateRequest,
    current_user: User = Depends(require_author),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[CourseResponse]:
    course = await service.update_course(course_id, data, current_user)
    return ActionResponse(message="Course updated", data=course)


@router.patch(
    "/{course_id}/status",
    response_model=ActionResponse[CourseResponse],
    summary="Publish, unpublish or archive a course",
)
async def set_course_status(
    course_id: UUID,
    data: CourseStatusUpdateRequest,
    current_user: User = Depends(require_author),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[CourseResponse]:
    course = await service.set_status(course_id, data.status, current_user)
    return ActionResponse(message=f"Course status set to {course.status.value}", data=course)


@router.post(
    "/{course_id}/archive",
    response_model=ActionResponse[CourseResponse],
    summary="Archive a course",
)
async def archive_course(
    course_id: UUID,
    current_user: User = Depends(require_author),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[CourseResponse]:
    course = await service.set_status(course_id, CourseStatus.ARCHIVED, current_user)
    return ActionResponse(message="Course archived", data=course)


@router.post(
    "/{course_id}/modules",
    response_model=ActionResponse[ModuleResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a module",
)
async def add_module(
    course_id: UUID,
    data: ModuleCreateRequest,
    current_user: User = Depends(require_author),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[ModuleResponse]:
    module = await service.add_module(course_id, data, current_user)
    return ActionResponse(message="Module added", data=module)


@router.post(
    "/{course_id}/modules/{module_id}/lessons",
    response_model=ActionResponse[LessonResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a lesson to a module",
)
async def add_lesson(
    course_id: UUID,
    module_id: UUID,
    data: LessonCreateRequest,
    current_user: User = Depends(require_author),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[LessonResponse]:
    lesson = await service.add_lesson(course_id, module_id, data, current_user)
    return ActionResponse(message="Lesson added", data=lesson)


# ---------------------------------------------------------------------------
# Enrollment / Progress
# ---------------------------------------------------------------------------

@router.post(
    "/{course_id}/enroll",
    response_model=ActionResponse[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a published course",
)
async def enroll(
    course_id: UUID,
    current_user: User = Depends(require_student),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[EnrollmentResponse]:
    enrollment = await service.enroll(course_id, current_user)
    return ActionResponse(message="Enrolled", data=enrollment)


@router.put(
    "/lessons/{lesson_id}/progress",
    response_model=ActionResponse[LessonProgressResponse],
    summary="Mark a lesson completed or not completed",
)
async def set_lesson_progress(
    lesson_id: UUID,
    data: LessonProgressRequest,
    current_user: User = Depends(require_student),
    service: CourseService = Depends(get_course_service),
) -> ActionResponse[LessonProgressResponse]:
    progress = await service.set_lesson_progress(lesson_id, data.completed, current_user)
    return ActionResponse(message="Progress saved", data=progress)
