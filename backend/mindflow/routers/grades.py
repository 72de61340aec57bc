"""
Gradebook endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.database import get_db
from mindflow.core.dependencies import get_current_user, require_user_role
from mindflow.models.user import User, UserRole
from mindflow.schemas.common import ActionResponse, DataResponse
from mindflow.schemas.grade import GradeCreateRequest, GradeListResponse, GradeResponse
from mindflow.services.grade_service import GradeService

router = APIRouter()

require_author = require_user_role(UserRole.instructor, UserRole.admin)


def get_grade_service(db: AsyncSession = Depends(get_db)) -> GradeService:
    return GradeService(db=db)


@router.get(
    "",
    response_model=DataResponse[GradeListResponse],
    summary="List grades visible to the current user",
)
async def list_grades(
    course_id: UUID | None = Query(None, alias="courseId"),
    student_id: UUID | None = Query(None, alias="studentId"),
    current_user: User = Depends(get_current_user),
    service: GradeService = Depends(get_grade_service),
) -> DataResponse[GradeListResponse]:
    return DataResponse(data=await service.list_grades(current_user, course_id, student_id))


@router.post(
    "",
    response_model=ActionResponse[GradeResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Record a grade",
)
async def create_grade(
    data: GradeCreateRequest,
    current_user: User = Depends(require_author),
    service: GradeService = Depends(get_grade_service),
) -> ActionResponse[GradeResponse]:
    grade = await service.create_grade(data, current_user)
    return ActionResponse(message="Grade recorded", data=grade)
