"""
Quiz endpoints.

Authoring and grading for course instructors, taking quizzes for enrolled
students.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.database import get_db
from mindflow.core.dependencies import get_current_user, require_user_role
from mindflow.models.user import User, UserRole
from mindflow.schemas.common import ActionResponse, DataResponse
from mindflow.schemas.quiz import (
    QuestionCreateRequest,
    QuestionResponse,
    QuizCreateRequest,
    QuizDetailResponse,
    QuizListResponse,
    QuizResponse,
    QuizUpdateRequest,
    SubmissionCreateRequest,
    SubmissionGradeRequest,
    SubmissionListResponse,
    SubmissionResponse,
)
from mindflow.services.quiz_service import QuizService

router = APIRouter()

require_author = require_user_role(UserRole.instructor, UserRole.admin)
require_student = require_user_role(UserRole.student)


def get_quiz_service(db: AsyncSession = Depends(get_db)) -> QuizService:
    return QuizService(db=db)


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=DataResponse[QuizListResponse],
    summary="List the quizzes of a course",
)
async def list_quizzes(
    course_id: UUID = Query(alias="courseId"),
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
) -> DataResponse[QuizListResponse]:
    return DataResponse(data=await service.list_quizzes(course_id, current_user))


@router.post(
    "",
    response_model=ActionResponse[QuizResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a quiz",
)
async def create_quiz(
    data: QuizCreateRequest,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
) -> ActionResponse[QuizResponse]:
    """New quizzes are unpublished until questions have been added."""
    quiz = await service.create_quiz(data, current_user)
    return ActionResponse(message="Quiz created", data=quiz)


@router.get(
    "/{quiz_id}",
    response_model=DataResponse[QuizDetailResponse],
    summary="Get a quiz with its questions",
)
async def get_quiz(
    quiz_id: UUID,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
) -> DataResponse[QuizDetailResponse]:
    return DataResponse(data=await service.get_quiz(quiz_id, current_user))


@router.patch(
    "/{quiz_id}",
    response_model=ActionResponse[QuizResponse],
    summary="Update or publish a quiz",
)
async def update_quiz(
    quiz_id: UUID,
    data: QuizUpdateRequest,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
) -> ActionResponse[QuizResponse]:
    quiz = await service.update_quiz(quiz_id, data, current_user)
    return ActionResponse(message="Quiz updated", data=quiz)


@router.delete(
    "/{quiz_id}",
    response_model=ActionResponse[None],
    summary="Delete a quiz",
)
async def delete_quiz(
    quiz_id: UUID,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
) -> ActionResponse[None]:
    await service.delete_quiz(quiz_id, current_user)
    return ActionResponse(message="Quiz deleted")


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

@router.post(
    "/{quiz_id}/questions",
    response_model=ActionResponse[QuestionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a question",
)
async def add_question(
    quiz_id: UUID,
    data: QuestionCreateRequest,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
) -> ActionResponse[QuestionResponse]:
    question = await service.add_question(quiz_id, data, current_user)
    return ActionResponse(message="Question added", data=question)


@router.delete(
    "/{quiz_id}/questions/{question_id}",
    response_model=ActionResponse[None],
    summary="Remove a question",
)
async def delete_question(
    quiz_id: UUID,
    question_id: UUID,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
) -> ActionResponse[None]:
    await service.delete_question(quiz_id, question_id, current_user)
    return ActionResponse(message="Question removed")


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------

@router.post(
    "/{quiz_id}/submissions",
    response_model=ActionResponse[SubmissionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Submit an attempt",
)
async def submit_quiz(
    quiz_id: UUID,
    data: SubmissionCreateRequest,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
) -> ActionResponse[SubmissionResponse]:
    submission = await service.submit(quiz_id, data, current_user)
    message = "Quiz submitted and graded" if submission.is_graded else "Quiz submitted for review"
    return ActionResponse(message=message, data=submission)


@router.get(
    "/{quiz_id}/submissions",
    response_model=DataResponse[SubmissionListResponse],
    summary="List submissions (all for the author, own for students)",
)
async def list_submissions(
    quiz_id: UUID,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
) -> DataResponse[SubmissionListResponse]:
    return DataResponse(data=await service.list_submissions(quiz_id, current_user))


@router.post(
    "/submissions/{submission_id}/grade",
    response_model=ActionResponse[SubmissionResponse],
    summary="Mark the answers that need manual grading",
)
async def grade_submission(
    submission_id: UUID,
    data: SubmissionGradeRequest,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
) -> ActionResponse[SubmissionResponse]:
    submission = await service.grade_submission(submission_id, data, current_user)
    return ActionResponse(message="Submission graded", data=submission)
