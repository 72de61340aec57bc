"""
Quiz schemas.

Request/response models for quiz authoring, questions and submissions.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from mindflow.models.assessment import QuestionType


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------

class QuizCreateRequest(BaseModel):
    """Request body for POST /quizzes."""

    course_id: UUID
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    instructions: str | None = None
    time_limit: int | None = Field(default=None, ge=1, description="Minutes")
    max_attempts: int = Field(default=1, ge=1, le=100)
    is_graded: bool = True
    due_date: datetime | None = None


class QuizUpdateRequest(BaseModel):
    """Request body for PATCH /quizzes/{quiz_id}. Omitted fields are unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    instructions: str | None = None
    time_limit: int | None = Field(default=None, ge=1)
    max_attempts: int | None = Field(default=None, ge=1, le=100)
    is_graded: bool | None = None
    is_published: bool | None = None
    due_date: datetime | None = None


class QuizResponse(BaseModel):
    id: UUID
    course_id: UUID
    title: str
    description: str | None
    instructions: str | None
    time_limit: int | None
    max_attempts: int
    is_graded: bool
    is_published: bool
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime
    question_count: int = 0
    # Filled in for students only
    attempts_used: int | None = None

    model_config = {"from_attributes": True}


class QuizListResponse(BaseModel):
    quizzes: list[QuizResponse]
    total: int


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

class QuestionCreateRequest(BaseModel):
    type: QuestionType
    question: str = Field(min_length=1)
    options: list[str] | None = None
    correct_answer: str | None = None
    explanation: str | None = None
    points: int = Field(default=1, ge=1, le=10)
    order: int | None = Field(default=None, ge=0)


class QuestionResponse(BaseModel):
    """Students receive this without correct_answer and explanation."""

    id: UUID
    quiz_id: UUID
    type: QuestionType
    question: str
    options: list[str] | None
    correct_answer: str | None = None
    explanation: str | None = None
    points: int
    order: int

    model_config = {"from_attributes": True}


class QuizDetailResponse(QuizResponse):
    questions: list[QuestionResponse]


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------

class AnswerSubmission(BaseModel):
    question_id: UUID
    answer: str = Field(default="", max_length=10000)


class SubmissionCreateRequest(BaseModel):
    answers: list[AnswerSubmission]
    time_spent: int | None = Field(default=None, ge=0, description="Seconds")


class SubmissionGradeRequest(BaseModel):
    """Points per question id for the answers that need a manual mark."""

    points: dict[UUID, float]
    feedback: str | None = None


class AnswerResponse(BaseModel):
    id: UUID
    question_id: UUID
    answer: str
    is_correct: bool | None
    points: float

    model_config = {"from_attributes": True}


class SubmissionResponse(BaseModel):
    id: UUID
    quiz_id: UUID
    student_id: UUID
    student_name: str | None = None
    attempt: int
    score: float | None
    max_score: float
    percentage: float | None
    is_graded: bool
    feedback: str | None
    time_spent: int | None
    submitted_at: datetime
    graded_at: datetime | None
    answers: list[AnswerResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]
    total: int
