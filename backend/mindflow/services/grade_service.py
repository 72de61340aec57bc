"""
Gradebook business logic.

Students read their own grades, instructors the grades of the courses they
teach and admins everything. Quiz grades are written by the quiz service;
this service adds manual entries for work graded outside the platform.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.exceptions import ValidationError
from mindflow.models.assessment import Grade
from mindflow.models.course import Course
from mindflow.models.user import User, UserRole
from mindflow.schemas.grade import GradeCreateRequest, GradeListResponse, GradeResponse
from mindflow.services.course_service import CourseService
from mindflow.services.grading import letter_grade, percentage

logger = logging.getLogger(__name__)


def _grade_response(grade: Grade, student_name: str, course_title: str) -> GradeResponse:
    return GradeResponse(
        id=grade.id,
        student_id=grade.student_id,
        student_name=student_name,
        course_id=grade.course_id,
        course_title=course_title,
        quiz_id=grade.quiz_id,
        title=grade.title,
        score=grade.score,
        max_score=grade.max_score,
        percentage=grade.percentage,
        letter_grade=grade.letter_grade,
        category=grade.category,
        feedback=grade.feedback,
        created_at=grade.created_at,
    )


class GradeService:

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_grades(
        self, user: User, course_id: UUID | None = None, student_id: UUID | None = None
    ) -> GradeListResponse:
        query = (
            select(Grade, User.name, Course.title)
            .join(User, Grade.student_id == User.id)
            .join(Course, Grade.course_id == Course.id)
            .order_by(Grade.created_at.desc())
        )
        if user.role == UserRole.student:
            query = query.where(Grade.student_id == user.id)
        elif user.role == UserRole.instructor:
            query = query.where(Course.created_by == user.id)

        if course_id is not None:
            query = query.where(Grade.course_id == course_id)
        if student_id is not None:
            query = query.where(Grade.student_id == student_id)

        rows = (await self.db.execute(query)).all()
        grades = [_grade_response(grade, name, title) for grade, name, title in rows]
        average = round(sum(g.percentage for g in grades) / len(grades), 2) if grades else None
        return GradeListResponse(grades=grades, total=len(grades), average_percentage=average)

    async def create_grade(self, data: GradeCreateRequest, instructor: User) -> GradeResponse:
        courses = CourseService(self.db)
        course = await courses.get_owned_course(data.course_id, instructor)
        if not await courses.is_enrolled(course.id, data.student_id):
            raise ValidationError("Student is not enrolled in this course", code="NOT_ENROLLED")

        percent = percentage(data.score, data.max_score)
        grade = Grade(
            student_id=data.student_id,
            course_id=course.id,
            title=data.title,
            score=data.score,
            max_score=data.max_score,
            percentage=percent,
            letter_grade=letter_grade(percent),
            category=data.category,
            feedback=data.feedback,
            graded_by=instructor.id,
        )
        self.db.add(grade)
        await self.db.flush()
        await self.db.refresh(grade)

        student_name = await self.db.scalar(select(User.name).where(User.id == data.student_id))
        logger.info("Grade recorded: id=%s course_id=%s student_id=%s", grade.id, course.id, data.student_id)
        return _grade_response(grade, student_name, course.title)
