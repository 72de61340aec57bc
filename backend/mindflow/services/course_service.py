"""
Course business logic.

Handles course authoring, enrollment and lesson progress.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.exceptions import Conflict, Forbidden, NotFound, ValidationError
from mindflow.models.course import Course, CourseModule, CourseStatus, Lesson
from mindflow.models.enrollment import Enrollment, LessonCompletion
from mindflow.models.user import User, UserRole
from mindflow.schemas.course import (
    CourseCreateRequest,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CourseUpdateRequest,
    EnrollmentResponse,
    LessonCreateRequest,
    LessonProgressResponse,
    LessonResponse,
    ModuleCreateRequest,
    ModuleResponse,
)
from mindflow.services import membership
from mindflow.services.progress import progress_percent

logger = logging.getLogger(__name__)


class CourseService:

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_course(self, course_id: UUID) -> Course:
        result = await self.db.execute(select(Course).where(Course.id == course_id))
        course = result.scalar_one_or_none()
        if course is None:
            raise NotFound("Course not found", code="COURSE_NOT_FOUND")
        return course

    async def get_owned_course(self, course_id: UUID, user: User) -> Course:
        course = await self.get_course(course_id)
        if course.created_by != user.id and user.role != UserRole.admin:
            raise Forbidden("Only the course instructor can modify this course", code="NOT_COURSE_OWNER")
        return course

    async def is_enrolled(self, course_id: UUID, student_id: UUID) -> bool:
        enrollment_id = await self.db.scalar(
            select(Enrollment.id).where(
                Enrollment.student_id == student_id,
                Enrollment.course_id == course_id,
            )
        )
        return enrollment_id is not None

    # -----------------------------------------------------------------------
    # Authoring
    # -----------------------------------------------------------------------

    async def create_course(self, data: CourseCreateRequest, instructor: User) -> CourseResponse:
        if data.organization_id is not None:
            await membership.require_member(self.db, data.organization_id, instructor.id)

        course = Course(
            title=data.title,
            description=data.description,
            thumbnail=data.thumbnail,
            status=CourseStatus.DRAFT,
            created_by=instructor.id,
            organization_id=data.organization_id,
        )
        self.db.add(course)
        await self.db.flush()
        await self.db.refresh(course)
        logger.info("Course created: id=%s instructor=%s", course.id, instructor.id)
        return CourseResponse.model_validate(course)

    async def update_course(self, course_id: UUID, data: CourseUpdateRequest, user: User) -> CourseResponse:
        course = await self.get_owned_course(course_id, user)
        if course.status == CourseStatus.ARCHIVED:
            raise ValidationError("Archived courses cannot be edited", code="COURSE_ARCHIVED")

        if data.title is not None:
            course.title = data.title
        if data.description is not None:
            course.description = data.description
        if data.thumbnail is not None:
            course.thumbnail = data.thumbnail
        await self.db.flush()
        await self.db.refresh(course)
        return CourseResponse.model_validate(course)

    async def set_status(self, course_id: UUID, status: CourseStatus, user: User) -> CourseResponse:
        course = await self.get_owned_course(course_id, user)
        course.status = status
        await self.db.flush()
        await self.db.refresh(course)
        logger.info("Course status changed: id=%s status=%s", course.id, status.value)
        return CourseResponse.model_validate(course)

    async def add_module(self, course_id: UUID, data: ModuleCreateRequest, user: User) -> ModuleResponse:
        course = await self.get_owned_course(course_id, user)
        order = data.order
        if order is None:
            order = await self.db.scalar(
                select(func.count(CourseModule.id)).where(CourseModule.course_id == course.id)
            ) or 0

        module = CourseModule(course_id=course.id, title=data.title, order=order)
        self.db.add(module)
        await self.db.flush()
        await self.db.refresh(module)
        return ModuleResponse(id=module.id, course_id=module.course_id, title=module.title, order=module.order)

    async def add_lesson(
        self, course_id: UUID, module_id: UUID, data: LessonCreateRequest, user: User
    ) -> LessonResponse:
        course = await self.get_owned_course(course_id, user)
        module = await self.db.scalar(
            select(CourseModule).where(CourseModule.id == module_id, CourseModule.course_id == course.id)
        )
        if module is None:
            raise NotFound("Module not found", code="MODULE_NOT_FOUND")

        order = data.order
        if order is None:
            order = await self.db.scalar(
                select(func.count(Lesson.id)).where(Lesson.module_id == module.id)
            ) or 0

        lesson = Lesson(
            module_id=module.id,
            title=data.title,
            content=data.content,
            video_url=data.video_url,
            duration_minutes=data.duration_minutes,
            order=order,
        )
        self.db.add(lesson)
        await self.db.flush()
        await self.db.refresh(lesson)
        return LessonResponse.model_validate(lesson)

    # -----------------------------------------------------------------------
    # Reading
    # -----------------------------------------------------------------------

    async def list_published(self) -> CourseListResponse:
        result = await self.db.execute(
            select(Course)
            .where(Course.status == CourseStatus.PUBLISHED)
            .order_by(Course.created_at.desc())
        )
        courses = [CourseResponse.model_validate(c) for c in result.scalars().all()]
        return CourseListResponse(courses=courses, total=len(courses))

    async def list_for_instructor(self, instructor: User) -> CourseListResponse:
        result = await self.db.execute(
            select(Course)
            .where(Course.created_by == instructor.id)
            .order_by(Course.created_at.desc())
        )
        courses = [CourseResponse.model_validate(c) for c in result.scalars().all()]
        return CourseListResponse(courses=courses, total=len(courses))

    async def get_course_detail(self, course_id: UUID, viewer: User) -> CourseDetailResponse:
        """Course with its modules and lessons. Drafts are visible to their author only."""
        course = await self.get_course(course_id)
        if (
            course.status != CourseStatus.PUBLISHED
            and course.created_by != viewer.id
            and viewer.role != UserRole.admin
        ):
            raise NotFound("Course not found", code="COURSE_NOT_FOUND")

        modules_result = await self.db.execute(
            select(CourseModule)
            .where(CourseModule.course_id == course.id)
            .order_by(CourseModule.order)
        )
        modules = list(modules_result.scalars().all())

        lessons_by_module: dict[UUID, list[LessonResponse]] = {m.id: [] for m in modules}
        if modules:
            lessons_result = await self.db.execute(
                select(Lesson)
                .where(Lesson.module_id.in_(lessons_by_module.keys()))
                .order_by(Lesson.order)
            )
            for lesson in lessons_result.scalars().all():
                lessons_by_module[lesson.module_id].append(LessonResponse.model_validate(lesson))

        enrollment_count = await self.db.scalar(
            select(func.count(Enrollment.id)).where(Enrollment.course_id == course.id)
        )

        base = CourseResponse.model_validate(course)
        return CourseDetailResponse(
            **base.model_dump(),
            modules=[
                ModuleResponse(
                    id=m.id,
                    course_id=m.course_id,
                    title=m.title,
                    order=m.order,
                    lessons=lessons_by_module[m.id],
                )
                for m in modules
            ],
            total_lessons=sum(len(lessons) for lessons in lessons_by_module.values()),
            enrollment_count=enrollment_count or 0,
        )

    # -----------------------------------------------------------------------
    # Enrollment / Progress
    # -----------------------------------------------------------------------

    async def enroll(self, course_id: UUID, student: User) -> EnrollmentResponse:
        course = await self.get_course(course_id)
        if course.status != CourseStatus.PUBLISHED:
            raise ValidationError("Course is not open for enrollment", code="COURSE_NOT_PUBLISHED")

        existing = await self.db.execute(
            select(Enrollment.id).where(
                Enrollment.student_id == student.id,
                Enrollment.course_id == course.id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict("Already enrolled in this course", code="ALREADY_ENROLLED")

        enrollment = Enrollment(student_id=student.id, course_id=course.id)
        self.db.add(enrollment)
        try:
            await self.db.flush()
        except IntegrityError:
            raise Conflict("Already enrolled in this course", code="ALREADY_ENROLLED")
        await self.db.refresh(enrollment)
        return EnrollmentResponse.model_validate(enrollment)

    async def set_lesson_progress(
        self, lesson_id: UUID, completed: bool, student: User
    ) -> LessonProgressResponse:
        """
        Mark a lesson completed or not completed for the student.

        Completion is the existence of a LessonCompletion row; marking a lesson
        incomplete deletes it.
        """
        row = (
            await self.db.execute(
                select(Lesson, CourseModule.course_id)
                .join(CourseModule, Lesson.module_id == CourseModule.id)
                .where(Lesson.id == lesson_id)
            )
        ).one_or_none()
        if row is None:
            raise NotFound("Lesson not found", code="LESSON_NOT_FOUND")
        lesson, course_id = row

        if not await self.is_enrolled(course_id, student.id):
            raise Forbidden("You are not enrolled in this course", code="NOT_ENROLLED")

        completion = await self.db.scalar(
            select(LessonCompletion).where(
                LessonCompletion.student_id == student.id,
                LessonCompletion.lesson_id == lesson.id,
            )
        )
        if completed and completion is None:
            completion = LessonCompletion(student_id=student.id, lesson_id=lesson.id)
            self.db.add(completion)
            await self.db.flush()
        elif not completed and completion is not None:
            await self.db.execute(
                delete(LessonCompletion).where(LessonCompletion.id == completion.id)
            )
            completion = None

        total = await self.db.scalar(
            select(func.count(Lesson.id))
            .join(CourseModule, Lesson.module_id == CourseModule.id)
            .where(CourseModule.course_id == course_id)
        ) or 0
        done = await self.db.scalar(
            select(func.count(LessonCompletion.id))
            .join(Lesson, LessonCompletion.lesson_id == Lesson.id)
            .join(CourseModule, Lesson.module_id == CourseModule.id)
            .where(
                CourseModule.course_id == course_id,
                LessonCompletion.student_id == student.id,
            )
        ) or 0

        return LessonProgressResponse(
            lesson_id=lesson.id,
            completed=completion is not None,
            completed_at=completion.completed_at if completion is not None else None,
            course_progress=progress_percent(done, total),
        )
