"""
Dashboard aggregation.

Pure read queries over courses, enrollments and lesson completions.
Results are computed per request and never cached.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.models.base import as_utc, utcnow
from mindflow.models.course import Course, CourseModule, CourseStatus, Lesson
from mindflow.models.enrollment import Enrollment, LessonCompletion
from mindflow.models.user import User
from mindflow.schemas.dashboard import (
    CourseManagement,
    EnrolledCourseSummary,
    EnrollmentTrendPoint,
    InstructorCourseSummary,
    InstructorDashboardResponse,
    PlatformStats,
    StudentDashboardResponse,
    StudentProgressRow,
    StudentProgressStats,
    TopStudent,
)
from mindflow.services.progress import is_fully_completed, progress_percent

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(days=7)
TREND_DAYS = 30
TOP_STUDENTS = 5


@dataclass
class _StudentTally:
    user: User
    courses: list[UUID] = field(default_factory=list)
    first_enrolled_at: datetime | None = None
    total_lessons: int = 0
    completed_lessons: int = 0
    courses_completed: int = 0
    last_activity: datetime | None = None


class DashboardService:
    """Builds the per-role dashboard summaries."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _lessons_by_course(self, course_ids: list[UUID]) -> dict[UUID, set[UUID]]:
        lessons: dict[UUID, set[UUID]] = {course_id: set() for course_id in course_ids}
        if not course_ids:
            return lessons
        result = await self.db.execute(
            select(CourseModule.course_id, Lesson.id)
            .join(Lesson, Lesson.module_id == CourseModule.id)
            .where(CourseModule.course_id.in_(course_ids))
        )
        for course_id, lesson_id in result.all():
            lessons[course_id].add(lesson_id)
        return lessons

    async def _completions(
        self, lesson_ids: set[UUID], student_id: UUID | None = None
    ) -> list[LessonCompletion]:
        if not lesson_ids:
            return []
        query = select(LessonCompletion).where(LessonCompletion.lesson_id.in_(lesson_ids))
        if student_id is not None:
            query = query.where(LessonCompletion.student_id == student_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # -----------------------------------------------------------------------
    # Student Dashboard
    # -----------------------------------------------------------------------

    async def get_student_dashboard(self, student: User) -> StudentDashboardResponse:
        """
        Progress summary for one student.

        A lesson counts as completed when a LessonCompletion row exists.
        A course is completed when it has lessons and all of them are completed.
        """
        result = await self.db.execute(
            select(Enrollment, Course)
            .join(Course, Enrollment.course_id == Course.id)
            .where(Enrollment.student_id == student.id)
            .order_by(Enrollment.enrolled_at.desc())
        )
        rows = result.all()

        lessons = await self._lessons_by_course([course.id for _, course in rows])
        all_lessons = set().union(*lessons.values()) if lessons else set()
        completions = {
            c.lesson_id: as_utc(c.completed_at)
            for c in await self._completions(all_lessons, student_id=student.id)
        }

        enrolled_courses = []
        total_lessons = 0
        completed_lessons = 0
        completed_courses = 0
        for enrollment, course in rows:
            course_lessons = lessons[course.id]
            done = [completions[lid] for lid in course_lessons if lid in completions]
            finished = is_fully_completed(len(done), len(course_lessons))

            total_lessons += len(course_lessons)
            completed_lessons += len(done)
            completed_courses += int(finished)

            enrolled_courses.append(
                EnrolledCourseSummary(
                    id=course.id,
                    title=course.title,
                    thumbnail=course.thumbnail,
                    progress=progress_percent(len(done), len(course_lessons)),
                    status="completed" if finished else "active",
                    last_accessed=max(done) if done else None,
                    total_lessons=len(course_lessons),
                    completed_lessons=len(done),
                    enrolled_at=as_utc(enrollment.enrolled_at),
                )
            )

        return StudentDashboardResponse(
            progress_stats=StudentProgressStats(
                lessons_completed=completed_lessons,
                total_lessons=total_lessons,
            ),
            enrolled_courses=enrolled_courses,
            total_enrollments=len(rows),
            completed_courses=completed_courses,
        )

    # -----------------------------------------------------------------------
    # Instructor Dashboard
    # -----------------------------------------------------------------------

    async def get_instructor_dashboard(
        self, instructor: User, now: datetime | None = None
    ) -> InstructorDashboardResponse:
        """
        Analytics over the courses the instructor created.

        - Platform stats and course management with per-course completion rates
        - Per-student progress, sorted by completion rate
        - Daily enrollments and lesson completions for the last 30 days
        - Top 5 students by completion rate
        """
        now = now or utcnow()

        courses_result = await self.db.execute(
            select(Course)
            .where(Course.created_by == instructor.id)
            .order_by(Course.created_at.desc())
        )
        courses = list(courses_result.scalars().all())
        course_ids = [course.id for course in courses]

        lessons = await self._lessons_by_course(course_ids)
        lesson_course = {lid: cid for cid, lids in lessons.items() for lid in lids}

        enrollments: list[tuple[Enrollment, User]] = []
        if course_ids:
            enrollments_result = await self.db.execute(
                select(Enrollment, User)
                .join(User, Enrollment.student_id == User.id)
                .where(Enrollment.course_id.in_(course_ids))
                .order_by(Enrollment.enrolled_at)
            )
            enrollments = list(enrollments_result.all())
        enrolled_pairs = {(e.student_id, e.course_id) for e, _ in enrollments}

        # Completions only count while the student is enrolled in the lesson's course
        completions = [
            c
            for c in await self._completions(set(lesson_course))
            if (c.student_id, lesson_course[c.lesson_id]) in enrolled_pairs
        ]

        # Per-course tallies
        enrollment_count: dict[UUID, int] = defaultdict(int)
        for enrollment, _ in enrollments:
            enrollment_count[enrollment.course_id] += 1
        course_completions: dict[UUID, int] = defaultdict(int)
        student_course_done: dict[tuple[UUID, UUID], int] = defaultdict(int)
        for completion in completions:
            course_id = lesson_course[completion.lesson_id]
            course_completions[course_id] += 1
            student_course_done[(completion.student_id, course_id)] += 1

        course_summaries = []
        possible_total = 0
        for course in courses:
            possible = enrollment_count[course.id] * len(lessons[course.id])
            possible_total += possible
            course_summaries.append(
                InstructorCourseSummary(
                    id=course.id,
                    title=course.title,
                    description=course.description,
                    thumbnail=course.thumbnail,
                    created_at=as_utc(course.created_at),
                    enrollment_count=enrollment_count[course.id],
                    completion_rate=min(100, progress_percent(course_completions[course.id], possible)),
                    status=course.status,
                )
            )

        # Per-student tallies
        tallies: dict[UUID, _StudentTally] = {}
        for enrollment, user in enrollments:
            tally = tallies.setdefault(user.id, _StudentTally(user=user))
            tally.courses.append(enrollment.course_id)
            enrolled_at = as_utc(enrollment.enrolled_at)
            if tally.first_enrolled_at is None or enrolled_at < tally.first_enrolled_at:
                tally.first_enrolled_at = enrolled_at
            course_total = len(lessons[enrollment.course_id])
            course_done = student_course_done[(user.id, enrollment.course_id)]
            tally.total_lessons += course_total
            tally.completed_lessons += course_done
            tally.courses_completed += int(is_fully_completed(course_done, course_total))
        for completion in completions:
            tally = tallies[completion.student_id]
            completed_at = as_utc(completion.completed_at)
            if tally.last_activity is None or completed_at > tally.last_activity:
                tally.last_activity = completed_at

        student_rows = []
        for tally in tallies.values():
            if is_fully_completed(tally.completed_lessons, tally.total_lessons):
                status = "completed"
            elif tally.last_activity is not None and tally.last_activity > now - ACTIVE_WINDOW:
                status = "active"
            else:
                status = "inactive"
            student_rows.append(
                StudentProgressRow(
                    id=tally.user.id,
                    name=tally.user.name or "Unknown",
                    email=tally.user.email,
                    enrolled_courses=len(tally.courses),
                    completed_lessons=tally.completed_lessons,
                    total_lessons=tally.total_lessons,
                    completion_rate=progress_percent(tally.completed_lessons, tally.total_lessons),
                    last_activity=tally.last_activity,
                    enrolled_at=tally.first_enrolled_at,
                    status=status,
                )
            )
        student_rows.sort(key=lambda row: row.completion_rate, reverse=True)

        top_students = [
            TopStudent(
                id=row.id,
                name=row.name,
                email=row.email,
                completion_rate=row.completion_rate,
                completed_lessons=row.completed_lessons,
                courses_completed=tallies[row.id].courses_completed,
            )
            for row in student_rows[:TOP_STUDENTS]
        ]

        week_ago = now - ACTIVE_WINDOW
        platform_stats = PlatformStats(
            total_courses=len(courses),
            total_students=len(tallies),
            total_enrollments=len(enrollments),
            average_completion_rate=min(100, progress_percent(len(completions), possible_total)),
            courses_this_week=sum(1 for c in courses if as_utc(c.created_at) >= week_ago),
            enrollments_this_week=sum(
                1 for e, _ in enrollments if as_utc(e.enrolled_at) >= week_ago
            ),
        )

        course_management = CourseManagement(
            courses=course_summaries,
            draft_courses=sum(1 for c in courses if c.status == CourseStatus.DRAFT),
            published_courses=sum(1 for c in courses if c.status == CourseStatus.PUBLISHED),
            archived_courses=sum(1 for c in courses if c.status == CourseStatus.ARCHIVED),
            total_students_enrolled=len(enrollments),
        )

        return InstructorDashboardResponse(
            platform_stats=platform_stats,
            course_management=course_management,
            student_progress=student_rows,
            enrollment_trends=self._enrollment_trends(enrollments, completions, now),
            top_students=top_students,
        )

    @staticmethod
    def _enrollment_trends(
        enrollments: list[tuple[Enrollment, User]],
        completions: list[LessonCompletion],
        now: datetime,
    ) -> list[EnrollmentTrendPoint]:
        """One row per UTC day over the trailing 30 days, oldest first."""
        today = now.date()
        days = [today - timedelta(days=offset) for offset in range(TREND_DAYS - 1, -1, -1)]
        counts = {day: [0, 0] for day in days}

        for enrollment, _ in enrollments:
            day = as_utc(enrollment.enrolled_at).date()
            if day in counts:
                counts[day][0] += 1
        for completion in completions:
            day = as_utc(completion.completed_at).date()
            if day in counts:
                counts[day][1] += 1

        return [
            EnrollmentTrendPoint(date=day, enrollments=counts[day][0], completions=counts[day][1])
            for day in days
        ]
