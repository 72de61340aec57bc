"""
Quiz business logic.

Handles quiz authoring, the question bank, student submissions and their
scoring. Authors (the course instructor or an admin) see everything; students
must be enrolled and only ever see published quizzes without answer keys.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.exceptions import AlreadyProcessed, Conflict, Forbidden, NotFound, ValidationError
from mindflow.models.assessment import Answer, Grade, Question, QuestionType, Quiz, QuizSubmission
from mindflow.models.base import as_utc, utcnow
from mindflow.models.course import Course, CourseStatus
from mindflow.models.user import User, UserRole
from mindflow.schemas.quiz import (
    AnswerResponse,
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
from mindflow.services.course_service import CourseService
from mindflow.services.grading import grade_answer, letter_grade, percentage

logger = logging.getLogger(__name__)

# Quiz fields that may be cleared with an explicit null
NULLABLE_QUIZ_FIELDS = {"description", "instructions", "time_limit", "due_date"}


def _is_author(course: Course, user: User) -> bool:
    return course.created_by == user.id or user.role == UserRole.admin


def _validate_question(data: QuestionCreateRequest) -> tuple[list[str] | None, str | None]:
    """Check the answer key against the question type. Returns (options, correct_answer)."""
    options = data.options
    correct = data.correct_answer.strip() if data.correct_answer else None

    if data.type == QuestionType.MULTIPLE_CHOICE:
        if not options or len(options) < 2:
            raise ValidationError("Multiple choice questions need at least two options", code="INVALID_QUESTION")
        if correct is None or correct not in options:
            raise ValidationError("The correct answer must be one of the options", code="INVALID_QUESTION")
    elif data.type == QuestionType.TRUE_FALSE:
        if correct is None or correct.lower() not in ("true", "false"):
            raise ValidationError("True/false questions need 'true' or 'false' as answer", code="INVALID_QUESTION")
        options = ["True", "False"]
        correct = correct.lower()
    elif data.type in (QuestionType.SHORT_ANSWER, QuestionType.FILL_IN_BLANK):
        if correct is None:
            raise ValidationError("This question type needs a correct answer", code="INVALID_QUESTION")
    return options, correct


class QuizService:

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.courses = CourseService(db)

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    async def _get_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.db.scalar(select(Quiz).where(Quiz.id == quiz_id))
        if quiz is None:
            raise NotFound("Quiz not found", code="QUIZ_NOT_FOUND")
        return quiz

    async def _get_authored_quiz(self, quiz_id: UUID, user: User) -> Quiz:
        quiz = await self._get_quiz(quiz_id)
        await self.courses.get_owned_course(quiz.course_id, user)
        return quiz

    async def _get_visible_quiz(self, quiz_id: UUID, user: User) -> tuple[Quiz, bool]:
        """Return (quiz, is_author). Anyone else must be enrolled and the quiz published."""
        quiz = await self._get_quiz(quiz_id)
        course = await self.courses.get_course(quiz.course_id)
        if _is_author(course, user):
            return quiz, True
        if not quiz.is_published or not await self.courses.is_enrolled(course.id, user.id):
            raise NotFound("Quiz not found", code="QUIZ_NOT_FOUND")
        return quiz, False

    async def _question_counts(self, quiz_ids: list[UUID]) -> dict[UUID, int]:
        if not quiz_ids:
            return {}
        result = await self.db.execute(
            select(Question.quiz_id, func.count(Question.id))
            .where(Question.quiz_id.in_(quiz_ids))
            .group_by(Question.quiz_id)
        )
        return dict(result.all())

    async def _attempts_used(self, quiz_ids: list[UUID], student_id: UUID) -> dict[UUID, int]:
        if not quiz_ids:
            return {}
        result = await self.db.execute(
            select(QuizSubmission.quiz_id, func.count(QuizSubmission.id))
            .where(QuizSubmission.quiz_id.in_(quiz_ids), QuizSubmission.student_id == student_id)
            .group_by(QuizSubmission.quiz_id)
        )
        return dict(result.all())

    async def _questions(self, quiz_id: UUID) -> list[Question]:
        result = await self.db.execute(
            select(Question).where(Question.quiz_id == quiz_id).order_by(Question.order)
        )
        return list(result.scalars().all())

    async def _quiz_response(self, quiz: Quiz, student: User | None = None) -> QuizResponse:
        counts = await self._question_counts([quiz.id])
        response = QuizResponse.model_validate(quiz).model_copy(
            update={"question_count": counts.get(quiz.id, 0)}
        )
        if student is not None:
            attempts = await self._attempts_used([quiz.id], student.id)
            response.attempts_used = attempts.get(quiz.id, 0)
        return response

    # -----------------------------------------------------------------------
    # Authoring
    # -----------------------------------------------------------------------

    async def create_quiz(self, data: QuizCreateRequest, user: User) -> QuizResponse:
        course = await self.courses.get_owned_course(data.course_id, user)
        if course.status == CourseStatus.ARCHIVED:
            raise ValidationError("Archived courses cannot be edited", code="COURSE_ARCHIVED")

        quiz = Quiz(
            course_id=course.id,
            title=data.title,
            description=data.description,
            instructions=data.instructions,
            time_limit=data.time_limit,
            max_attempts=data.max_attempts,
            is_graded=data.is_graded,
            is_published=False,
            due_date=data.due_date,
            created_by=user.id,
        )
        self.db.add(quiz)
        await self.db.flush()
        await self.db.refresh(quiz)
        logger.info("Quiz created: id=%s course_id=%s", quiz.id, course.id)
        return await self._quiz_response(quiz)

    async def update_quiz(self, quiz_id: UUID, data: QuizUpdateRequest, user: User) -> QuizResponse:
        """Apply the fields present in the request. Publishing requires at least one question."""
        quiz = await self._get_authored_quiz(quiz_id, user)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field not in NULLABLE_QUIZ_FIELDS:
                continue
            setattr(quiz, field, value)

        if data.is_published and not (await self._question_counts([quiz.id])).get(quiz.id):
            raise ValidationError("Add at least one question before publishing", code="QUIZ_HAS_NO_QUESTIONS")

        await self.db.flush()
        await self.db.refresh(quiz)
        return await self._quiz_response(quiz)

    async def delete_quiz(self, quiz_id: UUID, user: User) -> None:
        """Remove a quiz with its questions and submissions. Gradebook entries stay."""
        quiz = await self._get_authored_quiz(quiz_id, user)
        submission_ids = select(QuizSubmission.id).where(QuizSubmission.quiz_id == quiz.id)

        await self.db.execute(delete(Answer).where(Answer.submission_id.in_(submission_ids)))
        await self.db.execute(delete(QuizSubmission).where(QuizSubmission.quiz_id == quiz.id))
        await self.db.execute(delete(Question).where(Question.quiz_id == quiz.id))
        await self.db.execute(update(Grade).where(Grade.quiz_id == quiz.id).values(quiz_id=None))
        await self.db.delete(quiz)
        await self.db.flush()
        logger.info("Quiz deleted: id=%s", quiz_id)

    async def add_question(self, quiz_id: UUID, data: QuestionCreateRequest, user: User) -> QuestionResponse:
        quiz = await self._get_authored_quiz(quiz_id, user)
        options, correct = _validate_question(data)

        order = data.order
        if order is None:
            order = (await self._question_counts([quiz.id])).get(quiz.id, 0)

        question = Question(
            quiz_id=quiz.id,
            type=data.type,
            question=data.question,
            options=options,
            correct_answer=correct,
            explanation=data.explanation,
            points=data.points,
            order=order,
        )
        self.db.add(question)
        await self.db.flush()
        await self.db.refresh(question)
        return QuestionResponse.model_validate(question)

    async def delete_question(self, quiz_id: UUID, question_id: UUID, user: User) -> None:
        quiz = await self._get_authored_quiz(quiz_id, user)
        question = await self.db.scalar(
            select(Question).where(Question.id == question_id, Question.quiz_id == quiz.id)
        )
        if question is None:
            raise NotFound("Question not found", code="QUESTION_NOT_FOUND")
        await self.db.execute(delete(Answer).where(Answer.question_id == question.id))
        await self.db.delete(question)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # Reading
    # -----------------------------------------------------------------------

    async def list_quizzes(self, course_id: UUID, user: User) -> QuizListResponse:
        """All quizzes for the course author, published ones for enrolled students."""
        course = await self.courses.get_course(course_id)
        query = select(Quiz).where(Quiz.course_id == course.id).order_by(Quiz.created_at)

        is_author = _is_author(course, user)
        if not is_author:
            if not await self.courses.is_enrolled(course.id, user.id):
                raise Forbidden("You are not enrolled in this course", code="NOT_ENROLLED")
            query = query.where(Quiz.is_published.is_(True))

        quizzes = list((await self.db.execute(query)).scalars().all())
        ids = [q.id for q in quizzes]
        counts = await self._question_counts(ids)
        attempts = {} if is_author else await self._attempts_used(ids, user.id)

        items = []
        for quiz in quizzes:
            item = QuizResponse.model_validate(quiz).model_copy(update={"question_count": counts.get(quiz.id, 0)})
            if not is_author:
                item.attempts_used = attempts.get(quiz.id, 0)
            items.append(item)
        return QuizListResponse(quizzes=items, total=len(items))

    async def get_quiz(self, quiz_id: UUID, user: User) -> QuizDetailResponse:
        quiz, is_author = await self._get_visible_quiz(quiz_id, user)
        base = await self._quiz_response(quiz, student=None if is_author else user)

        questions = [QuestionResponse.model_validate(q) for q in await self._questions(quiz.id)]
        if not is_author:
            questions = [q.model_copy(update={"correct_answer": None, "explanation": None}) for q in questions]
        return QuizDetailResponse(**base.model_dump(), questions=questions)

    # -----------------------------------------------------------------------
    # Submissions
    # -----------------------------------------------------------------------

    async def _finish_grading(
        self,
        quiz: Quiz,
        submission: QuizSubmission,
        answers: list[Answer],
        grader_id: UUID | None = None,
    ) -> None:
        score = sum(a.points for a in answers)
        submission.score = score
        submission.percentage = percentage(score, submission.max_score)
        submission.is_graded = True
        submission.graded_at = utcnow()

        if quiz.is_graded:
            self.db.add(
                Grade(
                    student_id=submission.student_id,
                    course_id=quiz.course_id,
                    quiz_id=quiz.id,
                    title=quiz.title,
                    score=score,
                    max_score=submission.max_score,
                    percentage=submission.percentage,
                    letter_grade=letter_grade(submission.percentage),
                    category="quiz",
                    feedback=submission.feedback,
                    graded_by=grader_id,
                )
            )
        await self.db.flush()

    @staticmethod
    def _submission_response(
        submission: QuizSubmission, answers: list[Answer], student_name: str | None = None
    ) -> SubmissionResponse:
        return SubmissionResponse.model_validate(submission).model_copy(
            update={
                "student_name": student_name,
                "answers": [AnswerResponse.model_validate(a) for a in answers],
            }
        )

    async def submit(self, quiz_id: UUID, data: SubmissionCreateRequest, student: User) -> SubmissionResponse:
        """
        Record an attempt and mark it.

        - Requires enrollment, a published quiz and an open deadline
        - At most max_attempts submissions per student
        - Unanswered questions score zero
        - If nothing needs a manual mark the attempt is graded at once and,
          for graded quizzes, a gradebook entry is written
        """
        quiz = await self._get_quiz(quiz_id)
        if not await self.courses.is_enrolled(quiz.course_id, student.id):
            raise Forbidden("You are not enrolled in this course", code="NOT_ENROLLED")
        if not quiz.is_published:
            raise ValidationError("Quiz is not available", code="QUIZ_NOT_AVAILABLE")
        if quiz.due_date is not None and as_utc(quiz.due_date) < utcnow():
            raise ValidationError("Quiz submission deadline has passed", code="QUIZ_PAST_DUE")

        attempts = (await self._attempts_used([quiz.id], student.id)).get(quiz.id, 0)
        if attempts >= quiz.max_attempts:
            raise ValidationError(
                f"Maximum attempts ({quiz.max_attempts}) exceeded", code="MAX_ATTEMPTS_EXCEEDED"
            )

        questions = await self._questions(quiz.id)
        known = {q.id for q in questions}
        given: dict[UUID, str] = {}
        for item in data.answers:
            if item.question_id not in known or item.question_id in given:
                raise ValidationError("Each answer must reference a different question of this quiz", code="INVALID_ANSWER")
            given[item.question_id] = item.answer

        submission = QuizSubmission(
            quiz_id=quiz.id,
            student_id=student.id,
            attempt=attempts + 1,
            max_score=float(sum(q.points for q in questions)),
            time_spent=data.time_spent,
            submitted_at=utcnow(),
        )
        self.db.add(submission)
        try:
            await self.db.flush()
        except IntegrityError:
            raise Conflict("Another attempt was submitted at the same time", code="DUPLICATE_SUBMISSION")

        answers = []
        needs_review = False
        for question in questions:
            text = given.get(question.id, "")
            is_correct, points = grade_answer(question.type, question.correct_answer, text, question.points)
            needs_review = needs_review or is_correct is None
            answers.append(
                Answer(
                    submission_id=submission.id,
                    question_id=question.id,
                    answer=text,
                    is_correct=is_correct,
                    points=points,
                )
            )
        self.db.add_all(answers)
        await self.db.flush()

        if not needs_review:
            await self._finish_grading(quiz, submission, answers)
        await self.db.refresh(submission)

        logger.info(
            "Quiz submitted: quiz_id=%s student_id=%s attempt=%s graded=%s",
            quiz.id, student.id, submission.attempt, submission.is_graded,
        )
        return self._submission_response(submission, answers)

    async def list_submissions(self, quiz_id: UUID, user: User) -> SubmissionListResponse:
        """Authors see every attempt, students only their own."""
        quiz, is_author = await self._get_visible_quiz(quiz_id, user)

        query = (
            select(QuizSubmission, User.name)
            .join(User, QuizSubmission.student_id == User.id)
            .where(QuizSubmission.quiz_id == quiz.id)
            .order_by(QuizSubmission.submitted_at.desc(), QuizSubmission.attempt.desc())
        )
        if not is_author:
            query = query.where(QuizSubmission.student_id == user.id)
        rows = (await self.db.execute(query)).all()

        answers_by_submission: dict[UUID, list[Answer]] = {s.id: [] for s, _ in rows}
        if rows:
            result = await self.db.execute(
                select(Answer)
                .join(Question, Answer.question_id == Question.id)
                .where(Answer.submission_id.in_(answers_by_submission.keys()))
                .order_by(Question.order)
            )
            for answer in result.scalars().all():
                answers_by_submission[answer.submission_id].append(answer)

        submissions = [
            self._submission_response(s, answers_by_submission[s.id], name) for s, name in rows
        ]
        return SubmissionListResponse(submissions=submissions, total=len(submissions))

    async def grade_submission(
        self, submission_id: UUID, data: SubmissionGradeRequest, user: User
    ) -> SubmissionResponse:
        """Mark the answers auto-grading left open, then finish the submission."""
        submission = await self.db.scalar(select(QuizSubmission).where(QuizSubmission.id == submission_id))
        if submission is None:
            raise NotFound("Submission not found", code="SUBMISSION_NOT_FOUND")
        quiz = await self._get_authored_quiz(submission.quiz_id, user)
        if submission.is_graded:
            raise AlreadyProcessed("Submission has already been graded")

        result = await self.db.execute(
            select(Answer, Question)
            .join(Question, Answer.question_id == Question.id)
            .where(Answer.submission_id == submission.id)
            .order_by(Question.order)
        )
        rows = result.all()
        open_questions = {q.id: (a, q) for a, q in rows if a.is_correct is None}

        unexpected = set(data.points) - set(open_questions)
        if unexpected:
            raise ValidationError("Points given for a question that is not awaiting a mark", code="INVALID_POINTS")
        missing = set(open_questions) - set(data.points)
        if missing:
            raise ValidationError("Every open question needs points", code="MISSING_POINTS")

        for question_id, points in data.points.items():
            answer, question = open_questions[question_id]
            if points < 0 or points > question.points:
                raise ValidationError(
                    f"Points must be between 0 and {question.points}", code="INVALID_POINTS"
                )
            answer.points = points
            answer.is_correct = points >= question.points

        submission.feedback = data.feedback
        answers = [a for a, _ in rows]
        await self._finish_grading(quiz, submission, answers, grader_id=user.id)
        await self.db.refresh(submission)

        student_name = await self.db.scalar(select(User.name).where(User.id == submission.student_id))
        logger.info("Submission graded: id=%s grader=%s", submission.id, user.id)
        return self._submission_response(submission, answers, student_name)
