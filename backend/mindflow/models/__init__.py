"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from mindflow.models.base import Base, TimestampMixin, UUIDMixin
from mindflow.models.member import MemberRole, MemberStatus, OrganizationMember
from mindflow.models.organization import Organization, SubscriptionTier
from mindflow.models.user import User, UserRole
from mindflow.models.team import Team, TeamMember
from mindflow.models.invitation import Invitation, InvitationStatus
from mindflow.models.course import Course, CourseModule, CourseStatus, Lesson
from mindflow.models.enrollment import Enrollment, LessonCompletion
from mindflow.models.assessment import Answer, Grade, Question, QuestionType, Quiz, QuizSubmission
from mindflow.models.topic import ReadingMaterial, Topic

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "Organization",
    "SubscriptionTier",
    "User",
    "UserRole",
    "OrganizationMember",
    "MemberRole",
    "MemberStatus",
    "Team",
    "TeamMember",
    "Invitation",
    "InvitationStatus",
    "Course",
    "CourseModule",
    "CourseStatus",
    "Lesson",
    "Enrollment",
    "LessonCompletion",
    "Quiz",
    "Question",
    "QuestionType",
    "QuizSubmission",
    "Answer",
    "Grade",
    "Topic",
    "ReadingMaterial",
]
