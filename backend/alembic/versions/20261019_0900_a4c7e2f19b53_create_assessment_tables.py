"""create_assessment_tables

Quizzes, questions, submissions, answers and grades.

Revision ID: a4c7e2f19b53
Revises: d2a6c8e93f15
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = 'a4c7e2f19b53'
down_revision: Union[str, None] = 'd2a6c8e93f15'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'quizzes',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('course_id', UUID(as_uuid=True), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_graded', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_quizzes_course_id', 'quizzes', ['course_id'])

    op.create_table(
        'questions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('quiz_id', UUID(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=True),
        sa.Column('correct_answer', sa.Text(), nullable=True),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_questions_quiz_id', 'questions', ['quiz_id'])

    op.create_table(
        'quiz_submissions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('quiz_id', UUID(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attempt', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('max_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Float(), nullable=True),
        sa.Column('is_graded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('time_spent', sa.Integer(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('graded_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('quiz_id', 'student_id', 'attempt', name='uq_quiz_submissions_attempt'),
    )
    op.create_index('ix_quiz_submissions_quiz_id', 'quiz_submissions', ['quiz_id'])
    op.create_index('ix_quiz_submissions_student_id', 'quiz_submissions', ['student_id'])

    op.create_table(
        'answers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('submission_id', UUID(as_uuid=True), sa.ForeignKey('quiz_submissions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_id', UUID(as_uuid=True), sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('points', sa.Float(), nullable=False, server_default='0'),
    )
    op.create_index('ix_answers_submission_id', 'answers', ['submission_id'])
    op.create_index('ix_answers_question_id', 'answers', ['question_id'])

    op.create_table(
        'grades',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('student_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('course_id', UUID(as_uuid=True), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quiz_id', UUID(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(200), nullable=True),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('max_score', sa.Float(), nullable=False),
        sa.Column('percentage', sa.Float(), nullable=False),
        sa.Column('letter_grade', sa.String(2), nullable=False),
        sa.Column('category', sa.String(50), nullable=False, server_default='assignment'),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('graded_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_grades_student_id', 'grades', ['student_id'])
    op.create_index('ix_grades_course_id', 'grades', ['course_id'])


def downgrade() -> None:
    op.drop_index('ix_grades_course_id', table_name='grades')
    op.drop_index('ix_grades_student_id', table_name='grades')
    op.drop_table('grades')
    op.drop_index('ix_answers_question_id', table_name='answers')
    op.drop_index('ix_answers_submission_id', table_name='answers')
    op.drop_table('answers')
    op.drop_index('ix_quiz_submissions_student_id', table_name='quiz_submissions')
    op.drop_index('ix_quiz_submissions_quiz_id', table_name='quiz_submissions')
    op.drop_table('quiz_submissions')
    op.drop_index('ix_questions_quiz_id', table_name='questions')
    op.drop_table('questions')
    op.drop_index('ix_quizzes_course_id', table_name='quizzes')
    op.drop_table('quizzes')
