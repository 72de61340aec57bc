"""
Scoring rules shared by quiz submissions and the gradebook.

Objective questions are marked by comparing the normalized answer with the
stored correct answer. Essays, and any question without a correct answer,
are left for the instructor.
"""

from __future__ import annotations

from mindflow.models.assessment import QuestionType

LETTER_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

_TRUE = {"true", "t", "yes", "1"}
_FALSE = {"false", "f", "no", "0"}


def percentage(score: float, max_score: float) -> float:
    if max_score <= 0:
        return 0.0
    return round(score / max_score * 100, 2)


def letter_grade(percent: float) -> str:
    for threshold, letter in LETTER_THRESHOLDS:
        if percent >= threshold:
            return letter
    return "F"


def _normalize(value: str) -> str:
    return " ".join(value.split()).casefold()


def _as_bool(value: str) -> bool | None:
    normalized = _normalize(value)
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    return None


def needs_manual_grading(question_type: QuestionType, correct_answer: str | None) -> bool:
    return question_type == QuestionType.ESSAY or not correct_answer


def grade_answer(
    question_type: QuestionType, correct_answer: str | None, answer: str, points: int
) -> tuple[bool | None, float]:
    """
    Mark one answer.

    Returns (is_correct, points_awarded). is_correct is None when the
    question needs an instructor to mark it.
    """
    if needs_manual_grading(question_type, correct_answer):
        return None, 0.0

    if question_type == QuestionType.TRUE_FALSE:
        given = _as_bool(answer)
        correct = given is not None and given == _as_bool(correct_answer)
    else:
        correct = _normalize(answer) == _normalize(correct_answer)
    return correct, float(points) if correct else 0.0
