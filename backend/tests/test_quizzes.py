"""
Quiz authoring, submission and scoring tests.
"""

from datetime import UTC, datetime, timedelta

import pytest

from helpers import API, auth, create_published_course, enroll, signup, unique_email
from mindflow.models.assessment import QuestionType
from mindflow.services.grading import grade_answer, letter_grade, percentage


async def create_quiz(client, token: str, course_id: str, title: str = "Unit Quiz", **extra) -> dict:
    resp = await client.post(
        f"{API}/quizzes", json={"course_id": course_id, "title": title, **extra}, headers=auth(token)
    )
    assert resp.status_code == 201, f"Create quiz failed: {resp.text}"
    return resp.json()["data"]


async def add_question(client, token: str, quiz_id: str, **body) -> dict:
    resp = await client.post(f"{API}/quizzes/{quiz_id}/questions", json=body, headers=auth(token))
    assert resp.status_code == 201, f"Add question failed: {resp.text}"
    return resp.json()["data"]


async def publish_quiz(client, token: str, quiz_id: str) -> None:
    resp = await client.patch(f"{API}/quizzes/{quiz_id}", json={"is_published": True}, headers=auth(token))
    assert resp.status_code == 200, f"Publish quiz failed: {resp.text}"


async def submit(client, token: str, quiz_id: str, answers: dict[str, str], **extra):
    return await client.post(
        f"{API}/quizzes/{quiz_id}/submissions",
        json={"answers": [{"question_id": k, "answer": v} for k, v in answers.items()], **extra},
        headers=auth(token),
    )


async def setup_quiz(client, **quiz_fields) -> tuple[str, str, dict, dict, dict[str, dict]]:
    """Published course with one enrolled student and a published three-question quiz.

    Returns (author, student, course, quiz, questions by key). The quiz is worth 5 points.
    """
    author = await signup(client, unique_email("author"), role="instructor", name="Iris Instructor")
    course, _ = await create_published_course(client, author, "Geography", lessons=1)
    student = await signup(client, unique_email("student"), name="Sam Student")
    await enroll(client, student, course["id"])

    quiz = await create_quiz(client, author, course["id"], **quiz_fields)
    questions = {
        "mc": await add_question(
            client, author, quiz["id"],
            type="MULTIPLE_CHOICE", question="2 + 2?", options=["3", "4", "5"], correct_answer="4", points=2,
        ),
        "tf": await add_question(
            client, author, quiz["id"], type="TRUE_FALSE", question="The Nile is in Africa", correct_answer="True",
        ),
        "short": await add_question(
            client, author, quiz["id"],
            type="SHORT_ANSWER", question="Capital of France?", correct_answer="Paris", points=2,
            explanation="Paris has been the capital since 987",
        ),
    }
    await publish_quiz(client, author, quiz["id"])
    return author, student, course, quiz, questions


# ---------------------------------------------------------------------------
# 1. Scoring rules
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "percent, expected",
    [(100, "A"), (90, "A"), (89.99, "B"), (80, "B"), (70, "C"), (60, "D"), (59.5, "F"), (0, "F")],
)
def test_letter_grade(percent, expected):
    assert letter_grade(percent) == expected


def test_percentage_rounds_and_handles_empty_quiz():
    assert percentage(6, 7) == 85.71
    assert percentage(0, 0) == 0.0


def test_grade_answer_normalizes_text():
    assert grade_answer(QuestionType.SHORT_ANSWER, "New  York", " new york ", 3) == (True, 3.0)
    assert grade_answer(QuestionType.FILL_IN_BLANK, "mitochondria", "ribosome", 2) == (False, 0.0)
    assert grade_answer(QuestionType.TRUE_FALSE, "true", "Yes", 1) == (True, 1.0)
    assert grade_answer(QuestionType.TRUE_FALSE, "false", "maybe", 1) == (False, 0.0)
    assert grade_answer(QuestionType.ESSAY, None, "A long answer", 5) == (None, 0.0)


# ---------------------------------------------------------------------------
# 2. Authoring
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_quiz_starts_unpublished(client):
    author = await signup(client, unique_email("author"), role="instructor")
    course, _ = await create_published_course(client, author)

    quiz = await create_quiz(client, author, course["id"], max_attempts=3, time_limit=20)
    assert quiz["is_published"] is False
    assert quiz["is_graded"] is True
    assert quiz["max_attempts"] == 3
    assert quiz["question_count"] == 0


@pytest.mark.asyncio
async def test_only_course_author_creates_quizzes(client):
    author = await signup(client, unique_email("author"), role="instructor")
    other = await signup(client, unique_email("other"), role="instructor")
    student = await signup(client, unique_email("student"))
    course, _ = await create_published_course(client, author)

    resp = await client.post(f"{API}/quizzes", json={"course_id": course["id"], "title": "Q"}, headers=auth(other))
    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_COURSE_OWNER"

    resp = await client.post(f"{API}/quizzes", json={"course_id": course["id"], "title": "Q"}, headers=auth(student))
    assert resp.status_code == 403
    assert resp.json()["code"] == "INSUFFICIENT_ROLE"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"type": "MULTIPLE_CHOICE", "question": "Pick", "options": ["a", "b"], "correct_answer": "c"},
        {"type": "MULTIPLE_CHOICE", "question": "Pick", "options": ["a"], "correct_answer": "a"},
        {"type": "TRUE_FALSE", "question": "Sure?", "correct_answer": "maybe"},
        {"type": "SHORT_ANSWER", "question": "Name it"},
    ],
)
async def test_inconsistent_answer_key_rejected(client, body):
    author = await signup(client, unique_email("author"), role="instructor")
    course, _ = await create_published_course(client, author)
    quiz = await create_quiz(client, author, course["id"])

    resp = await client.post(f"{API}/quizzes/{quiz['id']}/questions", json=body, headers=auth(author))
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_QUESTION"


@pytest.mark.asyncio
async def test_publish_requires_questions(client):
    author = await signup(client, unique_email("author"), role="instructor")
    course, _ = await create_published_course(client, author)
    quiz = await create_quiz(client, author, course["id"])

    resp = await client.patch(f"{API}/quizzes/{quiz['id']}", json={"is_published": True}, headers=auth(author))
    assert resp.status_code == 400
    assert resp.json()["code"] == "QUIZ_HAS_NO_QUESTIONS"


@pytest.mark.asyncio
async def test_questions_are_numbered_in_order(client):
    author, _, _, quiz, _ = await setup_quiz(client)

    detail = (await client.get(f"{API}/quizzes/{quiz['id']}", headers=auth(author))).json()["data"]
    assert [q["order"] for q in detail["questions"]] == [0, 1, 2]
    assert detail["questions"][1]["options"] == ["True", "False"]
    assert detail["questions"][1]["correct_answer"] == "true"
    assert detail["question_count"] == 3


# ---------------------------------------------------------------------------
# 3. Student visibility
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_student_view_hides_answer_key(client):
    _, student, _, quiz, _ = await setup_quiz(client)

    resp = await client.get(f"{API}/quizzes/{quiz['id']}", headers=auth(student))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["attempts_used"] == 0
    assert all(q["correct_answer"] is None for q in data["questions"])
    assert all(q["explanation"] is None for q in data["questions"])


@pytest.mark.asyncio
async def test_unpublished_quiz_hidden_from_students(client):
    author, student, course, _, _ = await setup_quiz(client)
    draft = await create_quiz(client, author, course["id"], title="Draft Quiz")
    await add_question(client, author, draft["id"], type="TRUE_FALSE", question="?", correct_answer="false")

    resp = await client.get(f"{API}/quizzes", params={"courseId": course["id"]}, headers=auth(student))
    assert [q["title"] for q in resp.json()["data"]["quizzes"]] == ["Unit Quiz"]

    resp = await client.get(f"{API}/quizzes", params={"courseId": course["id"]}, headers=auth(author))
    assert resp.json()["data"]["total"] == 2

    resp = await client.get(f"{API}/quizzes/{draft['id']}", headers=auth(student))
    assert resp.status_code == 404
    assert resp.json()["code"] == "QUIZ_NOT_FOUND"

    resp = await submit(client, student, draft["id"], {})
    assert resp.status_code == 400
    assert resp.json()["code"] == "QUIZ_NOT_AVAILABLE"


@pytest.mark.asyncio
async def test_quizzes_require_enrollment(client):
    _, _, course, quiz, questions = await setup_quiz(client)
    outsider = await signup(client, unique_email("outsider"))

    resp = await client.get(f"{API}/quizzes", params={"courseId": course["id"]}, headers=auth(outsider))
    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_ENROLLED"

    resp = await submit(client, outsider, quiz["id"], {questions["mc"]["id"]: "4"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "NOT_ENROLLED"


# ---------------------------------------------------------------------------
# 4. Submissions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_submit_scores_objective_answers(client):
    _, student, _, quiz, questions = await setup_quiz(client)

    resp = await submit(
        client, student, quiz["id"],
        {questions["mc"]["id"]: "4", questions["tf"]["id"]: "TRUE", questions["short"]["id"]: " paris "},
        time_spent=95,
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["is_graded"] is True
    assert data["score"] == 5
    assert data["max_score"] == 5
    assert data["percentage"] == 100
    assert data["attempt"] == 1
    assert data["time_spent"] == 95
    assert all(a["is_correct"] for a in data["answers"])

    grades = (await client.get(f"{API}/grades", headers=auth(student))).json()["data"]
    assert grades["total"] == 1
    assert grades["grades"][0]["letter_grade"] == "A"
    assert grades["grades"][0]["category"] == "quiz"
    assert grades["grades"][0]["quiz_id"] == quiz["id"]


@pytest.mark.asyncio
async def test_wrong_and_missing_answers_score_zero(client):
    _, student, _, quiz, questions = await setup_quiz(client)

    data = (await submit(client, student, quiz["id"], {questions["mc"]["id"]: "3", questions["short"]["id"]: "Paris"})).json()["data"]
    assert data["score"] == 2
    assert data["percentage"] == 40
    points = {a["question_id"]: a["points"] for a in data["answers"]}
    assert points == {questions["mc"]["id"]: 0, questions["tf"]["id"]: 0, questions["short"]["id"]: 2}

    grades = (await client.get(f"{API}/grades", headers=auth(student))).json()["data"]
    assert grades["grades"][0]["letter_grade"] == "F"


@pytest.mark.asyncio
async def test_max_attempts_enforced(client):
    _, student, _, quiz, questions = await setup_quiz(client, max_attempts=2)
    answers = {questions["mc"]["id"]: "4"}

    assert (await submit(client, student, quiz["id"], answers)).json()["data"]["attempt"] == 1
    assert (await submit(client, student, quiz["id"], answers)).json()["data"]["attempt"] == 2

    resp = await submit(client, student, quiz["id"], answers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Maximum attempts (2) exceeded", "code": "MAX_ATTEMPTS_EXCEEDED"}

    detail = (await client.get(f"{API}/quizzes/{quiz['id']}", headers=auth(student))).json()["data"]
    assert detail["attempts_used"] == 2


@pytest.mark.asyncio
async def test_past_due_quiz_rejects_submissions(client):
    yesterday = (datetime.now(UTC) - timedelta(days=1)).isoformat()
    _, student, _, quiz, questions = await setup_quiz(client, due_date=yesterday)

    resp = await submit(client, student, quiz["id"], {questions["mc"]["id"]: "4"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "QUIZ_PAST_DUE"


@pytest.mark.asyncio
async def test_answer_to_foreign_question_rejected(client):
    author, student, course, quiz, questions = await setup_quiz(client)
    other = await create_quiz(client, author, course["id"], title="Other")
    foreign = await add_question(client, author, other["id"], type="TRUE_FALSE", question="?", correct_answer="true")

    resp = await submit(client, student, quiz["id"], {foreign["id"]: "true"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_ANSWER"

    # Nothing was recorded, so the single attempt is still available
    resp = await submit(client, student, quiz["id"], {questions["mc"]["id"]: "4"})
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_ungraded_quiz_writes_no_grade(client):
    _, student, _, quiz, questions = await setup_quiz(client, is_graded=False)

    data = (await submit(client, student, quiz["id"], {questions["mc"]["id"]: "4"})).json()["data"]
    assert data["is_graded"] is True
    assert data["score"] == 2

    grades = (await client.get(f"{API}/grades", headers=auth(student))).json()["data"]
    assert grades["total"] == 0
    assert grades["average_percentage"] is None


@pytest.mark.asyncio
async def test_submissions_visibility(client):
    author, student, course, quiz, questions = await setup_quiz(client)
    classmate = await signup(client, unique_email("classmate"), name="Cleo Classmate")
    await enroll(client, classmate, course["id"])
    await submit(client, student, quiz["id"], {questions["mc"]["id"]: "4"})
    await submit(client, classmate, quiz["id"], {questions["mc"]["id"]: "5"})

    data = (await client.get(f"{API}/quizzes/{quiz['id']}/submissions", headers=auth(author))).json()["data"]
    assert data["total"] == 2
    assert {s["student_name"] for s in data["submissions"]} == {"Sam Student", "Cleo Classmate"}

    data = (await client.get(f"{API}/quizzes/{quiz['id']}/submissions", headers=auth(student))).json()["data"]
    assert data["total"] == 1
    assert data["submissions"][0]["student_name"] == "Sam Student"
    assert len(data["submissions"][0]["answers"]) == 3


# ---------------------------------------------------------------------------
# 5. Manual grading
# ---------------------------------------------------------------------------

async def setup_essay_quiz(client) -> tuple[str, str, dict, dict, dict]:
    author = await signup(client, unique_email("author"), role="instructor")
    course, _ = await create_published_course(client, author, "Literature", lessons=1)
    student = await signup(client, unique_email("student"))
    await enroll(client, student, course["id"])

    quiz = await create_quiz(client, author, course["id"], title="Essay Quiz")
    essay = await add_question(client, author, quiz["id"], type="ESSAY", question="Discuss Hamlet", points=5)
    mc = await add_question(
        client, author, quiz["id"],
        type="MULTIPLE_CHOICE", question="Author?", options=["Marlowe", "Shakespeare"],
        correct_answer="Shakespeare", points=2,
    )
    await publish_quiz(client, author, quiz["id"])
    return author, student, quiz, essay, mc


@pytest.mark.asyncio
async def test_essay_waits_for_manual_grade(client):
    author, student, quiz, essay, mc = await setup_essay_quiz(client)

    resp = await submit(client, student, quiz["id"], {essay["id"]: "To be or not to be...", mc["id"]: "Shakespeare"})
    assert resp.status_code == 201
    assert resp.json()["message"] == "Quiz submitted for review"
    submission = resp.json()["data"]
    assert submission["is_graded"] is False
    assert submission["score"] is None
    assert (await client.get(f"{API}/grades", headers=auth(student))).json()["data"]["total"] == 0

    path = f"{API}/quizzes/submissions/{submission['id']}/grade"
    resp = await client.post(path, json={"points": {essay["id"]: 4}, "feedback": "Good"}, headers=auth(author))
    assert resp.status_code == 200
    graded = resp.json()["data"]
    assert graded["is_graded"] is True
    assert graded["score"] == 6
    assert graded["percentage"] == 85.71
    assert graded["feedback"] == "Good"

    grade = (await client.get(f"{API}/grades", headers=auth(student))).json()["data"]["grades"][0]
    assert grade["letter_grade"] == "B"
    assert grade["feedback"] == "Good"

    resp = await client.post(path, json={"points": {essay["id"]: 5}}, headers=auth(author))
    assert resp.status_code == 400
    assert resp.json()["code"] == "ALREADY_PROCESSED"


@pytest.mark.asyncio
async def test_manual_grade_validates_points(client):
    author, student, quiz, essay, mc = await setup_essay_quiz(client)
    submission = (await submit(client, student, quiz["id"], {essay["id"]: "Short"})).json()["data"]
    path = f"{API}/quizzes/submissions/{submission['id']}/grade"

    resp = await client.post(path, json={"points": {essay["id"]: 6}}, headers=auth(author))
    assert resp.json()["code"] == "INVALID_POINTS"

    resp = await client.post(path, json={"points": {mc["id"]: 2, essay["id"]: 1}}, headers=auth(author))
    assert resp.json()["code"] == "INVALID_POINTS"

    resp = await client.post(path, json={"points": {}}, headers=auth(author))
    assert resp.json()["code"] == "MISSING_POINTS"

    resp = await client.post(path, json={"points": {essay["id"]: 1}}, headers=auth(student))
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# 6. Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_quiz_keeps_gradebook_entry(client):
    author, student, _, quiz, questions = await setup_quiz(client)
    await submit(client, student, quiz["id"], {questions["mc"]["id"]: "4"})

    resp = await client.delete(f"{API}/quizzes/{quiz['id']}", headers=auth(author))
    assert resp.status_code == 200

    resp = await client.get(f"{API}/quizzes/{quiz['id']}", headers=auth(author))
    assert resp.status_code == 404

    grades = (await client.get(f"{API}/grades", headers=auth(student))).json()["data"]
    assert grades["total"] == 1
    assert grades["grades"][0]["quiz_id"] is None
    assert grades["grades"][0]["title"] == "Unit Quiz"


@pytest.mark.asyncio
async def test_delete_question(client):
    author, _, _, quiz, questions = await setup_quiz(client)

    resp = await client.delete(f"{API}/quizzes/{quiz['id']}/questions/{questions['tf']['id']}", headers=auth(author))
    assert resp.status_code == 200

    detail = (await client.get(f"{API}/quizzes/{quiz['id']}", headers=auth(author))).json()["data"]
    assert detail["question_count"] == 2

    resp = await client.delete(f"{API}/quizzes/{quiz['id']}/questions/{questions['tf']['id']}", headers=auth(author))
    assert resp.status_code == 404
    assert resp.json()["code"] == "QUESTION_NOT_FOUND"
