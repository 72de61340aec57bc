"""
Dashboard tests.

Verifies the completion arithmetic and the student and instructor summaries
built on top of it.
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update

from helpers import (
    API,
    auth,
    complete_lesson,
    create_course,
    create_published_course,
    enroll,
    publish,
    signup,
    unique_email,
)
from mindflow.models import LessonCompletion
from mindflow.services.progress import is_fully_completed, progress_percent


# ---------------------------------------------------------------------------
# 1. Completion arithmetic
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "completed, total, expected",
    [
        (0, 0, 0),
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 67),
        (1, 2, 50),
        (1, 8, 13),
        (29, 200, 15),
        (3, 3, 100),
    ],
)
def test_progress_percent(completed, total, expected):
    assert progress_percent(completed, total) == expected


def test_course_without_lessons_is_never_completed():
    assert is_fully_completed(0, 0) is False
    assert is_fully_completed(2, 3) is False
    assert is_fully_completed(3, 3) is True


# ---------------------------------------------------------------------------
# 2. Student dashboard
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_student_dashboard_summarizes_enrollments(client):
    author = await signup(client, unique_email("author"), role="instructor")
    student = await signup(client, unique_email("student"))
    algebra, algebra_lessons = await create_published_course(client, author, "Algebra", lessons=2)
    biology, biology_lessons = await create_published_course(client, author, "Biology", lessons=3)
    await enroll(client, student, algebra["id"])
    await enroll(client, student, biology["id"])

    for lesson in algebra_lessons:
        await complete_lesson(client, student, lesson["id"])
    await complete_lesson(client, student, biology_lessons[0]["id"])

    resp = await client.get(f"{API}/student/dashboard", headers=auth(student))
    assert resp.status_code == 200
    data = resp.json()["data"]

    assert data["total_enrollments"] == 2
    assert data["completed_courses"] == 1
    assert data["progress_stats"] == {"lessons_completed": 3, "total_lessons": 5}

    by_title = {c["title"]: c for c in data["enrolled_courses"]}
    assert by_title["Algebra"]["progress"] == 100
    assert by_title["Algebra"]["status"] == "completed"
    assert by_title["Biology"]["progress"] == 33
    assert by_title["Biology"]["status"] == "active"
    assert by_title["Biology"]["completed_lessons"] == 1
    assert by_title["Biology"]["last_accessed"] is not None


@pytest.mark.asyncio
async def test_student_dashboard_empty_course_stays_active(client):
    author = await signup(client, unique_email("author"), role="instructor")
    student = await signup(client, unique_email("student"))
    empty = await create_course(client, author, "Coming Soon")
    await publish(client, author, empty["id"])
    await enroll(client, student, empty["id"])

    data = (await client.get(f"{API}/student/dashboard", headers=auth(student))).json()["data"]
    course = data["enrolled_courses"][0]
    assert course["progress"] == 0
    assert course["status"] == "active"
    assert course["last_accessed"] is None
    assert data["completed_courses"] == 0


@pytest.mark.asyncio
async def test_student_dashboard_requires_student_role(client):
    author = await signup(client, unique_email("author"), role="instructor")
    resp = await client.get(f"{API}/student/dashboard", headers=auth(author))
    assert resp.status_code == 403
    assert resp.json()["code"] == "INSUFFICIENT_ROLE"


# ---------------------------------------------------------------------------
# 3. Instructor dashboard
# ---------------------------------------------------------------------------

async def setup_classroom(client) -> tuple[str, dict, list[dict], dict[str, str]]:
    """One published course with 2 lessons, a draft, and three students.

    Ada finishes the course, Ben completes one lesson, Cy does nothing.
    """
    author = await signup(client, unique_email("author"), role="instructor")
    course, lessons = await create_published_course(client, author, "Chemistry", lessons=2)
    await create_course(client, author, "Physics Draft")

    students = {}
    for name in ("Ada", "Ben", "Cy"):
        token = await signup(client, unique_email(name.lower()), name=name)
        await enroll(client, token, course["id"])
        students[name] = token

    for lesson in lessons:
        await complete_lesson(client, students["Ada"], lesson["id"])
    await complete_lesson(client, students["Ben"], lessons[0]["id"])
    return author, course, lessons, students


@pytest.mark.asyncio
async def test_instructor_dashboard_stats(client):
    author, course, _, _ = await setup_classroom(client)

    resp = await client.get(f"{API}/instructor/dashboard", headers=auth(author))
    assert resp.status_code == 200
    data = resp.json()["data"]

    assert data["platform_stats"] == {
        "total_courses": 2,
        "total_students": 3,
        "total_enrollments": 3,
        "average_completion_rate": 50,
        "courses_this_week": 2,
        "enrollments_this_week": 3,
    }

    management = data["course_management"]
    assert management["draft_courses"] == 1
    assert management["published_courses"] == 1
    assert management["archived_courses"] == 0
    assert management["total_students_enrolled"] == 3
    chemistry = next(c for c in management["courses"] if c["id"] == course["id"])
    assert chemistry["enrollment_count"] == 3
    assert chemistry["completion_rate"] == 50


@pytest.mark.asyncio
async def test_instructor_dashboard_student_progress(client):
    author, _, _, _ = await setup_classroom(client)
    data = (await client.get(f"{API}/instructor/dashboard", headers=auth(author))).json()["data"]

    rows = data["student_progress"]
    assert [(r["name"], r["completion_rate"], r["status"]) for r in rows] == [
        ("Ada", 100, "completed"),
        ("Ben", 50, "active"),
        ("Cy", 0, "inactive"),
    ]
    assert rows[2]["last_activity"] is None

    top = data["top_students"]
    assert [s["name"] for s in top] == ["Ada", "Ben", "Cy"]
    assert top[0]["courses_completed"] == 1
    assert top[1]["courses_completed"] == 0


@pytest.mark.asyncio
async def test_instructor_dashboard_stale_activity_is_inactive(client, session_factory):
    author, _, _, _ = await setup_classroom(client)

    async with session_factory() as session:
        await session.execute(
            update(LessonCompletion).values(completed_at=datetime.now(UTC) - timedelta(days=10))
        )
        await session.commit()

    rows = (await client.get(f"{API}/instructor/dashboard", headers=auth(author))).json()["data"][
        "student_progress"
    ]
    statuses = {r["name"]: r["status"] for r in rows}
    assert statuses == {"Ada": "completed", "Ben": "inactive", "Cy": "inactive"}


@pytest.mark.asyncio
async def test_instructor_dashboard_enrollment_trends(client):
    author, _, _, _ = await setup_classroom(client)
    data = (await client.get(f"{API}/instructor/dashboard", headers=auth(author))).json()["data"]

    trends = data["enrollment_trends"]
    assert len(trends) == 30
    assert trends[-1]["date"] == datetime.now(UTC).date().isoformat()
    assert trends[-1]["enrollments"] == 3
    assert trends[-1]["completions"] == 3
    assert sum(t["enrollments"] for t in trends[:-1]) == 0


@pytest.mark.asyncio
async def test_instructor_dashboard_only_covers_own_courses(client):
    await setup_classroom(client)
    newcomer = await signup(client, unique_email("newcomer"), role="instructor")

    data = (await client.get(f"{API}/instructor/dashboard", headers=auth(newcomer))).json()["data"]
    assert data["platform_stats"]["total_courses"] == 0
    assert data["platform_stats"]["average_completion_rate"] == 0
    assert data["student_progress"] == []
    assert data["top_students"] == []
    assert len(data["enrollment_trends"]) == 30


@pytest.mark.asyncio
async def test_instructor_dashboard_requires_instructor(client):
    student = await signup(client, unique_email("student"))
    resp = await client.get(f"{API}/instructor/dashboard", headers=auth(student))
    assert resp.status_code == 403
