"""
CSV and PDF export tests.

PDF conversion is replaced by the rendered_pdfs fixture, so these tests check
the rendered HTML and the response headers rather than PDF internals.
"""

import csv
import io
import re
from datetime import date
from urllib.parse import unquote

import pytest

from helpers import (
    API,
    auth,
    complete_lesson,
    create_published_course,
    enroll,
    signup,
    unique_email,
)
from mindflow.services.export_service import ExportFile, export_filename, format_date, to_csv

FILENAME = re.compile(
    r'^attachment; filename="(?P<name>[\w.-]+)"; filename\*=UTF-8\'\'(?P<encoded>[\w.%~-]+)$'
)


def parse_csv(resp) -> list[list[str]]:
    return list(csv.reader(io.StringIO(resp.text)))


def filename(resp) -> str:
    match = FILENAME.match(resp.headers["content-disposition"])
    assert match, resp.headers["content-disposition"]
    return match.group("name")


async def setup_course_with_students(client, title: str = "Chemistry"):
    author = await signup(client, unique_email("author"), role="instructor", name="Iris Instructor")
    course, lessons = await create_published_course(client, author, title, lessons=2)
    finisher = await signup(client, unique_email("finisher"), name="Fay Finisher")
    idle = await signup(client, unique_email("idle"), name="Ian Idle")
    for token in (finisher, idle):
        await enroll(client, token, course["id"])
    for lesson in lessons:
        await complete_lesson(client, finisher, lesson["id"])
    return author, course, finisher, idle


# ---------------------------------------------------------------------------
# 1. Formatting helpers
# ---------------------------------------------------------------------------

def test_to_csv_quotes_commas_and_quotes():
    text = to_csv(["title", "count"], [['Cells, "Atoms" & more', 3], [None, 0]])
    assert text == 'title,count\r\n"Cells, ""Atoms"" & more",3\r\n,0\r\n'


def test_export_filename_and_dates():
    assert export_filename("course_analytics", "csv", today=date(2026, 3, 9)) == "course_analytics_2026-03-09.csv"
    assert format_date(None, missing="Never") == "Never"
    assert format_date(date(2026, 1, 2)) == "2026-01-02"


# ---------------------------------------------------------------------------
# 2. Instructor: course analytics
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_course_analytics_csv(client):
    author, _, _, _ = await setup_course_with_students(client, title="Chemistry, Advanced")

    resp = await client.get(
        f"{API}/instructor/export/course-analytics", params={"format": "csv"}, headers=auth(author)
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert re.fullmatch(r"course_analytics_\d{4}-\d{2}-\d{2}\.csv", filename(resp))
    assert '"Chemistry, Advanced"' in resp.text

    rows = parse_csv(resp)
    assert rows[0] == ["courseTitle", "enrollmentCount", "completionRate", "createdAt", "status"]
    assert rows[1][:3] == ["Chemistry, Advanced", "2", "50%"]
    assert rows[1][4] == "PUBLISHED"


@pytest.mark.asyncio
async def test_enrollment_trends_csv(client):
    author, _, _, _ = await setup_course_with_students(client)

    resp = await client.get(
        f"{API}/instructor/export/course-analytics",
        params={"format": "csv", "type": "enrollment-trends"},
        headers=auth(author),
    )
    assert resp.status_code == 200
    assert filename(resp).startswith("enrollment_trends_")

    rows = parse_csv(resp)
    assert rows[0] == ["date", "enrollments", "completions"]
    assert len(rows) == 31
    assert rows[-1][1:] == ["2", "2"]


@pytest.mark.asyncio
async def test_enrollment_trends_pdf_rejected(client):
    author = await signup(client, unique_email("author"), role="instructor")
    resp = await client.get(
        f"{API}/instructor/export/course-analytics",
        params={"format": "pdf", "type": "enrollment-trends"},
        headers=auth(author),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_FORMAT"


@pytest.mark.asyncio
async def test_invalid_format_and_type_rejected(client):
    author = await signup(client, unique_email("author"), role="instructor")

    resp = await client.get(
        f"{API}/instructor/export/course-analytics", params={"format": "xlsx"}, headers=auth(author)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_FORMAT"

    resp = await client.get(
        f"{API}/instructor/export/course-analytics",
        params={"format": "csv", "type": "revenue"},
        headers=auth(author),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_EXPORT_TYPE"


@pytest.mark.asyncio
async def test_course_analytics_pdf(client, rendered_pdfs):
    author, _, _, _ = await setup_course_with_students(client)

    resp = await client.get(
        f"{API}/instructor/export/course-analytics", params={"format": "pdf"}, headers=auth(author)
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert re.fullmatch(r"course_analytics_\d{4}-\d{2}-\d{2}\.pdf", filename(resp))

    assert len(rendered_pdfs) == 1
    assert "Chemistry" in rendered_pdfs[0]
    assert "Iris Instructor" in rendered_pdfs[0]


# ---------------------------------------------------------------------------
# 3. Instructor: student progress
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_student_progress_csv(client):
    author, _, _, _ = await setup_course_with_students(client)

    resp = await client.get(
        f"{API}/instructor/export/student-progress", params={"format": "csv"}, headers=auth(author)
    )
    assert resp.status_code == 200
    assert re.fullmatch(r"student_progress_\d{4}-\d{2}-\d{2}\.csv", filename(resp))

    rows = parse_csv(resp)
    assert rows[0] == [
        "studentName",
        "studentEmail",
        "enrolledCourses",
        "completedLessons",
        "totalLessons",
        "completionRate",
        "lastActivity",
        "enrolledAt",
        "status",
    ]
    by_name = {row[0]: row for row in rows[1:]}
    assert by_name["Fay Finisher"][5] == "100%"
    assert by_name["Fay Finisher"][8] == "completed"
    assert by_name["Ian Idle"][5] == "0%"
    assert by_name["Ian Idle"][6] == "Never"
    assert by_name["Ian Idle"][8] == "inactive"


@pytest.mark.asyncio
async def test_student_progress_pdf_requires_student_id(client):
    author = await signup(client, unique_email("author"), role="instructor")
    resp = await client.get(
        f"{API}/instructor/export/student-progress", params={"format": "pdf"}, headers=auth(author)
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "STUDENT_ID_REQUIRED"


@pytest.mark.asyncio
async def test_student_progress_unknown_student(client):
    author, _, _, _ = await setup_course_with_students(client)
    resp = await client.get(
        f"{API}/instructor/export/student-progress",
        params={"format": "pdf", "studentId": "00000000-0000-0000-0000-000000000000"},
        headers=auth(author),
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "STUDENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_student_progress_pdf_for_one_student(client, rendered_pdfs):
    author, _, finisher, _ = await setup_course_with_students(client)
    student_id = (await client.get(f"{API}/auth/me", headers=auth(finisher))).json()["data"]["id"]

    resp = await client.get(
        f"{API}/instructor/export/student-progress",
        params={"format": "pdf", "studentId": student_id},
        headers=auth(author),
    )
    assert resp.status_code == 200
    assert re.fullmatch(r"student_progress_Fay_Finisher_\d{4}-\d{2}-\d{2}\.pdf", filename(resp))
    assert "Fay Finisher" in rendered_pdfs[0]
    assert "Ian Idle" not in rendered_pdfs[0]


@pytest.mark.asyncio
async def test_student_progress_pdf_non_ascii_name(client, rendered_pdfs):
    author, course, _, _ = await setup_course_with_students(client)
    student = await signup(client, unique_email("lilei"), name="李 雷")
    await enroll(client, student, course["id"])
    student_id = (await client.get(f"{API}/auth/me", headers=auth(student))).json()["data"]["id"]

    resp = await client.get(
        f"{API}/instructor/export/student-progress",
        params={"format": "pdf", "studentId": student_id},
        headers=auth(author),
    )
    assert resp.status_code == 200
    match = FILENAME.match(resp.headers["content-disposition"])
    assert match, resp.headers["content-disposition"]
    assert re.fullmatch(r"student_progress_\d{4}-\d{2}-\d{2}\.pdf", match.group("name"))
    assert re.fullmatch(r"student_progress_李_雷_\d{4}-\d{2}-\d{2}\.pdf", unquote(match.group("encoded")))
    assert "李 雷" in rendered_pdfs[0]


def test_content_disposition_escapes_quotes_and_accents():
    export = ExportFile(content=b"", media_type="application/pdf", filename='student_progress_Zoë_"Z"_2026-01-02.pdf')
    assert export.content_disposition == (
        'attachment; filename="student_progress_Zoe_Z_2026-01-02.pdf"; '
        "filename*=UTF-8''student_progress_Zo%C3%AB_%22Z%22_2026-01-02.pdf"
    )


# ---------------------------------------------------------------------------
# 4. Student: progress report
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_progress_report_csv(client):
    _, _, _, idle = await setup_course_with_students(client)

    resp = await client.get(
        f"{API}/student/export/progress-report", params={"format": "csv"}, headers=auth(idle)
    )
    assert resp.status_code == 200
    assert re.fullmatch(r"my_progress_report_\d{4}-\d{2}-\d{2}\.csv", filename(resp))
    assert parse_csv(resp) == [
        ["courseName", "progress", "completedLessons", "totalLessons", "status", "lastAccessed"],
        ["Chemistry", "0%", "0", "2", "active", "Never"],
    ]


@pytest.mark.asyncio
async def test_progress_report_pdf(client, rendered_pdfs):
    _, _, finisher, _ = await setup_course_with_students(client)

    resp = await client.get(
        f"{API}/student/export/progress-report", params={"format": "pdf"}, headers=auth(finisher)
    )
    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")
    assert re.fullmatch(r"my_progress_report_\d{4}-\d{2}-\d{2}\.pdf", filename(resp))
    assert "Chemistry" in rendered_pdfs[0]
    assert "100%" in rendered_pdfs[0]


@pytest.mark.asyncio
async def test_exports_are_role_gated(client):
    student = await signup(client, unique_email("student"))
    resp = await client.get(f"{API}/instructor/export/student-progress", headers=auth(student))
    assert resp.status_code == 403

    author = await signup(client, unique_email("author"), role="instructor")
    resp = await client.get(f"{API}/student/export/progress-report", headers=auth(author))
    assert resp.status_code == 403
