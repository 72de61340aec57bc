"""
Shared request helpers for the API tests.

Each helper asserts on the status code it expects so failures point at the
setup step rather than at the assertion under test.
"""

import uuid

import httpx

API = "/api/v1"
PASSWORD = "password123"


def unique_email(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


def unique_slug(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def signup(
    client: httpx.AsyncClient,
    email: str,
    role: str = "student",
    name: str = "Test User",
    password: str = PASSWORD,
) -> str:
    """Create an account and return its session token.

    The cookie jar is cleared so later requests authenticate only via the
    Bearer header of whichever user the test picks.
    """
    resp = await client.post(f"{API}/auth/signup", json={
        "name": name,
        "email": email,
        "password": password,
        "role": role,
    })
    assert resp.status_code == 201, f"Signup failed: {resp.text}"
    token = resp.cookies["auth_session"]
    client.cookies.clear()
    return token


async def create_org(client: httpx.AsyncClient, token: str, name: str, slug: str, **extra) -> dict:
    resp = await client.post(
        f"{API}/organizations",
        json={"name": name, "slug": slug, **extra},
        headers=auth(token),
    )
    assert resp.status_code == 201, f"Create org failed: {resp.text}"
    return resp.json()["data"]


async def invite(
    client: httpx.AsyncClient,
    token: str,
    org_id: str,
    email: str,
    role: str = "member",
    **extra,
) -> dict:
    resp = await client.post(
        f"{API}/organizations/{org_id}/invitations",
        json={"email": email, "role": role, **extra},
        headers=auth(token),
    )
    assert resp.status_code == 201, f"Invite failed: {resp.text}"
    return resp.json()["data"]


async def accept(
    client: httpx.AsyncClient, token: str, name: str = "Invited User", password: str = "p@ssw0rd1"
) -> httpx.Response:
    resp = await client.post(
        f"{API}/invitations/{token}/accept",
        json={"name": name, "password": password},
    )
    client.cookies.clear()
    return resp


async def create_course(client: httpx.AsyncClient, token: str, title: str = "Intro to Python") -> dict:
    resp = await client.post(f"{API}/courses", json={"title": title}, headers=auth(token))
    assert resp.status_code == 201, f"Create course failed: {resp.text}"
    return resp.json()["data"]


async def add_module(client: httpx.AsyncClient, token: str, course_id: str, title: str = "Basics") -> dict:
    resp = await client.post(
        f"{API}/courses/{course_id}/modules", json={"title": title}, headers=auth(token)
    )
    assert resp.status_code == 201, f"Add module failed: {resp.text}"
    return resp.json()["data"]


async def add_lesson(
    client: httpx.AsyncClient, token: str, course_id: str, module_id: str, title: str = "Lesson"
) -> dict:
    resp = await client.post(
        f"{API}/courses/{course_id}/modules/{module_id}/lessons",
        json={"title": title},
        headers=auth(token),
    )
    assert resp.status_code == 201, f"Add lesson failed: {resp.text}"
    return resp.json()["data"]


async def publish(client: httpx.AsyncClient, token: str, course_id: str) -> None:
    resp = await client.patch(
        f"{API}/courses/{course_id}/status", json={"status": "PUBLISHED"}, headers=auth(token)
    )
    assert resp.status_code == 200, f"Publish failed: {resp.text}"


async def create_published_course(
    client: httpx.AsyncClient, token: str, title: str = "Intro to Python", lessons: int = 2
) -> tuple[dict, list[dict]]:
    """Course with one module holding `lessons` lessons, already published."""
    course = await create_course(client, token, title)
    module = await add_module(client, token, course["id"])
    created = [
        await add_lesson(client, token, course["id"], module["id"], f"Lesson {i + 1}")
        for i in range(lessons)
    ]
    await publish(client, token, course["id"])
    return course, created


async def enroll(client: httpx.AsyncClient, token: str, course_id: str) -> httpx.Response:
    return await client.post(f"{API}/courses/{course_id}/enroll", headers=auth(token))


async def complete_lesson(
    client: httpx.AsyncClient, token: str, lesson_id: str, completed: bool = True
) -> dict:
    resp = await client.put(
        f"{API}/courses/lessons/{lesson_id}/progress",
        json={"completed": completed},
        headers=auth(token),
    )
    assert resp.status_code == 200, f"Progress update failed: {resp.text}"
    return resp.json()["data"]
