"""
Authentication and session tests.

Verifies that:
- Signup creates the account and issues the session cookie
- Duplicate emails and weak passwords are rejected
- Signin checks credentials
- Signout revokes the session server-side
- Missing or tampered sessions are rejected
"""

import pytest
from sqlalchemy import update

from helpers import API, PASSWORD, auth, create_org, signup, unique_email, unique_slug
from mindflow.models import User


# ---------------------------------------------------------------------------
# 1. Signup
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_signup_sets_session_cookie(client):
    resp = await client.post(f"{API}/auth/signup", json={
        "name": "Ada Lovelace",
        "email": "Ada@Example.com",
        "password": PASSWORD,
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["email"] == "ada@example.com"
    assert body["data"]["role"] == "student"

    set_cookie = resp.headers["set-cookie"].lower()
    assert "auth_session=" in set_cookie
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "max-age=604800" in set_cookie


@pytest.mark.asyncio
async def test_signup_duplicate_email_conflict(client):
    email = unique_email("dup")
    await signup(client, email)

    resp = await client.post(f"{API}/auth/signup", json={
        "name": "Someone Else",
        "email": email,
        "password": PASSWORD,
    })
    assert resp.status_code == 409
    assert resp.json() == {"error": "Email is already registered", "code": "EMAIL_TAKEN"}


@pytest.mark.asyncio
async def test_signup_password_needs_a_number(client):
    resp = await client.post(f"{API}/auth/signup", json={
        "name": "No Digits",
        "email": unique_email("weak"),
        "password": "passwordonly",
    })
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_signup_cannot_self_assign_admin(client):
    resp = await client.post(f"{API}/auth/signup", json={
        "name": "Sneaky",
        "email": unique_email("admin"),
        "password": PASSWORD,
        "role": "admin",
    })
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# 2. Signin / Signout
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_signin_wrong_password(client):
    email = unique_email("signin")
    await signup(client, email)

    resp = await client.post(f"{API}/auth/signin", json={"email": email, "password": "wrong123"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_signin_then_cookie_authenticates(client):
    email = unique_email("cookie")
    await signup(client, email, name="Cookie Monster")

    resp = await client.post(f"{API}/auth/signin", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200

    me = await client.get(f"{API}/auth/me")
    assert me.status_code == 200
    assert me.json()["data"]["name"] == "Cookie Monster"


@pytest.mark.asyncio
async def test_signout_revokes_session(client):
    token = await signup(client, unique_email("signout"))

    resp = await client.post(f"{API}/auth/signout", headers=auth(token))
    assert resp.status_code == 200

    resp = await client.get(f"{API}/auth/me", headers=auth(token))
    assert resp.status_code == 401
    assert resp.json()["code"] == "SESSION_REVOKED"


@pytest.mark.asyncio
async def test_signin_disabled_account(client, session_factory):
    email = unique_email("disabled")
    await signup(client, email)
    async with session_factory() as session:
        await session.execute(update(User).where(User.email == email).values(is_active=False))
        await session.commit()

    resp = await client.post(f"{API}/auth/signin", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 403
    assert resp.json()["code"] == "ACCOUNT_DISABLED"


# ---------------------------------------------------------------------------
# 3. Session gate
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_missing_session_rejected(client):
    resp = await client.get(f"{API}/auth/me")
    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_SESSION"


@pytest.mark.asyncio
async def test_tampered_token_rejected(client):
    token = await signup(client, unique_email("tamper"))
    resp = await client.get(f"{API}/auth/me", headers=auth(token[:-4] + "abcd"))
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_SESSION"


@pytest.mark.asyncio
async def test_me_lists_memberships(client):
    token = await signup(client, unique_email("me"), role="instructor")
    slug = unique_slug("me")
    await create_org(client, token, "Me School", slug)

    resp = await client.get(f"{API}/auth/me", headers=auth(token))
    assert resp.status_code == 200
    memberships = resp.json()["data"]["memberships"]
    assert len(memberships) == 1
    assert memberships[0]["organization_slug"] == slug
    assert memberships[0]["role"] == "admin"
    assert memberships[0]["is_owner"] is True
