"""
Pytest configuration for MindFlow backend tests.

The app runs in-process against an in-memory SQLite database and fakeredis.
Outgoing email and PDF conversion are replaced with recorders.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("RESEND_API_KEY", "")

import httpx
import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mindflow.main import create_app
from mindflow.models import Base


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def redis():
    client = fake_aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def client(session_factory, redis):
    """HTTP client bound to the app. The lifespan does not run, so state is set here."""
    app = create_app()
    app.state.session_factory = session_factory
    app.state.redis = redis
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture invitation emails instead of calling the provider."""
    sent: list[dict] = []

    async def fake_send_invitation_email(**kwargs) -> str:
        sent.append(kwargs)
        return f"msg-{len(sent)}"

    monkeypatch.setattr(
        "mindflow.services.invitation_service.send_invitation_email",
        fake_send_invitation_email,
    )
    return sent


@pytest.fixture
def rendered_pdfs(monkeypatch):
    """Capture the HTML handed to the PDF converter and return stub bytes."""
    rendered: list[str] = []

    def fake_html_to_pdf(html: str) -> bytes:
        rendered.append(html)
        return b"%PDF-1.7\n% stub\n"

    monkeypatch.setattr("mindflow.services.export_service._html_to_pdf", fake_html_to_pdf)
    return rendered
