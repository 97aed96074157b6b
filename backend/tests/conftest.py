"""
Pytest configuration and shared fixtures.

Provides an in-memory SQLite database, a stub email provider built on
httpx.MockTransport, and an async client for the FastAPI app.
"""
import json
import os

import httpx
import pytest
import pytest_asyncio

# Set test configuration before any imports that might use settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BASE_URL", "http://127.0.0.1:8000")
os.environ.setdefault("EMAIL_BASE_URL", "https://email.test")
os.environ.setdefault("EMAIL_SENDER", "newsletter@ourdomain.io")
os.environ.setdefault("EMAIL_AUTHORIZATION_TOKEN", "test-server-token")

from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from email_service import EmailClient, get_email_client
import db_models  # noqa: F401  (registers tables on Base)


# =============================================================================
# Test Database Setup
# =============================================================================

# One shared in-memory connection so every session sees the same data
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override the database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create tables before each test and drop after."""
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    """Get a test database session."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


# =============================================================================
# Email Provider Stub
# =============================================================================

class EmailServerStub:
    """Records outbound email requests and answers with a fixed status."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.error = None
        # Consumed one per request before falling back to status_code
        self.queued_status_codes = []
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.queued_status_codes:
            return httpx.Response(self.queued_status_codes.pop(0))
        return httpx.Response(self.status_code)

    def json_bodies(self) -> list:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def email_server():
    """A stub email provider that accepts everything by default."""
    return EmailServerStub()


@pytest_asyncio.fixture
async def email_client(email_server):
    """EmailClient wired to the stub provider."""
    client = EmailClient(
        base_url="https://email.test",
        sender="newsletter@ourdomain.io",
        authorization_token="test-server-token",
        timeout=10.0,
        transport=httpx.MockTransport(email_server.handler),
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def client(email_client):
    """Create an async test client with database and email overrides."""
    from main import app

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_client] = lambda: email_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
