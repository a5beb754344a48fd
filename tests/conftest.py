"""
Test fixtures for the United Bank API test suite.

Shared fixtures:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - session_factory: Short-lived sessions for arranging data directly
  - client: Async HTTP test client (unauthenticated)
  - make_client: Builds further independent clients against the same app
  - member_client: A MEMBER with no privileges
  - privileged_client: A MEMBER allowed to deposit and request reversals
  - second_member_client: Another MEMBER, the usual transfer recipient
  - admin_client / super_admin_client: Back-office users whose IP is on
    the allowlist and who have not enabled 2FA

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) gives every test a fresh
    database.
  - FastAPI's get_db dependency is overridden with the same
    commit-or-rollback behaviour as production.
  - Users are created through the real signup endpoint; roles and
    privileges are provisioned directly in the database, the way an
    operator would.
  - The public IP lookup is patched for every test, so nothing leaves
    the machine. Admin requests appear to come from ADMIN_TEST_IP.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("TOTP_ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from unitedbank.database import Base, get_db
from unitedbank.main import app
from unitedbank.models.user import UserType

from helpers import ADMIN_TEST_IP, allow_ip, grant_privileges, set_role, signup


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def public_ip_lookup():
    """Every request looks like it comes from ADMIN_TEST_IP unless a test says otherwise."""
    with patch(
        "unitedbank.services.ip_allowlist_service.lookup_public_ip",
        AsyncMock(return_value=ADMIN_TEST_IP),
    ) as mock:
        yield mock


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_client(session_factory):
    """
    Factory for HTTP test clients with the test database injected.

    Each call returns a new client with its own headers, so several users
    can act in one test.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    clients = []

    async def _make():
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(make_client):
    return await make_client()


# ---------------------------------------------------------------------------
# User fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def member_client(make_client):
    ac = await make_client()
    await signup(ac, "testuser@example.com", "Test User")
    return ac


@pytest_asyncio.fixture
async def privileged_client(make_client, session_factory):
    """A member allowed to deposit and reverse payments."""
    await grant_privileges(
        session_factory,
        "rich@example.com",
        can_deposit=True,
        can_request_reversal=True,
    )
    ac = await make_client()
    await signup(ac, "rich@example.com", "Rich Member")
    return ac


@pytest_asyncio.fixture
async def second_member_client(make_client):
    ac = await make_client()
    await signup(ac, "seconduser@example.com", "Second User")
    return ac


@pytest_asyncio.fixture
async def admin_client(make_client, session_factory):
    """
    An ADMIN whose requests come from an allowlisted IP.

    Signs up as a member, then gets promoted directly in the database.
    """
    ac = await make_client()
    data = await signup(ac, "admin@example.com", "Admin User")
    await set_role(session_factory, data["user_id"], UserType.ADMIN)
    await allow_ip(session_factory, "203.0.113.0/24")
    return ac


@pytest_asyncio.fixture
async def super_admin_client(make_client, session_factory):
    ac = await make_client()
    data = await signup(ac, "root@example.com", "Super Admin")
    await set_role(session_factory, data["user_id"], UserType.SUPER_ADMIN)
    await allow_ip(session_factory, ADMIN_TEST_IP)
    return ac
