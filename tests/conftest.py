"""Pytest configuration and shared fixtures for service and API tests."""

import os
import tempfile

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete

# Set test DB before app imports so config/engine use it
_db_dir = tempfile.mkdtemp(prefix="session_authority_")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_db_dir}/test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

from session_authority.core.auth import SecretHasher, TokenSigner
from session_authority.db.base import Base
from session_authority.db.session import async_session_maker, engine, init_db
from session_authority.main import app
from session_authority.models.user import User
from session_authority.services.audit import SqlAuditTrail
from session_authority.services.auth import AuthService
from session_authority.services.stores import SqlAccountDirectory, SqlRefreshTokenStore


async def _clear_all():
    """Delete all rows in reverse dependency order so tests start clean."""
    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(delete(table))


@pytest_asyncio.fixture
async def clean_db():
    """Create tables if needed and empty them so the next test has a clean DB."""
    await init_db()
    await _clear_all()
    yield


@pytest_asyncio.fixture
async def client(clean_db):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def session(clean_db):
    async with async_session_maker() as s:
        yield s
        await s.rollback()


@pytest.fixture
def signer():
    return TokenSigner()


@pytest.fixture
def hasher():
    return SecretHasher()


@pytest.fixture
def service(session, hasher, signer):
    """AuthService over one uncommitted session, wired the way the API wires it."""
    return AuthService(
        accounts=SqlAccountDirectory(session),
        refresh_tokens=SqlRefreshTokenStore(session),
        hasher=hasher,
        signer=signer,
        audit=SqlAuditTrail(session),
    )


@pytest_asyncio.fixture
async def test_user(clean_db, hasher):
    """Create a user via DB (committed) and return (user_id, email, password)."""
    async with async_session_maker() as s:
        user = User(
            email="test@test.com",
            password_hash=await hasher.hash_password("password123"),
        )
        s.add(user)
        await s.commit()
        await s.refresh(user)
        return user.id, user.email, "password123"
