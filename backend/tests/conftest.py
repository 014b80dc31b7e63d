"""
MeMantra Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Service unit tests use `mock_db_session` (no database). HTTP tests
       use `client`, which talks to the FastAPI app over ASGITransport with
       `get_db_session` overridden to an in-memory SQLite database
       (aiosqlite, foreign keys on) rebuilt for every test.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock standing in for AsyncSession
    ├── db_engine → session_factory → client
    ├── make_user:   inserts a user, returns (user, auth headers)
    ├── make_mantra: inserts an active mantra
    └── count_rows:  counts rows of a model matching filters
"""

import os

# Settings are read at import time, so the environment must be in place
# before anything under app/ is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-not-real"
os.environ["ADMIN_EMAILS"] = "admin@memantra.app"
os.environ["LOG_LEVEL"] = "WARNING"

from itertools import count
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db_session
from app.main import app
from app.models.mantra import Mantra
from app.models.user import User
from app.services.auth_service import AuthService

TEST_PASSWORD = "correct-horse-battery"

# Hashing is deliberately slow; every fixture user shares one hash
_PASSWORD_HASH = AuthService.hash_password(TEST_PASSWORD)


# ══════════════════════════════════════════════════════════════════════════
# Service-Level Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession.

    Usage:
        mock_db_session.get.return_value = collection
        await collection_service.get_owned_collection(mock_db_session, 1, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.scalar = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    # StaticPool: one shared connection, so the in-memory database survives
    # across sessions for the life of the test
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient wired to the app, with request sessions drawn from
    the test database.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
    """

    async def _get_test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _get_test_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ══════════════════════════════════════════════════════════════════════════
# Data Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(session_factory):
    """
    Inserts a user and returns (user, headers) where headers carry a valid
    bearer token for that user.
    """
    seq = count(1)

    async def _make_user(username=None, email=None):
        n = next(seq)
        user = User(
            username=username or f"user{n}",
            email=email or f"user{n}@memantra.app",
            password_hash=_PASSWORD_HASH,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        token = AuthService.create_access_token(user.user_id, user.email)
        return user, {"Authorization": f"Bearer {token}"}

    return _make_user


@pytest.fixture
def make_mantra(session_factory):
    seq = count(1)

    async def _make_mantra(title=None, key_takeaway=None, is_active=True):
        n = next(seq)
        mantra = Mantra(
            title=title or f"Mantra {n}",
            key_takeaway=key_takeaway or f"Takeaway {n}",
            is_active=is_active,
        )
        async with session_factory() as session:
            session.add(mantra)
            await session.commit()
        return mantra

    return _make_mantra


@pytest.fixture
def count_rows(session_factory):
    """`await count_rows(CollectionMantra, collection_id=7)` → int"""

    async def _count_rows(model, **filters):
        query = select(func.count()).select_from(model).filter_by(**filters)
        async with session_factory() as session:
            return await session.scalar(query)

    return _count_rows
