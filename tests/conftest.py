"""Global pytest fixtures for the Even reviews service.

This module provides shared fixtures for testing including:
- Mock async sessions and collaborator lookups for unit tests
- An in-memory SQLite database for repository and end-to-end service tests
"""

import os

# even.auth refuses to import without a signing secret.
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret")

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from even.collaborators import UserRecord
from even.database import build_engine, build_session_factory
from even.models import Base


# ===========================================
# UNIT TEST FIXTURES
# ===========================================


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async database session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def users() -> dict[str, UserRecord]:
    """Users known to the mocked identity directory, keyed by uid."""
    return {
        "alice": UserRecord(uid="alice", phone="+15550001111"),
        "bob": UserRecord(uid="bob", phone=None),
        "carol": UserRecord(uid="carol", phone="+15550002222"),
    }


@pytest.fixture
def identity(users: dict[str, UserRecord]) -> AsyncMock:
    """Mock IdentityDirectory backed by the ``users`` fixture."""
    directory = AsyncMock()
    directory.get_user_by_uid = AsyncMock(side_effect=lambda uid: users.get(uid))
    return directory


@pytest.fixture
def chat() -> AsyncMock:
    """Mock ChatHistory returning no messages unless a test sets them."""
    history = AsyncMock()
    history.get_messages_between_users = AsyncMock(return_value=[])
    return history


# ===========================================
# SQLITE FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def sqlite_engine():
    """In-memory SQLite engine with the full schema created."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db(sqlite_engine) -> AsyncGenerator[AsyncSession, None]:
    """A real AsyncSession bound to the in-memory database."""
    async with build_session_factory(sqlite_engine)() as session:
        yield session
