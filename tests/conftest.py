"""Shared test fixtures for async database, sessions, users and tokens."""

import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lead_intake.core.config import Settings
from lead_intake.core.database import enable_sqlite_foreign_keys
from lead_intake.core.dependencies import reset_write_limiters
from lead_intake.core.security import create_access_token
from lead_intake.models.base import Base
from lead_intake.models.user import User


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        session_cookie_secure=False,
    )


@pytest.fixture(autouse=True)
def _reset_write_limiters() -> None:
    """Per-user write limiters are process-wide; start every test empty."""
    reset_write_limiters()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine with foreign keys enforced."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def sample_user(async_session: AsyncSession) -> User:
    """Create a user who will own buyers."""
    user = User(id=uuid.uuid4(), email="agent@test.com", name="Test Agent")
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


@pytest.fixture
async def other_user(async_session: AsyncSession) -> User:
    """Create a second user who owns nothing."""
    user = User(id=uuid.uuid4(), email="other@test.com", name="Other Agent")
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


@pytest.fixture
def valid_payload() -> dict:
    """A typed create payload that passes every rule."""
    return {
        "fullName": "Asha Verma",
        "email": "asha@example.com",
        "phone": "9876543210",
        "city": "Mohali",
        "propertyType": "Apartment",
        "bhk": "2",
        "purpose": "Buy",
        "budgetMin": 5000000,
        "budgetMax": 7000000,
        "timeline": "0-3m",
        "source": "Website",
        "notes": "Prefers east facing",
        "tags": ["hot", "nri"],
    }


@pytest.fixture
def user_token(settings: Settings, sample_user: User) -> str:
    """Generate a session token for the sample user."""
    return create_access_token(
        subject=str(sample_user.id),
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
