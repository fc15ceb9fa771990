"""Shared test fixtures.

Integration tests run against an in-memory SQLite database (aiosqlite) built
from the ORM metadata, one fresh database per test.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from popote.auth.jwt import reset_keys
from popote.config import get_settings
from popote.database import get_session
from popote.db.base import Base
from popote.db.models import Mission, StreakRecord, TutorialCompletion, User
from popote.progression.seed import seed_catalog


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    """Session over a database holding the default catalog."""
    await seed_catalog(db_session)
    return db_session


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating committed users."""
    counter = 0

    async def _make(**fields: object) -> User:
        nonlocal counter
        counter += 1
        fields.setdefault("email", f"chef{counter}@popote.test")
        fields.setdefault("display_name", f"Chef {counter}")
        user = User(**fields)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def user(seeded_db: AsyncSession, make_user: Callable[..., Awaitable[User]]) -> User:
    """A fresh user on a seeded catalog."""
    return await make_user()


@pytest_asyncio.fixture
async def complete_missions(db_session: AsyncSession) -> Callable[[int, int], Awaitable[None]]:
    """Add ``n`` completed missions for a user, as the mission workflow would."""

    async def _complete(user_id: int, n: int = 1) -> None:
        now = datetime.now(timezone.utc)
        for _ in range(n):
            db_session.add(Mission(user_id=user_id, status="completed", completed_at=now))
        await db_session.commit()

    return _complete


@pytest_asyncio.fixture
async def complete_tutorials(db_session: AsyncSession) -> Callable[..., Awaitable[None]]:
    """Record tutorial completions ``start`` .. ``start + n - 1`` for a user."""

    async def _complete(user_id: int, n: int = 1, start: int = 1) -> None:
        for tutorial_id in range(start, start + n):
            db_session.add(TutorialCompletion(user_id=user_id, tutorial_id=tutorial_id))
        await db_session.commit()

    return _complete


@pytest_asyncio.fixture
async def set_streak(db_session: AsyncSession) -> Callable[..., Awaitable[StreakRecord]]:
    """Insert a streak row in a given state."""

    async def _set(user_id: int, current: int, longest: int, last_activity_date) -> StreakRecord:
        record = StreakRecord(
            user_id=user_id,
            current_streak=current,
            longest_streak=longest,
            last_activity_date=last_activity_date,
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _set


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Redis stand-in recording pub/sub publishes."""
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def issue_token(tmp_path, monkeypatch) -> Callable[..., str]:
    """Point verification at a fresh RSA public key and sign tokens with its private half."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    public_path = tmp_path / "jwt_public.pem"
    public_path.write_bytes(
        private_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)
    )
    monkeypatch.setenv("POPOTE_JWT_PUBLIC_KEY_PATH", str(public_path))
    get_settings.cache_clear()
    reset_keys()

    def _issue(
        user_id: int,
        *,
        token_type: str = "access",
        issuer: str = "popote.app",
        expires_in: timedelta = timedelta(hours=1),
        signing_key: object = private_key,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {"sub": str(user_id), "type": token_type, "iss": issuer, "iat": now, "exp": now + expires_in}
        return jwt.encode(payload, signing_key, algorithm="RS256")

    yield _issue

    get_settings.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def api_client(
    session_factory: async_sessionmaker[AsyncSession],
    seeded_db: AsyncSession,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client on the app, each request getting its own session on the test database."""
    from popote.main import create_app

    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
