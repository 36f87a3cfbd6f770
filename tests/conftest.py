"""
tests/conftest.py
Shared fixtures: in-memory SQLite database, HTTP client with the
identity verifier stubbed out, and user/member/admin accounts.

Tokens in tests look like "test-token:<email>"; anything else is rejected.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("APP_ENV", "test")

from datetime import datetime, timezone
from typing import AsyncGenerator, Union

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from shared.middleware.auth import get_identity_verifier
from shared.models.models import User, UserRole
from shared.utils.security import IdentityVerificationError

TOKEN_PREFIX = "test-token:"


def auth_headers(user_or_email: Union[User, str]) -> dict:
    email = user_or_email if isinstance(user_or_email, str) else user_or_email.email
    return {"Authorization": f"Bearer {TOKEN_PREFIX}{email}"}


def fake_verify_id_token(token: str) -> dict:
    if not token.startswith(TOKEN_PREFIX):
        raise IdentityVerificationError("Invalid ID token")
    email = token[len(TOKEN_PREFIX):]
    return {"uid": f"uid-{email}", "email": email or None}


# ── Database ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine():
    import shared.models.models  # noqa: F401

    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── HTTP Client ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_verifier] = lambda: fake_verify_id_token

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Accounts ──────────────────────────────────────────────────

async def _make_user(db: AsyncSession, email: str, name: str, role: UserRole, **extra) -> User:
    user = User(email=email, name=name, role=role, **extra)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def user(db: AsyncSession) -> User:
    return await _make_user(db, "player@example.com", "Pat Player", UserRole.USER)


@pytest_asyncio.fixture
async def other_user(db: AsyncSession) -> User:
    return await _make_user(db, "other@example.com", "Olive Other", UserRole.USER)


@pytest_asyncio.fixture
async def member_user(db: AsyncSession) -> User:
    return await _make_user(
        db,
        "member@example.com",
        "Morgan Member",
        UserRole.MEMBER,
        membership_granted_date=datetime(2024, 1, 15, tzinfo=timezone.utc),
    )


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    return await _make_user(db, "admin@example.com", "Ada Admin", UserRole.ADMIN)
