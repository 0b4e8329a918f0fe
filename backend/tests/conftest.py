"""Shared test fixtures for the SurveyHub backend.

Provides:
- Async test database (session-scoped engine; tables emptied after each test).
  Defaults to a throwaway SQLite file through aiosqlite; point
  ``TEST_DATABASE_URL`` at a PostgreSQL database to run against asyncpg.
- FastAPI test client with ``get_db`` overridden to the test session
- Factory helpers for roles, users, categories and surveys

Factories commit, because the code under test commits and rolls back its own
units of work. A rollback expires every instance in the session, so tests
capture ids and auth headers up front instead of reading them off ORM objects
after a failed request.
"""

from __future__ import annotations

import os
import tempfile
import uuid

_TMP_DIR = tempfile.mkdtemp(prefix="surveyhub-tests-")

# Set test environment BEFORE any app imports so Settings() picks them up.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-only")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/app.db")

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from surveyhub.core.roles import ADMIN, DEFAULT_ROLES, USER
from surveyhub.core.security import create_access_token, hash_password
from surveyhub.models.base import Base

# ---------------------------------------------------------------------------
# Database engine
# ---------------------------------------------------------------------------


def _test_db_url() -> str:
    return os.getenv("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db")


@pytest.fixture(scope="session")
def test_engine():
    """Create the test engine and all tables. Drops tables at teardown.

    A *sync* fixture so the engine is not bound to one event loop; NullPool
    opens a fresh connection on whichever loop the test runs in.
    """
    engine = create_async_engine(_test_db_url(), echo=False, poolclass=NullPool)

    async def _setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    async def _teardown():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    try:
        asyncio.run(_setup())
    except Exception as exc:
        asyncio.run(engine.dispose())
        pytest.skip(f"Test database not available ({exc})")

    yield engine

    asyncio.run(_teardown())


@pytest.fixture
async def db(test_engine):
    """A session for one test; every table is emptied afterwards."""
    session = AsyncSession(bind=test_engine, expire_on_commit=False)

    yield session

    await session.close()
    async with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())


# ---------------------------------------------------------------------------
# FastAPI test app + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def app(db):
    """Minimal FastAPI test app with ``get_db`` overridden to use the test session."""
    from fastapi import FastAPI

    from surveyhub.api.v1.router import api_router
    from surveyhub.config import settings
    from surveyhub.core.errors import register_exception_handlers
    from surveyhub.core.rate_limit import limiter
    from surveyhub.database import get_db

    test_app = FastAPI()
    test_app.state.limiter = limiter
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    async def _override_get_db():
        yield db

    test_app.dependency_overrides[get_db] = _override_get_db
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """HTTP test client for the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting during tests to avoid 429 responses."""
    from surveyhub.core.rate_limit import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


async def create_role(db, *, key=USER, label=None):
    """Return the role with ``key``, inserting it if missing."""
    from sqlalchemy import select

    from surveyhub.models.role import Role

    result = await db.execute(select(Role).where(Role.key == key))
    role = result.scalar_one_or_none()
    if role is None:
        role = Role(key=key, label=label or DEFAULT_ROLES.get(key, key.title()))
        db.add(role)
        await db.commit()
    return role


async def create_user(
    db,
    *,
    email=None,
    roles=(USER,),
    password="TestPassword1",
    display_name="Test User",
    is_active=True,
):
    """Insert a user holding ``roles`` into the test database."""
    from surveyhub.models.role import UserRole
    from surveyhub.models.user import User

    role_rows = [await create_role(db, key=k) for k in roles]
    user = User(
        email=email or f"test-{uuid.uuid4().hex[:8]}@example.com",
        display_name=display_name,
        password_hash=hash_password(password),
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    for role in role_rows:
        db.add(UserRole(user_id=user.id, role_id=role.id))
    await db.commit()
    return user


async def create_category(db, *, name="Health", description=None, status="active"):
    from surveyhub.models.category import Category

    category = Category(name=name, description=description, status=status)
    db.add(category)
    await db.commit()
    return category


async def create_survey(
    db,
    *,
    creator,
    title="Survey",
    questions=("Q1", "Q2"),
    status="draft",
):
    """Insert a survey with questions directly, bypassing the service."""
    from surveyhub.models.survey import Question, Survey

    survey = Survey(title=title, status=status, created_by=creator.id)
    db.add(survey)
    await db.flush()
    question_rows = [
        Question(survey_id=survey.id, question=text, position=i)
        for i, text in enumerate(questions)
    ]
    db.add_all(question_rows)
    await db.commit()
    return survey, question_rows


async def assign_user(db, *, user, survey, status="initial"):
    from surveyhub.models.survey import UserSurvey

    user_survey = UserSurvey(user_id=user.id, survey_id=survey.id, status=status)
    db.add(user_survey)
    await db.commit()
    return user_survey


def auth_headers(user) -> dict[str, str]:
    """Generate Bearer token headers for a test user."""
    token = create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Convenience fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def admin_user(db):
    return await create_user(
        db, email="admin@test.com", roles=(ADMIN, USER), display_name="Admin"
    )


@pytest.fixture
async def member_user(db):
    return await create_user(db, email="member@test.com", roles=(USER,), display_name="Member")
