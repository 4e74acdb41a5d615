# tests/conftest.py — Shared test fixtures
import os
import uuid
from datetime import timedelta

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
TEST_SECRET = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["AUTH_JWT_SECRET"] = TEST_SECRET
os.environ["ENVIRONMENT"] = "test"

from models import Base, User, UserRole, utcnow
from database import get_db_session, enable_sqlite_foreign_keys
from main import app


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(db_session, email: str, display_name: str, role: UserRole) -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        display_name=display_name,
        role=role,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def owner(db_session):
    """A musician who owns gear"""
    return await _make_user(db_session, "owner@gear.test", "Gear Owner", UserRole.USER)


@pytest_asyncio.fixture
async def other_user(db_session):
    """A second musician, used to check owner scoping"""
    return await _make_user(db_session, "other@gear.test", "Other Musician", UserRole.USER)


@pytest_asyncio.fixture
async def admin_user(db_session):
    return await _make_user(db_session, "admin@gear.test", "Admin User", UserRole.ADMIN)


def make_token(claims: dict, expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {**claims, "exp": utcnow() + expires_in}
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = make_token({
        "sub": user.id,
        "email": user.email,
        "name": user.display_name,
        "role": user.role.value if isinstance(user.role, UserRole) else user.role,
    })
    return {"Authorization": f"Bearer {token}"}
