"""
Pytest configuration and fixtures for testing
"""
import os
import asyncio
import tempfile

# Settings are read at import time, so the environment must be prepared first
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-pytest")
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="aifans-uploads-")
for _key in ("ENV", "REDIS_URL", "ALIPAY_APP_ID", "ALIPAY_PRIVATE_KEY", "ALIPAY_PUBLIC_KEY"):
    os.environ.pop(_key, None)

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from database import Base, get_db
from auth_utils import hash_password, create_jwt
from models.enums import Role, UserStatus
from services import sensitive_words_service

DEFAULT_PASSWORD = "Password123"


@pytest.fixture
def db_engine(tmp_path):
    """
    File-backed SQLite engine per test.

    NullPool opens a fresh connection on every checkout, so the same database
    can be used from pytest-asyncio tests and from TestClient's event loop.
    """
    import database_models  # noqa: F401

    db_path = tmp_path / "test.db"

    # Schema is created with a plain sqlite3 engine so no event loop is needed here
    schema_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(schema_engine)
    schema_engine.dispose()

    return create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """
    Fixture that provides an isolated SQLite session for each test.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@pytest.fixture(autouse=True)
def reset_sensitive_words_cache():
    sensitive_words_service.reset_cache()
    yield
    sensitive_words_service.reset_cache()


@pytest.fixture
def client(session_factory):
    """FastAPI TestClient fixture with test database override"""
    from fastapi.testclient import TestClient
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
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run_db(session_factory):
    """Run a coroutine function against a fresh committed session (for sync tests)"""
    def _run(fn):
        async def _inner():
            async with session_factory() as session:
                result = await fn(session)
                await session.commit()
                return result
        return asyncio.run(_inner())
    return _run


async def insert_user(session, username: str, role: Role = Role.NORMAL, status: UserStatus = UserStatus.ACTIVE, **extra):
    from database_models import User

    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=hash_password(DEFAULT_PASSWORD),
        nickname=username,
        role=role,
        status=status,
        **extra,
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
def create_user(run_db):
    """Create a user and return its id (for sync TestClient tests)"""
    def _create(username: str = "alice", role: Role = Role.NORMAL, status: UserStatus = UserStatus.ACTIVE, **extra):
        async def _insert(session):
            user = await insert_user(session, username, role, status, **extra)
            return user.id
        return run_db(_insert)
    return _create


def auth_headers(user_id: int, role: Role = Role.NORMAL) -> dict:
    return {"Authorization": f"Bearer {create_jwt(str(user_id), role.value)}"}
