"""Pytest configuration and shared fixtures."""

import os

from cryptography.fernet import Fernet

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-mfa-guard-suite")
os.environ.setdefault("MASTER_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from passlib.context import CryptContext  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from mfa_guard.core.database import Base, get_db  # noqa: E402
from mfa_guard.core.security import JWTSessionIssuer, PasswordHasher  # noqa: E402
from mfa_guard.dependencies import get_password_hasher  # noqa: E402
from mfa_guard.main import app  # noqa: E402
from mfa_guard.models.user import User  # noqa: E402
from mfa_guard.services.encryption_service import EncryptionService  # noqa: E402

# In-memory SQLite shared across the session through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "correct-horse-battery-staple"

# Cheap argon2 parameters; production digests still verify against this context
_fast_context = CryptContext(
    schemes=["argon2"],
    argon2__rounds=1,
    argon2__memory_cost=1024,
    argon2__parallelism=1,
)


@pytest.fixture
def hasher() -> PasswordHasher:
    """Password hasher with fast argon2 parameters."""
    return PasswordHasher(_fast_context)


@pytest.fixture
def password() -> str:
    """Plaintext password of users created by ``create_user``."""
    return TEST_PASSWORD


@pytest.fixture
def codec() -> EncryptionService:
    """Secret codec with a throwaway key."""
    return EncryptionService(master_key=Fernet.generate_key().decode(), current_version=1)


@pytest.fixture
def sessions() -> JWTSessionIssuer:
    return JWTSessionIssuer()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def file_engine(tmp_path):
    """File-backed engine, for tests that need two independent connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mfa.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(file_engine) -> async_sessionmaker:
    return async_sessionmaker(
        file_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_user(
    db: AsyncSession,
    hasher: PasswordHasher,
    email: str = "auditor@phoenixgrc.io",
    password: str = TEST_PASSWORD,
    is_active: bool = True,
) -> User:
    user = User(
        id=uuid4(),
        email=email,
        password_hash=hasher.hash(password),
        first_name="Test",
        last_name="User",
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
def make_user(db_session: AsyncSession, hasher: PasswordHasher):
    """Factory for extra users; pass ``db`` to create them through another session."""

    async def _make(db: AsyncSession = None, **kwargs) -> User:
        return await create_user(db or db_session, hasher, **kwargs)

    return _make


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, hasher: PasswordHasher) -> User:
    """Create an active test user without two-factor enrollment."""
    return await create_user(db_session, hasher)


@pytest_asyncio.fixture(scope="function")
async def async_client(db_session: AsyncSession, hasher: PasswordHasher) -> AsyncGenerator[AsyncClient, None]:
    """Async client wired to the test session and the fast hasher."""

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_password_hasher] = lambda: hasher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(test_user: User, sessions: JWTSessionIssuer) -> dict:
    """Bearer headers for ``test_user``."""
    return {"Authorization": f"Bearer {sessions.issue(test_user)}"}
