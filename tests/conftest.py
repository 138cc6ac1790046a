"""Pytest fixtures for testing."""

import os

# Settings are read at import time; the signing secret has no default
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-portfolio-ledger-tests")
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from main import app  # noqa: E402
from portfolio_ledger.core.deps import get_quote_provider  # noqa: E402
from portfolio_ledger.core.rate_limit import limiter  # noqa: E402
from portfolio_ledger.core.security import create_access_token, get_password_hash  # noqa: E402
from portfolio_ledger.db.base import Base  # noqa: E402
from portfolio_ledger.db.session import get_db  # noqa: E402
from portfolio_ledger.models.user import User  # noqa: E402
from tests.fakes import FakeQuoteProvider  # noqa: E402

# Test database URL (SQLite in-memory for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Rate limits are switched on only by the tests that exercise them."""
    limiter.enabled = False
    yield
    limiter.enabled = False
    limiter.reset()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(test_engine) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture(scope="function")
def quote_provider() -> FakeQuoteProvider:
    """Quote provider with prices for AAPL and MSFT only."""
    return FakeQuoteProvider({"AAPL": "110", "MSFT": "190"})


@pytest_asyncio.fixture(scope="function")
async def client(
    test_db: AsyncSession, quote_provider: FakeQuoteProvider
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database and quote provider overrides."""

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_quote_provider] = lambda: quote_provider

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def _create_user(
    db: AsyncSession, email: str, username: str, password: str, *, is_active: bool = True
) -> User:
    user = User(
        email=email,
        username=username,
        hashed_password=get_password_hash(password),
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(test_db: AsyncSession) -> User:
    """Create a test user."""
    return await _create_user(test_db, "test@example.com", "testuser", "TestPass123")


@pytest_asyncio.fixture(scope="function")
async def other_user(test_db: AsyncSession) -> User:
    """Create a second user whose ledger must stay isolated."""
    return await _create_user(test_db, "other@example.com", "otheruser", "OtherPass123")


@pytest_asyncio.fixture(scope="function")
async def test_inactive_user(test_db: AsyncSession) -> User:
    """Create an inactive test user."""
    return await _create_user(
        test_db, "inactive@example.com", "inactiveuser", "InactivePass123", is_active=False
    )


@pytest.fixture(scope="function")
def owner_id(test_user: User) -> int:
    """Id of the test user, read before a rollback can expire the instance."""
    return test_user.id


@pytest.fixture(scope="function")
def other_owner_id(other_user: User) -> int:
    """Id of the second user."""
    return other_user.id


@pytest.fixture(scope="function")
def user_token(owner_id: int) -> str:
    """Generate a valid access token for test user."""
    return create_access_token(owner_id)


@pytest.fixture(scope="function")
def auth_headers(user_token: str) -> dict[str, str]:
    """Generate authorization headers with user token."""
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture(scope="function")
def other_auth_headers(other_owner_id: int) -> dict[str, str]:
    """Authorization headers for the second user."""
    return {"Authorization": f"Bearer {create_access_token(other_owner_id)}"}


@pytest.fixture(scope="function")
def inactive_user_auth_headers(test_inactive_user: User) -> dict[str, str]:
    """Generate authorization headers with inactive user token."""
    return {"Authorization": f"Bearer {create_access_token(test_inactive_user.id)}"}
