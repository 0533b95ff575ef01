import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dashboard.core import auth as auth_module
from dashboard.core.config import settings
from dashboard.models.base import Base
from dashboard.models.user import User

# Test user IDs (consistent across tests for predictable auth)
TEST_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
ADMIN_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")

TEST_EMAIL = "test@example.com"
TEST_PASSWORD = "ValidP@ss1"  # nosec B105  # gitleaks:allow

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

_BCRYPT_ROUNDS = 4  # Low cost factor for fast tests


def create_test_jwt(
    user_id: uuid.UUID = TEST_USER_ID,
    *,
    role: str = "user",
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed session JWT for test authentication.

    Args:
        user_id: User UUID to encode in the sub claim.
        role: Role claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "role": role,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def hash_test_password(password: str = TEST_PASSWORD) -> str:
    """bcrypt hash with a low cost factor."""
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    ).decode()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a throwaway SQLite database for one test.

    A file (not :memory:) so that several sessions can hold separate
    connections, which the concurrency tests need.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def unverified_user(db_session: AsyncSession) -> User:
    """A freshly registered user: no password, not verified."""
    user = User(
        id=TEST_USER_ID,
        email=TEST_EMAIL,
        first_name="Ada",
        last_name="Lovelace",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def verified_user(db_session: AsyncSession) -> User:
    """A user who completed password setup."""
    user = User(
        id=TEST_USER_ID,
        email=TEST_EMAIL,
        first_name="Ada",
        last_name="Lovelace",
        password_hash=hash_test_password(),
        is_verified=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """A verified admin."""
    user = User(
        id=ADMIN_USER_ID,
        email="admin@example.com",
        first_name="Grace",
        last_name="Hopper",
        password_hash=hash_test_password(),
        is_verified=True,
        role="admin",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client without a session cookie.

    Sets up:
    - Test database connection via dependency override
    - httpx.AsyncClient with ASGI transport
    """
    from dashboard.core.database import get_db
    from dashboard.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_client(
    session_factory,
    verified_user,  # noqa: ARG001 - ensures user exists
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client carrying a session cookie for TEST_USER_ID."""
    from dashboard.core.database import get_db
    from dashboard.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies={settings.auth_cookie_name: create_test_jwt(TEST_USER_ID)},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def test_auth_settings() -> Iterator[None]:
    """Sign sessions with the test secret and allow cookies over http://test.

    Yields:
        None (autouse fixture).
    """
    original_secret = settings.auth_secret
    original_secure = settings.auth_cookie_secure
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.auth_cookie_secure = False

    yield

    settings.auth_secret = original_secret
    settings.auth_cookie_secure = original_secure


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hash with a low cost factor; the production value is asserted separately."""
    monkeypatch.setattr(auth_module, "BCRYPT_ROUNDS", _BCRYPT_ROUNDS)


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from dashboard.core.rate_limiting import get_rate_limit_service, limiter

    service = get_rate_limit_service()

    # Store original state and disable
    original_enabled = limiter.enabled
    original_service_enabled = service.enabled
    limiter.enabled = False
    service.enabled = False

    yield

    # Restore original state
    limiter.enabled = original_enabled
    service.enabled = original_service_enabled
    service.reset()
