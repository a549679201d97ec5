import socket
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from corporate_auth.core.config import Settings, settings
from corporate_auth.core.rate_limiting import MagicLinkThrottle
from corporate_auth.core.secrets import SecretProvider, SettingsSecretStore
from corporate_auth.models.base import Base
from corporate_auth.services.password_service import PasswordService
from corporate_auth.services.session_service import SessionService
from corporate_auth.services.token_service import TokenService
from tests.fakes import (
    TEST_BCRYPT_ROUNDS,
    TEST_TENANT_ID,
    FakeCredentialStore,
    RecordingEmailSender,
    make_account,
    make_user,
)

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_JWT_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

ALICE_EMAIL = "alice@acme.co"
BOB_EMAIL = "bob@acme.co"
BOB_PASSWORD = "correctPass1!"  # nosec B105


def create_test_jwt(
    *,
    secret: str = TEST_JWT_SECRET,
    expires_delta: timedelta | None = None,
    **overrides: object,
) -> str:
    """Create a signed corporate session JWT for tests.

    Claims default to Bob's session in the test tenant; pass keyword
    overrides (camelCase claim names) to change any of them.

    Args:
        secret: Signing secret (must match the app's secret to verify).
        expires_delta: Time until expiration. Defaults to 8 hours; pass a
            negative delta for an already-expired token.
        **overrides: Claim values to replace.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload: dict[str, object] = {
        "type": "corporate",
        "tenantId": TEST_TENANT_ID,
        "corpAccountId": "CORP#acme",
        "userId": "USER#bob",
        "email": BOB_EMAIL,
        "role": "admin",
        "userName": "Bob Booker",
        "companyName": "Acme Ltd",
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=8)),
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# Service Fixtures (in-memory store)
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: known secret, cheap bcrypt, links not echoed."""
    return Settings(
        environment="test",
        jwt_secret=SecretStr(TEST_JWT_SECRET),
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        expose_magic_link=False,
        corporate_portal_url="https://portal.test/corporate",
    )


@pytest.fixture
def store() -> FakeCredentialStore:
    """Credential store seeded with the Acme account and two users.

    - alice@acme.co: active, no password yet (onboarding)
    - bob@acme.co: active admin with password ``correctPass1!``
    """
    fake = FakeCredentialStore()
    fake.add_account(make_account())
    fake.add_user(
        make_user(
            ALICE_EMAIL,
            user_id="USER#alice",
            name="Alice Arnold",
        )
    )
    fake.add_user(
        make_user(
            BOB_EMAIL,
            user_id="USER#bob",
            name="Bob Booker",
            role="admin",
            password=BOB_PASSWORD,
        )
    )
    return fake


@pytest.fixture
def secret_provider(test_settings: Settings) -> SecretProvider:
    return SecretProvider(
        SettingsSecretStore(test_settings), test_settings.jwt_secret_name
    )


@pytest.fixture
def throttle(test_settings: Settings) -> MagicLinkThrottle:
    """Fresh in-memory throttle (3 per hour) for each test."""
    return MagicLinkThrottle(test_settings.max_magic_links_per_hour, "memory://")


@pytest.fixture
def session_service(store, secret_provider, test_settings) -> SessionService:
    return SessionService(store, secret_provider, test_settings)


@pytest.fixture
def token_service(store, session_service, throttle, test_settings) -> TokenService:
    return TokenService(store, session_service, throttle, test_settings)


@pytest.fixture
def password_service(
    store, token_service, session_service, test_settings
) -> PasswordService:
    return PasswordService(store, token_service, session_service, test_settings)


# =============================================================================
# API Test Fixtures
# =============================================================================


def build_test_app(
    config: Settings,
    store: FakeCredentialStore,
    throttle: MagicLinkThrottle,
) -> tuple[FastAPI, RecordingEmailSender]:
    """Create the app wired to in-memory collaborators.

    Returns:
        The app and the email sender recording its outgoing mail.
    """
    from corporate_auth.api.deps import get_credential_store
    from corporate_auth.main import create_app

    app = create_app(config)
    mailer = RecordingEmailSender(config)
    app.state.email_sender = mailer
    app.state.magic_link_throttle = throttle
    app.dependency_overrides[get_credential_store] = lambda: store
    return app, mailer


@pytest.fixture
def app_and_mailer(test_settings, store, throttle) -> tuple[FastAPI, RecordingEmailSender]:
    return build_test_app(test_settings, store, throttle)


@pytest.fixture
def mailer(app_and_mailer) -> RecordingEmailSender:
    """Outgoing mail captured from the ``client`` app."""
    return app_and_mailer[1]


@pytest_asyncio.fixture
async def client(app_and_mailer) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the corporate auth API over the in-memory store.

    Yields:
        AsyncClient bound to the app via ASGI transport.
    """
    app, _ = app_and_mailer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable per-IP rate limiting during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from corporate_auth.core.rate_limiting import limiter

    # Store original state and disable
    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    # Restore original state
    limiter.enabled = original_enabled
