"""Password login, password setup and password reset requests.

Login failures share one generic message so responses do not reveal which
addresses are registered. The single exception is a user who has never set
a password: they are told to use their login link instead.
"""

from datetime import UTC, datetime

import structlog

from corporate_auth.core.auth import (
    hash_password,
    token_prefix,
    validate_password_policy,
    verify_password,
)
from corporate_auth.core.config import Settings
from corporate_auth.core.errors import (
    AuthenticationError,
    AuthorizationError,
    TokenFailure,
    TokenRejectedError,
)
from corporate_auth.models.corporate import TokenPurpose, UserStatus
from corporate_auth.repositories.credential_store import CredentialStore
from corporate_auth.services.session_service import SessionResult, SessionService
from corporate_auth.services.token_service import (
    IssueOutcome,
    TokenService,
    normalize_email,
)

logger = structlog.get_logger()

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
NO_PASSWORD_MESSAGE = "Please use the login link to set up your password first"


class PasswordService:
    """Email + password authentication and password management.

    Args:
        store: Tenant-scoped credential store.
        tokens: Token service for set-password and reset flows.
        sessions: Session service for auto-login after authentication.
        config: Settings (bcrypt cost).
    """

    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenService,
        sessions: SessionService,
        config: Settings,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._sessions = sessions
        self._bcrypt_rounds = config.bcrypt_rounds

    async def login(self, tenant_id: str, email: str, password: str) -> SessionResult:
        """Authenticate with email and password.

        Args:
            tenant_id: Tenant of the current request.
            email: Submitted email address (normalized here).
            password: Submitted plain-text password.

        Returns:
            SessionResult for the authenticated user.

        Raises:
            AuthenticationError: Unknown email, inactive user or account, or
                wrong password (generic message); or no password set yet
                (explicit message).
        """
        email = normalize_email(email)
        log = logger.bind(email=email, tenant_id=tenant_id)
        log.info("password_login_attempt")

        user = await self._store.get_user_by_email(tenant_id, email)
        if user is None:
            # Keep timing uniform with the known-user path
            verify_password(password, None)
            log.warning("password_login_failed", reason="user_not_found")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        log = log.bind(user_id=user.user_id, corp_account_id=user.corp_account_id)

        if not user.has_password:
            log.warning("password_login_failed", reason="no_password_set")
            raise AuthenticationError(NO_PASSWORD_MESSAGE)

        if not user.is_active:
            log.warning("password_login_failed", reason="user_inactive", status=user.status)
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        account = await self._store.get_account(tenant_id, user.corp_account_id)
        if account is None or not account.is_active:
            log.warning("password_login_failed", reason="account_inactive")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if not verify_password(password, user.password_hash):
            log.warning("password_login_failed", reason="invalid_password")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        user = await self._store.update_user(
            tenant_id,
            user.corp_account_id,
            user.user_id,
            last_login=datetime.now(UTC),
        ) or user

        log.info("password_login_success")
        return await self._sessions.issue(tenant_id, user, account)

    async def set_password(
        self,
        tenant_id: str,
        token: str,
        password: str,
        confirm_password: str,
    ) -> SessionResult:
        """Set a first or replacement password using a magic link token.

        The token is consumed before the user record is written, so a token
        can set a password at most once. Completing setup activates the user
        whatever their previous status.

        Args:
            tenant_id: Tenant of the current request.
            token: Plain magic link token.
            password: New password.
            confirm_password: Repeated new password.

        Returns:
            SessionResult (the user is logged in immediately).

        Raises:
            ValidationError: Password fails the policy or confirmation (400).
            TokenRejectedError: Token not found, used or expired (401).
            AuthorizationError: The user's account is not active (403).
        """
        validate_password_policy(password, confirm_password)

        log = logger.bind(token_prefix=token_prefix(token), tenant_id=tenant_id)
        log.info("set_password_attempt")

        record = await self._tokens.load_valid(tenant_id, token)
        log = log.bind(
            user_id=record.user_id,
            corp_account_id=record.corp_account_id,
            purpose=record.purpose,
        )

        account = await self._store.get_account(tenant_id, record.corp_account_id)
        if account is None or not account.is_active:
            log.warning("set_password_failed", reason="account_inactive")
            raise AuthorizationError("Corporate account is disabled")

        password_hash = hash_password(password, self._bcrypt_rounds)
        await self._tokens.consume(tenant_id, token)

        now = datetime.now(UTC)
        user = await self._store.update_user(
            tenant_id,
            record.corp_account_id,
            record.user_id,
            password_hash=password_hash,
            password_set_at=now,
            last_login=now,
            status=UserStatus.ACTIVE.value,
        )
        if user is None:
            log.warning("set_password_failed", reason="user_not_found")
            raise TokenRejectedError(TokenFailure.INVALID_OR_EXPIRED)

        log.info("set_password_success")
        return await self._sessions.issue(tenant_id, user, account)

    async def request_reset(self, tenant_id: str, email: str) -> IssueOutcome:
        """Issue a password reset link. Same contract as TokenService.issue."""
        return await self._tokens.issue(tenant_id, email, TokenPurpose.PASSWORD_RESET)
