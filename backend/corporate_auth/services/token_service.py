"""Magic link token lifecycle: issue, verify and single-use consumption.

Token states:
    issued -> used            (verify with a password already set)
    issued -> needs password  (verify without one; token stays unused and
                               repeatable until set-password consumes it)
    issued -> expired         (TTL passes unconsumed)

``used`` and ``expired`` are terminal. The plain token is never stored: the
credential store keys records by its SHA-256 digest.

Issuance is enumeration-safe. Unknown, inactive and throttled addresses all
produce the same empty IssueOutcome as a successful issue does at the HTTP
layer.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog

from corporate_auth.core.auth import generate_token, hash_token, token_prefix
from corporate_auth.core.config import Settings
from corporate_auth.core.email import (
    RenderedEmail,
    build_magic_link,
    render_login_email,
    render_reset_email,
)
from corporate_auth.core.errors import (
    AuthorizationError,
    TokenFailure,
    TokenRejectedError,
)
from corporate_auth.core.rate_limiting import MagicLinkThrottle
from corporate_auth.models.corporate import (
    CorporateAccount,
    CorporateUser,
    MagicLinkToken,
    TokenPurpose,
)
from corporate_auth.repositories.credential_store import CredentialStore
from corporate_auth.services.session_service import SessionService, UserSummary

logger = structlog.get_logger()


@dataclass(frozen=True)
class IssueOutcome:
    """Result of an issuance request.

    Both fields are None when nothing was issued (unknown address, inactive
    user or account, throttled). Callers must not let that difference reach
    the client.
    """

    magic_link: str | None = None
    email: RenderedEmail | None = None

    @property
    def issued(self) -> bool:
        return self.magic_link is not None


@dataclass(frozen=True)
class VerifyOutcome:
    """Result of verifying a magic link.

    When ``needs_password`` is True, ``token`` is the unchanged magic link
    token to pass to set-password. Otherwise it is the session JWT and
    ``expires_in`` is its lifetime in seconds.
    """

    needs_password: bool
    token: str
    user: UserSummary
    expires_in: int | None = None


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address."""
    return email.strip().lower()


class TokenService:
    """Issue, verify and consume magic link tokens.

    Args:
        store: Tenant-scoped credential store.
        sessions: Session service used when a verify completes a login.
        throttle: Per-address issuance budget.
        config: Settings (TTL, portal URL).
    """

    def __init__(
        self,
        store: CredentialStore,
        sessions: SessionService,
        throttle: MagicLinkThrottle,
        config: Settings,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._throttle = throttle
        self._ttl_seconds = config.magic_link_ttl_seconds
        self._portal_url = config.corporate_portal_url

    async def issue(
        self,
        tenant_id: str,
        email: str,
        purpose: TokenPurpose = TokenPurpose.LOGIN,
    ) -> IssueOutcome:
        """Issue a magic link to an address, if it belongs to an active user.

        Args:
            tenant_id: Tenant to look the address up in.
            email: Submitted email address (normalized here).
            purpose: LOGIN or PASSWORD_RESET; selects the email template.

        Returns:
            IssueOutcome. Empty when nothing was issued.
        """
        email = normalize_email(email)
        log = logger.bind(email=email, purpose=purpose.value, tenant_id=tenant_id)
        log.info("magic_link_requested")

        if not self._throttle.allow(tenant_id, email):
            log.warning("magic_link_throttled")
            return IssueOutcome()

        user = await self._store.get_user_by_email(tenant_id, email)
        if user is None:
            log.warning("magic_link_user_not_found")
            return IssueOutcome()

        if not user.is_active:
            log.warning("magic_link_user_inactive", status=user.status)
            return IssueOutcome()

        account = await self._store.get_account(tenant_id, user.corp_account_id)
        if account is None or not account.is_active:
            log.warning(
                "magic_link_account_inactive", corp_account_id=user.corp_account_id
            )
            return IssueOutcome()

        return await self.issue_for_user(tenant_id, user, account, purpose)

    async def issue_for_user(
        self,
        tenant_id: str,
        user: CorporateUser,
        account: CorporateAccount,
        purpose: TokenPurpose = TokenPurpose.LOGIN,
    ) -> IssueOutcome:
        """Create and persist a token for an already-resolved user.

        No status checks are made, so account management can send onboarding
        invitations to pending users.

        Args:
            tenant_id: Owning tenant.
            user: Target user.
            account: The user's corporate account.
            purpose: LOGIN or PASSWORD_RESET.

        Returns:
            IssueOutcome carrying the link and the rendered email.
        """
        token = generate_token()
        now = datetime.now(UTC)
        expires_at = now + timedelta(seconds=self._ttl_seconds)

        await self._store.put_token(
            MagicLinkToken(
                tenant_id=tenant_id,
                token_hash=hash_token(token),
                email=user.email,
                corp_account_id=user.corp_account_id,
                user_id=user.user_id,
                user_role=user.role,
                user_name=user.name,
                company_name=account.company_name,
                purpose=purpose.value,
                created_at=now,
                expires_at=expires_at,
                ttl_epoch_seconds=int(expires_at.timestamp()),
                used=False,
            )
        )

        magic_link = build_magic_link(self._portal_url, token)
        render = (
            render_reset_email
            if purpose is TokenPurpose.PASSWORD_RESET
            else render_login_email
        )
        email = render(
            to=user.email,
            user_name=user.name,
            company_name=account.company_name,
            magic_link=magic_link,
            ttl_seconds=self._ttl_seconds,
        )

        logger.info(
            "magic_link_issued",
            email=user.email,
            user_id=user.user_id,
            corp_account_id=user.corp_account_id,
            purpose=purpose.value,
            token_prefix=token_prefix(token),
            tenant_id=tenant_id,
        )
        return IssueOutcome(magic_link=magic_link, email=email)

    async def load_valid(self, tenant_id: str, token: str) -> MagicLinkToken:
        """Fetch a token record and check it is unused and unexpired.

        Does not consume the token.

        Raises:
            TokenRejectedError: INVALID_OR_EXPIRED if not found, ALREADY_USED
                if consumed, EXPIRED if past its TTL.
        """
        record = await self._store.get_token(tenant_id, hash_token(token))
        log = logger.bind(token_prefix=token_prefix(token), tenant_id=tenant_id)

        if record is None:
            log.warning("magic_link_invalid", reason="not_found")
            raise TokenRejectedError(TokenFailure.INVALID_OR_EXPIRED)

        if record.used:
            log.warning("magic_link_invalid", reason="already_used")
            raise TokenRejectedError(TokenFailure.ALREADY_USED)

        if record.is_expired(int(datetime.now(UTC).timestamp())):
            log.warning("magic_link_invalid", reason="expired")
            raise TokenRejectedError(TokenFailure.EXPIRED)

        return record

    async def consume(self, tenant_id: str, token: str) -> None:
        """Atomically mark a token used.

        Raises:
            TokenRejectedError: ALREADY_USED if another request consumed it
                first (or it expired between the check and the write).
        """
        consumed = await self._store.consume_token(
            tenant_id, hash_token(token), datetime.now(UTC)
        )
        if not consumed:
            logger.warning(
                "magic_link_consume_conflict",
                token_prefix=token_prefix(token),
                tenant_id=tenant_id,
            )
            raise TokenRejectedError(TokenFailure.ALREADY_USED)

    async def verify(self, tenant_id: str, token: str) -> VerifyOutcome:
        """Verify a magic link and either log the user in or ask for a password.

        Args:
            tenant_id: Tenant of the current request.
            token: Plain token from the link.

        Returns:
            VerifyOutcome. ``needs_password`` leaves the token unconsumed.

        Raises:
            TokenRejectedError: Token not found, used or expired, or its user
                no longer exists (401).
            AuthorizationError: User or account is not active (403).
        """
        log = logger.bind(token_prefix=token_prefix(token), tenant_id=tenant_id)
        log.info("magic_link_verify")

        record = await self.load_valid(tenant_id, token)
        log = log.bind(
            user_id=record.user_id,
            corp_account_id=record.corp_account_id,
            purpose=record.purpose,
        )

        user = await self._store.get_user(
            tenant_id, record.corp_account_id, record.user_id
        )
        if user is None:
            log.warning("magic_link_invalid", reason="user_not_found")
            raise TokenRejectedError(TokenFailure.INVALID_OR_EXPIRED)

        account = await self._store.get_account(tenant_id, record.corp_account_id)
        if account is None or not account.is_active:
            log.warning("magic_link_verify_denied", reason="account_inactive")
            raise AuthorizationError("Corporate account is disabled")

        if not user.has_password:
            log.info("magic_link_needs_password")
            return VerifyOutcome(
                needs_password=True,
                token=token,
                user=UserSummary.from_records(user, account),
            )

        if not user.is_active:
            log.warning("magic_link_verify_denied", reason="user_inactive")
            raise AuthorizationError("Account is disabled or not found")

        await self.consume(tenant_id, token)
        user = await self._store.update_user(
            tenant_id,
            user.corp_account_id,
            user.user_id,
            last_login=datetime.now(UTC),
        ) or user

        session = await self._sessions.issue(tenant_id, user, account)
        log.info("magic_link_login_success")
        return VerifyOutcome(
            needs_password=False,
            token=session.token,
            user=session.user,
            expires_in=session.expires_in,
        )
