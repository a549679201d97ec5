"""Corporate session issuance and verification.

Sessions are stateless HS256 JWTs with ``type="corporate"``. There is no
refresh token and no blacklist: verify() re-reads the user and account on
every call, which is how disabling either one revokes live sessions.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
import structlog

from corporate_auth.core.auth import JWT_ALGORITHM, create_jwt
from corporate_auth.core.config import Settings
from corporate_auth.core.errors import AuthenticationError, AuthorizationError
from corporate_auth.core.secrets import SecretProvider
from corporate_auth.models.corporate import CorporateAccount, CorporateUser
from corporate_auth.repositories.credential_store import CredentialStore

logger = structlog.get_logger()

SESSION_TOKEN_TYPE = "corporate"

_BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class UserSummary:
    """Public projection of a corporate user returned to the portal."""

    user_id: str
    email: str
    name: str
    role: str
    company_name: str
    corp_account_id: str

    @classmethod
    def from_records(
        cls, user: CorporateUser, account: CorporateAccount
    ) -> "UserSummary":
        return cls(
            user_id=user.user_id,
            email=user.email,
            name=user.name,
            role=user.role,
            company_name=account.company_name,
            corp_account_id=user.corp_account_id,
        )


@dataclass(frozen=True)
class SessionResult:
    """A freshly minted session."""

    token: str
    expires_in: int
    user: UserSummary


@dataclass(frozen=True)
class SessionClaims:
    """Decoded and re-validated claims of a corporate session JWT."""

    tenant_id: str
    corp_account_id: str
    user_id: str
    email: str
    role: str
    user_name: str
    company_name: str
    issued_at: datetime
    expires_at: datetime

    def to_user_summary(self) -> UserSummary:
        return UserSummary(
            user_id=self.user_id,
            email=self.email,
            name=self.user_name,
            role=self.role,
            company_name=self.company_name,
            corp_account_id=self.corp_account_id,
        )


class SessionService:
    """Issue and verify corporate bearer sessions.

    Args:
        store: Credential store used for the live status re-check.
        secrets: Provider of the JWT signing secret.
        config: Settings (session TTL).
    """

    def __init__(
        self,
        store: CredentialStore,
        secrets: SecretProvider,
        config: Settings,
    ) -> None:
        self._store = store
        self._secrets = secrets
        self._ttl_seconds = config.session_ttl_seconds

    async def issue(
        self,
        tenant_id: str,
        user: CorporateUser,
        account: CorporateAccount,
    ) -> SessionResult:
        """Sign a session for an already-authenticated user.

        Callers are responsible for having checked that both records are
        active.

        Args:
            tenant_id: Tenant the session is scoped to.
            user: Authenticated user.
            account: The user's corporate account.

        Returns:
            SessionResult with the JWT, its lifetime and the user summary.
        """
        claims = {
            "type": SESSION_TOKEN_TYPE,
            "tenantId": tenant_id,
            "corpAccountId": user.corp_account_id,
            "userId": user.user_id,
            "email": user.email,
            "role": user.role,
            "userName": user.name,
            "companyName": account.company_name,
        }
        token = create_jwt(
            claims=claims,
            secret=await self._secrets.get(),
            expires_delta=timedelta(seconds=self._ttl_seconds),
        )
        logger.info(
            "session_issued",
            user_id=user.user_id,
            corp_account_id=user.corp_account_id,
            tenant_id=tenant_id,
        )
        return SessionResult(
            token=token,
            expires_in=self._ttl_seconds,
            user=UserSummary.from_records(user, account),
        )

    async def verify(
        self, tenant_id: str, authorization: str | None
    ) -> SessionClaims:
        """Authenticate a bearer header and re-check live user/account status.

        Args:
            tenant_id: Tenant of the current request.
            authorization: Raw ``Authorization`` header value, if any.

        Returns:
            SessionClaims for the authenticated user.

        Raises:
            AuthenticationError: Missing, malformed, expired, foreign-type or
                foreign-tenant token (401).
            AuthorizationError: User or account no longer active (403).
        """
        token = _extract_bearer(authorization)
        if token is None:
            logger.warning(
                "session_verification_failed", reason="no_token", tenant_id=tenant_id
            )
            raise AuthenticationError("No session token provided")

        try:
            payload = jwt.decode(
                token,
                await self._secrets.get(),
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("session_expired", tenant_id=tenant_id)
            raise AuthenticationError("Session expired") from None
        except jwt.InvalidTokenError:
            logger.warning("session_invalid", tenant_id=tenant_id)
            raise AuthenticationError("Invalid session token") from None

        if payload.get("type") != SESSION_TOKEN_TYPE:
            logger.warning(
                "session_verification_failed",
                reason="wrong_token_type",
                token_type=payload.get("type"),
                tenant_id=tenant_id,
            )
            raise AuthenticationError("Invalid token type")

        try:
            claims = SessionClaims(
                tenant_id=payload["tenantId"],
                corp_account_id=payload["corpAccountId"],
                user_id=payload["userId"],
                email=payload["email"],
                role=payload["role"],
                user_name=payload["userName"],
                company_name=payload["companyName"],
                issued_at=datetime.fromtimestamp(payload["iat"], UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning(
                "session_verification_failed",
                reason="malformed_claims",
                tenant_id=tenant_id,
            )
            raise AuthenticationError("Invalid session token") from None

        if claims.tenant_id != tenant_id:
            logger.warning(
                "session_verification_failed",
                reason="tenant_mismatch",
                token_tenant_id=claims.tenant_id,
                tenant_id=tenant_id,
            )
            raise AuthenticationError("Invalid session token")

        user = await self._store.get_user(
            tenant_id, claims.corp_account_id, claims.user_id
        )
        if user is None or not user.is_active:
            logger.warning(
                "session_verification_failed",
                reason="user_inactive_or_not_found",
                user_id=claims.user_id,
                tenant_id=tenant_id,
            )
            raise AuthorizationError("Account is disabled or not found")

        account = await self._store.get_account(tenant_id, claims.corp_account_id)
        if account is None or not account.is_active:
            logger.warning(
                "session_verification_failed",
                reason="account_inactive",
                corp_account_id=claims.corp_account_id,
                tenant_id=tenant_id,
            )
            raise AuthorizationError("Corporate account is disabled")

        logger.info(
            "session_verified",
            user_id=claims.user_id,
            corp_account_id=claims.corp_account_id,
            tenant_id=tenant_id,
        )
        return claims


def _extract_bearer(authorization: str | None) -> str | None:
    """Return the token from ``Bearer <token>``, or None if absent/malformed."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None
