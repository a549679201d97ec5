"""Tenant-scoped credential store for corporate users, accounts and tokens.

CredentialStore is the persistence seam the auth services depend on.
SqlCredentialStore implements it on a request-scoped AsyncSession; the caller
(``get_db``) owns the transaction, so methods flush but never commit.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from corporate_auth.models.corporate import (
    CorporateAccount,
    CorporateUser,
    MagicLinkToken,
)

# Fields that may be updated via update_user().
# Security: identity columns, email, role and timestamps are owned by
# corporate account management and never written here.
UPDATABLE_USER_FIELDS: frozenset[str] = frozenset(
    {
        "password_hash",
        "password_set_at",
        "last_login",
        "status",
    }
)


def check_updatable_fields(fields: dict[str, object]) -> None:
    """Reject field names outside UPDATABLE_USER_FIELDS.

    Raises:
        ValueError: If an unknown field name is passed.
    """
    unknown = set(fields) - UPDATABLE_USER_FIELDS
    if unknown:
        msg = f"Unknown fields: {', '.join(sorted(unknown))}"
        raise ValueError(msg)


class CredentialStore(ABC):
    """Persistence operations needed by the corporate auth services.

    Every method takes the tenant id explicitly; implementations must never
    return a record belonging to another tenant.
    """

    @abstractmethod
    async def get_user_by_email(
        self, tenant_id: str, email: str
    ) -> CorporateUser | None:
        """Find a user by email within a tenant (email already normalized)."""

    @abstractmethod
    async def get_user(
        self, tenant_id: str, corp_account_id: str, user_id: str
    ) -> CorporateUser | None:
        """Fetch a user by primary key."""

    @abstractmethod
    async def get_account(
        self, tenant_id: str, corp_account_id: str
    ) -> CorporateAccount | None:
        """Fetch a corporate account by primary key."""

    @abstractmethod
    async def update_user(
        self,
        tenant_id: str,
        corp_account_id: str,
        user_id: str,
        **fields: str | datetime | None,
    ) -> CorporateUser | None:
        """Update whitelisted user fields.

        Returns:
            The updated user, or None if the user does not exist.

        Raises:
            ValueError: If a field outside UPDATABLE_USER_FIELDS is passed.
        """

    @abstractmethod
    async def put_token(self, token: MagicLinkToken) -> None:
        """Persist a newly issued magic link token."""

    @abstractmethod
    async def get_token(
        self, tenant_id: str, token_hash: str
    ) -> MagicLinkToken | None:
        """Fetch a token record by the digest of its plain value."""

    @abstractmethod
    async def consume_token(
        self, tenant_id: str, token_hash: str, now: datetime
    ) -> bool:
        """Mark a token used if and only if it is unused and unexpired.

        The check and the write are a single atomic operation.

        Returns:
            True if this call consumed the token, False if the condition
            failed (missing, already used, or expired).
        """

    @abstractmethod
    async def delete_expired_tokens(self, now_epoch: int) -> int:
        """Delete tokens whose TTL has passed.

        Returns:
            Number of deleted tokens.
        """


class SqlCredentialStore(CredentialStore):
    """CredentialStore backed by PostgreSQL through SQLAlchemy.

    Args:
        db: Request-scoped async session. Transaction boundaries belong
            to the caller.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_user_by_email(
        self, tenant_id: str, email: str
    ) -> CorporateUser | None:
        stmt = select(CorporateUser).where(
            CorporateUser.tenant_id == tenant_id,
            CorporateUser.email == email.lower(),
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user(
        self, tenant_id: str, corp_account_id: str, user_id: str
    ) -> CorporateUser | None:
        return await self._db.get(
            CorporateUser, (tenant_id, corp_account_id, user_id)
        )

    async def get_account(
        self, tenant_id: str, corp_account_id: str
    ) -> CorporateAccount | None:
        return await self._db.get(CorporateAccount, (tenant_id, corp_account_id))

    async def update_user(
        self,
        tenant_id: str,
        corp_account_id: str,
        user_id: str,
        **fields: str | datetime | None,
    ) -> CorporateUser | None:
        check_updatable_fields(fields)

        user = await self.get_user(tenant_id, corp_account_id, user_id)
        if user is None:
            return None

        for field, value in fields.items():
            setattr(user, field, value)

        await self._db.flush()
        await self._db.refresh(user)
        return user

    async def put_token(self, token: MagicLinkToken) -> None:
        self._db.add(token)
        await self._db.flush()

    async def get_token(
        self, tenant_id: str, token_hash: str
    ) -> MagicLinkToken | None:
        return await self._db.get(MagicLinkToken, (tenant_id, token_hash))

    async def consume_token(
        self, tenant_id: str, token_hash: str, now: datetime
    ) -> bool:
        stmt = (
            update(MagicLinkToken)
            .where(
                MagicLinkToken.tenant_id == tenant_id,
                MagicLinkToken.token_hash == token_hash,
                MagicLinkToken.used.is_(False),
                MagicLinkToken.ttl_epoch_seconds >= int(now.timestamp()),
            )
            .values(used=True, used_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    async def delete_expired_tokens(self, now_epoch: int) -> int:
        stmt = delete(MagicLinkToken).where(
            MagicLinkToken.ttl_epoch_seconds < now_epoch,
        )
        result = await self._db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
