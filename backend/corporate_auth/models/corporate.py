"""Corporate account, corporate user, and magic link token models.

Every table is keyed by tenant_id first; no query in this service crosses
tenants. Accounts and users are owned by corporate account management
(created, role-assigned and suspended elsewhere); this service reads their
status and maintains the password and last-login columns on users. Magic
link tokens are owned entirely by TokenService.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKeyConstraint,
    Index,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from corporate_auth.models.base import Base, TimestampMixin


class AccountStatus(str, Enum):
    """Lifecycle status of a corporate account."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


class UserStatus(str, Enum):
    """Lifecycle status of a corporate user."""

    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
    REMOVED = "removed"


class UserRole(str, Enum):
    """Role of a user within their corporate account."""

    ADMIN = "admin"
    BOOKER = "booker"


class TokenPurpose(str, Enum):
    """Why a magic link token was issued.

    Informational: both purposes are accepted by verify and set-password.
    """

    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


def _in_clause(column: str, enum_cls: type[Enum]) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class CorporateAccount(Base, TimestampMixin):
    """A business customer containing one or more corporate users.

    Attributes:
        tenant_id: Owning tenant (e.g. ``TENANT#001``).
        corp_account_id: Account identifier, unique within the tenant.
        company_name: Display name used in emails and session claims.
        status: One of AccountStatus. Gates every auth operation.
    """

    __tablename__ = "corporate_accounts"
    __table_args__ = (
        CheckConstraint(
            _in_clause("status", AccountStatus),
            name="ck_corporate_accounts_status",
        ),
    )

    tenant_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    corp_account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=AccountStatus.ACTIVE.value,
        default=AccountStatus.ACTIVE.value,
    )

    @property
    def is_active(self) -> bool:
        """True when the account may authenticate."""
        return self.status == AccountStatus.ACTIVE


class CorporateUser(Base, TimestampMixin):
    """A person who signs in to the corporate portal.

    Attributes:
        tenant_id: Owning tenant.
        corp_account_id: Owning corporate account.
        user_id: User identifier, unique within the account.
        email: Lowercased email address, unique within the tenant.
        name: Display name.
        role: One of UserRole.
        status: One of UserStatus.
        password_hash: bcrypt hash. NULL until onboarding sets a password.
        password_set_at: When the current password was set.
        last_login: Last successful authentication.
    """

    __tablename__ = "corporate_users"
    __table_args__ = (
        ForeignKeyConstraint(
            ["tenant_id", "corp_account_id"],
            ["corporate_accounts.tenant_id", "corporate_accounts.corp_account_id"],
            ondelete="CASCADE",
        ),
        Index("uq_corporate_users_tenant_email", "tenant_id", "email", unique=True),
        CheckConstraint(
            _in_clause("status", UserStatus),
            name="ck_corporate_users_status",
        ),
        CheckConstraint(
            _in_clause("role", UserRole),
            name="ck_corporate_users_role",
        ),
    )

    tenant_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    corp_account_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=UserRole.BOOKER.value,
        default=UserRole.BOOKER.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=UserStatus.PENDING.value,
        default=UserStatus.PENDING.value,
    )
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_set_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_active(self) -> bool:
        """True when the user may authenticate."""
        return self.status == UserStatus.ACTIVE

    @property
    def has_password(self) -> bool:
        """False while onboarding is incomplete (no password yet)."""
        return bool(self.password_hash)


class MagicLinkToken(Base):
    """Single-use, time-limited login token.

    The plain token only ever exists in the emailed link; the table stores
    its SHA-256 digest. User and company fields are snapshotted at issue
    time so the needs-password response can be built without a join.

    Attributes:
        tenant_id: Owning tenant.
        token_hash: SHA-256 hex digest of the plain token.
        email: Recipient email (lowercased).
        corp_account_id: Account of the target user.
        user_id: Target user.
        user_role: Snapshot of the user's role.
        user_name: Snapshot of the user's name.
        company_name: Snapshot of the account's company name.
        purpose: One of TokenPurpose.
        created_at: Issue time.
        expires_at: Expiry time (same instant as ttl_epoch_seconds).
        ttl_epoch_seconds: Expiry as a Unix timestamp; drives cleanup.
        used: Set exactly once when the token is consumed.
        used_at: When the token was consumed.
    """

    __tablename__ = "magic_link_tokens"
    __table_args__ = (
        Index("idx_magic_link_tokens_tenant_email", "tenant_id", "email"),
        Index("idx_magic_link_tokens_ttl", "ttl_epoch_seconds"),
        CheckConstraint(
            _in_clause("purpose", TokenPurpose),
            name="ck_magic_link_tokens_purpose",
        ),
    )

    tenant_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    corp_account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_role: Mapped[str] = mapped_column(String(20), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    purpose: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=TokenPurpose.LOGIN.value,
        default=TokenPurpose.LOGIN.value,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ttl_epoch_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False)
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    used_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def is_expired(self, now_epoch: int) -> bool:
        """True once ``now_epoch`` is past the token's TTL."""
        return self.ttl_epoch_seconds < now_epoch
