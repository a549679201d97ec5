"""Create corporate auth tables: corporate_accounts, corporate_users, magic_link_tokens.

Revision ID: 001_corporate_auth_tables
Revises:
Create Date: 2026-10-19

- corporate_accounts: business customers; status gates every auth operation
- corporate_users: portal users, email unique per tenant
- magic_link_tokens: single-use login tokens keyed by SHA-256 digest
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_corporate_auth_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # =========================================================================
    # corporate_accounts
    # =========================================================================
    op.create_table(
        "corporate_accounts",
        sa.Column("tenant_id", sa.String(50), primary_key=True),
        sa.Column("corp_account_id", sa.String(64), primary_key=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column(
            "status", sa.String(20), server_default="active", nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('active', 'suspended', 'closed')",
            name="ck_corporate_accounts_status",
        ),
    )

    # =========================================================================
    # corporate_users
    # =========================================================================
    op.create_table(
        "corporate_users",
        sa.Column("tenant_id", sa.String(50), primary_key=True),
        sa.Column("corp_account_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), server_default="booker", nullable=False),
        sa.Column(
            "status", sa.String(20), server_default="pending", nullable=False
        ),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("password_set_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["tenant_id", "corp_account_id"],
            ["corporate_accounts.tenant_id", "corporate_accounts.corp_account_id"],
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'pending', 'suspended', 'removed')",
            name="ck_corporate_users_status",
        ),
        sa.CheckConstraint(
            "role IN ('admin', 'booker')",
            name="ck_corporate_users_role",
        ),
    )
    op.create_index(
        "uq_corporate_users_tenant_email",
        "corporate_users",
        ["tenant_id", "email"],
        unique=True,
    )

    # =========================================================================
    # magic_link_tokens
    # =========================================================================
    op.create_table(
        "magic_link_tokens",
        sa.Column("tenant_id", sa.String(50), primary_key=True),
        # SHA-256 hex digest; the plain token is never stored
        sa.Column("token_hash", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("corp_account_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("user_role", sa.String(20), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column(
            "purpose", sa.String(20), server_default="login", nullable=False
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ttl_epoch_seconds", sa.BigInteger(), nullable=False),
        sa.Column(
            "used", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "purpose IN ('login', 'password_reset')",
            name="ck_magic_link_tokens_purpose",
        ),
    )
    op.create_index(
        "idx_magic_link_tokens_tenant_email",
        "magic_link_tokens",
        ["tenant_id", "email"],
    )
    op.create_index(
        "idx_magic_link_tokens_ttl",
        "magic_link_tokens",
        ["ttl_epoch_seconds"],
    )


def downgrade() -> None:
    op.drop_index("idx_magic_link_tokens_ttl", table_name="magic_link_tokens")
    op.drop_index(
        "idx_magic_link_tokens_tenant_email", table_name="magic_link_tokens"
    )
    op.drop_table("magic_link_tokens")
    op.drop_index("uq_corporate_users_tenant_email", table_name="corporate_users")
    op.drop_table("corporate_users")
    op.drop_table("corporate_accounts")
