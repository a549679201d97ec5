"""In-memory test doubles for the corporate auth collaborators.

FakeCredentialStore implements the CredentialStore contract (including the
atomic conditional consume) over dicts, so services and routes can be tested
without PostgreSQL. RecordingEmailSender captures mail instead of sending it.
"""

import asyncio
from datetime import datetime

import bcrypt

from corporate_auth.core.config import Settings
from corporate_auth.core.email import EmailSender
from corporate_auth.models.corporate import (
    AccountStatus,
    CorporateAccount,
    CorporateUser,
    MagicLinkToken,
    UserRole,
    UserStatus,
)
from corporate_auth.repositories.credential_store import (
    CredentialStore,
    check_updatable_fields,
)

TEST_TENANT_ID = "TENANT#001"
OTHER_TENANT_ID = "TENANT#002"
TEST_BCRYPT_ROUNDS = 4  # Low cost factor for fast tests


def hash_for_tests(password: str) -> str:
    """bcrypt hash at the low test cost factor."""
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=TEST_BCRYPT_ROUNDS)
    ).decode()


def make_account(
    corp_account_id: str = "CORP#acme",
    *,
    tenant_id: str = TEST_TENANT_ID,
    company_name: str = "Acme Ltd",
    status: str = AccountStatus.ACTIVE.value,
) -> CorporateAccount:
    return CorporateAccount(
        tenant_id=tenant_id,
        corp_account_id=corp_account_id,
        company_name=company_name,
        status=status,
    )


def make_user(
    email: str,
    *,
    user_id: str | None = None,
    corp_account_id: str = "CORP#acme",
    tenant_id: str = TEST_TENANT_ID,
    name: str = "Test User",
    role: str = UserRole.BOOKER.value,
    status: str = UserStatus.ACTIVE.value,
    password: str | None = None,
) -> CorporateUser:
    return CorporateUser(
        tenant_id=tenant_id,
        corp_account_id=corp_account_id,
        user_id=user_id or f"USER#{email.split('@')[0]}",
        email=email.lower(),
        name=name,
        role=role,
        status=status,
        password_hash=hash_for_tests(password) if password else None,
        password_set_at=None,
        last_login=None,
    )


class FakeCredentialStore(CredentialStore):
    """Dict-backed CredentialStore.

    Reads yield to the event loop once before returning, so concurrent
    callers interleave the way they would against a real database.
    """

    def __init__(self) -> None:
        self.accounts: dict[tuple[str, str], CorporateAccount] = {}
        self.users: dict[tuple[str, str, str], CorporateUser] = {}
        self.tokens: dict[tuple[str, str], MagicLinkToken] = {}

    # -- seeding helpers ----------------------------------------------------

    def add_account(self, account: CorporateAccount) -> CorporateAccount:
        self.accounts[(account.tenant_id, account.corp_account_id)] = account
        return account

    def add_user(self, user: CorporateUser) -> CorporateUser:
        self.users[(user.tenant_id, user.corp_account_id, user.user_id)] = user
        return user

    def tokens_for(self, email: str) -> list[MagicLinkToken]:
        return [t for t in self.tokens.values() if t.email == email.lower()]

    # -- CredentialStore ----------------------------------------------------

    async def get_user_by_email(
        self, tenant_id: str, email: str
    ) -> CorporateUser | None:
        await asyncio.sleep(0)
        for user in self.users.values():
            if user.tenant_id == tenant_id and user.email == email.lower():
                return user
        return None

    async def get_user(
        self, tenant_id: str, corp_account_id: str, user_id: str
    ) -> CorporateUser | None:
        await asyncio.sleep(0)
        return self.users.get((tenant_id, corp_account_id, user_id))

    async def get_account(
        self, tenant_id: str, corp_account_id: str
    ) -> CorporateAccount | None:
        await asyncio.sleep(0)
        return self.accounts.get((tenant_id, corp_account_id))

    async def update_user(
        self,
        tenant_id: str,
        corp_account_id: str,
        user_id: str,
        **fields: str | datetime | None,
    ) -> CorporateUser | None:
        check_updatable_fields(fields)
        user = self.users.get((tenant_id, corp_account_id, user_id))
        if user is None:
            return None
        for field, value in fields.items():
            setattr(user, field, value)
        return user

    async def put_token(self, token: MagicLinkToken) -> None:
        self.tokens[(token.tenant_id, token.token_hash)] = token

    async def get_token(
        self, tenant_id: str, token_hash: str
    ) -> MagicLinkToken | None:
        await asyncio.sleep(0)
        return self.tokens.get((tenant_id, token_hash))

    async def consume_token(
        self, tenant_id: str, token_hash: str, now: datetime
    ) -> bool:
        # No await between check and write: atomic on the event loop
        token = self.tokens.get((tenant_id, token_hash))
        if token is None or token.used:
            return False
        if token.ttl_epoch_seconds < int(now.timestamp()):
            return False
        token.used = True
        token.used_at = now
        return True

    async def delete_expired_tokens(self, now_epoch: int) -> int:
        expired = [
            key
            for key, token in self.tokens.items()
            if token.ttl_epoch_seconds < now_epoch
        ]
        for key in expired:
            del self.tokens[key]
        return len(expired)


class RecordingEmailSender(EmailSender):
    """EmailSender that records messages instead of calling Resend."""

    def __init__(self, config: Settings) -> None:
        super().__init__(config)
        self.sent: list[dict[str, str]] = []

    async def send_email(self, to: str, subject: str, html: str, text: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return True
