"""SQLAlchemy ORM models for the corporate portal auth service.

All models are exported from this module for convenient imports:
    from corporate_auth.models import CorporateUser, MagicLinkToken, ...

- base.py: Base, TimestampMixin
- corporate.py: CorporateAccount, CorporateUser, MagicLinkToken and their
  status/role/purpose enums
"""

from corporate_auth.models.base import Base, TimestampMixin
from corporate_auth.models.corporate import (
    AccountStatus,
    CorporateAccount,
    CorporateUser,
    MagicLinkToken,
    TokenPurpose,
    UserRole,
    UserStatus,
)

__all__ = [
    "AccountStatus",
    "Base",
    "CorporateAccount",
    "CorporateUser",
    "MagicLinkToken",
    "TimestampMixin",
    "TokenPurpose",
    "UserRole",
    "UserStatus",
]
