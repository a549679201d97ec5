"""Credential helpers shared by the corporate auth services.

Pipeline:
- generate_token / hash_token / token_prefix: magic link token handling
- validate_password_policy: format rules (sync, no network)
- hash_password / verify_password: bcrypt with configurable cost
- DUMMY_HASH: timing-safe constant for user enumeration defense
- create_jwt: HS256 session signing
"""

import hashlib
import re
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from corporate_auth.core.errors import ValidationError

# 32 bytes -> 64 hex characters
_TOKEN_BYTES = 32

_TOKEN_PREFIX_LENGTH = 8

_MIN_PASSWORD_LENGTH = 8

# bcrypt only accepts secrets up to 72 bytes
_MAX_PASSWORD_BYTES = 72

JWT_ALGORITHM = "HS256"

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
# Pre-generated to avoid ~300ms bcrypt computation on every app startup.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def generate_token() -> str:
    """Return a new opaque 256-bit magic link token as 64 hex characters."""
    return secrets.token_hex(_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest under which a token is stored."""
    return hashlib.sha256(token.encode()).hexdigest()


def token_prefix(token: str) -> str:
    """First characters of a token, safe to include in logs."""
    return token[:_TOKEN_PREFIX_LENGTH]


def validate_password_policy(password: str, confirm_password: str) -> None:
    """Validate a new password against the corporate password policy.

    Rules are checked in order and the first failure is reported:
    at least 8 characters and at most 72 bytes of UTF-8, one uppercase
    letter, one lowercase letter, one digit, one non-alphanumeric character,
    and a matching confirmation.

    Args:
        password: Plain-text password to validate.
        confirm_password: Repeated password from the form.

    Raises:
        ValidationError: If the password doesn't meet requirements.
    """
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise ValidationError("Password must be at least 8 characters")
    if len(password.encode()) > _MAX_PASSWORD_BYTES:
        raise ValidationError("Password must be at most 72 bytes")
    if not re.search(r"[A-Z]", password):
        raise ValidationError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValidationError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one number")
    if not re.search(r"[^A-Za-z0-9]", password):
        raise ValidationError("Password must contain at least one special character")
    if password != confirm_password:
        raise ValidationError("Passwords do not match")


def hash_password(password: str, rounds: int) -> str:
    """Hash a password with bcrypt.

    Args:
        password: Plain-text password.
        rounds: bcrypt cost factor (12 in production).

    Returns:
        The bcrypt hash as a string.

    Raises:
        ValidationError: If the password is longer than 72 bytes.
    """
    if len(password.encode()) > _MAX_PASSWORD_BYTES:
        raise ValidationError("Password must be at most 72 bytes")
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored bcrypt hash in constant time.

    When there is no stored hash the check still runs against DUMMY_HASH,
    so unknown users cost the same as known ones, and the result is False.
    Passwords longer than 72 bytes can never have been set, so they are
    also False.
    """
    secret = password.encode()
    if password_hash is None or len(secret) > _MAX_PASSWORD_BYTES:
        bcrypt.checkpw(secret[:_MAX_PASSWORD_BYTES], DUMMY_HASH)
        return False
    return bcrypt.checkpw(secret, password_hash.encode())


def create_jwt(
    *,
    claims: dict[str, Any],
    secret: str,
    expires_delta: timedelta,
) -> str:
    """Create a signed JWT with iat and exp added to ``claims``.

    Args:
        claims: Application claims to sign.
        secret: HMAC signing secret.
        expires_delta: Time until expiration.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        **claims,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)
