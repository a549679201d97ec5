"""API error classes.

Every failure the corporate auth endpoints can return is one of these.
Handlers in ``corporate_auth.main`` turn them into the ``{"error": ...}``
envelope with the matching HTTP status.
"""

from enum import Enum


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "UNAUTHORIZED").
        message: Human-readable error message, returned to the caller.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for malformed or missing request fields and password policy failures.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class AuthenticationError(APIError):
    """Credentials or token could not be authenticated (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class TokenFailure(str, Enum):
    """Why a magic link token was rejected."""

    INVALID_OR_EXPIRED = "invalid_or_expired"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"


_TOKEN_FAILURE_MESSAGES = {
    TokenFailure.INVALID_OR_EXPIRED: "Invalid or expired login link",
    TokenFailure.ALREADY_USED: "This login link has already been used",
    TokenFailure.EXPIRED: "This login link has expired",
}


class TokenRejectedError(AuthenticationError):
    """Magic link token not found, already used, or expired (401).

    Attributes:
        reason: The TokenFailure that caused the rejection.
    """

    def __init__(self, reason: TokenFailure) -> None:
        self.reason = reason
        super().__init__(_TOKEN_FAILURE_MESSAGES[reason])


class AuthorizationError(APIError):
    """Credentials are valid but the user or account is disabled (403).

    Args:
        message: Human-readable reason.
        status_code: 403 by default; 401 where the endpoint must not
            distinguish disabled from unknown.
    """

    def __init__(self, message: str = "Access denied", status_code: int = 403) -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=status_code,
        )


class NotFoundError(APIError):
    """Route or resource not found (404)."""

    def __init__(self, message: str = "Endpoint not found") -> None:
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class MethodNotAllowedError(APIError):
    """Known route called with the wrong HTTP method (405)."""

    def __init__(self, message: str = "Method not allowed") -> None:
        super().__init__(
            code="METHOD_NOT_ALLOWED",
            message=message,
            status_code=405,
        )


class RateLimitedError(APIError):
    """Too many requests from this client (429)."""

    def __init__(self, message: str = "Too many requests") -> None:
        super().__init__(
            code="RATE_LIMITED",
            message=message,
            status_code=429,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
