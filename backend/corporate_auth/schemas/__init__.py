"""Pydantic request/response schemas for API endpoints."""

from corporate_auth.schemas.corporate_auth import (
    EmailRequest,
    LinkRequestedResponse,
    LoginRequest,
    SessionResponse,
    SessionStatusResponse,
    SetPasswordRequest,
    UserSummaryResponse,
    VerifyResponse,
    VerifyTokenRequest,
)

__all__ = [
    # Requests
    "EmailRequest",
    "LoginRequest",
    "SetPasswordRequest",
    "VerifyTokenRequest",
    # Responses
    "LinkRequestedResponse",
    "SessionResponse",
    "SessionStatusResponse",
    "UserSummaryResponse",
    "VerifyResponse",
]
