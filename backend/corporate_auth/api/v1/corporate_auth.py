"""Corporate portal authentication endpoints.

Endpoints:
- POST /corporate/auth/magic-link: request a login link email
- POST /corporate/auth/verify: verify a login link (session or needs-password)
- POST /corporate/auth/login: email + password login
- POST /corporate/auth/set-password: first-time setup or reset, then login
- POST /corporate/auth/forgot-password: request a password reset link
- GET /corporate/auth/session: validate a bearer session

Security considerations:
- magic-link and forgot-password return one body whatever the address
  (enumeration defense); email is sent as a background task so timing does
  not depend on it either
- login and the token endpoints are rate limited per IP
- links are only echoed in responses when EXPOSE_MAGIC_LINK is set
  (rejected in production by Settings)
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Header, Request

from corporate_auth.api.deps import (
    AppSettings,
    Mailer,
    Passwords,
    Sessions,
    TenantId,
    Tokens,
)
from corporate_auth.core.config import settings
from corporate_auth.core.rate_limiting import limiter
from corporate_auth.models.corporate import TokenPurpose
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
from corporate_auth.services.session_service import SessionResult
from corporate_auth.services.token_service import IssueOutcome

router = APIRouter()

MAGIC_LINK_MESSAGE = "If this email is registered, you will receive a login link shortly."
RESET_LINK_MESSAGE = (
    "If this email is registered, you will receive a password reset link."
)


def _link_requested(
    outcome: IssueOutcome,
    message: str,
    *,
    background_tasks: BackgroundTasks,
    mailer: Mailer,
    expose_link: bool,
) -> LinkRequestedResponse:
    """Queue the email (if any) and build the uniform response."""
    if outcome.email is not None:
        background_tasks.add_task(mailer.send, outcome.email)

    response = LinkRequestedResponse(success=True, message=message)
    if expose_link:
        # Present on every branch (None when nothing was issued)
        response.magic_link = outcome.magic_link
    return response


def _session_response(result: SessionResult) -> SessionResponse:
    return SessionResponse(
        success=True,
        token=result.token,
        user=UserSummaryResponse.from_summary(result.user),
        expires_in=result.expires_in,
    )


# ===================================================================
# POST /corporate/auth/magic-link
# ===================================================================


@router.post(
    "/magic-link",
    response_model=LinkRequestedResponse,
    response_model_exclude_unset=True,
)
@limiter.limit(lambda: settings.rate_limit_token)
async def request_magic_link(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    tenant_id: TenantId,
    tokens: Tokens,
    mailer: Mailer,
    config: AppSettings,
) -> LinkRequestedResponse:
    """Request a login link email.

    Always returns the same success body (prevents email enumeration).
    """
    outcome = await tokens.issue(tenant_id, body.email, TokenPurpose.LOGIN)
    return _link_requested(
        outcome,
        MAGIC_LINK_MESSAGE,
        background_tasks=background_tasks,
        mailer=mailer,
        expose_link=config.expose_magic_link,
    )


# ===================================================================
# POST /corporate/auth/verify
# ===================================================================


@router.post(
    "/verify",
    response_model=VerifyResponse,
    response_model_exclude_none=True,
)
@limiter.limit(lambda: settings.rate_limit_token)
async def verify_magic_link(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: VerifyTokenRequest,
    tenant_id: TenantId,
    tokens: Tokens,
) -> VerifyResponse:
    """Verify a login link.

    Users without a password get ``needsPassword`` and the unconsumed link
    token back; everyone else is logged in and the token is consumed.
    """
    outcome = await tokens.verify(tenant_id, body.token)
    return VerifyResponse(
        success=True,
        needs_password=outcome.needs_password,
        token=outcome.token,
        user=UserSummaryResponse.from_summary(outcome.user),
        expires_in=outcome.expires_in,
    )


# ===================================================================
# POST /corporate/auth/login
# ===================================================================


@router.post("/login", response_model=SessionResponse)
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    tenant_id: TenantId,
    passwords: Passwords,
) -> SessionResponse:
    """Log in with email and password.

    Rate limit: RATE_LIMIT_LOGIN per IP (default 5 per 15 minutes).
    """
    result = await passwords.login(tenant_id, body.email, body.password)
    return _session_response(result)


# ===================================================================
# POST /corporate/auth/set-password
# ===================================================================


@router.post("/set-password", response_model=SessionResponse)
@limiter.limit(lambda: settings.rate_limit_token)
async def set_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: SetPasswordRequest,
    tenant_id: TenantId,
    passwords: Passwords,
) -> SessionResponse:
    """Set a password with a login or reset link token, then log in."""
    result = await passwords.set_password(
        tenant_id, body.token, body.password, body.confirm_password
    )
    return _session_response(result)


# ===================================================================
# POST /corporate/auth/forgot-password
# ===================================================================


@router.post(
    "/forgot-password",
    response_model=LinkRequestedResponse,
    response_model_exclude_unset=True,
)
@limiter.limit(lambda: settings.rate_limit_token)
async def forgot_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    tenant_id: TenantId,
    passwords: Passwords,
    mailer: Mailer,
    config: AppSettings,
) -> LinkRequestedResponse:
    """Request a password reset email.

    Always returns the same success body (prevents email enumeration).
    """
    outcome = await passwords.request_reset(tenant_id, body.email)
    return _link_requested(
        outcome,
        RESET_LINK_MESSAGE,
        background_tasks=background_tasks,
        mailer=mailer,
        expose_link=config.expose_magic_link,
    )


# ===================================================================
# GET /corporate/auth/session
# ===================================================================


@router.get("/session", response_model=SessionStatusResponse)
async def get_session(
    tenant_id: TenantId,
    sessions: Sessions,
    authorization: Annotated[str | None, Header()] = None,
) -> SessionStatusResponse:
    """Validate the bearer session and return the signed-in user."""
    claims = await sessions.verify(tenant_id, authorization)
    return SessionStatusResponse(
        valid=True,
        user=UserSummaryResponse.from_summary(claims.to_user_summary()),
    )
