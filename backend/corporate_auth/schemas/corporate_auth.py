"""Request and response schemas for the corporate auth endpoints.

The portal frontend speaks camelCase JSON. Models use snake_case attributes
with camelCase aliases; requests accept either spelling.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from corporate_auth.services.session_service import UserSummary

_MAX_PASSWORD_LENGTH = 128

# Plain tokens are 64 hex chars; leave room without accepting megabytes
_MAX_TOKEN_LENGTH = 256


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _CamelRequest(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# =============================================================================
# Requests
# =============================================================================


class EmailRequest(_CamelRequest):
    """Request body for POST /magic-link and POST /forgot-password."""

    email: EmailStr


class VerifyTokenRequest(_CamelRequest):
    """Request body for POST /verify."""

    token: str = Field(min_length=1, max_length=_MAX_TOKEN_LENGTH)


class LoginRequest(_CamelRequest):
    """Request body for POST /login."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)


class SetPasswordRequest(_CamelRequest):
    """Request body for POST /set-password.

    Only presence and size are checked here. The password policy runs in
    PasswordService so each rule reports its own message.
    """

    token: str = Field(min_length=1, max_length=_MAX_TOKEN_LENGTH)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)
    confirm_password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)


# =============================================================================
# Responses
# =============================================================================


class UserSummaryResponse(_CamelModel):
    """User projection returned after any successful authentication.

    Attributes:
        user_id: User identifier.
        email: Login email.
        name: Display name.
        role: ``admin`` or ``booker``.
        company_name: Corporate account name.
        corp_account_id: Corporate account identifier.
    """

    user_id: str
    email: str
    name: str
    role: str
    company_name: str
    corp_account_id: str

    @classmethod
    def from_summary(cls, summary: UserSummary) -> "UserSummaryResponse":
        return cls(
            user_id=summary.user_id,
            email=summary.email,
            name=summary.name,
            role=summary.role,
            company_name=summary.company_name,
            corp_account_id=summary.corp_account_id,
        )


class LinkRequestedResponse(_CamelModel):
    """Uniform body for magic-link and forgot-password requests.

    ``magic_link`` is only set when link echoing is enabled (non-production),
    and then on every branch, so the key set never depends on whether the
    address is registered.
    """

    success: bool
    message: str
    magic_link: str | None = None


class VerifyResponse(_CamelModel):
    """Body for POST /verify.

    With ``needs_password`` the token is the magic link token to send to
    set-password; otherwise it is the session JWT and ``expires_in`` is set.
    """

    success: bool
    needs_password: bool
    token: str
    user: UserSummaryResponse
    expires_in: int | None = None


class SessionResponse(_CamelModel):
    """Body for POST /login and POST /set-password."""

    success: bool
    token: str
    user: UserSummaryResponse
    expires_in: int


class SessionStatusResponse(_CamelModel):
    """Body for GET /session."""

    valid: bool
    user: UserSummaryResponse
