"""Shared dependencies for the corporate auth endpoints.

Process-wide collaborators (settings, signing secret provider, magic link
throttle, email sender) are created once in ``create_app()`` and stored on
``app.state``. Per-request objects (credential store, services) are built
from them here, so tests can override any single layer with
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from corporate_auth.core.config import Settings
from corporate_auth.core.database import get_db
from corporate_auth.core.email import EmailSender
from corporate_auth.core.rate_limiting import MagicLinkThrottle
from corporate_auth.core.secrets import SecretProvider
from corporate_auth.repositories.credential_store import (
    CredentialStore,
    SqlCredentialStore,
)
from corporate_auth.services.password_service import PasswordService
from corporate_auth.services.session_service import SessionService
from corporate_auth.services.token_service import TokenService


def get_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_settings)]


def get_tenant_id(config: AppSettings) -> str:
    """Tenant for the current request.

    Single tenant per deployment for now; an authorizer-supplied tenant can
    replace this without touching the services.
    """
    return config.tenant_id


def get_secret_provider(request: Request) -> SecretProvider:
    return request.app.state.secret_provider


def get_magic_link_throttle(request: Request) -> MagicLinkThrottle:
    return request.app.state.magic_link_throttle


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_credential_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CredentialStore:
    """Credential store bound to the request's database session."""
    return SqlCredentialStore(db)


TenantId = Annotated[str, Depends(get_tenant_id)]
Store = Annotated[CredentialStore, Depends(get_credential_store)]
Secrets = Annotated[SecretProvider, Depends(get_secret_provider)]
Throttle = Annotated[MagicLinkThrottle, Depends(get_magic_link_throttle)]
Mailer = Annotated[EmailSender, Depends(get_email_sender)]


def get_session_service(
    store: Store, secrets: Secrets, config: AppSettings
) -> SessionService:
    return SessionService(store, secrets, config)


Sessions = Annotated[SessionService, Depends(get_session_service)]


def get_token_service(
    store: Store, sessions: Sessions, throttle: Throttle, config: AppSettings
) -> TokenService:
    return TokenService(store, sessions, throttle, config)


Tokens = Annotated[TokenService, Depends(get_token_service)]


def get_password_service(
    store: Store, tokens: Tokens, sessions: Sessions, config: AppSettings
) -> PasswordService:
    return PasswordService(store, tokens, sessions, config)


Passwords = Annotated[PasswordService, Depends(get_password_service)]
