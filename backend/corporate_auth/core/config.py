"""Application configuration loaded from environment variables.

Settings for the database, CORS, tenancy, session signing, magic links,
rate limiting and outbound email. Uses pydantic-settings for validation and
.env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "corporate_dev_password"  # nosec B105

# Minimum length for JWT_SECRET in production (256 bits = 32 bytes)
_MIN_JWT_SECRET_LENGTH = 32

# 8 hours
_DEFAULT_SESSION_TTL_SECONDS = 8 * 60 * 60

# 5 days
_DEFAULT_MAGIC_LINK_TTL_SECONDS = 5 * 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "corporate_portal"
    database_user: str = "corporate_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS allow-list. Credentials are allowed, so never "*".
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "https://dorsettransfercompany.flowency.build",
        "https://dorsettransfercompany.co.uk",
        "https://www.dorsettransfercompany.co.uk",
    ]

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] | None = None

    # Tenancy: single tenant per deployment until an authorizer supplies it
    tenant_id: str = "TENANT#001"

    # Session signing
    jwt_secret_name: str = "durdle/jwt-secret"
    jwt_secret: SecretStr = SecretStr("")
    session_ttl_seconds: int = _DEFAULT_SESSION_TTL_SECONDS

    # Magic links
    magic_link_ttl_seconds: int = _DEFAULT_MAGIC_LINK_TTL_SECONDS
    max_magic_links_per_hour: int = 3
    corporate_portal_url: str = "https://dorsettransfercompany.co.uk/corporate"
    # Echo issued links in API responses (non-production test mode only)
    expose_magic_link: bool = False

    # Passwords
    bcrypt_rounds: int = 12

    # Email
    email_from: str = "noreply@dorsettransfercompany.co.uk"
    resend_api_key: SecretStr = SecretStr("")

    # Rate limiting
    # Per-IP endpoint limits (slowapi) and the per-email magic link throttle
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    rate_limit_login: str = "5/15minute"
    rate_limit_token: str = "10/minute"

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def is_production(self) -> bool:
        """True when running with ENVIRONMENT=production."""
        return self.environment == "production"

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate security requirements.

        Checks:
        - CORS must not use wildcard origin (incompatible with credentials)
        - TTLs and throttle budget must be positive
        - In production: no exposed magic links, no default database
          password, and a JWT secret of adequate length
        """
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "Corporate auth responses allow credentials, which is "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.session_ttl_seconds <= 0 or self.magic_link_ttl_seconds <= 0:
            msg = "SESSION_TTL_SECONDS and MAGIC_LINK_TTL_SECONDS must be positive."
            raise ValueError(msg)

        if self.max_magic_links_per_hour <= 0:
            msg = (
                "MAX_MAGIC_LINKS_PER_HOUR must be positive. "
                f"Got: {self.max_magic_links_per_hour}"
            )
            raise ValueError(msg)

        if self.is_production:
            if self.expose_magic_link:
                msg = "EXPOSE_MAGIC_LINK must be false in production."
                raise ValueError(msg)

            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.jwt_secret.get_secret_value()
            if len(secret_value) < _MIN_JWT_SECRET_LENGTH:
                msg = (
                    f"JWT_SECRET must be at least {_MIN_JWT_SECRET_LENGTH} "
                    "characters in production. Generate with: "
                    'python -c "import secrets; print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

        return self


settings = Settings()
