"""Tests for application configuration.

Settings for database, CORS, tenancy, session signing, magic links and
rate limiting. Tests cover defaults and the security validator.
"""

import pytest
from pydantic import SecretStr, ValidationError

from corporate_auth.core.config import _INSECURE_DEFAULT_PASSWORD, Settings

# Reusable test constants
_SECURE_DB_PASSWORD = "my-secure-production-password-123!"
_TEST_JWT_SECRET = "a" * 64
_PRODUCTION = "production"


def _production(**overrides) -> Settings:
    values = {
        "environment": _PRODUCTION,
        "database_password": _SECURE_DB_PASSWORD,
        "jwt_secret": SecretStr(_TEST_JWT_SECRET),
    }
    values.update(overrides)
    return Settings(**values)


class TestDefaults:
    """Defaults match the deployed corporate portal."""

    def test_tenant_defaults_to_first_tenant(self):
        assert Settings().tenant_id == "TENANT#001"

    def test_session_ttl_is_eight_hours(self):
        assert Settings().session_ttl_seconds == 28800

    def test_magic_link_ttl_is_five_days(self):
        assert Settings().magic_link_ttl_seconds == 5 * 24 * 60 * 60

    def test_three_magic_links_per_hour(self):
        assert Settings().max_magic_links_per_hour == 3

    def test_bcrypt_cost_is_twelve(self):
        assert Settings().bcrypt_rounds == 12

    def test_links_not_exposed_by_default(self):
        assert Settings().expose_magic_link is False

    def test_database_url_uses_asyncpg(self):
        s = Settings(database_host="db", database_port=6543, database_name="x")
        assert s.database_url.startswith("postgresql+asyncpg://")
        assert "@db:6543/x" in s.database_url


class TestProductionSecurityValidation:
    """Tests for production security requirements."""

    def test_valid_production_settings_accepted(self):
        s = _production()
        assert s.is_production is True

    def test_allows_default_password_in_development(self):
        """Default password is allowed in development environment."""
        s = Settings(
            environment="development",
            database_password=_INSECURE_DEFAULT_PASSWORD,
        )
        assert s.database_password == _INSECURE_DEFAULT_PASSWORD

    def test_rejects_default_password_in_production(self):
        """Default password is rejected in production environment."""
        with pytest.raises(ValidationError) as exc_info:
            _production(database_password=_INSECURE_DEFAULT_PASSWORD)

        errors = exc_info.value.errors()
        assert len(errors) == 1
        assert "Cannot use default database password in production" in str(
            errors[0]["msg"]
        )

    def test_rejects_short_jwt_secret_in_production(self):
        with pytest.raises(ValidationError, match="JWT_SECRET must be at least 32"):
            _production(jwt_secret=SecretStr("too-short"))

    def test_rejects_exposed_magic_link_in_production(self):
        with pytest.raises(ValidationError, match="EXPOSE_MAGIC_LINK"):
            _production(expose_magic_link=True)

    def test_allows_exposed_magic_link_outside_production(self):
        s = Settings(environment="staging", expose_magic_link=True)
        assert s.expose_magic_link is True


class TestGeneralValidation:
    """Checks applied in every environment."""

    def test_rejects_wildcard_cors_origin(self):
        with pytest.raises(ValidationError, match="wildcard"):
            Settings(allowed_origins=["*"])

    @pytest.mark.parametrize(
        "field", ["session_ttl_seconds", "magic_link_ttl_seconds"]
    )
    def test_rejects_non_positive_ttl(self, field):
        with pytest.raises(ValidationError, match="must be positive"):
            Settings(**{field: 0})

    def test_rejects_non_positive_magic_link_budget(self):
        with pytest.raises(ValidationError, match="MAX_MAGIC_LINKS_PER_HOUR"):
            Settings(max_magic_links_per_hour=0)
