"""Tests for the FastAPI application: exception handlers and middleware."""

import pytest
from httpx import ASGITransport, AsyncClient

from corporate_auth.core.config import Settings
from corporate_auth.core.errors import (
    AuthenticationError,
    AuthorizationError,
    InternalError,
    ValidationError,
)
from corporate_auth.main import create_app


@pytest.fixture
def app():
    """Create test application instance."""
    return create_app(Settings(environment="test"))


@pytest.fixture
async def client(app):
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_healthy_status(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestRoutingErrors:
    """Unknown paths and wrong methods use the error envelope."""

    @pytest.mark.asyncio
    async def test_unknown_path_returns_404(self, client):
        response = await client.get("/corporate/auth/nonexistent")
        assert response.status_code == 404
        assert response.json() == {"error": "Endpoint not found"}

    @pytest.mark.asyncio
    async def test_wrong_method_returns_405(self, client):
        response = await client.get("/corporate/auth/login")
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
        assert "POST" in response.headers["allow"]

    @pytest.mark.asyncio
    async def test_post_to_session_returns_405(self, client):
        response = await client.post("/corporate/auth/session")
        assert response.status_code == 405


class TestExceptionHandlers:
    """Custom exceptions become {"error": ...} responses with their status."""

    @pytest.mark.asyncio
    async def test_validation_error_returns_400_with_details(self, app, client):
        @app.get("/test/validation-error")
        async def raise_validation_error():
            raise ValidationError("Invalid input", details=[{"field": "test"}])

        response = await client.get("/test/validation-error")
        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid input",
            "details": [{"field": "test"}],
        }

    @pytest.mark.asyncio
    async def test_authentication_error_returns_401(self, app, client):
        @app.get("/test/unauthorized")
        async def raise_unauthorized():
            raise AuthenticationError("Session expired")

        response = await client.get("/test/unauthorized")
        assert response.status_code == 401
        assert response.json() == {"error": "Session expired"}

    @pytest.mark.asyncio
    async def test_authorization_error_returns_403(self, app, client):
        @app.get("/test/forbidden")
        async def raise_forbidden():
            raise AuthorizationError("Corporate account is disabled")

        response = await client.get("/test/forbidden")
        assert response.status_code == 403
        assert response.json() == {"error": "Corporate account is disabled"}

    @pytest.mark.asyncio
    async def test_internal_error_returns_500(self, app, client):
        @app.get("/test/internal-error")
        async def raise_internal_error():
            raise InternalError()

        response = await client.get("/test/internal-error")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    @pytest.mark.asyncio
    async def test_unhandled_exception_does_not_expose_details(self, app):
        @app.get("/test/crash")
        async def crash():
            msg = "database password is hunter2"
            raise RuntimeError(msg)

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/test/crash")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "hunter2" not in response.text


class TestCORSMiddleware:
    """Tests for CORS middleware configuration."""

    @pytest.mark.asyncio
    async def test_cors_allows_configured_origin(self, client):
        response = await client.options(
            "/corporate/auth/login",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert response.status_code == 200
        assert (
            response.headers.get("access-control-allow-origin")
            == "http://localhost:3000"
        )
        assert response.headers.get("access-control-allow-credentials") == "true"

    @pytest.mark.asyncio
    async def test_cors_allows_authorization_header(self, client):
        response = await client.options(
            "/corporate/auth/session",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "Authorization",
            },
        )
        assert response.status_code == 200
        assert "authorization" in response.headers.get(
            "access-control-allow-headers", ""
        ).lower()

    @pytest.mark.asyncio
    async def test_cors_denies_unconfigured_origin(self):
        test_app = create_app(
            Settings(environment="test", allowed_origins=["http://allowed-origin.com"])
        )
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.options(
                "/health",
                headers={
                    "Origin": "http://malicious-site.com",
                    "Access-Control-Request-Method": "GET",
                },
            )
        allowed_origin = response.headers.get("access-control-allow-origin")
        assert allowed_origin != "http://malicious-site.com"


class TestSecurityHeadersMiddleware:
    """Tests for security headers middleware."""

    @pytest.mark.asyncio
    async def test_basic_security_headers(self, client):
        response = await client.get("/health")
        assert response.headers.get("x-frame-options") == "DENY"
        assert response.headers.get("x-content-type-options") == "nosniff"
        assert (
            response.headers.get("referrer-policy")
            == "strict-origin-when-cross-origin"
        )
        assert "default-src 'none'" in response.headers["content-security-policy"]

    @pytest.mark.asyncio
    async def test_cache_control_on_auth_endpoints(self, client):
        response = await client.get("/corporate/auth/session")
        assert response.headers.get("cache-control") == "no-store, max-age=0"

    @pytest.mark.asyncio
    async def test_cache_control_not_on_health(self, client):
        response = await client.get("/health")
        assert response.headers.get("cache-control") != "no-store, max-age=0"

    @pytest.mark.asyncio
    async def test_hsts_header_not_in_development(self, client):
        response = await client.get("/health")
        assert "strict-transport-security" not in response.headers

    @pytest.mark.asyncio
    async def test_hsts_header_in_production(self):
        prod = Settings(
            environment="production",
            database_password="a-real-password",  # nosec B106
            jwt_secret="x" * 32,
        )
        transport = ASGITransport(app=create_app(prod))
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/health")
        assert "max-age=31536000" in response.headers["strict-transport-security"]
