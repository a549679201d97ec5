"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Logging configuration
- Process-wide collaborators on app.state (secret provider, throttle, mailer)
- Exception handlers producing the {"error": ...} envelope
- Router mounting and health check endpoint
"""

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from corporate_auth.api.v1.router import router as api_router
from corporate_auth.core.config import Settings, settings
from corporate_auth.core.email import EmailSender
from corporate_auth.core.errors import (
    APIError,
    InternalError,
    MethodNotAllowedError,
    NotFoundError,
)
from corporate_auth.core.logging import configure_logging
from corporate_auth.core.rate_limiting import (
    build_magic_link_throttle,
    limiter,
    rate_limit_exceeded_handler,
)
from corporate_auth.core.responses import ErrorResponse
from corporate_auth.core.secrets import build_secret_provider

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Frame-Options: Prevents clickjacking attacks
    - X-Content-Type-Options: Prevents MIME sniffing
    - Referrer-Policy: Controls referrer information leakage
    - Cache-Control: Auth responses carry tokens and must never be cached
    - Content-Security-Policy: Restricts resource loading (API returns no HTML)
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    def __init__(self, app: ASGIApp, *, hsts: bool) -> None:
        super().__init__(app)
        self._hsts = hsts

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if request.url.path.startswith("/corporate/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if self._hsts:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def _error_response(error: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(error=error.message, details=error.details).to_content(),
    )


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with error envelope and appropriate status code.
    """
    return _error_response(exc)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors from FastAPI.

    The message lists every failing field as ``field: reason``, joined by
    commas; ``details`` carries the same information structured.

    Args:
        request: The incoming request.
        exc: The RequestValidationError from Pydantic.

    Returns:
        JSONResponse (400) with field-level details.
    """
    details = []
    messages = []
    for e in exc.errors():
        if e["type"] == "json_invalid":
            # loc carries the decode position, not a field
            field = "body"
        else:
            # Drop the leading "body"/"header" location segment
            field = ".".join(str(part) for part in e["loc"][1:]) or str(e["loc"][0])
        details.append({"field": field, "message": e["msg"], "type": e["type"]})
        messages.append(f"{field}: {e['msg']}")

    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=", ".join(messages) or "Validation failed",
            details=details,
        ).to_content(),
    )


def http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Map routing errors (unknown path, wrong method) to the error envelope."""
    if exc.status_code == 404:
        return _error_response(NotFoundError())
    if exc.status_code == 405:
        response = _error_response(MethodNotAllowedError())
        if exc.headers and "Allow" in exc.headers:
            response.headers["Allow"] = exc.headers["Allow"]
        return response
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).to_content(),
        headers=exc.headers,
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 without exposing stack traces. The exception is logged.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with generic error message (500).
    """
    logger.exception("unhandled_exception", exc_info=exc, path=str(request.url.path))
    return _error_response(InternalError())


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings to build the app with. Defaults to the
            environment-loaded ``settings``.

    Returns:
        Configured FastAPI application instance.
    """
    config = config or settings
    configure_logging(config)

    app = FastAPI(
        title="Corporate Portal Auth API",
        version="1.0.0",
        description="Magic link, password and session authentication for the corporate portal",
    )

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.add_middleware(SecurityHeadersMiddleware, hsts=config.is_production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    # Register exception handlers
    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.settings = config
    app.state.limiter = limiter
    app.state.secret_provider = build_secret_provider(config)
    app.state.magic_link_throttle = build_magic_link_throttle(config)
    app.state.email_sender = EmailSender(config)

    app.include_router(api_router)

    # Health check endpoint (outside the auth routes)
    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    logger.info(
        "app_created",
        environment=config.environment,
        tenant_id=config.tenant_id,
        expose_magic_link=config.expose_magic_link,
    )
    return app


# Create the application instance
# Used by uvicorn: uvicorn corporate_auth.main:app
app = create_app()
