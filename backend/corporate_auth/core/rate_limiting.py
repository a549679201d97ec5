"""Rate limiting for the corporate auth endpoints.

Two layers:
- ``limiter``: slowapi per-IP limits on the login and token endpoints.
- ``MagicLinkThrottle``: moving-window budget of magic links per
  (tenant, email), built on the ``limits`` library that backs slowapi.

Both share RATE_LIMIT_STORAGE_URI, so a Redis URI makes them work across
instances.

Usage in routers:
    from corporate_auth.core.rate_limiting import limiter

    @router.post("/login")
    @limiter.limit(lambda: settings.rate_limit_login)
    async def login(request: Request, ...):
        ...
"""

import structlog
from fastapi import Request, Response
from limits import RateLimitItemPerHour
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from corporate_auth.core.config import Settings, settings
from corporate_auth.core.errors import RateLimitedError

logger = structlog.get_logger()

# Global limiter instance, keyed by client IP (no session exists yet on
# these endpoints)
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
    storage_uri=settings.rate_limit_storage_uri,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests with the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    error = RateLimitedError()
    logger.warning("rate_limit_exceeded", limit=str(exc.detail))
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message},
        headers={"Retry-After": retry_after},
    )


class MagicLinkThrottle:
    """Per-(tenant, email) budget for magic link issuance.

    Args:
        max_per_hour: Links allowed per address in any rolling hour.
        storage_uri: ``limits`` storage URI (``memory://``, ``redis://...``).
        enabled: When False every request is allowed.
    """

    def __init__(
        self,
        max_per_hour: int,
        storage_uri: str = "memory://",
        *,
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self._item = RateLimitItemPerHour(max_per_hour)
        self._limiter = MovingWindowRateLimiter(storage_from_string(storage_uri))

    def allow(self, tenant_id: str, email: str) -> bool:
        """Record one issuance attempt and report whether it is within budget.

        Args:
            tenant_id: Tenant the address belongs to.
            email: Normalized email address.

        Returns:
            True if the request may proceed, False if over budget.
        """
        if not self.enabled:
            return True
        return self._limiter.hit(self._item, "magic_link", tenant_id, email)


def build_magic_link_throttle(config: Settings) -> MagicLinkThrottle:
    """Create the process-wide magic link throttle from settings."""
    return MagicLinkThrottle(
        config.max_magic_links_per_hour,
        config.rate_limit_storage_uri,
        enabled=config.rate_limit_enabled,
    )
