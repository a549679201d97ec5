"""API router aggregator.

All endpoint routers are included here. Corporate portal auth lives under
/corporate/auth, the path the portal frontend already calls.
"""

from fastapi import APIRouter

from corporate_auth.api.v1 import corporate_auth

router = APIRouter()

# =============================================================================
# Corporate portal authentication
# =============================================================================

router.include_router(
    corporate_auth.router, prefix="/corporate/auth", tags=["corporate-auth"]
)
