"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from dashboard.api.v1 import admin, auth, session

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

_AUTH_PREFIX = "/auth"

router.include_router(auth.router, prefix=_AUTH_PREFIX, tags=["auth"])
router.include_router(session.router, prefix=_AUTH_PREFIX, tags=["auth"])

# =============================================================================
# Administration
# =============================================================================

router.include_router(admin.router, prefix="/admin", tags=["admin"])
