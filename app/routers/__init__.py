# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Root status and health check endpoints
# - anime.py: Watch-list endpoints
#
# Auth endpoints live in app/auth/routes.py.
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import anime
from . import health

__all__ = [
    "anime",
    "health",
]
