# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - anime.py: Watch-list request bodies, catalog entries and list items
# - user.py: Auth request bodies, profiles and session claims
#
# These models define the "contract" between API and clients.
# =============================================================================

from .anime import (
    DEFAULT_WATCH_STATUS,
    WATCH_STATUSES,
    AnimeCreate,
    AnimeEntry,
    AnimeItem,
    AnimeUpdate,
    Genre,
    StatusUpdate,
    WatchStatus,
)
from .user import (
    IssuedToken,
    LoginRequest,
    LoginResult,
    RegisterRequest,
    SessionClaims,
    UserProfile,
    UserRole,
)

__all__ = [
    # Anime
    "DEFAULT_WATCH_STATUS",
    "WATCH_STATUSES",
    "AnimeCreate",
    "AnimeEntry",
    "AnimeItem",
    "AnimeUpdate",
    "Genre",
    "StatusUpdate",
    "WatchStatus",
    # User
    "IssuedToken",
    "LoginRequest",
    "LoginResult",
    "RegisterRequest",
    "SessionClaims",
    "UserProfile",
    "UserRole",
]
