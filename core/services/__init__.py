# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .session_manager import SessionManager
from .watchlist_store import WatchlistStore

__all__ = [
    "SessionManager",
    "WatchlistStore",
]
