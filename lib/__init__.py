# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrappers for tables and auth
# - utils.py: Shared utilities (UUID and email normalization, genre flattening)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import (
    SupabaseAuth,
    SupabaseClient,
    SupabaseClientError,
    create_supabase_client,
)
from lib.utils import join_genre_names, normalize_email, normalize_uuid

__all__ = [
    # Supabase
    "SupabaseAuth",
    "SupabaseClient",
    "SupabaseClientError",
    "create_supabase_client",
    # Utils
    "join_genre_names",
    "normalize_email",
    "normalize_uuid",
]
