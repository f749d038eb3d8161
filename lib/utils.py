# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Handles both string and UUID objects, ensuring consistent string output.

    Example:
        user_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        user_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Email Utilities
# =============================================================================

def normalize_email(email: str) -> str:
    """
    Canonical form of an email address.

    Supabase Auth stores addresses lowercased, so lookups and the mirrored
    profile row must use the same form.

    Example:
        normalize_email(" Alice@X.com ")  # "alice@x.com"
    """
    return email.strip().lower()


# =============================================================================
# Genre Utilities
# =============================================================================

def join_genre_names(genres: list[Any] | None, separator: str = ", ") -> str:
    """
    Flatten a stored genre list into display text.

    Accepts the JSON shape stored on catalog entries ([{"name": "Action"}])
    and skips entries without a name.

    Example:
        join_genre_names([{"name": "Action"}, {"name": "Drama"}])  # "Action, Drama"
        join_genre_names(None)  # ""
    """
    names = []
    for genre in genres or []:
        name = genre.get("name") if isinstance(genre, dict) else getattr(genre, "name", None)
        if name:
            names.append(str(name))
    return separator.join(names)
