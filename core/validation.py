# =============================================================================
# core/validation.py - Field Validation
# =============================================================================
# Pure predicates for inbound field values, plus one validation function per
# operation. Validation functions never raise; they return a list of
# FieldError so callers can report every problem at once. `ensure_valid`
# converts a non-empty list into a ValidationFailedError.
#
# Usage:
#   from core.validation import validate_anime_create, ensure_valid
#   ensure_valid(validate_anime_create(payload))
# =============================================================================

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, TYPE_CHECKING

from app.exceptions import ValidationFailedError
from core.models.anime import WATCH_STATUSES

if TYPE_CHECKING:
    from core.models.anime import AnimeCreate, AnimeUpdate
    from core.models.user import LoginRequest, RegisterRequest


MIN_RATING = 0.0
MAX_RATING = 10.0


@dataclass(frozen=True)
class FieldError:
    """A single validation failure."""
    field: str
    message: str


# =============================================================================
# Predicates
# =============================================================================

def is_non_empty_string(value: Any) -> bool:
    """True for a string with at least one non-whitespace character."""
    return isinstance(value, str) and len(value.strip()) > 0


def is_number(value: Any) -> bool:
    """True for an int or float that isn't NaN. Booleans don't count."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def is_valid_status(value: Any) -> bool:
    """True if value is one of the four watch statuses."""
    return isinstance(value, str) and value in WATCH_STATUSES


def is_valid_rating(value: Any) -> bool:
    """True for None or a number in [0, 10]."""
    return value is None or (is_number(value) and MIN_RATING <= value <= MAX_RATING)


# =============================================================================
# Shared messages
# =============================================================================

def _status_error() -> FieldError:
    return FieldError(
        field="status",
        message=f"Invalid status. Must be one of: {', '.join(WATCH_STATUSES)}",
    )


def _rating_error() -> FieldError:
    return FieldError(field="vote_average", message="Rating must be between 0 and 10")


def _genre_errors(genres: list[Any] | None) -> list[FieldError]:
    errors = []
    for index, genre in enumerate(genres or []):
        name = genre.get("name") if isinstance(genre, dict) else getattr(genre, "name", None)
        if not is_non_empty_string(name):
            errors.append(FieldError(field=f"genres.{index}.name", message="Invalid genre name"))
    return errors


# =============================================================================
# Per-operation validation
# =============================================================================

def validate_register(request: RegisterRequest) -> list[FieldError]:
    """All three fields are required."""
    missing = [
        name for name in ("email", "password", "username")
        if not is_non_empty_string(getattr(request, name))
    ]
    if missing:
        return [
            FieldError(field=name, message="Email, password and username are required")
            for name in missing
        ]
    return []


def validate_login(request: LoginRequest) -> list[FieldError]:
    missing = [
        name for name in ("email", "password")
        if not is_non_empty_string(getattr(request, name))
    ]
    return [
        FieldError(field=name, message="Email and password are required")
        for name in missing
    ]


def validate_anime_create(request: AnimeCreate) -> list[FieldError]:
    """
    Validate a new watch-list entry.

    `status` may be left out (the store defaults it); if sent, even as
    null, it must be one of the four watch statuses.
    """
    errors = []
    if not is_non_empty_string(request.name):
        errors.append(FieldError(field="name", message="Invalid name"))
    if not is_non_empty_string(request.image_url):
        errors.append(FieldError(field="image_url", message="Invalid image_url"))
    if not is_valid_rating(request.vote_average):
        errors.append(_rating_error())
    if "status" in request.model_fields_set and not is_valid_status(request.status):
        errors.append(_status_error())
    errors.extend(_genre_errors(request.genres))
    return errors


def validate_anime_update(request: AnimeUpdate) -> list[FieldError]:
    """Validate only the fields the client actually sent."""
    sent = request.model_fields_set
    errors = []

    if not sent:
        errors.append(FieldError(field="body", message="No fields to update"))
    if "name" in sent and not is_non_empty_string(request.name):
        errors.append(FieldError(field="name", message="Invalid name"))
    if "image_url" in sent and not is_non_empty_string(request.image_url):
        errors.append(FieldError(field="image_url", message="Invalid image_url"))
    if "vote_average" in sent and not is_valid_rating(request.vote_average):
        errors.append(_rating_error())
    if "status" in sent and not is_valid_status(request.status):
        errors.append(_status_error())
    if "genres" in sent and request.genres is None:
        errors.append(FieldError(field="genres", message="Invalid genres"))
    elif "genres" in sent:
        errors.extend(_genre_errors(request.genres))
    return errors


def validate_status(status: Any) -> list[FieldError]:
    return [] if is_valid_status(status) else [_status_error()]


def ensure_valid(errors: list[FieldError]) -> None:
    """Raise ValidationFailedError if there is anything in `errors`."""
    if errors:
        raise ValidationFailedError([asdict(error) for error in errors])
