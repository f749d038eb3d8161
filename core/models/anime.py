# =============================================================================
# core/models/anime.py - Watch-list Schemas
# =============================================================================
# These models define the API contract for watch-list operations:
# - WatchStatus: The four per-user watch states
# - AnimeCreate / AnimeUpdate / StatusUpdate: Request bodies
# - AnimeEntry: A shared catalog entry (table anime_list)
# - AnimeItem: One row of a user's list, genres flattened to text
#
# A catalog entry is shared between users and de-duplicated by name. The
# per-user status lives on the link (table user_anime), not on the entry.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class WatchStatus(str, Enum):
    """
    Per-user watch state of an anime.

    Stored on the user_anime link row.
    """
    WATCHING = "watching"
    COMPLETED = "completed"
    PLAN_TO_WATCH = "plan_to_watch"
    DROPPED = "dropped"


WATCH_STATUSES: tuple[str, ...] = tuple(status.value for status in WatchStatus)

# Used when a client adds an anime without saying what they're doing with it
DEFAULT_WATCH_STATUS = WatchStatus.COMPLETED


class Genre(BaseModel):
    """A genre as stored on the catalog entry: {"name": "Action"}."""
    name: str


# =============================================================================
# Request Models
# =============================================================================
# Fields are typed loosely on purpose (status is a plain string) so that
# semantic checks happen in core.validation and surface as one 400 error
# listing every bad field.

class AnimeCreate(BaseModel):
    """
    Body of POST /anime/add.

    Example:
        {
            "name": "Naruto",
            "image_url": "https://cdn.myanimelist.net/images/anime/13/17405.jpg",
            "vote_average": 8.5,
            "status": "watching",
            "genres": [{"name": "Action"}, {"name": "Adventure"}],
            "mal_id": 20
        }
    """
    name: str = Field(..., description="Anime title, used as the catalog key")
    image_url: str = Field(..., description="Poster image URL")
    vote_average: float | None = Field(default=None, description="Rating between 0 and 10")
    status: str | None = Field(
        default=None,
        description="watching, completed, plan_to_watch or dropped"
    )
    genres: list[Genre] = Field(default_factory=list)
    mal_id: int | None = Field(default=None, description="MyAnimeList id")

    def catalog_fields(self) -> dict[str, Any]:
        """Columns for a new anime_list row. `name` is the catalog key, so it is stored trimmed."""
        return {
            "name": self.name.strip(),
            "image_url": self.image_url.strip(),
            "vote_average": self.vote_average,
            "genres": [genre.model_dump() for genre in self.genres],
            "mal_id": self.mal_id,
        }


class AnimeUpdate(BaseModel):
    """
    Body of PATCH /anime/update/{id}. Every field is optional.

    `status` updates the caller's link; everything else updates the shared
    catalog entry.
    """
    name: str | None = None
    image_url: str | None = None
    vote_average: float | None = None
    genres: list[Genre] | None = None
    mal_id: int | None = None
    status: str | None = None

    def catalog_fields(self) -> dict[str, Any]:
        """Catalog columns the client actually sent, with text fields trimmed."""
        fields = self.model_dump(include=self.model_fields_set - {"status"})
        for key in ("name", "image_url"):
            if isinstance(fields.get(key), str):
                fields[key] = fields[key].strip()
        return fields


class StatusUpdate(BaseModel):
    """Body of PATCH /anime/status/{id}."""
    status: str | None = None


# =============================================================================
# Response Models
# =============================================================================

class AnimeEntry(BaseModel):
    """
    A shared catalog entry.

    `id` is whatever key the anime_list table uses; it's passed through as-is.
    """
    id: Any
    name: str
    image_url: str | None = None
    vote_average: float | None = None
    genres: list[Genre] = Field(default_factory=list)
    mal_id: int | None = None
    created_at: datetime | None = None


class AnimeItem(BaseModel):
    """
    One entry of a user's watch-list.

    Example:
        {
            "id": 12,
            "name": "Naruto",
            "image_url": "https://...",
            "vote_average": 8.5,
            "genres": "Action, Adventure",
            "status": "watching",
            "mal_id": 20
        }
    """
    id: Any
    name: str
    image_url: str | None = None
    vote_average: float | None = None
    genres: str = ""
    status: WatchStatus
    mal_id: int | None = None
