# =============================================================================
# app/routers/anime.py - Watch-list Endpoints
# =============================================================================
# Add, list, update and delete entries in the caller's watch-list.
# All endpoints require authentication.
#
# Handlers are plain functions: FastAPI runs them on its threadpool, so the
# blocking Supabase calls don't stall the event loop and the request
# timeout middleware can still answer 504.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field

from app.auth import AuthUser, get_current_user
from app.dependencies import WatchlistStoreDep
from core.models.anime import AnimeCreate, AnimeEntry, AnimeItem, AnimeUpdate, StatusUpdate

router = APIRouter()

AnimeId = Annotated[int, Path(description="Catalog entry id")]


# =============================================================================
# Response Models
# =============================================================================

class AnimeEntryResponse(BaseModel):
    """Envelope for a catalog entry."""
    message: str
    data: AnimeEntry

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "Anime added successfully",
                "data": {
                    "id": 12,
                    "name": "Naruto",
                    "image_url": "https://cdn.myanimelist.net/images/anime/13/17405.jpg",
                    "vote_average": 8.5,
                    "genres": [{"name": "Action"}],
                    "mal_id": 20,
                },
            }
        }
    }


class MessageResponse(BaseModel):
    message: str = Field(..., example="Anime deleted successfully")


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/add", status_code=status.HTTP_201_CREATED, response_model=AnimeEntryResponse)
def add_anime(
    request: AnimeCreate,
    store: WatchlistStoreDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Add an anime to the caller's list.

    Reuses the shared catalog entry when one with the same name exists.
    `status` defaults to "completed" when omitted.
    """
    entry = store.add_anime(request, str(user.id))
    return AnimeEntryResponse(
        message="Anime added successfully",
        data=AnimeEntry.model_validate(entry),
    )


@router.delete("/delete/{anime_id}", response_model=MessageResponse)
def delete_anime(
    anime_id: AnimeId,
    store: WatchlistStoreDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Remove an anime from the caller's list.

    The shared catalog entry is kept. Deleting an anime that isn't in the
    list succeeds.
    """
    store.delete_anime(anime_id, str(user.id))
    return MessageResponse(message="Anime deleted successfully")


@router.get("/list", response_model=list[AnimeItem])
def get_anime_list(
    store: WatchlistStoreDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    List the caller's anime with their watch status.

    Genres are returned as comma-separated text. Order is not guaranteed.
    """
    return store.get_anime_list(str(user.id))


@router.patch("/update/{anime_id}", response_model=AnimeEntryResponse)
def update_anime(
    anime_id: AnimeId,
    request: AnimeUpdate,
    store: WatchlistStoreDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Update an anime in the caller's list.

    `status` changes the caller's own entry; other fields change the shared
    catalog entry.
    """
    entry = store.update_anime(anime_id, str(user.id), request)
    return AnimeEntryResponse(
        message="Anime updated successfully",
        data=AnimeEntry.model_validate(entry),
    )


@router.patch("/status/{anime_id}", response_model=MessageResponse)
def update_anime_status(
    anime_id: AnimeId,
    request: StatusUpdate,
    store: WatchlistStoreDep,
    user: AuthUser = Depends(get_current_user),
):
    """
    Change the caller's watch status for an anime.
    """
    store.update_anime_status(anime_id, str(user.id), request.status)
    return MessageResponse(message="Status updated successfully")
