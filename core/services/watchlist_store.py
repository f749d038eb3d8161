# =============================================================================
# core/services/watchlist_store.py - Watch-list Business Logic
# =============================================================================
# Catalog entries (anime_list) are shared between users and keyed by name;
# each user's relationship to an entry is a link (user_anime) carrying the
# watch status. Adding an anime reuses the catalog entry when one with the
# same name exists; deleting only removes the caller's link.
#
# No operation here spans a transaction. A catalog insert followed by a
# failed link insert leaves an unlinked catalog entry behind, which the
# next add of the same name simply reuses.
# =============================================================================

import logging
from typing import Any

from app.exceptions import (
    DuplicateLinkError,
    NotFoundError,
    StoreError,
    ValidationFailedError,
)
from core.models.anime import (
    DEFAULT_WATCH_STATUS,
    AnimeCreate,
    AnimeItem,
    AnimeUpdate,
)
from core.validation import (
    ensure_valid,
    validate_anime_create,
    validate_anime_update,
    validate_status,
)
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import join_genre_names

logger = logging.getLogger(__name__)


class WatchlistStore:
    """
    Service for a user's watch-list.

    Every mutation is scoped to the calling user's link; the shared
    catalog entry is only written by add_anime (on first use of a name)
    and by update_anime (for users who have the entry in their list).
    """

    def __init__(self, db: SupabaseClient):
        self.db = db

    # -------------------------------------------------------------------------
    # Add
    # -------------------------------------------------------------------------

    def add_anime(self, request: AnimeCreate, user_id: str) -> dict[str, Any]:
        """
        Add an anime to a user's list.

        Reuses the catalog entry with the same name if there is one,
        otherwise creates it, then links it to the user.

        Returns:
            The catalog entry (not the link)

        Raises:
            ValidationFailedError: Before any store call, on bad fields
            DuplicateLinkError: If the anime is already in the user's list
            StoreError: For any other persistence failure
        """
        ensure_valid(validate_anime_create(request))
        if "status" in request.model_fields_set:
            status = request.status
        else:
            status = DEFAULT_WATCH_STATUS.value
            logger.debug(f"No status given for '{request.name}', defaulting to {status}")

        entry = self._get_or_create_entry(request)

        try:
            self.db.insert_user_anime(user_id, entry["id"], status)
        except SupabaseClientError as e:
            if e.is_unique_violation:
                raise DuplicateLinkError(str(entry["id"])) from e
            logger.error(f"Failed to link anime {entry['id']} to user {user_id}: {e}")
            raise StoreError("add anime") from e

        logger.info(f"User {user_id} added anime {entry['id']} as {status}")
        return entry

    def _get_or_create_entry(self, request: AnimeCreate) -> dict[str, Any]:
        fields = request.catalog_fields()
        name = fields["name"]
        try:
            existing = self.db.find_anime_by_name(name)
        except SupabaseClientError as e:
            logger.error(f"Failed to search anime '{name}': {e}")
            raise StoreError("add anime") from e

        if existing:
            return existing

        try:
            entry = self.db.insert_anime(fields)
            logger.info(f"Created catalog entry {entry['id']} for '{name}'")
            return entry
        except SupabaseClientError as e:
            if not e.is_unique_violation:
                logger.error(f"Failed to insert anime '{name}': {e}")
                raise StoreError("add anime") from e

        # Lost a race with a concurrent add of the same name; use theirs
        logger.info(f"Catalog entry for '{name}' created concurrently, re-fetching")
        try:
            entry = self.db.find_anime_by_name(name)
        except SupabaseClientError as e:
            logger.error(f"Failed to re-fetch anime '{name}': {e}")
            raise StoreError("add anime") from e

        if not entry:
            logger.error(f"Catalog entry for '{name}' vanished after unique violation")
            raise StoreError("add anime")
        return entry

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete_anime(self, anime_id: Any, user_id: str) -> None:
        """
        Remove an anime from a user's list.

        Only the link is deleted. Deleting something that isn't in the list
        succeeds without doing anything.
        """
        try:
            removed = self.db.delete_user_anime(anime_id, user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to delete anime {anime_id} for user {user_id}: {e}")
            raise StoreError("delete anime") from e

        if removed:
            logger.info(f"User {user_id} removed anime {anime_id}")
        else:
            logger.debug(f"User {user_id} had no link to anime {anime_id}; nothing deleted")

    # -------------------------------------------------------------------------
    # List
    # -------------------------------------------------------------------------

    def get_anime_list(self, user_id: str) -> list[AnimeItem]:
        """
        Fetch a user's list with genres flattened to "A, B" text.

        Order is whatever the database returns.
        """
        try:
            rows = self.db.fetch_user_anime_list(user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to fetch anime list for user {user_id}: {e}")
            raise StoreError("fetch anime list") from e

        return [self._to_item(row) for row in rows]

    @staticmethod
    def _to_item(row: dict[str, Any]) -> AnimeItem:
        link = row.get("user_anime")
        # PostgREST embeds one-to-many joins as a list
        if isinstance(link, list):
            link = link[0] if link else {}

        return AnimeItem(
            id=row["id"],
            name=row["name"],
            image_url=row.get("image_url"),
            vote_average=row.get("vote_average"),
            genres=join_genre_names(row.get("genres")),
            status=(link or {}).get("status"),
            mal_id=row.get("mal_id"),
        )

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_anime_status(self, anime_id: Any, user_id: str, status: str | None) -> None:
        """
        Change the status on a user's link.

        If the user has no link to this anime nothing is updated and no
        error is raised.

        Raises:
            ValidationFailedError: If status isn't one of the four values
        """
        ensure_valid(validate_status(status))

        try:
            updated = self.db.update_user_anime_status(anime_id, user_id, status)
        except SupabaseClientError as e:
            logger.error(f"Failed to update status of anime {anime_id} for user {user_id}: {e}")
            raise StoreError("update status") from e

        if updated:
            logger.info(f"User {user_id} set anime {anime_id} to {status}")
        else:
            logger.debug(f"User {user_id} has no link to anime {anime_id}; status unchanged")

    def update_anime(self, anime_id: Any, user_id: str, request: AnimeUpdate) -> dict[str, Any]:
        """
        Update an entry in the user's list.

        `status` goes to the caller's link; name, image_url, vote_average,
        genres and mal_id go to the shared catalog entry. The caller must
        have the entry in their list.

        Returns:
            The catalog entry after the update

        Raises:
            ValidationFailedError: On bad fields, an empty body, or a name
                already used by another entry
            NotFoundError: If the anime isn't in the caller's list
            StoreError: For any other persistence failure
        """
        ensure_valid(validate_anime_update(request))

        try:
            link = self.db.fetch_user_anime(anime_id, user_id)
        except SupabaseClientError as e:
            logger.error(f"Failed to check link for anime {anime_id}: {e}")
            raise StoreError("update anime") from e
        if not link:
            raise NotFoundError("Anime", str(anime_id))

        # Catalog first: a rejected rename must not leave the status changed
        fields = request.catalog_fields()
        try:
            if fields:
                entry = self.db.update_anime(anime_id, fields)
            else:
                entry = self.db.fetch_anime(anime_id)
        except SupabaseClientError as e:
            if e.is_unique_violation:
                raise ValidationFailedError(
                    [{"field": "name", "message": "An anime with this name already exists"}]
                ) from e
            logger.error(f"Failed to update anime {anime_id}: {e}")
            raise StoreError("update anime") from e

        if not entry:
            raise NotFoundError("Anime", str(anime_id))

        if "status" in request.model_fields_set:
            self.update_anime_status(anime_id, user_id, request.status)

        logger.info(f"User {user_id} updated anime {anime_id}: {sorted(request.model_fields_set)}")
        return entry
