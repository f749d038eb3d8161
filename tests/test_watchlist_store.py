# =============================================================================
# tests/test_watchlist_store.py - Watch-list Store Tests
# =============================================================================
# Catalog de-duplication, link ownership, list flattening and updates,
# run against the in-memory Supabase double from conftest.py.
#
# Run with: pytest tests/test_watchlist_store.py -v
# =============================================================================

from unittest.mock import patch
from uuid import uuid4

import pytest

from app.exceptions import (
    DuplicateLinkError,
    NotFoundError,
    StoreError,
    ValidationFailedError,
)
from core.models.anime import WATCH_STATUSES, AnimeCreate, AnimeUpdate, Genre, WatchStatus
from lib.supabase_client import SupabaseClientError


def _naruto(**overrides):
    data = {
        "name": "Naruto",
        "image_url": "u",
        "vote_average": 8.5,
        "status": "watching",
        "genres": [],
        "mal_id": 20,
    }
    data.update(overrides)
    return AnimeCreate(**data)


# =============================================================================
# Add
# =============================================================================

class TestAddAnime:

    def test_creates_entry_and_link(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        assert entry["name"] == "Naruto"
        assert entry["vote_average"] == 8.5
        assert entry["mal_id"] == 20
        assert fake_db.links == {(user_id, str(entry["id"])): "watching"}

    @pytest.mark.parametrize("status", WATCH_STATUSES)
    def test_accepts_every_status(self, watchlist_store, fake_db, user_id, status):
        entry = watchlist_store.add_anime(_naruto(status=status), user_id)
        assert fake_db.links[(user_id, str(entry["id"]))] == status

    def test_invalid_status_creates_nothing(self, watchlist_store, fake_db, user_id):
        with pytest.raises(ValidationFailedError):
            watchlist_store.add_anime(_naruto(status="invalid_status"), user_id)

        assert fake_db.anime == {}
        assert fake_db.links == {}

    @pytest.mark.parametrize("rating", [-1, -0.01, 10.01, 42])
    def test_rating_out_of_range(self, watchlist_store, fake_db, user_id, rating):
        with pytest.raises(ValidationFailedError) as exc_info:
            watchlist_store.add_anime(_naruto(vote_average=rating), user_id)

        assert exc_info.value.status_code == 400
        assert fake_db.anime == {}

    def test_null_rating_is_accepted(self, watchlist_store, user_id):
        entry = watchlist_store.add_anime(_naruto(vote_average=None), user_id)
        assert entry["vote_average"] is None

    def test_zero_rating_is_kept(self, watchlist_store, user_id):
        entry = watchlist_store.add_anime(_naruto(vote_average=0), user_id)
        assert entry["vote_average"] == 0

    def test_absent_status_defaults_to_completed(self, watchlist_store, fake_db, user_id):
        request = AnimeCreate(name="Naruto", image_url="u", vote_average=8.5)

        entry = watchlist_store.add_anime(request, user_id)

        assert fake_db.links[(user_id, str(entry["id"]))] == "completed"

    def test_null_status_is_not_defaulted(self, watchlist_store, fake_db, user_id):
        with pytest.raises(ValidationFailedError) as exc_info:
            watchlist_store.add_anime(_naruto(status=None), user_id)

        assert exc_info.value.errors[0]["field"] == "status"
        assert fake_db.anime == {}
        assert fake_db.links == {}

    def test_name_is_trimmed_before_lookup(self, watchlist_store, fake_db):
        alice, bob = str(uuid4()), str(uuid4())

        first = watchlist_store.add_anime(_naruto(), alice)
        second = watchlist_store.add_anime(_naruto(name="  Naruto "), bob)

        assert first["id"] == second["id"]
        assert len(fake_db.anime) == 1

    def test_same_name_shares_one_entry(self, watchlist_store, fake_db):
        alice, bob = str(uuid4()), str(uuid4())

        first = watchlist_store.add_anime(_naruto(status="watching"), alice)
        second = watchlist_store.add_anime(_naruto(status="dropped"), bob)

        assert first["id"] == second["id"]
        assert len(fake_db.anime) == 1
        assert len(fake_db.links) == 2

        alice_list = watchlist_store.get_anime_list(alice)
        bob_list = watchlist_store.get_anime_list(bob)
        assert [(i.id, i.status) for i in alice_list] == [(first["id"], WatchStatus.WATCHING)]
        assert [(i.id, i.status) for i in bob_list] == [(first["id"], WatchStatus.DROPPED)]

    def test_adding_twice_is_a_duplicate_link(self, watchlist_store, user_id):
        watchlist_store.add_anime(_naruto(), user_id)

        with pytest.raises(DuplicateLinkError) as exc_info:
            watchlist_store.add_anime(_naruto(status="completed"), user_id)

        assert exc_info.value.status_code == 400

    def test_lost_insert_race_reuses_winner(self, watchlist_store, fake_db, user_id):
        winner = fake_db.insert_anime({"name": "Naruto", "image_url": "w", "genres": []})
        lookups = iter([None, dict(winner)])

        with patch.object(fake_db, "find_anime_by_name", side_effect=lambda name: next(lookups)):
            entry = watchlist_store.add_anime(_naruto(), user_id)

        assert entry["id"] == winner["id"]
        assert len(fake_db.anime) == 1
        assert (user_id, str(winner["id"])) in fake_db.links

    def test_orphaned_entry_is_reused_later(self, watchlist_store, fake_db, user_id):
        fake_db.failures["insert_user_anime"] = SupabaseClientError(message="connection reset")
        with pytest.raises(StoreError):
            watchlist_store.add_anime(_naruto(), user_id)
        assert len(fake_db.anime) == 1

        del fake_db.failures["insert_user_anime"]
        entry = watchlist_store.add_anime(_naruto(), user_id)

        assert len(fake_db.anime) == 1
        assert (user_id, str(entry["id"])) in fake_db.links

    def test_store_error_hides_details(self, watchlist_store, fake_db, user_id):
        fake_db.failures["find_anime_by_name"] = SupabaseClientError(
            message="relation anime_list does not exist"
        )

        with pytest.raises(StoreError) as exc_info:
            watchlist_store.add_anime(_naruto(), user_id)

        assert exc_info.value.message == "Failed to add anime"
        assert "relation" not in str(exc_info.value.to_dict())

    def test_genres_are_stored_as_objects(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(
            _naruto(genres=[Genre(name="Action"), Genre(name="Adventure")]), user_id
        )
        assert fake_db.anime[entry["id"]]["genres"] == [{"name": "Action"}, {"name": "Adventure"}]


# =============================================================================
# Delete
# =============================================================================

class TestDeleteAnime:

    def test_removes_link_keeps_entry(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        watchlist_store.delete_anime(entry["id"], user_id)

        assert fake_db.links == {}
        assert entry["id"] in fake_db.anime

    def test_is_idempotent(self, watchlist_store, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        watchlist_store.delete_anime(entry["id"], user_id)
        watchlist_store.delete_anime(entry["id"], user_id)

        assert watchlist_store.get_anime_list(user_id) == []

    def test_only_touches_callers_link(self, watchlist_store, fake_db):
        alice, bob = str(uuid4()), str(uuid4())
        entry = watchlist_store.add_anime(_naruto(), alice)
        watchlist_store.add_anime(_naruto(), bob)

        watchlist_store.delete_anime(entry["id"], alice)

        assert watchlist_store.get_anime_list(alice) == []
        assert len(watchlist_store.get_anime_list(bob)) == 1

    def test_store_failure(self, watchlist_store, fake_db, user_id):
        fake_db.failures["delete_user_anime"] = SupabaseClientError(message="timeout")
        with pytest.raises(StoreError):
            watchlist_store.delete_anime(1, user_id)


# =============================================================================
# List
# =============================================================================

class TestGetAnimeList:

    def test_flattens_genres(self, watchlist_store, user_id):
        watchlist_store.add_anime(
            _naruto(genres=[Genre(name="Action"), Genre(name="Comedy")]), user_id
        )

        [item] = watchlist_store.get_anime_list(user_id)

        assert item.genres == "Action, Comedy"
        assert item.status == WatchStatus.WATCHING

    def test_empty_genres_become_empty_text(self, watchlist_store, user_id):
        watchlist_store.add_anime(_naruto(), user_id)
        [item] = watchlist_store.get_anime_list(user_id)
        assert item.genres == ""

    def test_excludes_other_users_entries(self, watchlist_store):
        alice, bob = str(uuid4()), str(uuid4())
        watchlist_store.add_anime(_naruto(), alice)
        watchlist_store.add_anime(_naruto(name="Bleach"), bob)

        names = {item.name for item in watchlist_store.get_anime_list(alice)}
        assert names == {"Naruto"}

    def test_handles_embedded_link_as_object(self, watchlist_store, fake_db, user_id):
        fake_db.fetch_user_anime_list = lambda uid: [{
            "id": 7,
            "name": "Monster",
            "image_url": None,
            "vote_average": None,
            "genres": None,
            "mal_id": None,
            "user_anime": {"status": "plan_to_watch"},
        }]

        [item] = watchlist_store.get_anime_list(user_id)

        assert item.status == WatchStatus.PLAN_TO_WATCH
        assert item.genres == ""


# =============================================================================
# Update
# =============================================================================

class TestUpdateAnimeStatus:

    @pytest.mark.parametrize("status", WATCH_STATUSES)
    def test_sets_status(self, watchlist_store, fake_db, user_id, status):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        watchlist_store.update_anime_status(entry["id"], user_id, status)

        assert fake_db.links[(user_id, str(entry["id"]))] == status

    @pytest.mark.parametrize("status", ["finished", "", None])
    def test_rejects_unknown_status(self, watchlist_store, fake_db, user_id, status):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        with pytest.raises(ValidationFailedError):
            watchlist_store.update_anime_status(entry["id"], user_id, status)

        assert fake_db.links[(user_id, str(entry["id"]))] == "watching"

    def test_missing_link_is_a_no_op(self, watchlist_store, fake_db, user_id):
        watchlist_store.update_anime_status(99, user_id, "completed")
        assert fake_db.links == {}


class TestUpdateAnime:

    def test_updates_catalog_fields(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        updated = watchlist_store.update_anime(
            entry["id"], user_id, AnimeUpdate(vote_average=9.1, image_url="new")
        )

        assert updated["vote_average"] == 9.1
        assert updated["image_url"] == "new"
        assert updated["name"] == "Naruto"

    def test_status_goes_to_the_link(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        updated = watchlist_store.update_anime(entry["id"], user_id, AnimeUpdate(status="dropped"))

        assert fake_db.links[(user_id, str(entry["id"]))] == "dropped"
        assert "status" not in fake_db.anime[entry["id"]]
        assert updated["id"] == entry["id"]

    def test_requires_entry_in_callers_list(self, watchlist_store, fake_db):
        alice, bob = str(uuid4()), str(uuid4())
        entry = watchlist_store.add_anime(_naruto(), alice)

        with pytest.raises(NotFoundError):
            watchlist_store.update_anime(entry["id"], bob, AnimeUpdate(name="Hacked"))

        assert fake_db.anime[entry["id"]]["name"] == "Naruto"

    @pytest.mark.parametrize("rating", [-3, 10.5])
    def test_rejects_rating_out_of_range(self, watchlist_store, user_id, rating):
        entry = watchlist_store.add_anime(_naruto(), user_id)
        with pytest.raises(ValidationFailedError):
            watchlist_store.update_anime(entry["id"], user_id, AnimeUpdate(vote_average=rating))

    def test_null_rating_clears_it(self, watchlist_store, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)
        updated = watchlist_store.update_anime(entry["id"], user_id, AnimeUpdate(vote_average=None))
        assert updated["vote_average"] is None

    def test_rename_onto_existing_name(self, watchlist_store, fake_db, user_id):
        watchlist_store.add_anime(_naruto(name="Bleach"), user_id)
        entry = watchlist_store.add_anime(_naruto(), user_id)

        with pytest.raises(ValidationFailedError) as exc_info:
            watchlist_store.update_anime(entry["id"], user_id, AnimeUpdate(name="Bleach"))

        assert exc_info.value.errors[0]["field"] == "name"

    def test_store_failure_on_update(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)
        fake_db.failures["update_anime"] = SupabaseClientError(message="db down")

        with pytest.raises(StoreError):
            watchlist_store.update_anime(entry["id"], user_id, AnimeUpdate(name="Boruto"))

    def test_rejected_rename_keeps_old_status(self, watchlist_store, fake_db, user_id):
        watchlist_store.add_anime(_naruto(name="Bleach"), user_id)
        entry = watchlist_store.add_anime(_naruto(), user_id)

        with pytest.raises(ValidationFailedError):
            watchlist_store.update_anime(
                entry["id"], user_id, AnimeUpdate(name="Bleach", status="dropped")
            )

        assert fake_db.links[(user_id, str(entry["id"]))] == "watching"
        assert fake_db.anime[entry["id"]]["name"] == "Naruto"

    def test_null_genres_are_rejected(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(_naruto(genres=[{"name": "Action"}]), user_id)

        with pytest.raises(ValidationFailedError) as exc_info:
            watchlist_store.update_anime(entry["id"], user_id, AnimeUpdate(genres=None))

        assert exc_info.value.errors[0]["field"] == "genres"
        assert fake_db.anime[entry["id"]]["genres"] == [{"name": "Action"}]

    def test_rename_is_trimmed(self, watchlist_store, fake_db, user_id):
        entry = watchlist_store.add_anime(_naruto(), user_id)

        updated = watchlist_store.update_anime(entry["id"], user_id, AnimeUpdate(name=" Boruto "))

        assert updated["name"] == "Boruto"
