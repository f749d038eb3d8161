# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - In-memory doubles for SupabaseClient and SupabaseAuth that mirror the
#   constraints of the real tables (unique anime name, unique link)
# - A TestClient wired to those doubles through dependency_overrides
# =============================================================================

import os
from typing import Any
from uuid import uuid4

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-session-tokens")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest

from core.services import SessionManager, WatchlistStore
from lib.supabase_client import UNIQUE_VIOLATION_CODE, SupabaseClientError

TEST_SECRET = "test-secret-key-for-session-tokens"


def unique_violation(what: str) -> SupabaseClientError:
    return SupabaseClientError(
        message=f"duplicate key value violates unique constraint on {what}",
        code="INSERT_FAILED",
        status=409,
        pg_code=UNIQUE_VIOLATION_CODE,
    )


# =============================================================================
# Test Doubles
# =============================================================================

class FakeSupabaseClient:
    """
    In-memory stand-in for lib.supabase_client.SupabaseClient.

    Set `failures[method_name]` to an exception to make that method raise.
    """

    def __init__(self):
        self.anime: dict[int, dict[str, Any]] = {}
        self.links: dict[tuple[str, str], str] = {}
        self.profiles: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, Exception] = {}
        self._next_id = 1

    def _maybe_fail(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    # Catalog ----------------------------------------------------------------

    def find_anime_by_name(self, name):
        self._maybe_fail("find_anime_by_name")
        for row in self.anime.values():
            if row["name"] == name:
                return dict(row)
        return None

    def fetch_anime(self, anime_id):
        self._maybe_fail("fetch_anime")
        for row in self.anime.values():
            if str(row["id"]) == str(anime_id):
                return dict(row)
        return None

    def insert_anime(self, data):
        self._maybe_fail("insert_anime")
        if any(row["name"] == data["name"] for row in self.anime.values()):
            raise unique_violation("anime_list.name")
        row = {"id": self._next_id, **data}
        self.anime[self._next_id] = row
        self._next_id += 1
        return dict(row)

    def update_anime(self, anime_id, data):
        self._maybe_fail("update_anime")
        row = self.anime.get(int(anime_id)) if str(anime_id).isdigit() else None
        if row is None:
            return None
        if "name" in data and any(
            other["name"] == data["name"] and other["id"] != row["id"]
            for other in self.anime.values()
        ):
            raise unique_violation("anime_list.name")
        row.update(data)
        return dict(row)

    # Links ------------------------------------------------------------------

    def fetch_user_anime(self, anime_id, user_id):
        self._maybe_fail("fetch_user_anime")
        status = self.links.get((str(user_id), str(anime_id)))
        if status is None:
            return None
        return {"user_id": str(user_id), "anime_id": anime_id, "status": status}

    def insert_user_anime(self, user_id, anime_id, status):
        self._maybe_fail("insert_user_anime")
        key = (str(user_id), str(anime_id))
        if key in self.links:
            raise unique_violation("user_anime_pkey")
        self.links[key] = status
        return {"user_id": str(user_id), "anime_id": anime_id, "status": status}

    def update_user_anime_status(self, anime_id, user_id, status):
        self._maybe_fail("update_user_anime_status")
        key = (str(user_id), str(anime_id))
        if key not in self.links:
            return 0
        self.links[key] = status
        return 1

    def delete_user_anime(self, anime_id, user_id):
        self._maybe_fail("delete_user_anime")
        return 1 if self.links.pop((str(user_id), str(anime_id)), None) else 0

    def fetch_user_anime_list(self, user_id):
        self._maybe_fail("fetch_user_anime_list")
        rows = []
        for (link_user, anime_id), status in self.links.items():
            if link_user != str(user_id):
                continue
            row = dict(self.anime[int(anime_id)])
            row.pop("created_at", None)
            row["user_anime"] = [{"status": status}]
            rows.append(row)
        return rows

    # Profiles ---------------------------------------------------------------

    def insert_user_profile(self, profile):
        self._maybe_fail("insert_user_profile")
        if any(p["email"] == profile["email"] for p in self.profiles.values()):
            raise unique_violation("users.email")
        self.profiles[profile["id"]] = dict(profile)
        return dict(profile)

    def delete_user_profiles_by_email(self, email):
        self._maybe_fail("delete_user_profiles_by_email")
        doomed = [uid for uid, p in self.profiles.items() if p["email"] == email]
        for uid in doomed:
            del self.profiles[uid]
        return len(doomed)

    def fetch_user_profile(self, user_id):
        self._maybe_fail("fetch_user_profile")
        profile = self.profiles.get(str(user_id))
        if profile is None:
            return None
        return {key: profile[key] for key in ("username", "email", "role")}

    def ping(self):
        self._maybe_fail("ping")


class FakeSupabaseAuth:
    """
    In-memory stand-in for lib.supabase_client.SupabaseAuth.

    Accounts are keyed by email; ids are random UUID strings like Supabase's.
    """

    def __init__(self):
        self.accounts: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, Exception] = {}
        self.deleted_ids: list[str] = []

    def _maybe_fail(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    def create_user(self, email, password, metadata=None):
        self._maybe_fail("create_user")
        # Supabase Auth keeps addresses lowercased
        email = email.lower()
        if email in self.accounts:
            raise SupabaseClientError(
                message="Failed to create user: A user with this email address has already been registered",
                code="CREATE_USER_FAILED",
                status=422,
            )
        account = {
            "id": str(uuid4()),
            "email": email,
            "password": password,
            "metadata": metadata or {},
        }
        self.accounts[email] = account
        return {"id": account["id"], "email": email}

    def delete_user(self, user_id):
        self._maybe_fail("delete_user")
        for email, account in list(self.accounts.items()):
            if account["id"] == str(user_id):
                del self.accounts[email]
                self.deleted_ids.append(str(user_id))
                return
        raise SupabaseClientError(message="Failed to delete user: User not found", status=404)

    def find_user_by_email(self, email):
        self._maybe_fail("find_user_by_email")
        account = self.accounts.get(email.lower())
        return {"id": account["id"], "email": account["email"]} if account else None

    def sign_in(self, email, password):
        self._maybe_fail("sign_in")
        account = self.accounts.get(email.lower())
        if account is None or account["password"] != password:
            raise SupabaseClientError(
                message="Failed to sign in: Invalid login credentials",
                code="SIGN_IN_FAILED",
                status=400,
            )
        return {"id": account["id"], "email": account["email"]}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_db():
    return FakeSupabaseClient()


@pytest.fixture
def fake_auth():
    return FakeSupabaseAuth()


@pytest.fixture
def session_manager(fake_auth, fake_db):
    return SessionManager(auth=fake_auth, db=fake_db, secret_key=TEST_SECRET)


@pytest.fixture
def watchlist_store(fake_db):
    return WatchlistStore(fake_db)


@pytest.fixture
def user_id():
    return str(uuid4())


@pytest.fixture
def naruto_payload():
    """Sample body for POST /anime/add."""
    return {
        "name": "Naruto",
        "image_url": "u",
        "vote_average": 8.5,
        "status": "watching",
        "genres": [],
        "mal_id": 20,
    }


@pytest.fixture
def client(fake_db, fake_auth):
    """TestClient with Supabase replaced by the in-memory doubles."""
    from fastapi.testclient import TestClient

    from app.dependencies import get_supabase_auth, get_supabase_client
    from app.main import app

    app.dependency_overrides[get_supabase_client] = lambda: fake_db
    app.dependency_overrides[get_supabase_auth] = lambda: fake_auth
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """Register and log in a user; return the Authorization header."""
    client.post(
        "/auth/register",
        json={"email": "a@x.com", "password": "pw123", "username": "alice"},
    )
    response = client.post("/auth/login", json={"email": "a@x.com", "password": "pw123"})
    return {"Authorization": f"Bearer {response.json()['token']}"}
