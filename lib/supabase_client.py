# =============================================================================
# lib/supabase_client.py - Supabase Client Wrappers
# =============================================================================
# Typed wrappers around a supabase-py Client. Two adapters live here:
#
# - SupabaseClient: table access (users, anime_list, user_anime)
# - SupabaseAuth:   the identity provider (admin user management on the
#                   service client, password sign-in on the anon client)
#
# Both take the underlying Client in their constructor so services can be
# built against a test double. Every failure is re-raised as
# SupabaseClientError carrying the provider's HTTP status and the
# Postgres/PostgREST error code, which services pattern-match on.
#
# Usage:
#   from lib.supabase_client import SupabaseClient, create_supabase_client
#   db = SupabaseClient(create_supabase_client(url, service_key))
#   anime = db.find_anime_by_name("Naruto")
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from lib.utils import normalize_email, normalize_uuid

# Set up logging for this module
logger = logging.getLogger(__name__)

# PostgREST code for ".single()" matching no rows
NO_ROWS_CODE = "PGRST116"
# Postgres unique_violation
UNIQUE_VIOLATION_CODE = "23505"
# Postgres foreign_key_violation
FOREIGN_KEY_VIOLATION_CODE = "23503"

# Page size used when scanning the identity provider's user list
AUTH_USERS_PAGE_SIZE = 1000

ANIME_TABLE = "anime_list"
LINK_TABLE = "user_anime"
USERS_TABLE = "users"

ANIME_COLUMNS = "id, name, image_url, vote_average, genres, mal_id, created_at"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Attributes:
        code: Our error code for the failed operation (e.g. INSERT_ANIME_FAILED)
        status: HTTP status reported by the provider, if any (429 for rate limits)
        pg_code: Postgres/PostgREST error code, if any (23505 for unique violations)
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        status: int | None = None,
        pg_code: str | None = None,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.pg_code = pg_code
        self.suggestion = suggestion
        self.details = details or {}

    @classmethod
    def wrap(
        cls,
        error: Exception,
        operation: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> SupabaseClientError:
        """Build a SupabaseClientError from a provider exception."""
        pg_code = error.code if isinstance(error, APIError) else getattr(error, "code", None)
        status = getattr(error, "status", None)
        return cls(
            message=f"Failed to {operation}: {getattr(error, 'message', None) or error}",
            code=code,
            status=status if isinstance(status, int) else None,
            pg_code=str(pg_code) if pg_code is not None else None,
            details=details,
        )

    @property
    def is_unique_violation(self) -> bool:
        return self.pg_code == UNIQUE_VIOLATION_CODE

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


def create_supabase_client(url: str, key: str, timeout: int = 60) -> Client:
    """
    Create a supabase-py Client for server-side use.

    Sessions are never persisted or auto-refreshed: the server signs its own
    tokens and only uses Supabase auth to check passwords.

    Raises:
        SupabaseClientError: If client creation fails
    """
    try:
        client = create_client(
            url,
            key,
            options=ClientOptions(
                auto_refresh_token=False,
                persist_session=False,
                postgrest_client_timeout=timeout,
            ),
        )
        logger.info("Supabase client initialized successfully")
        return client
    except Exception as e:
        raise SupabaseClientError(
            message=f"Failed to create Supabase client: {e}",
            code="CLIENT_INIT_FAILED",
            suggestion="Check SUPABASE_URL and the Supabase keys in your .env file",
        ) from e


def _first(data: Any) -> dict[str, Any] | None:
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


class SupabaseClient:
    """
    Table access for the watch-list and user profiles.

    Uses the service_role client, so Row Level Security does not apply;
    every user-scoped method filters on user_id explicitly.

    Example:
        db = SupabaseClient(client)
        entry = db.find_anime_by_name("Naruto")
        db.insert_user_anime(user_id, entry["id"], "watching")
    """

    def __init__(self, client: Client):
        self.client = client

    # -------------------------------------------------------------------------
    # Catalog (anime_list)
    # -------------------------------------------------------------------------

    def find_anime_by_name(self, name: str) -> dict[str, Any] | None:
        """
        Fetch the catalog entry with exactly this name.

        Returns:
            Entry dict, or None if no entry has this name
        """
        try:
            response = (
                self.client.table(ANIME_TABLE)
                .select(ANIME_COLUMNS)
                .eq("name", name)
                .limit(1)
                .execute()
            )
            return _first(response.data)
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "search anime", "FETCH_ANIME_FAILED", details={"name": name}
            ) from e

    def fetch_anime(self, anime_id: Any) -> dict[str, Any] | None:
        """Fetch a catalog entry by id, or None."""
        try:
            response = (
                self.client.table(ANIME_TABLE)
                .select(ANIME_COLUMNS)
                .eq("id", anime_id)
                .limit(1)
                .execute()
            )
            return _first(response.data)
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "fetch anime", "FETCH_ANIME_FAILED", details={"anime_id": anime_id}
            ) from e

    def insert_anime(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a catalog entry.

        Returns:
            Inserted entry with generated id

        Raises:
            SupabaseClientError: pg_code 23505 if the name is already taken
        """
        try:
            response = self.client.table(ANIME_TABLE).insert(data).execute()
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "insert anime", "INSERT_ANIME_FAILED", details={"name": data.get("name")}
            ) from e

        row = _first(response.data)
        if row is None:
            raise SupabaseClientError(
                message="Insert returned no data",
                code="INSERT_NO_DATA",
            )
        logger.debug(f"Inserted anime {row.get('id')} ({row.get('name')})")
        return row

    def update_anime(self, anime_id: Any, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Update catalog columns of one entry.

        Returns:
            Updated entry, or None if no entry has this id
        """
        try:
            response = (
                self.client.table(ANIME_TABLE)
                .update(data)
                .eq("id", anime_id)
                .execute()
            )
            return _first(response.data)
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "update anime", "UPDATE_ANIME_FAILED", details={"anime_id": anime_id}
            ) from e

    # -------------------------------------------------------------------------
    # Links (user_anime)
    # -------------------------------------------------------------------------

    def fetch_user_anime(self, anime_id: Any, user_id: str) -> dict[str, Any] | None:
        """Fetch the link between a user and a catalog entry, or None."""
        try:
            response = (
                self.client.table(LINK_TABLE)
                .select("user_id, anime_id, status")
                .match({"anime_id": anime_id, "user_id": normalize_uuid(user_id)})
                .limit(1)
                .execute()
            )
            return _first(response.data)
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "fetch link", "FETCH_LINK_FAILED", details={"anime_id": anime_id}
            ) from e

    def insert_user_anime(self, user_id: str, anime_id: Any, status: str) -> dict[str, Any]:
        """
        Link a user to a catalog entry.

        Raises:
            SupabaseClientError: pg_code 23505 if the link already exists
        """
        data = {
            "user_id": normalize_uuid(user_id),
            "anime_id": anime_id,
            "status": status,
        }
        try:
            response = self.client.table(LINK_TABLE).insert(data).execute()
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "create link", "INSERT_LINK_FAILED", details={"anime_id": anime_id}
            ) from e
        return _first(response.data) or data

    def update_user_anime_status(self, anime_id: Any, user_id: str, status: str) -> int:
        """
        Set the status on a user's link.

        Returns:
            Number of links updated (0 if the user has no such link)
        """
        try:
            response = (
                self.client.table(LINK_TABLE)
                .update({"status": status})
                .match({"anime_id": anime_id, "user_id": normalize_uuid(user_id)})
                .execute()
            )
            return len(response.data or [])
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "update status", "UPDATE_LINK_FAILED", details={"anime_id": anime_id}
            ) from e

    def delete_user_anime(self, anime_id: Any, user_id: str) -> int:
        """
        Remove a user's link. The catalog entry is left alone.

        Returns:
            Number of links deleted (0 if there was nothing to delete)
        """
        try:
            response = (
                self.client.table(LINK_TABLE)
                .delete()
                .match({"anime_id": anime_id, "user_id": normalize_uuid(user_id)})
                .execute()
            )
            return len(response.data or [])
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "delete link", "DELETE_LINK_FAILED", details={"anime_id": anime_id}
            ) from e

    def fetch_user_anime_list(self, user_id: str) -> list[dict[str, Any]]:
        """
        Fetch every catalog entry the user has a link to.

        Inner-joins user_anime so entries without a link for this user are
        excluded. Each row carries a nested `user_anime` with the status.
        No ordering is applied.
        """
        try:
            response = (
                self.client.table(ANIME_TABLE)
                .select(
                    "id, name, image_url, vote_average, genres, mal_id, "
                    "user_anime!inner(status)"
                )
                .eq("user_anime.user_id", normalize_uuid(user_id))
                .execute()
            )
            rows = response.data or []
            logger.debug(f"Fetched {len(rows)} anime for user {user_id}")
            return rows
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "fetch anime list", "FETCH_LIST_FAILED", details={"user_id": str(user_id)}
            ) from e

    # -------------------------------------------------------------------------
    # Profiles (users)
    # -------------------------------------------------------------------------

    def insert_user_profile(self, profile: dict[str, Any]) -> dict[str, Any]:
        """Insert the mirrored profile row for a new identity."""
        try:
            response = self.client.table(USERS_TABLE).insert(profile).execute()
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "create user profile", "INSERT_PROFILE_FAILED",
                details={"user_id": profile.get("id")},
            ) from e
        return _first(response.data) or profile

    def delete_user_profiles_by_email(self, email: str) -> int:
        """
        Delete profile rows for an email.

        Returns:
            Number of rows deleted
        """
        try:
            response = (
                self.client.table(USERS_TABLE)
                .delete()
                .eq("email", email)
                .execute()
            )
            return len(response.data or [])
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "delete user profile", "DELETE_PROFILE_FAILED"
            ) from e

    def fetch_user_profile(self, user_id: str) -> dict[str, Any] | None:
        """Fetch username, email and role for a user, or None."""
        try:
            response = (
                self.client.table(USERS_TABLE)
                .select("username, email, role")
                .eq("id", normalize_uuid(user_id))
                .limit(1)
                .execute()
            )
            return _first(response.data)
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "fetch user profile", "FETCH_PROFILE_FAILED",
                details={"user_id": str(user_id)},
            ) from e

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def ping(self) -> None:
        """Cheapest query that proves the database answers."""
        try:
            self.client.table(ANIME_TABLE).select("id").limit(1).execute()
        except Exception as e:
            raise SupabaseClientError.wrap(e, "reach database", "PING_FAILED") from e


class SupabaseAuth:
    """
    Identity-provider operations on Supabase Auth.

    Admin calls (create, delete, list users) need the service_role client.
    Password sign-in runs on a separate anon client so the signed-in user's
    session never replaces the service key on the table client.
    """

    def __init__(self, admin_client: Client, public_client: Client):
        self.admin_client = admin_client
        self.public_client = public_client

    @staticmethod
    def _identity(user: Any) -> dict[str, Any]:
        return {"id": str(user.id), "email": user.email}

    def create_user(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Create a confirmed account.

        Returns:
            {"id": ..., "email": ...} of the new identity

        Raises:
            SupabaseClientError: status 429 when rate limited
        """
        try:
            response = self.admin_client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": metadata or {},
                }
            )
        except Exception as e:
            raise SupabaseClientError.wrap(e, "create user", "CREATE_USER_FAILED") from e

        if not response or not response.user:
            raise SupabaseClientError(
                message="Failed to create user",
                code="CREATE_USER_NO_DATA",
            )
        return self._identity(response.user)

    def delete_user(self, user_id: str) -> None:
        try:
            self.admin_client.auth.admin.delete_user(normalize_uuid(user_id))
        except Exception as e:
            raise SupabaseClientError.wrap(
                e, "delete user", "DELETE_USER_FAILED", details={"user_id": str(user_id)}
            ) from e

    def find_user_by_email(self, email: str) -> dict[str, Any] | None:
        """
        Look an account up by email.

        The admin API has no email filter, so this pages through the user
        list until it finds a match or runs out of pages.
        """
        page = 1
        try:
            while True:
                users = self.admin_client.auth.admin.list_users(
                    page=page, per_page=AUTH_USERS_PAGE_SIZE
                )
                for user in users:
                    if normalize_email(user.email or "") == normalize_email(email):
                        return self._identity(user)
                if len(users) < AUTH_USERS_PAGE_SIZE:
                    return None
                page += 1
        except Exception as e:
            raise SupabaseClientError.wrap(e, "list users", "LIST_USERS_FAILED") from e

    def sign_in(self, email: str, password: str) -> dict[str, Any] | None:
        """
        Check a password.

        Returns:
            The identity on success, None if the provider returned no user

        Raises:
            SupabaseClientError: On rejected credentials or provider failure
        """
        try:
            response = self.public_client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise SupabaseClientError.wrap(e, "sign in", "SIGN_IN_FAILED") from e

        if not response or not response.user:
            return None
        return self._identity(response.user)
