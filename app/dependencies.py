# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for store handles and services.
# These are injected into route handlers using Depends().
#
# The Supabase adapters are built once per process; services are cheap
# and built per request around them. Tests replace get_supabase_client and
# get_supabase_auth through app.dependency_overrides.
# =============================================================================

from datetime import timedelta
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.config import settings
from core.services import SessionManager, WatchlistStore
from lib.supabase_client import SupabaseAuth, SupabaseClient, create_supabase_client


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """
    Table access through the service_role key.
    """
    return SupabaseClient(
        create_supabase_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY,
            timeout=settings.SUPABASE_TIMEOUT_SECONDS,
        )
    )


@lru_cache
def get_supabase_auth() -> SupabaseAuth:
    """
    Identity provider: admin API on the service client, sign-in on an anon client.
    """
    return SupabaseAuth(
        admin_client=get_supabase_client().client,
        public_client=create_supabase_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_ANON_KEY,
            timeout=settings.SUPABASE_TIMEOUT_SECONDS,
        ),
    )


# Type aliases for dependency injection
SupabaseDep = Annotated[SupabaseClient, Depends(get_supabase_client)]
SupabaseAuthDep = Annotated[SupabaseAuth, Depends(get_supabase_auth)]


def get_session_manager(db: SupabaseDep, auth: SupabaseAuthDep) -> SessionManager:
    return SessionManager(
        auth=auth,
        db=db,
        secret_key=settings.SECRET_KEY,
        token_ttl=timedelta(hours=settings.TOKEN_TTL_HOURS),
        algorithm=settings.TOKEN_ALGORITHM,
        replace_existing_accounts=settings.REGISTRATION_REPLACES_EXISTING,
    )


def get_watchlist_store(db: SupabaseDep) -> WatchlistStore:
    return WatchlistStore(db)


SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
WatchlistStoreDep = Annotated[WatchlistStore, Depends(get_watchlist_store)]
