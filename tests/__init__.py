# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Anime Tracker API:
# - test_models.py: Unit tests for Pydantic model validation
# - test_validation.py: Field predicates and per-operation validation
# - test_supabase_client.py: Query shapes and provider error translation
# - test_session_manager.py: Registration, login and session tokens
# - test_watchlist_store.py: Watch-list operations
# - test_api.py: Integration tests for the HTTP endpoints
#
# Run tests with: pytest
# =============================================================================
