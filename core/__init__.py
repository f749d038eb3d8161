# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the business logic:
# - models/: Pydantic schemas for data validation
# - services/: Session manager and watch-list store
# - validation.py: Field predicates and per-operation validation
#
# Services receive their Supabase handles in the constructor and never
# touch FastAPI request objects, which keeps them testable without HTTP.
# =============================================================================
