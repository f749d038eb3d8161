# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Register/login against Supabase Auth and verify the API's own session
# tokens.
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

from app.auth.dependencies import get_current_user, get_session_claims
from app.auth.models import AuthUser

__all__ = [
    "get_current_user",
    "get_session_claims",
    "AuthUser",
]
