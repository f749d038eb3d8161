# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# Session tokens are read from the Authorization header only:
#   Authorization: Bearer <token>
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.models import AuthUser
from app.dependencies import SessionManagerDep
from app.exceptions import InvalidTokenError
from core.models.user import SessionClaims

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor. Missing or non-Bearer headers yield None so
# the session manager can answer with our own 401 envelope.
security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """Raw token from the Authorization header, or None."""
    return credentials.credentials if credentials else None


async def get_session_claims(
    manager: SessionManagerDep,
    token: Optional[str] = Depends(get_bearer_token),
) -> SessionClaims:
    """
    Verify the bearer token and return its claims.

    Raises:
        UnauthenticatedError: 401 if no token was sent
        InvalidTokenError: 401 if the token is forged, malformed or expired
    """
    return manager.verify_session(token)


async def get_current_user(
    claims: SessionClaims = Depends(get_session_claims)
) -> AuthUser:
    """
    Extract and validate the user from the session token.

    This dependency:
    1. Extracts the Bearer token from the Authorization header
    2. Verifies the signature and expiry
    3. Returns an AuthUser with the user's ID and email

    Raises:
        UnauthenticatedError / InvalidTokenError: 401 if the token is missing or invalid
    """
    try:
        user_uuid = UUID(claims.user_id)
    except ValueError:
        logger.warning(f"Invalid UUID in token: {claims.user_id}")
        raise InvalidTokenError("Invalid token: malformed user ID")

    logger.debug(f"Authenticated user: {user_uuid}")
    return AuthUser(id=user_uuid, email=claims.email)
