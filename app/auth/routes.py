# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Register, login, profile, logout and token refresh.
#
# Tokens travel in the response body and come back in the Authorization
# header. Logout is advisory: tokens are stateless and stay valid until
# they expire.
# =============================================================================

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.auth.dependencies import get_bearer_token, get_current_user, get_session_claims
from app.auth.models import (
    AuthUser,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RefreshResponse,
    TokenUser,
)
from app.dependencies import SessionManagerDep
from core.models.user import LoginRequest, RegisterRequest, SessionClaims

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
def register(request: RegisterRequest, manager: SessionManagerDep) -> MessageResponse:
    """
    Create an account.

    Raises:
        400: If a field is missing or the identity provider rejects the account
        429: If the identity provider is rate limiting sign-ups
    """
    logger.info(f"Registration attempt for: {request.email}")
    manager.register(request)
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, manager: SessionManagerDep) -> LoginResponse:
    """
    Exchange email and password for a session token.

    Raises:
        401: On any credential failure
    """
    result = manager.login(request)
    return LoginResponse(
        token=result.token.token,
        expires_at=result.token.expires_at,
        user=TokenUser(id=result.user_id, email=result.email),
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    manager: SessionManagerDep,
    user: AuthUser = Depends(get_current_user),
) -> ProfileResponse:
    """
    Get the current user's profile.

    Raises:
        401: If not authenticated
        404: If the user has no profile row
    """
    profile = manager.get_profile(str(user.id))
    return ProfileResponse(username=profile.username, email=profile.email, role=profile.role)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    manager: SessionManagerDep,
    claims: SessionClaims = Depends(get_session_claims),
) -> MessageResponse:
    """
    Log out.

    The client must discard its token; the server keeps no session to end.
    """
    manager.logout(claims)
    return MessageResponse(message="Logged out successfully")


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_token(
    manager: SessionManagerDep,
    token: Optional[str] = Depends(get_bearer_token),
) -> RefreshResponse:
    """
    Issue a new token with the same claims and a fresh expiry.

    Raises:
        401: If the current token is missing or invalid
    """
    issued = manager.refresh_session(token)
    return RefreshResponse(token=issued.token, expires_at=issued.expires_at)
