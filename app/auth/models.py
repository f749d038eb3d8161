# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication responses and the authenticated user.
# =============================================================================

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from core.models.user import UserRole


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a session token.

    This is the minimal user info available from the token itself,
    without querying the database.
    """
    id: UUID
    email: Optional[str] = None

    class Config:
        frozen = True  # Make immutable


class TokenUser(BaseModel):
    id: str
    email: Optional[str] = None


class LoginResponse(BaseModel):
    """Response of POST /auth/login."""
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: TokenUser


class RefreshResponse(BaseModel):
    """Response of POST /auth/refresh."""
    message: str = "Token refreshed"
    token: str
    token_type: str = "bearer"
    expires_at: datetime


class ProfileResponse(BaseModel):
    """Response of GET /auth/profile."""
    username: str
    email: str
    role: UserRole


class MessageResponse(BaseModel):
    message: str
