# =============================================================================
# core/models/user.py - User and Session Schemas
# =============================================================================
# - RegisterRequest / LoginRequest: Auth request bodies
# - UserRole, UserProfile: The mirrored profile row (table users)
# - SessionClaims: What a verified session token says about its bearer
# - IssuedToken: A freshly signed token and when it expires
# =============================================================================

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class RegisterRequest(BaseModel):
    """
    Body of POST /auth/register.

    Emptiness is checked by core.validation, not here, so a missing field
    gets the same error message as a blank one.
    """
    email: str = ""
    password: str = ""
    username: str = ""


class LoginRequest(BaseModel):
    """Body of POST /auth/login."""
    email: str = ""
    password: str = ""


class UserProfile(BaseModel):
    """Public profile fields returned by GET /auth/profile."""
    username: str
    email: str
    role: UserRole = UserRole.USER


class SessionClaims(BaseModel):
    """
    Verified contents of a session token.

    Tokens carry {sub, email, iat, exp}; this is the decoded view.
    """
    user_id: str
    email: str | None = None
    issued_at: datetime
    expires_at: datetime

    model_config = {"frozen": True}


class IssuedToken(BaseModel):
    """A signed session token."""
    token: str
    expires_at: datetime
    claims: SessionClaims


class LoginResult(BaseModel):
    """What a successful login hands back to the route."""
    token: IssuedToken
    user_id: str = Field(..., description="Identity-provider user id")
    email: str | None = None
