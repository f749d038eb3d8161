# =============================================================================
# app/exceptions.py - Error Taxonomy and Exception Handlers
# =============================================================================
# Every failure a client can see is one of the exceptions below. Each carries
# an HTTP status and a machine-readable code, and renders as:
#
#   {"error": "<message>", "code": "<CODE>", ...}
#
# Store failures are logged where they happen and surfaced with a generic
# message so storage internals never reach the client.
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# Seconds a client should wait after the identity provider rate-limits it
RATE_LIMIT_RETRY_AFTER = 60


class AnimeTrackerException(Exception):
    """
    Base exception for the Anime Tracker API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "ANIME_TRACKER_ERROR",
        status_code: int = 400,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


# =============================================================================
# Validation
# =============================================================================

class ValidationFailedError(AnimeTrackerException):
    """
    Raised when inbound fields fail validation.

    `errors` is the structured list produced by core.validation; each item
    has a `field` and a `message`.
    """

    def __init__(self, errors: list[dict[str, str]], message: str | None = None):
        self.errors = errors
        # Several fields can share one message (e.g. "... are required")
        messages = dict.fromkeys(e["message"] for e in errors)
        super().__init__(
            message=message or "; ".join(messages) or "Invalid request",
            code="VALIDATION_FAILED",
            status_code=400,
            details={"errors": errors},
        )


# =============================================================================
# Authentication / Session Exceptions
# =============================================================================

class UnauthenticatedError(AnimeTrackerException):
    """Raised when a protected operation is called without a token."""

    def __init__(self, message: str = "No token provided"):
        super().__init__(
            message=message,
            code="UNAUTHENTICATED",
            status_code=401,
            suggestion="Send the session token as 'Authorization: Bearer <token>'",
        )


class InvalidTokenError(AnimeTrackerException):
    """Raised when a token's signature, expiry or claims don't check out."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(
            message=message,
            code="INVALID_TOKEN",
            status_code=401,
            suggestion="Log in again to obtain a new token",
        )


class InvalidCredentialsError(AnimeTrackerException):
    """Raised on any login failure. Never says which field was wrong."""

    def __init__(self):
        super().__init__(
            message="Invalid credentials",
            code="INVALID_CREDENTIALS",
            status_code=401,
        )


class RateLimitedError(AnimeTrackerException):
    """Raised when the identity provider answers 429."""

    def __init__(self, retry_after: int = RATE_LIMIT_RETRY_AFTER):
        self.retry_after = retry_after
        super().__init__(
            message="Please wait 1 minute before trying to register again",
            code="RATE_LIMITED",
            status_code=429,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["retry_after"] = self.retry_after
        return result


class ProviderError(AnimeTrackerException):
    """Raised when the identity provider rejects a request."""

    def __init__(self, message: str = "Registration failed"):
        super().__init__(
            message=message,
            code="PROVIDER_ERROR",
            status_code=400,
        )


# =============================================================================
# Watch-list Exceptions
# =============================================================================

class DuplicateLinkError(AnimeTrackerException):
    """Raised when the user already has this anime in their list."""

    def __init__(self, anime_id: str):
        super().__init__(
            message="Anime is already in your list",
            code="DUPLICATE_LINK",
            status_code=400,
            suggestion="Use PATCH /anime/status/{id} to change its status instead",
            details={"anime_id": anime_id},
        )


class NotFoundError(AnimeTrackerException):
    """Raised when a resource doesn't exist or isn't visible to the caller."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            code="NOT_FOUND",
            status_code=404,
            details={"id": resource_id},
        )


class StoreError(AnimeTrackerException):
    """
    Raised when a persistence call fails.

    The message is deliberately generic; the underlying error is logged by
    the caller before this is raised.
    """

    def __init__(self, operation: str):
        super().__init__(
            message=f"Failed to {operation}",
            code="STORE_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
        )


class RequestTimeoutError(AnimeTrackerException):
    """Raised (or rendered) when a request exceeds the configured timeout."""

    def __init__(self):
        super().__init__(
            message="Request timeout",
            code="TIMEOUT",
            status_code=504,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def anime_tracker_exception_handler(
    request: Request,
    exc: AnimeTrackerException
) -> JSONResponse:
    """
    Convert AnimeTrackerException to JSON response.

    Rate-limit errors also carry a Retry-After header.
    """
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    elif exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic request-body validation errors.

    Reported with the same 400 envelope as ValidationFailedError.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ValidationFailedError(errors, message="Invalid request").to_dict(),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors (404 route, 405 method) in the error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": "HTTP_ERROR"},
        headers=getattr(exc, "headers", None),
    )
