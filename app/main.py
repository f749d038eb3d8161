# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Anime Tracker API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload --port 3001
# =============================================================================

import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import (
    AnimeTrackerException,
    RequestTimeoutError,
    anime_tracker_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.routers import anime, health

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Configuration has already been validated at import time; this only
    reports what the process is running with.
    """
    logger.info(f"Starting Anime Tracker API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    yield

    logger.info("Shutting down Anime Tracker API")


# Create FastAPI application
app = FastAPI(
    title="Anime Tracker API",
    description="""
## Anime Watch-list API

Register, log in, and keep a personal list of anime with a watch status.

### Authentication

`POST /auth/login` returns a session token. Send it on every other call:

```
Authorization: Bearer <token>
```

Tokens last 24 hours; `POST /auth/refresh` issues a new one.

### Watch statuses

`watching`, `completed`, `plan_to_watch`, `dropped`

### Errors

Every error is JSON: `{"error": "...", "code": "..."}`.
""",
    version=health.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Registration, login and session tokens",
        },
        {
            "name": "Anime",
            "description": "The authenticated user's watch-list",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================
# Registration order is inside-out: the last one added runs first.

@app.middleware("http")
async def timeout_middleware(request: Request, call_next):
    """
    Answer 504 when a request takes longer than REQUEST_TIMEOUT_SECONDS.

    The handler's store calls are not cancelled; a write may still land
    after the client has been told it timed out.
    """
    try:
        return await asyncio.wait_for(
            call_next(request),
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.error(f"{request.method} {request.url.path} timed out")
        error = RequestTimeoutError()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log one line per request with status and duration."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)"
    )
    return response


# CORS middleware - allow-listed origins only
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(AnimeTrackerException, anime_tracker_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Root and health check endpoints
app.include_router(
    health.router,
    tags=["Health"]
)

# Authentication endpoints
app.include_router(
    auth_routes.router,
    prefix="/auth",
    tags=["Auth"]
)

# Watch-list endpoints
app.include_router(
    anime.router,
    prefix="/anime",
    tags=["Anime"]
)
