# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Maximally community platform API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import (
    PlatformException,
    general_exception_handler,
    http_exception_handler,
    platform_exception_handler,
    validation_exception_handler,
)
from app.routers import (
    account,
    admin_newsletter,
    certificates,
    cron,
    gallery,
    health,
    judging,
    moderation,
    newsletter,
    tasks,
)

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

    Logs configuration on startup; nothing holds resources that need
    closing on shutdown.
    """
    logger.info(f"Starting Maximally API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    if not settings.email_enabled:
        logger.warning("RESEND_API_KEY not set; emails will be logged, not sent")
    if settings.SKIP_EMAIL_OTP:
        logger.warning("SKIP_EMAIL_OTP is on; signup codes are returned in responses")

    yield

    logger.info("Shutting down Maximally API")


# Create FastAPI application
app = FastAPI(
    title="Maximally API",
    description="""
## Hackathon Community Platform API

Backend for the Maximally hackathon platform. Persistence and authentication
are delegated to Supabase; transactional email goes through Resend.

### Conventions

- Authenticate with `Authorization: Bearer <supabase access token>`
- Admin endpoints additionally require `profiles.role == 'admin'`
- Every response is JSON with a `success` flag; errors carry `message` and `code`
- Rate-limited endpoints answer 429 with a `Retry-After` header
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "OTP signup, passwords and token checks"},
        {"name": "Account", "description": "Profile, notifications, data export, admin account ops"},
        {"name": "Gallery", "description": "Project gallery and its moderation"},
        {"name": "Moderation", "description": "User reports"},
        {"name": "Admin Moderation", "description": "Report triage and moderation actions"},
        {"name": "Newsletter", "description": "Public subscribe and unsubscribe"},
        {"name": "Admin Newsletter", "description": "Authoring, scheduling and sending newsletters"},
        {"name": "Judging", "description": "Rubric judging, rankings and winners"},
        {"name": "Judge Links", "description": "Scoring through emailed judge links"},
        {"name": "Certificates", "description": "Issuing and verifying certificates"},
        {"name": "Cron", "description": "Triggers for scheduled jobs"},
        {"name": "Tasks", "description": "Background task status"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(PlatformException)
async def handle_platform_exception(request: Request, exc: PlatformException):
    """Handle domain exceptions raised by services."""
    return await platform_exception_handler(request, exc)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    """Wrap FastAPI/Starlette HTTP errors (401s from auth, 404 routes) in the envelope."""
    return await http_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_exception(request: Request, exc: RequestValidationError):
    return await validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    return await general_exception_handler(request, exc)


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints
app.include_router(
    auth_routes.router,
    prefix="/api",
)

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api",
    tags=["Health"]
)

# Core account endpoints
app.include_router(
    account.router,
    prefix="/api",
    tags=["Account"]
)

# Project gallery
app.include_router(
    gallery.router,
    prefix="/api/gallery",
    tags=["Gallery"]
)

# User reports
app.include_router(
    moderation.router,
    prefix="/api/moderation",
    tags=["Moderation"]
)

# Report triage and moderation actions
app.include_router(
    moderation.admin_router,
    prefix="/api/admin/moderation",
    tags=["Admin Moderation"]
)

# Newsletter subscribe / unsubscribe
app.include_router(
    newsletter.router,
    prefix="/api/newsletter",
    tags=["Newsletter"]
)

# Newsletter administration
app.include_router(
    admin_newsletter.router,
    prefix="/api/admin/newsletter",
    tags=["Admin Newsletter"]
)

# Judging (tags set per route)
app.include_router(
    judging.router,
    prefix="/api",
)

# Certificates
app.include_router(
    certificates.router,
    prefix="/api",
)

# Scheduled job triggers
app.include_router(
    cron.router,
    prefix="/api/cron",
    tags=["Cron"]
)

# Task status endpoints
app.include_router(
    tasks.router,
    prefix="/api/tasks",
    tags=["Tasks"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "success": True,
        "name": "Maximally API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }
