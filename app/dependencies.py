# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
# =============================================================================

import hmac
import logging
from typing import Annotated, Callable, Optional

from fastapi import Depends, Header, Query, Request

from app.config import settings
from app.exceptions import ForbiddenError, RateLimitExceededError
from lib.rate_limiter import RATE_LIMITS, rate_limiter
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


def get_supabase_client() -> type[SupabaseClient]:
    """
    Get Supabase client instance.

    Returns the singleton client wrapper.
    """
    return SupabaseClient


# Type alias for dependency injection
SupabaseDep = Annotated[type[SupabaseClient], Depends(get_supabase_client)]


# -----------------------------------------------------------------------------
# Rate limiting
# -----------------------------------------------------------------------------

def client_ip(request: Request) -> str:
    """Caller IP, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(action: str, identity: str) -> None:
    """
    Consume one token from the named bucket for `identity`.

    Raises:
        RateLimitExceededError: 429 when the bucket is empty
    """
    result = rate_limiter.hit_named(action, identity)
    if not result.allowed:
        logger.warning(f"Rate limit hit: {action} for {identity} (retry in {result.retry_after}s)")
        raise RateLimitExceededError(result.retry_after)


def rate_limit_by_ip(action: str) -> Callable[[Request], None]:
    """
    Dependency factory for IP-keyed limits.

    Usage:
        @router.post("/subscribe", dependencies=[Depends(rate_limit_by_ip("newsletter_subscribe"))])
    """
    if action not in RATE_LIMITS:
        raise ValueError(f"Unknown rate limit: {action}")

    def dependency(request: Request) -> None:
        enforce_rate_limit(action, client_ip(request))

    return dependency


# -----------------------------------------------------------------------------
# Scheduled jobs
# -----------------------------------------------------------------------------

def require_cron_secret(
    x_cron_secret: Annotated[Optional[str], Header()] = None,
    secret: Annotated[Optional[str], Query(description="Alternative to X-Cron-Secret")] = None,
) -> None:
    """
    Guard cron endpoints with CRON_SECRET when it is configured.

    Raises:
        ForbiddenError: 403 when the secret is set and doesn't match
    """
    if not settings.CRON_SECRET:
        return
    provided = x_cron_secret or secret or ""
    if not hmac.compare_digest(provided, settings.CRON_SECRET):
        logger.warning("Cron endpoint called with a bad secret")
        raise ForbiddenError("Invalid cron secret")
