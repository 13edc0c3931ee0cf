# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable infrastructure:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - rate_limiter.py: In-memory token bucket rate limiter
# - email_client.py: Resend REST client
# - email_templates.py: HTML templates for transactional email
# - utils.py: Shared utilities (UUIDs, timestamps, text cleanup)
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.rate_limiter import RATE_LIMITS, RateLimitResult, TokenBucketRateLimiter, rate_limiter
from lib.email_client import EmailClient
from lib.utils import clean_text, normalize_email, normalize_uuid, parse_timestamp, utc_now

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Rate limiting
    "RATE_LIMITS",
    "RateLimitResult",
    "TokenBucketRateLimiter",
    "rate_limiter",
    # Email
    "EmailClient",
    # Utils
    "clean_text",
    "normalize_email",
    "normalize_uuid",
    "parse_timestamp",
    "utc_now",
]
