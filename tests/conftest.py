# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Swaps the Supabase singleton for an in-memory fake
# - Mints HS256 access tokens the auth dependency accepts
# =============================================================================

import os
import time
import uuid

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-for-hs256-signing")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("SKIP_EMAIL_OTP", "false")
os.environ.setdefault("CRON_SECRET", "")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from jose import jwt

from app.config import settings
from lib.rate_limiter import rate_limiter
from lib.supabase_client import SupabaseClient
from tests.fakes import FakeSupabaseClient

ADMIN_ID = "00000000-0000-0000-0000-00000000a001"
USER_ID = "00000000-0000-0000-0000-00000000b001"
OTHER_USER_ID = "00000000-0000-0000-0000-00000000b002"


def make_token(user_id: str, email: str | None = None, expires_in: int = 3600) -> str:
    """Sign a Supabase-shaped access token with the test HS256 secret."""
    now = int(time.time())
    return jwt.encode(
        {
            "sub": user_id,
            "email": email,
            "aud": "authenticated",
            "role": "authenticated",
            "iat": now,
            "exp": now + expires_in,
        },
        settings.SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )


def bearer(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def fake_supabase():
    """In-memory Supabase with an admin and two regular users."""
    fake = FakeSupabaseClient()
    fake.seed("profiles", [
        {"id": ADMIN_ID, "username": "admin", "full_name": "Admin", "email": "admin@example.com",
         "role": "admin", "created_at": "2025-01-01T00:00:00+00:00"},
        {"id": USER_ID, "username": "builder", "full_name": "Builder One", "email": "builder@example.com",
         "role": "user", "created_at": "2025-01-02T00:00:00+00:00"},
        {"id": OTHER_USER_ID, "username": "other", "full_name": "Other Person", "email": "other@example.com",
         "role": "user", "created_at": "2025-01-03T00:00:00+00:00"},
    ])
    previous = SupabaseClient._instance
    SupabaseClient._instance = fake
    yield fake
    SupabaseClient._instance = previous


@pytest.fixture
def client(fake_supabase):
    from fastapi.testclient import TestClient

    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return bearer(ADMIN_ID)


@pytest.fixture
def user_headers():
    return bearer(USER_ID)


@pytest.fixture
def other_headers():
    return bearer(OTHER_USER_ID)


@pytest.fixture
def random_user_id():
    return str(uuid.uuid4())
