# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

from datetime import datetime, timezone
from uuid import UUID

import pandas as pd


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Example:
        user_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        user_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """
    Parse a Postgres/ISO timestamp into an aware datetime.

    Naive values are treated as UTC. Unparseable input returns None.
    PostgREST trims trailing zeros from fractional seconds, which
    datetime.fromisoformat only accepts from Python 3.11 on.

    Example:
        parse_timestamp("2024-01-15T10:30:00Z")  # 2024-01-15 10:30:00+00:00
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            stamp = pd.to_datetime(str(value).strip(), format="ISO8601")
        except ValueError:
            return None
        if pd.isna(stamp):
            return None
        parsed = stamp.to_pydatetime()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Text Utilities
# =============================================================================

def clean_text(value: str | None, max_length: int) -> str | None:
    """
    Trim and truncate user-supplied text.

    Empty strings become None so they clear the column instead of storing "".
    """
    if value is None:
        return None
    cleaned = str(value).strip()[:max_length]
    return cleaned or None


def normalize_email(email: str) -> str:
    return email.strip().lower()
