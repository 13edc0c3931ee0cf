# =============================================================================
# core/validation/judge_token.py - Judge Scoring Tokens
# =============================================================================
# Judges receive a personal link containing a random token; the token alone
# grants scoring access to one hackathon until it expires.
# =============================================================================

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from lib.utils import parse_timestamp

TOKEN_BYTES = 32  # 64 hex chars
DEFAULT_EXPIRY_DAYS = 30
MIN_TOKEN_LENGTH = 32

_HEX_RE = re.compile(r"^[a-fA-F0-9]+$")


@dataclass(frozen=True)
class TokenAuthResult:
    success: bool
    error: str | None = None  # invalid_format | not_found | expired
    judge_id: str | None = None
    hackathon_id: int | None = None
    token_id: str | None = None


def generate_secure_token(
    expiry_days: int = DEFAULT_EXPIRY_DAYS,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """Returns (token, expires_at)."""
    now = now or datetime.now(timezone.utc)
    return secrets.token_hex(TOKEN_BYTES), now + timedelta(days=expiry_days)


def is_valid_token_format(token: Any) -> bool:
    return isinstance(token, str) and len(token) >= MIN_TOKEN_LENGTH and bool(_HEX_RE.match(token))


def is_token_expired(expires_at: str | datetime | None, now: datetime) -> bool:
    """Unparseable expiry dates count as expired."""
    expiry = parse_timestamp(expires_at)
    return expiry is None or now > expiry


def authenticate_token(
    token: str,
    token_row: Mapping[str, Any] | None,
    now: datetime,
) -> TokenAuthResult:
    """
    Decide whether a token (and the row it matched, if any) grants access.

    Format is checked first so malformed tokens never reach the database.
    """
    if not is_valid_token_format(token):
        return TokenAuthResult(success=False, error="invalid_format")
    if not token_row:
        return TokenAuthResult(success=False, error="not_found")
    if is_token_expired(token_row.get("expires_at"), now):
        return TokenAuthResult(success=False, error="expired")
    return TokenAuthResult(
        success=True,
        judge_id=str(token_row["judge_id"]),
        hackathon_id=token_row["hackathon_id"],
        token_id=str(token_row.get("id")) if token_row.get("id") is not None else None,
    )


def token_expiry_warning(expires_at: str | datetime | None, now: datetime) -> str | None:
    """A human warning when fewer than 24 hours remain, else None."""
    expiry = parse_timestamp(expires_at)
    if expiry is None or now >= expiry:
        return None
    hours = (expiry - now).total_seconds() / 3600
    if hours <= 24:
        return f"Token expires in {round(hours)} hours"
    return None
