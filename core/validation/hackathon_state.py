# =============================================================================
# core/validation/hackathon_state.py - Hackathon Lifecycle
# =============================================================================
# A hackathon is shown as exactly one of draft, live, or ended:
# - ended: end_date has passed (regardless of status)
# - live:  status is 'published' and end_date is in the future
# - draft: everything else, including unparseable end dates
# =============================================================================

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from lib.utils import parse_timestamp

logger = logging.getLogger(__name__)


class HackathonDisplayState(str, Enum):
    DRAFT = "draft"
    LIVE = "live"
    ENDED = "ended"


def get_hackathon_display_state(hackathon: Mapping[str, Any], now: datetime) -> HackathonDisplayState:
    end = parse_timestamp(hackathon.get("end_date"))
    if end is None:
        logger.warning(f"Invalid end_date on hackathon {hackathon.get('id')}: {hackathon.get('end_date')!r}")
        return HackathonDisplayState.DRAFT

    if now > end:
        return HackathonDisplayState.ENDED

    if (hackathon.get("status") or "draft").lower() == "published":
        return HackathonDisplayState.LIVE

    return HackathonDisplayState.DRAFT


def can_register(hackathon: Mapping[str, Any], now: datetime) -> bool:
    return get_hackathon_display_state(hackathon, now) == HackathonDisplayState.LIVE


def can_submit(hackathon: Mapping[str, Any], now: datetime) -> bool:
    """Live and the start date has been reached."""
    if get_hackathon_display_state(hackathon, now) != HackathonDisplayState.LIVE:
        return False
    start = parse_timestamp(hackathon.get("start_date"))
    return start is not None and now >= start


def can_edit_hackathon(hackathon: Mapping[str, Any], now: datetime) -> bool:
    """Organizers edit drafts and live events freely; ended events are frozen."""
    return get_hackathon_display_state(hackathon, now) != HackathonDisplayState.ENDED
