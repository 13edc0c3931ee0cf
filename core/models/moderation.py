# =============================================================================
# core/models/moderation.py - User Moderation Schemas
# =============================================================================
# Reports filed by users against other users, and the actions admins take.
# =============================================================================

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ReportCategory(str, Enum):
    HARASSMENT = "harassment"
    SPAM = "spam"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    IMPERSONATION = "impersonation"
    CHEATING = "cheating"
    HATE_SPEECH = "hate_speech"
    SCAM = "scam"
    OTHER = "other"


class ReportStatus(str, Enum):
    """
    Report workflow.

    Flow: pending -> under_review -> resolved | dismissed
    """
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ReportPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ModerationActionType(str, Enum):
    WARNING = "warning"
    MUTE = "mute"
    SUSPEND = "suspend"
    BAN = "ban"
    UNBAN = "unban"
    UNMUTE = "unmute"
    NOTE = "note"
    VERIFY = "verify"
    UNVERIFY = "unverify"


# Actions that accept duration_hours
TIMED_ACTIONS = (ModerationActionType.MUTE, ModerationActionType.SUSPEND, ModerationActionType.BAN)


class UserFilter(str, Enum):
    BANNED = "banned"
    MUTED = "muted"
    SUSPENDED = "suspended"
    WARNED = "warned"


class ReportCreate(BaseModel):
    """
    Schema for filing a report.

    Example:
        {
            "reported_user_id": "550e8400-e29b-41d4-a716-446655440000",
            "category": "spam",
            "description": "Posting referral links in every team chat"
        }
    """
    reported_user_id: UUID
    category: ReportCategory
    description: str = Field(..., min_length=1, max_length=2000)
    screenshot_urls: list[str] = Field(default_factory=list, max_length=10)


class ReportUpdate(BaseModel):
    """Admin triage of a report; only provided fields are written."""
    status: ReportStatus | None = None
    admin_notes: str | None = Field(default=None, max_length=5000)
    resolution: str | None = Field(default=None, max_length=5000)
    priority: ReportPriority | None = None


class ModerationActionRequest(BaseModel):
    user_id: UUID
    action_type: ModerationActionType
    reason: str = Field(..., min_length=1, max_length=2000)
    duration_hours: int | None = Field(default=None, gt=0, le=24 * 365)
    related_report_id: int | str | None = None
    metadata: dict[str, Any] | None = None


class ModerationStatus(BaseModel):
    """Current restrictions on a user (expired restrictions already lifted)."""
    is_banned: bool = False
    is_muted: bool = False
    is_suspended: bool = False
    is_verified: bool = False
    warning_count: int = 0
    ban_expires_at: str | None = None
    mute_expires_at: str | None = None
    suspend_expires_at: str | None = None
