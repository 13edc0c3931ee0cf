# =============================================================================
# core/models/newsletter.py - Newsletter Schemas
# =============================================================================
# Subscribers, newsletter drafts, recurring schedule settings, and the
# per-send report produced by the dispatch loop.
# =============================================================================

import re
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field, field_validator

_TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


class SubscriberStatus(str, Enum):
    ACTIVE = "active"
    UNSUBSCRIBED = "unsubscribed"


class NewsletterStatus(str, Enum):
    """
    Lifecycle of a newsletter row.

    Flow: draft -> pending (own scheduled_for) -> sent
          draft -> ready_to_send (next slot of the recurring schedule) -> sent
    """
    DRAFT = "draft"
    PENDING = "pending"
    READY_TO_SEND = "ready_to_send"
    SENT = "sent"


class ScheduleFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


# -----------------------------------------------------------------------------
# Public subscription
# -----------------------------------------------------------------------------

class SubscribeRequest(BaseModel):
    email: str = Field(..., max_length=254, examples=["ada@example.com"])


class UnsubscribeRequest(BaseModel):
    email: str = Field(..., max_length=254)
    token: str | None = Field(default=None, description="Token from the unsubscribe link")


# -----------------------------------------------------------------------------
# Admin authoring
# -----------------------------------------------------------------------------

class NewsletterSave(BaseModel):
    """
    Create (no id) or update (with id) a newsletter draft.

    Example:
        {"subject": "March builds", "html_content": "<h1>Hi</h1>", "status": "draft"}
    """
    id: int | None = None
    subject: str = Field(..., min_length=1, max_length=200)
    content: str | None = Field(default=None, description="Plain-text body")
    html_content: str = Field(..., min_length=1)
    status: NewsletterStatus = NewsletterStatus.DRAFT


class NewsletterSchedule(BaseModel):
    id: int | None = None
    subject: str = Field(..., min_length=1, max_length=200)
    content: str | None = None
    html_content: str = Field(..., min_length=1)
    scheduled_for: str = Field(..., description="ISO timestamp; must be in the future")


class NewsletterSend(BaseModel):
    """Send immediately. With an id, an existing draft is sent."""
    id: int | None = None
    subject: str = Field(..., min_length=1, max_length=200)
    content: str | None = None
    html_content: str = Field(..., min_length=1)


class SubscriberImport(BaseModel):
    emails: list[str] = Field(..., min_length=1, max_length=10000)


class ScheduleSettings(BaseModel):
    """
    Recurring send schedule.

    day_of_week uses 0=Sunday .. 6=Saturday.
    """
    frequency: ScheduleFrequency
    time_of_day: str = Field(..., description="HH:MM in UTC", examples=["09:00"])
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    day_of_month: int | None = Field(default=None, ge=1, le=31)
    is_enabled: bool = True

    @field_validator("time_of_day")
    @classmethod
    def _check_time_of_day(cls, value: str) -> str:
        # Postgres time columns come back as HH:MM:SS
        if not _TIME_OF_DAY_RE.match(value):
            raise ValueError("time_of_day must be HH:MM (24h)")
        return value[:5]


# -----------------------------------------------------------------------------
# Dispatch results
# -----------------------------------------------------------------------------

@dataclass
class RecipientResult:
    email: str
    success: bool
    error_message: str | None = None


@dataclass
class SendReport:
    """Outcome of one newsletter dispatch."""
    newsletter_id: int
    total_recipients: int
    total_sent: int = 0
    total_failed: int = 0
    results: list[RecipientResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "newsletter_id": self.newsletter_id,
            "total_recipients": self.total_recipients,
            "total_sent": self.total_sent,
            "total_failed": self.total_failed,
        }
