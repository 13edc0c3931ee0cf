# =============================================================================
# core/services/newsletter_service.py - Newsletter Subscriptions & Sending
# =============================================================================
# Subscribers live in newsletter_subscriptions; newsletters in
# newsletter_emails. Sending is a sequential loop over active subscribers:
# one email per recipient, one newsletter_send_logs row per attempt, and the
# totals written back to the newsletter.
#
# Two scheduling modes:
#   pending        -> sent once scheduled_for has passed
#   ready_to_send  -> sent (oldest first, one per slot) when the recurring
#                     schedule in newsletter_schedule_settings comes due
# =============================================================================

import calendar
import logging
from datetime import datetime, timedelta
from typing import Any, BinaryIO

import pandas as pd

from app.exceptions import ConflictError, EmailDeliveryError, InvalidInputError, NotFoundError
from core.models.newsletter import (
    NewsletterSave,
    NewsletterSchedule,
    NewsletterSend,
    NewsletterStatus,
    RecipientResult,
    ScheduleFrequency,
    ScheduleSettings,
    SendReport,
    SubscriberStatus,
)
from core.validation.email import is_valid_email_format
from lib import email_templates
from lib.email_client import EmailClient
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_email, normalize_uuid, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

SUBSCRIBERS = "newsletter_subscriptions"
NEWSLETTERS = "newsletter_emails"
SEND_LOGS = "newsletter_send_logs"
SCHEDULE = "newsletter_schedule_settings"

CHART_DAYS = 30
CSV_ENCODINGS = ["utf-8", "utf-8-sig", "latin-1"]
EXPORT_COLUMNS = ["email", "status", "source", "subscribed_at", "unsubscribed_at"]


# =============================================================================
# Scheduling
# =============================================================================

def calculate_next_scheduled_time(
    schedule: ScheduleSettings,
    now: datetime,
    last_sent_at: datetime | None = None,
) -> datetime:
    """
    Next send slot strictly after `now` (UTC).

    - daily: today at time_of_day, else tomorrow
    - weekly: next day_of_week (0=Sunday) at time_of_day
    - biweekly: as weekly, pushed a week further if that would be less
      than 14 days after last_sent_at
    - monthly: day_of_month (clamped to the month's length), else next month
    """
    hour, minute = (int(part) for part in schedule.time_of_day.split(":"))
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)

    if schedule.frequency == ScheduleFrequency.DAILY:
        return candidate if candidate > now else candidate + timedelta(days=1)

    if schedule.frequency in (ScheduleFrequency.WEEKLY, ScheduleFrequency.BIWEEKLY):
        # Python weekday(): Monday=0; schedule: Sunday=0
        target = ((schedule.day_of_week or 0) - 1) % 7
        candidate += timedelta(days=(target - now.weekday()) % 7)
        if candidate <= now:
            candidate += timedelta(days=7)
        if (
            schedule.frequency == ScheduleFrequency.BIWEEKLY
            and last_sent_at is not None
            and candidate - last_sent_at < timedelta(days=14)
        ):
            candidate += timedelta(days=7)
        return candidate

    day = schedule.day_of_month or 1
    year, month = now.year, now.month
    candidate = candidate.replace(day=min(day, calendar.monthrange(year, month)[1]))
    if candidate <= now:
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        candidate = candidate.replace(
            year=year, month=month, day=min(day, calendar.monthrange(year, month)[1])
        )
    return candidate


def read_subscriber_csv(buffer: BinaryIO) -> list[str]:
    """
    Pull email addresses out of an uploaded CSV.

    Uses the column named "email" (any case) when present, else the first
    column.

    Raises:
        InvalidInputError: If the file can't be decoded as CSV
    """
    df = None
    for encoding in CSV_ENCODINGS:
        try:
            buffer.seek(0)
            df = pd.read_csv(buffer, encoding=encoding, dtype=str, on_bad_lines="skip")
            break
        except (UnicodeDecodeError, UnicodeError):
            continue
        except pd.errors.EmptyDataError:
            return []
        except pd.errors.ParserError as e:
            raise InvalidInputError(f"Could not parse CSV: {e}")
    if df is None:
        raise InvalidInputError("Could not decode CSV file")
    if df.columns.empty:
        return []

    column = next((c for c in df.columns if str(c).strip().lower() == "email"), df.columns[0])
    values = df[column].dropna().astype(str).str.strip()
    emails = values[values != ""].tolist()

    # A headerless file puts its first address in the column name
    if column == df.columns[0] and str(column).strip().lower() != "email" and "@" in str(column):
        emails.insert(0, str(column).strip())
    return emails


# =============================================================================
# Service
# =============================================================================

class NewsletterService:
    """Service for newsletter subscriptions, authoring and dispatch."""

    # -------------------------------------------------------------------------
    # Public subscription
    # -------------------------------------------------------------------------

    @staticmethod
    def subscribe(email: str, now: datetime | None = None) -> dict[str, Any]:
        """
        Subscribe an address; a previously unsubscribed one is reactivated.

        Raises:
            InvalidInputError: Bad address, or already subscribed
        """
        now = now or utc_now()
        email = normalize_email(email)
        if not is_valid_email_format(email):
            raise InvalidInputError("Please enter a valid email address")

        client = SupabaseClient.get_client()
        existing = SupabaseClient.fetch_row(SUBSCRIBERS, "email", email)

        if existing and existing.get("status") == SubscriberStatus.ACTIVE.value:
            raise InvalidInputError("This email is already subscribed")

        if existing:
            response = client.table(SUBSCRIBERS).update({
                "status": SubscriberStatus.ACTIVE.value,
                "subscribed_at": now.isoformat(),
                "unsubscribed_at": None,
            }).eq("email", email).execute()
            logger.info(f"Newsletter subscription reactivated: {email}")
            return {"email": email, "reactivated": True, "subscriber": response.data[0] if response.data else None}

        response = client.table(SUBSCRIBERS).insert({
            "email": email,
            "status": SubscriberStatus.ACTIVE.value,
            "subscribed_at": now.isoformat(),
            "source": "landing_page",
        }).execute()
        logger.info(f"Newsletter subscription created: {email}")
        return {"email": email, "reactivated": False, "subscriber": response.data[0] if response.data else None}

    @staticmethod
    def unsubscribe(email: str, token: str | None = None, now: datetime | None = None) -> None:
        """
        Raises:
            InvalidInputError: Token given but doesn't match the address
            NotFoundError: Address isn't subscribed
        """
        now = now or utc_now()
        email = normalize_email(email)
        if token is not None and not email_templates.verify_unsubscribe_token(email, token):
            raise InvalidInputError("Invalid unsubscribe link")

        response = (
            SupabaseClient.get_client()
            .table(SUBSCRIBERS)
            .update({"status": SubscriberStatus.UNSUBSCRIBED.value, "unsubscribed_at": now.isoformat()})
            .eq("email", email)
            .execute()
        )
        if not response.data:
            raise NotFoundError("Subscriber", email)
        logger.info(f"Newsletter unsubscribe: {email}")

    # -------------------------------------------------------------------------
    # Admin: subscribers
    # -------------------------------------------------------------------------

    @staticmethod
    def list_subscribers(
        status: SubscriberStatus | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        query = SupabaseClient.get_client().table(SUBSCRIBERS).select("*", count="exact")
        if status is not None:
            query = query.eq("status", status.value)
        if search:
            query = query.ilike("email", f"%{search.strip()}%")
        response = query.order("subscribed_at", desc=True).range(offset, offset + limit - 1).execute()
        return response.data or [], response.count or 0

    @staticmethod
    def active_subscriber_emails() -> list[str]:
        response = (
            SupabaseClient.get_client()
            .table(SUBSCRIBERS)
            .select("email")
            .eq("status", SubscriberStatus.ACTIVE.value)
            .execute()
        )
        return [row["email"] for row in response.data or []]

    @staticmethod
    def export_subscribers_csv() -> str:
        rows = (
            SupabaseClient.get_client()
            .table(SUBSCRIBERS)
            .select("*")
            .order("subscribed_at", desc=True)
            .execute()
        ).data or []
        df = pd.DataFrame(rows).reindex(columns=EXPORT_COLUMNS)
        return df.to_csv(index=False)

    @staticmethod
    def import_subscribers(emails: list[str], now: datetime | None = None) -> dict[str, Any]:
        """
        Bulk-add addresses as active subscribers.

        Addresses are normalized and de-duplicated; invalid ones and those
        already present (in any status) are skipped.
        """
        now = now or utc_now()
        unique: list[str] = []
        invalid: list[str] = []
        for raw in emails:
            email = normalize_email(raw)
            if not is_valid_email_format(email):
                invalid.append(raw)
            elif email not in unique:
                unique.append(email)

        existing = SupabaseClient.fetch_by_ids(SUBSCRIBERS, unique, columns="email", key="email")
        new = [email for email in unique if email not in existing]

        if new:
            SupabaseClient.get_client().table(SUBSCRIBERS).insert([
                {
                    "email": email,
                    "status": SubscriberStatus.ACTIVE.value,
                    "subscribed_at": now.isoformat(),
                    "source": "csv_import",
                }
                for email in new
            ]).execute()

        logger.info(f"Subscriber import: {len(new)} added, {len(existing)} existing, {len(invalid)} invalid")
        return {
            "imported": len(new),
            "skipped": len(unique) - len(new),
            "invalid": len(invalid),
            "invalid_emails": invalid[:50],
        }

    @staticmethod
    def admin_unsubscribe(email: str) -> None:
        NewsletterService.unsubscribe(email)

    @staticmethod
    def stats(now: datetime | None = None) -> dict[str, Any]:
        """Subscriber and newsletter totals plus a daily signup chart."""
        now = now or utc_now()
        client = SupabaseClient.get_client()

        subscribers = client.table(SUBSCRIBERS).select("status, subscribed_at").execute().data or []
        newsletters = client.table(NEWSLETTERS).select("status, total_sent").execute().data or []

        df = pd.DataFrame(subscribers, columns=["status", "subscribed_at"])
        since = now - timedelta(days=CHART_DAYS)
        signup_dates = pd.to_datetime(df["subscribed_at"], utc=True, errors="coerce")
        daily = signup_dates[signup_dates >= since].dt.date.value_counts()
        days = pd.date_range(end=now.date(), periods=CHART_DAYS, freq="D").date

        return {
            "total_subscribers": len(df),
            "active_subscribers": int((df["status"] == SubscriberStatus.ACTIVE.value).sum()),
            "unsubscribed": int((df["status"] == SubscriberStatus.UNSUBSCRIBED.value).sum()),
            "total_newsletters": len(newsletters),
            "sent_newsletters": sum(1 for n in newsletters if n.get("status") == NewsletterStatus.SENT.value),
            "total_emails_sent": sum(int(n.get("total_sent") or 0) for n in newsletters),
            "chart": [{"date": day.isoformat(), "count": int(daily.get(day, 0))} for day in days],
        }

    # -------------------------------------------------------------------------
    # Admin: newsletters
    # -------------------------------------------------------------------------

    @staticmethod
    def list_newsletters() -> list[dict[str, Any]]:
        response = (
            SupabaseClient.get_client()
            .table(NEWSLETTERS)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    @staticmethod
    def get_newsletter(newsletter_id: int) -> dict[str, Any]:
        newsletter = SupabaseClient.fetch_row(NEWSLETTERS, "id", newsletter_id)
        if not newsletter:
            raise NotFoundError("Newsletter", newsletter_id)
        return newsletter

    @staticmethod
    def _write(newsletter_id: int | None, data: dict[str, Any], admin_id: str) -> dict[str, Any]:
        """Insert (no id) or update an unsent newsletter."""
        client = SupabaseClient.get_client()
        if newsletter_id is None:
            response = client.table(NEWSLETTERS).insert({**data, "created_by": admin_id}).execute()
            return response.data[0]

        existing = NewsletterService.get_newsletter(newsletter_id)
        if existing.get("status") == NewsletterStatus.SENT.value:
            raise ConflictError("This newsletter has already been sent")

        data["updated_at"] = utc_now().isoformat()
        response = client.table(NEWSLETTERS).update(data).eq("id", newsletter_id).execute()
        return response.data[0]

    @staticmethod
    def save(request: NewsletterSave, admin_id: str) -> dict[str, Any]:
        if request.status == NewsletterStatus.SENT:
            raise InvalidInputError("Use send to deliver a newsletter")
        saved = NewsletterService._write(request.id, {
            "subject": request.subject.strip(),
            "content": request.content,
            "html_content": request.html_content,
            "status": request.status.value,
        }, normalize_uuid(admin_id))
        logger.info(f"Newsletter {saved.get('id')} saved as {request.status.value}")
        return saved

    @staticmethod
    def schedule(request: NewsletterSchedule, admin_id: str, now: datetime | None = None) -> dict[str, Any]:
        now = now or utc_now()
        scheduled_for = parse_timestamp(request.scheduled_for)
        if scheduled_for is None:
            raise InvalidInputError("scheduled_for must be an ISO timestamp")
        if scheduled_for <= now:
            raise InvalidInputError("Scheduled time must be in the future")

        saved = NewsletterService._write(request.id, {
            "subject": request.subject.strip(),
            "content": request.content,
            "html_content": request.html_content,
            "status": NewsletterStatus.PENDING.value,
            "scheduled_for": scheduled_for.isoformat(),
        }, normalize_uuid(admin_id))
        logger.info(f"Newsletter {saved.get('id')} scheduled for {scheduled_for.isoformat()}")
        return saved

    @staticmethod
    def delete(newsletter_id: int) -> None:
        NewsletterService.get_newsletter(newsletter_id)
        client = SupabaseClient.get_client()
        client.table(SEND_LOGS).delete().eq("newsletter_id", newsletter_id).execute()
        client.table(NEWSLETTERS).delete().eq("id", newsletter_id).execute()
        logger.info(f"Newsletter {newsletter_id} deleted")

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    @staticmethod
    def dispatch(
        newsletter: dict[str, Any],
        subscribers: list[str],
        now: datetime | None = None,
    ) -> SendReport:
        """
        Send a newsletter to each subscriber in turn.

        A failure for one recipient is logged and counted; the loop
        continues. The newsletter row is marked sent with the totals.
        """
        now = now or utc_now()
        client = SupabaseClient.get_client()
        newsletter_id = newsletter["id"]
        subject = newsletter["subject"]
        report = SendReport(newsletter_id=newsletter_id, total_recipients=len(subscribers))

        logger.info(f"Dispatching newsletter {newsletter_id} to {len(subscribers)} subscribers")

        for email in subscribers:
            html = email_templates.newsletter_email(
                subject,
                newsletter["html_content"],
                email_templates.generate_unsubscribe_url(email),
            )
            try:
                EmailClient.send(
                    email,
                    subject,
                    html,
                    sender=EmailClient.newsletter_sender(),
                    text=email_templates.strip_html(html),
                )
            except EmailDeliveryError as e:
                error = e.message
                logger.warning(f"Newsletter {newsletter_id} to {email} failed: {error}")
                client.table(SEND_LOGS).insert({
                    "newsletter_id": newsletter_id,
                    "recipient_email": email,
                    "status": "failed",
                    "error_message": error,
                }).execute()
                report.total_failed += 1
                report.results.append(RecipientResult(email=email, success=False, error_message=error))
                continue

            client.table(SEND_LOGS).insert({
                "newsletter_id": newsletter_id,
                "recipient_email": email,
                "status": "sent",
            }).execute()
            report.total_sent += 1
            report.results.append(RecipientResult(email=email, success=True))

        client.table(NEWSLETTERS).update({
            "status": NewsletterStatus.SENT.value,
            "sent_at": now.isoformat(),
            "total_recipients": report.total_recipients,
            "total_sent": report.total_sent,
            "total_failed": report.total_failed,
        }).eq("id", newsletter_id).execute()

        logger.info(f"Newsletter {newsletter_id}: {report.total_sent} sent, {report.total_failed} failed")
        return report

    @staticmethod
    def send_newsletter(newsletter_id: int, now: datetime | None = None) -> SendReport:
        """
        Raises:
            NotFoundError: Unknown newsletter
            ConflictError: Already sent
        """
        newsletter = NewsletterService.get_newsletter(newsletter_id)
        if newsletter.get("status") == NewsletterStatus.SENT.value:
            raise ConflictError("This newsletter has already been sent")
        return NewsletterService.dispatch(newsletter, NewsletterService.active_subscriber_emails(), now)

    @staticmethod
    def send_now(request: NewsletterSend, admin_id: str, now: datetime | None = None) -> SendReport:
        saved = NewsletterService._write(request.id, {
            "subject": request.subject.strip(),
            "content": request.content,
            "html_content": request.html_content,
            "status": NewsletterStatus.PENDING.value,
        }, normalize_uuid(admin_id))
        return NewsletterService.dispatch(saved, NewsletterService.active_subscriber_emails(), now)

    @staticmethod
    def _due_from_schedule(now: datetime) -> list[dict[str, Any]]:
        """Oldest ready_to_send newsletter if the recurring slot has come; advances the slot."""
        row = NewsletterService._schedule_row()
        if not row or not row.get("is_enabled"):
            return []
        next_at = parse_timestamp(row.get("next_scheduled_at"))
        if next_at is None or now < next_at:
            return []

        ready = (
            SupabaseClient.get_client()
            .table(NEWSLETTERS)
            .select("*")
            .eq("status", NewsletterStatus.READY_TO_SEND.value)
            .order("created_at")
            .limit(1)
            .execute()
        ).data or []
        if not ready:
            return []

        schedule = ScheduleSettings.model_validate(row)
        following = calculate_next_scheduled_time(schedule, now, last_sent_at=now)
        SupabaseClient.get_client().table(SCHEDULE).update({
            "next_scheduled_at": following.isoformat(),
            "last_sent_at": now.isoformat(),
        }).eq("id", row["id"]).execute()
        return ready

    @staticmethod
    def send_due(now: datetime | None = None) -> list[SendReport]:
        """
        Send every pending newsletter whose scheduled_for has passed, plus
        the next ready_to_send one when the recurring schedule is due.
        """
        now = now or utc_now()
        pending = (
            SupabaseClient.get_client()
            .table(NEWSLETTERS)
            .select("*")
            .eq("status", NewsletterStatus.PENDING.value)
            .lte("scheduled_for", now.isoformat())
            .execute()
        ).data or []
        due = pending + NewsletterService._due_from_schedule(now)
        if not due:
            logger.debug("No newsletters due")
            return []

        subscribers = NewsletterService.active_subscriber_emails()
        return [NewsletterService.dispatch(newsletter, subscribers, now) for newsletter in due]

    # -------------------------------------------------------------------------
    # Recurring schedule
    # -------------------------------------------------------------------------

    @staticmethod
    def _schedule_row() -> dict[str, Any] | None:
        rows = (
            SupabaseClient.get_client()
            .table(SCHEDULE)
            .select("*")
            .order("id")
            .limit(1)
            .execute()
        ).data
        return rows[0] if rows else None

    @staticmethod
    def get_schedule_settings() -> dict[str, Any] | None:
        return NewsletterService._schedule_row()

    @staticmethod
    def save_schedule_settings(
        schedule: ScheduleSettings,
        admin_id: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or utc_now()
        if schedule.frequency in (ScheduleFrequency.WEEKLY, ScheduleFrequency.BIWEEKLY) and schedule.day_of_week is None:
            raise InvalidInputError("day_of_week is required for weekly schedules")
        if schedule.frequency == ScheduleFrequency.MONTHLY and schedule.day_of_month is None:
            raise InvalidInputError("day_of_month is required for monthly schedules")

        existing = NewsletterService._schedule_row()
        last_sent_at = parse_timestamp(existing.get("last_sent_at")) if existing else None
        next_at = calculate_next_scheduled_time(schedule, now, last_sent_at) if schedule.is_enabled else None

        data = {
            **schedule.model_dump(mode="json"),
            "next_scheduled_at": next_at.isoformat() if next_at else None,
            "updated_by": normalize_uuid(admin_id),
            "updated_at": now.isoformat(),
        }

        client = SupabaseClient.get_client()
        if existing:
            response = client.table(SCHEDULE).update(data).eq("id", existing["id"]).execute()
        else:
            response = client.table(SCHEDULE).insert(data).execute()

        logger.info(f"Newsletter schedule saved: {schedule.frequency.value}, next {data['next_scheduled_at']}")
        return response.data[0]
