# =============================================================================
# tests/test_newsletter_service.py - Newsletter Tests
# =============================================================================
# Covers recurring schedule math, CSV import parsing, subscriptions and the
# send loop (against the in-memory Supabase fake).
# =============================================================================

import io
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.exceptions import ConflictError, EmailDeliveryError, InvalidInputError, NotFoundError
from core.models.newsletter import NewsletterSchedule, ScheduleFrequency, ScheduleSettings
from core.services.newsletter_service import (
    NEWSLETTERS,
    SCHEDULE,
    SEND_LOGS,
    SUBSCRIBERS,
    NewsletterService,
    calculate_next_scheduled_time,
    read_subscriber_csv,
)
from lib import email_templates

# 2025-03-05 is a Wednesday
WEDNESDAY = datetime(2025, 3, 5, 10, 0, tzinfo=timezone.utc)
ADMIN = "00000000-0000-0000-0000-00000000a001"


def schedule(frequency, time_of_day="09:00", **kwargs):
    return ScheduleSettings(frequency=frequency, time_of_day=time_of_day, **kwargs)


# =============================================================================
# Schedule Calculation
# =============================================================================

class TestNextScheduledTime:

    def test_daily_later_today(self):
        now = WEDNESDAY.replace(hour=8)
        assert calculate_next_scheduled_time(schedule("daily"), now) == now.replace(hour=9)

    def test_daily_rolls_to_tomorrow(self):
        result = calculate_next_scheduled_time(schedule("daily"), WEDNESDAY)
        assert result == datetime(2025, 3, 6, 9, 0, tzinfo=timezone.utc)

    def test_weekly_next_monday(self):
        result = calculate_next_scheduled_time(schedule("weekly", day_of_week=1), WEDNESDAY)
        assert result == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

    def test_weekly_sunday_is_zero(self):
        result = calculate_next_scheduled_time(schedule("weekly", day_of_week=0), WEDNESDAY)
        assert result == datetime(2025, 3, 9, 9, 0, tzinfo=timezone.utc)

    def test_weekly_same_day_time_passed(self):
        result = calculate_next_scheduled_time(schedule("weekly", day_of_week=3), WEDNESDAY)
        assert result == datetime(2025, 3, 12, 9, 0, tzinfo=timezone.utc)

    def test_biweekly_skips_a_week_after_recent_send(self):
        last_sent = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
        result = calculate_next_scheduled_time(schedule("biweekly", day_of_week=1), WEDNESDAY, last_sent)
        assert result == datetime(2025, 3, 17, 9, 0, tzinfo=timezone.utc)

    def test_biweekly_without_history_behaves_weekly(self):
        result = calculate_next_scheduled_time(schedule("biweekly", day_of_week=1), WEDNESDAY)
        assert result == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

    def test_monthly_clamps_to_month_length(self):
        now = datetime(2025, 2, 10, tzinfo=timezone.utc)
        result = calculate_next_scheduled_time(schedule("monthly", day_of_month=31), now)
        assert result == datetime(2025, 2, 28, 9, 0, tzinfo=timezone.utc)

    def test_monthly_moves_to_next_month(self):
        result = calculate_next_scheduled_time(schedule("monthly", day_of_month=1), WEDNESDAY)
        assert result == datetime(2025, 4, 1, 9, 0, tzinfo=timezone.utc)

    def test_monthly_year_rollover(self):
        now = datetime(2025, 12, 20, tzinfo=timezone.utc)
        result = calculate_next_scheduled_time(schedule("monthly", day_of_month=5), now)
        assert result == datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    def test_postgres_time_format_accepted(self):
        assert schedule("daily", time_of_day="09:30:00").time_of_day == "09:30"


# =============================================================================
# CSV Import Parsing
# =============================================================================

class TestReadSubscriberCsv:

    def test_email_column(self):
        data = b"name,Email\nAda,ada@example.com\nBob, bob@example.org \n"
        assert read_subscriber_csv(io.BytesIO(data)) == ["ada@example.com", "bob@example.org"]

    def test_first_column_fallback(self):
        data = b"address,name\nada@example.com,Ada\n"
        assert read_subscriber_csv(io.BytesIO(data)) == ["ada@example.com"]

    def test_headerless_file_keeps_first_row(self):
        data = b"ada@example.com\nbob@example.org\n"
        assert read_subscriber_csv(io.BytesIO(data)) == ["ada@example.com", "bob@example.org"]

    def test_empty_file(self):
        assert read_subscriber_csv(io.BytesIO(b"")) == []

    def test_latin1_fallback(self):
        data = "email\ncafé@example.com\n".encode("latin-1")
        assert read_subscriber_csv(io.BytesIO(data)) == ["café@example.com"]


# =============================================================================
# Subscriptions
# =============================================================================

class TestSubscriptions:

    def test_subscribe_new_address(self, fake_supabase):
        result = NewsletterService.subscribe(" Ada@Example.com ", now=WEDNESDAY)

        assert result["email"] == "ada@example.com"
        assert not result["reactivated"]
        row = fake_supabase.rows(SUBSCRIBERS)[0]
        assert row["status"] == "active"
        assert row["source"] == "landing_page"

    def test_duplicate_active_subscription(self, fake_supabase):
        NewsletterService.subscribe("ada@example.com")
        with pytest.raises(InvalidInputError, match="already subscribed"):
            NewsletterService.subscribe("ADA@example.com")

    def test_resubscribe_reactivates(self, fake_supabase):
        fake_supabase.seed(SUBSCRIBERS, [
            {"email": "ada@example.com", "status": "unsubscribed", "unsubscribed_at": "2025-01-01T00:00:00+00:00"},
        ])

        result = NewsletterService.subscribe("ada@example.com", now=WEDNESDAY)

        assert result["reactivated"]
        row = fake_supabase.rows(SUBSCRIBERS)[0]
        assert row["status"] == "active"
        assert row["unsubscribed_at"] is None
        assert len(fake_supabase.rows(SUBSCRIBERS)) == 1

    def test_invalid_email(self, fake_supabase):
        with pytest.raises(InvalidInputError):
            NewsletterService.subscribe("nope")

    def test_unsubscribe_with_signed_token(self, fake_supabase):
        NewsletterService.subscribe("ada@example.com")

        NewsletterService.unsubscribe("ada@example.com", email_templates.unsubscribe_token("ada@example.com"))

        assert fake_supabase.rows(SUBSCRIBERS)[0]["status"] == "unsubscribed"

    def test_unsubscribe_rejects_forged_token(self, fake_supabase):
        NewsletterService.subscribe("ada@example.com")
        with pytest.raises(InvalidInputError):
            NewsletterService.unsubscribe("ada@example.com", "0" * 32)
        assert fake_supabase.rows(SUBSCRIBERS)[0]["status"] == "active"

    def test_unsubscribe_unknown_address(self, fake_supabase):
        with pytest.raises(NotFoundError):
            NewsletterService.unsubscribe("ghost@example.com")

    def test_import_skips_existing_and_invalid(self, fake_supabase):
        fake_supabase.seed(SUBSCRIBERS, [{"email": "ada@example.com", "status": "unsubscribed"}])

        result = NewsletterService.import_subscribers(
            ["ADA@example.com", "bob@example.org", "bob@example.org", "not-an-email"]
        )

        assert result == {"imported": 1, "skipped": 1, "invalid": 1, "invalid_emails": ["not-an-email"]}
        imported = [r for r in fake_supabase.rows(SUBSCRIBERS) if r["email"] == "bob@example.org"]
        assert imported[0]["source"] == "csv_import"

    def test_export_csv_columns(self, fake_supabase):
        NewsletterService.subscribe("ada@example.com", now=WEDNESDAY)

        csv = NewsletterService.export_subscribers_csv()

        lines = csv.strip().splitlines()
        assert lines[0] == "email,status,source,subscribed_at,unsubscribed_at"
        assert lines[1].startswith("ada@example.com,active,landing_page,")

    def test_stats(self, fake_supabase):
        fake_supabase.seed(SUBSCRIBERS, [
            {"email": "a@example.com", "status": "active", "subscribed_at": "2025-03-04T12:00:00+00:00"},
            {"email": "b@example.com", "status": "active", "subscribed_at": "2025-03-04T13:00:00+00:00"},
            {"email": "c@example.com", "status": "unsubscribed", "subscribed_at": "2024-01-01T00:00:00+00:00"},
        ])
        fake_supabase.seed(NEWSLETTERS, [{"status": "sent", "total_sent": 40}, {"status": "draft", "total_sent": 0}])

        stats = NewsletterService.stats(now=WEDNESDAY)

        assert stats["total_subscribers"] == 3
        assert stats["active_subscribers"] == 2
        assert stats["unsubscribed"] == 1
        assert stats["sent_newsletters"] == 1
        assert stats["total_emails_sent"] == 40
        assert len(stats["chart"]) == 30
        assert {"date": "2025-03-04", "count": 2} in stats["chart"]


# =============================================================================
# Authoring & Sending
# =============================================================================

@pytest.fixture
def subscribers(fake_supabase):
    fake_supabase.seed(SUBSCRIBERS, [
        {"email": "a@example.com", "status": "active"},
        {"email": "b@example.com", "status": "active"},
        {"email": "gone@example.com", "status": "unsubscribed"},
    ])


class TestSending:

    def test_dispatch_continues_past_failures(self, fake_supabase):
        fake_supabase.seed(NEWSLETTERS, [{"id": 7, "subject": "News", "html_content": "<p>Hi</p>", "status": "draft"}])
        newsletter = fake_supabase.rows(NEWSLETTERS)[0]

        def send(to, subject, html, sender=None, text=None):
            if to == "b@example.com":
                raise EmailDeliveryError(to, "HTTP 422")
            return "msg-id"

        with patch("core.services.newsletter_service.EmailClient.send", side_effect=send) as mock_send:
            report = NewsletterService.dispatch(newsletter, ["a@example.com", "b@example.com", "c@example.com"], WEDNESDAY)

        assert mock_send.call_count == 3
        assert (report.total_recipients, report.total_sent, report.total_failed) == (3, 2, 1)
        logs = fake_supabase.rows(SEND_LOGS)
        assert [log["status"] for log in logs] == ["sent", "failed", "sent"]
        assert logs[1]["error_message"] == "Failed to send email: HTTP 422"
        row = fake_supabase.rows(NEWSLETTERS)[0]
        assert row["status"] == "sent"
        assert row["total_sent"] == 2
        assert row["total_failed"] == 1

    def test_each_recipient_gets_own_unsubscribe_link(self, fake_supabase):
        fake_supabase.seed(NEWSLETTERS, [{"id": 1, "subject": "News", "html_content": "<p>Hi</p>"}])

        with patch("core.services.newsletter_service.EmailClient.send") as mock_send:
            NewsletterService.dispatch(fake_supabase.rows(NEWSLETTERS)[0], ["a@example.com"])

        html = mock_send.call_args.args[2]
        assert email_templates.unsubscribe_token("a@example.com") in html

    def test_body_sanitized_with_text_alternative(self, fake_supabase):
        fake_supabase.seed(NEWSLETTERS, [{
            "id": 1,
            "subject": "News",
            "html_content": '<h2>Demo day</h2><script>steal()</script><a href="javascript:x()" onclick="y()">go</a>',
        }])

        with patch("core.services.newsletter_service.EmailClient.send") as mock_send:
            NewsletterService.dispatch(fake_supabase.rows(NEWSLETTERS)[0], ["a@example.com"])

        html = mock_send.call_args.args[2]
        assert "<h2>Demo day</h2>" in html
        assert "steal()" not in html
        assert "javascript:" not in html
        assert "onclick" not in html
        text = mock_send.call_args.kwargs["text"]
        assert text.startswith("MAXIMALLY Demo day go")
        assert "<" not in text

    def test_send_newsletter_targets_active_subscribers(self, fake_supabase, subscribers):
        fake_supabase.seed(NEWSLETTERS, [{"id": 3, "subject": "S", "html_content": "<p>x</p>", "status": "draft"}])

        report = NewsletterService.send_newsletter(3)

        assert report.total_recipients == 2

    def test_cannot_send_twice(self, fake_supabase):
        fake_supabase.seed(NEWSLETTERS, [{"id": 3, "subject": "S", "html_content": "<p>x</p>", "status": "sent"}])
        with pytest.raises(ConflictError):
            NewsletterService.send_newsletter(3)

    def test_schedule_must_be_in_future(self, fake_supabase):
        request = NewsletterSchedule(subject="S", html_content="<p>x</p>", scheduled_for="2025-03-01T00:00:00Z")
        with pytest.raises(InvalidInputError, match="future"):
            NewsletterService.schedule(request, ADMIN, now=WEDNESDAY)

    def test_schedule_sets_pending(self, fake_supabase):
        request = NewsletterSchedule(subject="S", html_content="<p>x</p>", scheduled_for="2025-03-06T00:00:00Z")

        saved = NewsletterService.schedule(request, ADMIN, now=WEDNESDAY)

        assert saved["status"] == "pending"
        assert saved["created_by"] == ADMIN

    def test_send_due_only_sends_past_schedules(self, fake_supabase, subscribers):
        fake_supabase.seed(NEWSLETTERS, [
            {"id": 1, "subject": "Due", "html_content": "<p>x</p>", "status": "pending",
             "scheduled_for": (WEDNESDAY - timedelta(minutes=5)).isoformat()},
            {"id": 2, "subject": "Later", "html_content": "<p>x</p>", "status": "pending",
             "scheduled_for": (WEDNESDAY + timedelta(days=1)).isoformat()},
        ])

        reports = NewsletterService.send_due(now=WEDNESDAY)

        assert [r.newsletter_id for r in reports] == [1]
        statuses = {r["id"]: r["status"] for r in fake_supabase.rows(NEWSLETTERS)}
        assert statuses == {1: "sent", 2: "pending"}

    def test_send_due_recurring_slot(self, fake_supabase, subscribers):
        fake_supabase.seed(SCHEDULE, [{
            "id": 1, "frequency": "weekly", "time_of_day": "09:00:00", "day_of_week": 3,
            "is_enabled": True, "next_scheduled_at": WEDNESDAY.replace(hour=9).isoformat(),
        }])
        fake_supabase.seed(NEWSLETTERS, [
            {"id": 10, "subject": "Newer", "html_content": "<p>x</p>", "status": "ready_to_send",
             "created_at": "2025-03-02T00:00:00+00:00"},
            {"id": 11, "subject": "Older", "html_content": "<p>x</p>", "status": "ready_to_send",
             "created_at": "2025-03-01T00:00:00+00:00"},
        ])

        reports = NewsletterService.send_due(now=WEDNESDAY)

        assert [r.newsletter_id for r in reports] == [11]
        row = fake_supabase.rows(SCHEDULE)[0]
        assert row["next_scheduled_at"] == datetime(2025, 3, 12, 9, 0, tzinfo=timezone.utc).isoformat()
        assert row["last_sent_at"] == WEDNESDAY.isoformat()

    def test_disabled_schedule_sends_nothing(self, fake_supabase, subscribers):
        fake_supabase.seed(SCHEDULE, [{
            "id": 1, "frequency": "daily", "time_of_day": "09:00", "is_enabled": False,
            "next_scheduled_at": "2025-03-01T09:00:00+00:00",
        }])
        fake_supabase.seed(NEWSLETTERS, [{"id": 10, "subject": "S", "html_content": "<p>x</p>", "status": "ready_to_send"}])

        assert NewsletterService.send_due(now=WEDNESDAY) == []


class TestScheduleSettings:

    def test_weekly_requires_day(self, fake_supabase):
        with pytest.raises(InvalidInputError):
            NewsletterService.save_schedule_settings(schedule(ScheduleFrequency.WEEKLY), ADMIN, WEDNESDAY)

    def test_save_computes_next_slot(self, fake_supabase):
        saved = NewsletterService.save_schedule_settings(
            schedule(ScheduleFrequency.MONTHLY, day_of_month=15), ADMIN, WEDNESDAY
        )

        assert saved["next_scheduled_at"] == datetime(2025, 3, 15, 9, 0, tzinfo=timezone.utc).isoformat()
        assert saved["frequency"] == "monthly"

        NewsletterService.save_schedule_settings(schedule(ScheduleFrequency.DAILY, is_enabled=False), ADMIN, WEDNESDAY)
        rows = fake_supabase.rows(SCHEDULE)
        assert len(rows) == 1
        assert rows[0]["next_scheduled_at"] is None
