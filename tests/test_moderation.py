# =============================================================================
# tests/test_moderation.py - Reports & Moderation Tests
# =============================================================================

from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import AccountRestrictedError, InvalidInputError, NotFoundError
from core.models.moderation import (
    ModerationActionRequest,
    ModerationActionType,
    ReportCreate,
    ReportStatus,
    ReportUpdate,
    UserFilter,
)
from core.services.moderation_service import ModerationService, apply_moderation_action, effective_status
from tests.conftest import ADMIN_ID, OTHER_USER_ID, USER_ID

NOW = datetime(2025, 4, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# State Transitions
# =============================================================================

class TestApplyAction:

    def test_warning_increments(self):
        status = apply_moderation_action({"warning_count": 2}, ModerationActionType.WARNING, None)
        assert status["warning_count"] == 3

    def test_timed_mute(self):
        expiry = NOW + timedelta(hours=24)
        status = apply_moderation_action(None, ModerationActionType.MUTE, expiry)
        assert status["is_muted"] is True
        assert status["mute_expires_at"] == expiry.isoformat()

    def test_unban_also_lifts_suspension(self):
        current = {"is_banned": True, "is_suspended": True, "ban_expires_at": None,
                   "suspend_expires_at": "2025-05-01T00:00:00+00:00", "is_muted": True}

        status = apply_moderation_action(current, ModerationActionType.UNBAN, None)

        assert status["is_banned"] is False
        assert status["is_suspended"] is False
        assert status["suspend_expires_at"] is None
        assert status["is_muted"] is True

    def test_unmute(self):
        status = apply_moderation_action({"is_muted": True, "mute_expires_at": "x"}, ModerationActionType.UNMUTE, None)
        assert status["is_muted"] is False
        assert status["mute_expires_at"] is None

    def test_verify_and_unverify(self):
        verified = apply_moderation_action(None, ModerationActionType.VERIFY, None)
        assert verified["is_verified"] is True
        assert apply_moderation_action(verified, ModerationActionType.UNVERIFY, None)["is_verified"] is False

    def test_note_changes_nothing(self):
        current = {"is_banned": True, "warning_count": 1}
        status = apply_moderation_action(current, ModerationActionType.NOTE, None)
        assert status["is_banned"] is True
        assert status["warning_count"] == 1


class TestEffectiveStatus:

    def test_missing_row_is_clean(self):
        status = effective_status(None, NOW)
        assert not status.is_banned
        assert status.warning_count == 0

    def test_expired_restriction_is_lifted(self):
        row = {"is_banned": True, "ban_expires_at": (NOW - timedelta(minutes=1)).isoformat()}
        status = effective_status(row, NOW)
        assert not status.is_banned
        assert status.ban_expires_at is None

    def test_active_timed_restriction(self):
        expiry = (NOW + timedelta(hours=1)).isoformat()
        status = effective_status({"is_suspended": True, "suspend_expires_at": expiry}, NOW)
        assert status.is_suspended
        assert status.suspend_expires_at == expiry

    def test_indefinite_ban(self):
        assert effective_status({"is_banned": True, "ban_expires_at": None}, NOW).is_banned


# =============================================================================
# Service
# =============================================================================

def report(reported=OTHER_USER_ID, category="spam"):
    return ReportCreate(reported_user_id=reported, category=category, description="  Posting links  ")


class TestReports:

    def test_create_report(self, fake_supabase):
        created = ModerationService.create_report(USER_ID, report())

        assert created["status"] == "pending"
        assert created["reporter_id"] == USER_ID
        assert created["description"] == "Posting links"

    def test_cannot_report_self(self, fake_supabase):
        with pytest.raises(InvalidInputError, match="yourself"):
            ModerationService.create_report(USER_ID, report(reported=USER_ID))

    def test_reported_user_must_exist(self, fake_supabase, random_user_id):
        with pytest.raises(NotFoundError):
            ModerationService.create_report(USER_ID, report(reported=random_user_id))

    def test_banned_user_cannot_report(self, fake_supabase):
        fake_supabase.seed("user_moderation_status", [{"user_id": USER_ID, "is_banned": True}])
        with pytest.raises(AccountRestrictedError):
            ModerationService.create_report(USER_ID, report())

    def test_list_reports_filters_and_attaches_profiles(self, fake_supabase):
        fake_supabase.seed("user_reports", [
            {"reporter_id": USER_ID, "reported_user_id": OTHER_USER_ID, "status": "pending",
             "created_at": "2025-03-01T00:00:00+00:00"},
            {"reporter_id": OTHER_USER_ID, "reported_user_id": USER_ID, "status": "resolved",
             "created_at": "2025-03-02T00:00:00+00:00"},
        ])

        pending, total = ModerationService.list_reports("pending")
        everything, all_total = ModerationService.list_reports("all")

        assert total == 1
        assert pending[0]["reporter"]["username"] == "builder"
        assert pending[0]["reported_user"]["username"] == "other"
        assert all_total == 2
        assert everything[0]["status"] == "resolved"

    def test_closing_report_stamps_reviewer(self, fake_supabase):
        fake_supabase.seed("user_reports", [{"id": 5, "status": "pending"}])

        updated = ModerationService.update_report(
            5, ReportUpdate(status=ReportStatus.RESOLVED, resolution="Warned"), ADMIN_ID, NOW
        )

        assert updated["status"] == "resolved"
        assert updated["reviewed_by"] == ADMIN_ID
        assert updated["reviewed_at"] == NOW.isoformat()

    def test_review_does_not_stamp_reviewer(self, fake_supabase):
        fake_supabase.seed("user_reports", [{"id": 5, "status": "pending"}])
        updated = ModerationService.update_report(5, ReportUpdate(status=ReportStatus.UNDER_REVIEW), ADMIN_ID, NOW)
        assert "reviewed_by" not in updated

    def test_update_unknown_report(self, fake_supabase):
        with pytest.raises(NotFoundError):
            ModerationService.update_report(404, ReportUpdate(admin_notes="x"), ADMIN_ID, NOW)


class TestActions:

    def test_timed_ban_is_recorded_and_applied(self, fake_supabase):
        request = ModerationActionRequest(
            user_id=OTHER_USER_ID, action_type="ban", reason="Spam", duration_hours=48
        )

        result = ModerationService.take_action(ADMIN_ID, request, NOW)

        action = fake_supabase.rows("user_moderation_actions")[0]
        assert action["performed_by"] == ADMIN_ID
        assert action["expires_at"] == (NOW + timedelta(hours=48)).isoformat()
        status_row = fake_supabase.rows("user_moderation_status")[0]
        assert status_row["is_banned"] is True
        assert result["moderation_status"]["is_banned"] is True

    def test_duration_ignored_for_warning(self, fake_supabase):
        request = ModerationActionRequest(user_id=OTHER_USER_ID, action_type="warning", reason="r", duration_hours=5)

        ModerationService.take_action(ADMIN_ID, request, NOW)
        ModerationService.take_action(ADMIN_ID, request, NOW)

        assert fake_supabase.rows("user_moderation_actions")[0]["expires_at"] is None
        rows = fake_supabase.rows("user_moderation_status")
        assert len(rows) == 1
        assert rows[0]["warning_count"] == 2

    def test_ban_expires(self, fake_supabase):
        request = ModerationActionRequest(user_id=OTHER_USER_ID, action_type="ban", reason="r", duration_hours=1)
        ModerationService.take_action(ADMIN_ID, request, NOW)

        assert ModerationService.get_status(OTHER_USER_ID, NOW + timedelta(minutes=30)).is_banned
        assert not ModerationService.get_status(OTHER_USER_ID, NOW + timedelta(hours=2)).is_banned

    def test_list_users_by_filter(self, fake_supabase):
        fake_supabase.seed("user_moderation_status", [
            {"user_id": OTHER_USER_ID, "is_muted": True, "warning_count": 0},
            {"user_id": USER_ID, "is_muted": False, "warning_count": 2},
        ])

        muted, muted_total = ModerationService.list_users(user_filter=UserFilter.MUTED, now=NOW)
        warned, _ = ModerationService.list_users(user_filter=UserFilter.WARNED, now=NOW)
        banned, banned_total = ModerationService.list_users(user_filter=UserFilter.BANNED, now=NOW)

        assert [u["id"] for u in muted] == [OTHER_USER_ID]
        assert muted_total == 1
        assert muted[0]["moderation_status"]["is_muted"] is True
        assert [u["id"] for u in warned] == [USER_ID]
        assert (banned, banned_total) == ([], 0)

    def test_list_users_search(self, fake_supabase):
        users, total = ModerationService.list_users(search="builder", now=NOW)
        assert total == 1
        assert users[0]["id"] == USER_ID

    def test_list_users_search_by_email(self, fake_supabase):
        users, total = ModerationService.list_users(search="other@example.com", now=NOW)
        assert total == 1
        assert users[0]["id"] == OTHER_USER_ID

    def test_lapsed_restrictions_excluded(self, fake_supabase):
        past = (NOW - timedelta(hours=1)).isoformat()
        future = (NOW + timedelta(hours=1)).isoformat()
        third_user = "33333333-3333-3333-3333-333333333333"
        fake_supabase.seed("user_moderation_status", [
            {"user_id": USER_ID, "is_banned": True, "ban_expires_at": None},
            {"user_id": OTHER_USER_ID, "is_banned": True, "ban_expires_at": past,
             "is_muted": True, "mute_expires_at": future},
            {"user_id": third_user, "is_muted": True, "mute_expires_at": past},
        ])

        stats = ModerationService.stats(now=NOW)
        banned, banned_total = ModerationService.list_users(user_filter=UserFilter.BANNED, now=NOW)

        assert stats["banned_users"] == 1
        assert stats["muted_users"] == 1
        assert stats["suspended_users"] == 0
        assert [u["id"] for u in banned] == [USER_ID]
        assert banned_total == 1


# =============================================================================
# Routes
# =============================================================================

class TestRoutes:

    def test_report_requires_auth(self, client):
        response = client.post("/api/moderation/report", json={})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_report_created(self, client, user_headers):
        response = client.post(
            "/api/moderation/report",
            json={"reported_user_id": OTHER_USER_ID, "category": "harassment", "description": "Rude DMs"},
            headers=user_headers,
        )
        assert response.status_code == 201
        assert response.json()["success"] is True

    def test_admin_reports_forbidden_for_users(self, client, user_headers):
        response = client.get("/api/admin/moderation/reports", headers=user_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "ADMIN_REQUIRED"

    def test_admin_reports_rejects_unknown_status(self, client, admin_headers):
        response = client.get("/api/admin/moderation/reports?status=bogus", headers=admin_headers)
        assert response.status_code == 422

    def test_admin_action(self, client, admin_headers, fake_supabase):
        response = client.post(
            "/api/admin/moderation/action",
            json={"user_id": OTHER_USER_ID, "action_type": "mute", "reason": "Flooding chat"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert fake_supabase.rows("user_moderation_status")[0]["is_muted"] is True
