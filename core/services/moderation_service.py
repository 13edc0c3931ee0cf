# =============================================================================
# core/services/moderation_service.py - Reports & Moderation Actions
# =============================================================================
# Users report other users; admins triage reports and act on accounts.
#
# Every action is appended to user_moderation_actions (the audit trail) and
# folded into the user's row in user_moderation_status (the current state).
# Timed restrictions carry an expiry and are treated as lifted once it passes.
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any, Mapping
from uuid import UUID

from app.exceptions import AccountRestrictedError, InvalidInputError, NotFoundError
from core.models.moderation import (
    TIMED_ACTIONS,
    ModerationActionRequest,
    ModerationActionType,
    ModerationStatus,
    ReportCreate,
    ReportStatus,
    ReportUpdate,
    UserFilter,
)
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

PROFILE_SUMMARY_COLUMNS = "id, username, full_name, email, avatar_url"
CLOSED_REPORT_STATUSES = (ReportStatus.RESOLVED.value, ReportStatus.DISMISSED.value)

# restriction flag -> expiry column
_RESTRICTIONS = {
    "is_banned": "ban_expires_at",
    "is_muted": "mute_expires_at",
    "is_suspended": "suspend_expires_at",
}


# =============================================================================
# State Transitions
# =============================================================================

def effective_status(row: Mapping[str, Any] | None, now: datetime) -> ModerationStatus:
    """
    Current restrictions from a user_moderation_status row.

    A missing row means a clean account. Restrictions whose expiry is in
    the past are reported as lifted.
    """
    if not row:
        return ModerationStatus()

    values = {
        "is_verified": bool(row.get("is_verified")),
        "warning_count": int(row.get("warning_count") or 0),
    }
    for flag, expiry_column in _RESTRICTIONS.items():
        active = bool(row.get(flag))
        expiry = parse_timestamp(row.get(expiry_column))
        if active and expiry is not None and now >= expiry:
            active = False
        values[flag] = active
        values[expiry_column] = row.get(expiry_column) if active else None
    return ModerationStatus(**values)


def apply_moderation_action(
    current: Mapping[str, Any] | None,
    action: ModerationActionType,
    expires_at: datetime | None,
) -> dict[str, Any]:
    """
    Fold one action into a status row.

    Returns:
        The full new status dict (without user_id/updated_at)
    """
    status = {
        "is_banned": False,
        "is_muted": False,
        "is_suspended": False,
        "is_verified": False,
        "warning_count": 0,
        "ban_expires_at": None,
        "mute_expires_at": None,
        "suspend_expires_at": None,
    }
    if current:
        status.update({k: current.get(k, v) for k, v in status.items()})
        status["warning_count"] = int(status["warning_count"] or 0)

    expiry = expires_at.isoformat() if expires_at else None

    if action == ModerationActionType.WARNING:
        status["warning_count"] += 1
    elif action == ModerationActionType.MUTE:
        status.update(is_muted=True, mute_expires_at=expiry)
    elif action == ModerationActionType.UNMUTE:
        status.update(is_muted=False, mute_expires_at=None)
    elif action == ModerationActionType.SUSPEND:
        status.update(is_suspended=True, suspend_expires_at=expiry)
    elif action == ModerationActionType.BAN:
        status.update(is_banned=True, ban_expires_at=expiry)
    elif action == ModerationActionType.UNBAN:
        # Lifting a ban also lifts any suspension
        status.update(is_banned=False, ban_expires_at=None, is_suspended=False, suspend_expires_at=None)
    elif action == ModerationActionType.VERIFY:
        status["is_verified"] = True
    elif action == ModerationActionType.UNVERIFY:
        status["is_verified"] = False

    return status


# =============================================================================
# Service
# =============================================================================

class ModerationService:
    """Service for reports and moderation actions."""

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @staticmethod
    def get_status(user_id: UUID | str, now: datetime | None = None) -> ModerationStatus:
        row = SupabaseClient.fetch_row("user_moderation_status", "user_id", normalize_uuid(user_id))
        return effective_status(row, now or utc_now())

    @staticmethod
    def assert_can_post(user_id: UUID | str, now: datetime | None = None) -> None:
        """
        Raises:
            AccountRestrictedError: If the user is banned or suspended
        """
        status = ModerationService.get_status(user_id, now)
        if status.is_banned:
            raise AccountRestrictedError("banned", status.ban_expires_at)
        if status.is_suspended:
            raise AccountRestrictedError("suspended", status.suspend_expires_at)

    # -------------------------------------------------------------------------
    # User Reports
    # -------------------------------------------------------------------------

    @staticmethod
    def create_report(reporter_id: UUID | str, report: ReportCreate) -> dict[str, Any]:
        reporter = normalize_uuid(reporter_id)
        reported = normalize_uuid(report.reported_user_id)

        if reporter == reported:
            raise InvalidInputError("You cannot report yourself")

        ModerationService.assert_can_post(reporter)

        if not SupabaseClient.fetch_profile(reported):
            raise NotFoundError("User", reported)

        response = SupabaseClient.get_client().table("user_reports").insert({
            "reporter_id": reporter,
            "reported_user_id": reported,
            "category": report.category.value,
            "description": report.description.strip(),
            "screenshot_urls": report.screenshot_urls,
            "status": ReportStatus.PENDING.value,
        }).execute()

        created = response.data[0]
        logger.info(f"Report {created.get('id')} filed by {reporter} against {reported} ({report.category.value})")
        return created

    @staticmethod
    def list_my_reports(user_id: UUID | str) -> list[dict[str, Any]]:
        response = (
            SupabaseClient.get_client()
            .table("user_reports")
            .select("*")
            .eq("reporter_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    # -------------------------------------------------------------------------
    # Admin: Reports
    # -------------------------------------------------------------------------

    @staticmethod
    def _attach_profiles(reports: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ids = [r.get("reporter_id") for r in reports] + [r.get("reported_user_id") for r in reports]
        profiles = SupabaseClient.fetch_by_ids("profiles", ids, columns=PROFILE_SUMMARY_COLUMNS)
        for report in reports:
            report["reporter"] = profiles.get(str(report.get("reporter_id")))
            report["reported_user"] = profiles.get(str(report.get("reported_user_id")))
        return reports

    @staticmethod
    def list_reports(
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        List reports newest first. status None or "all" means no filter.

        Returns:
            Tuple of (reports, total_count)
        """
        query = SupabaseClient.get_client().table("user_reports").select("*", count="exact")
        if status and status != "all":
            query = query.eq("status", status)

        response = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        reports = ModerationService._attach_profiles(response.data or [])
        return reports, response.count or 0

    @staticmethod
    def update_report(
        report_id: int | str,
        update: ReportUpdate,
        admin_id: UUID | str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        now = now or utc_now()
        data: dict[str, Any] = {"updated_at": now.isoformat()}

        for field_name in ("status", "priority"):
            value = getattr(update, field_name)
            if value is not None:
                data[field_name] = value.value
        for field_name in ("admin_notes", "resolution"):
            value = getattr(update, field_name)
            if value is not None:
                data[field_name] = value

        if data.get("status") in CLOSED_REPORT_STATUSES:
            data["reviewed_by"] = normalize_uuid(admin_id)
            data["reviewed_at"] = now.isoformat()

        response = SupabaseClient.get_client().table("user_reports").update(data).eq("id", report_id).execute()
        if not response.data:
            raise NotFoundError("Report", report_id)

        logger.info(f"Report {report_id} updated by {admin_id}: {data.get('status', 'no status change')}")
        return response.data[0]

    # -------------------------------------------------------------------------
    # Admin: Users
    # -------------------------------------------------------------------------

    @staticmethod
    def list_users(
        search: str | None = None,
        user_filter: UserFilter | None = None,
        limit: int = 50,
        offset: int = 0,
        now: datetime | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        Search profiles and attach each user's moderation status.

        The filter is applied to the status table first so paging counts
        only matching users.
        """
        now = now or utc_now()
        client = SupabaseClient.get_client()

        query = client.table("profiles").select(PROFILE_SUMMARY_COLUMNS + ", role, created_at", count="exact")

        if user_filter is not None:
            status_query = client.table("user_moderation_status").select("*")
            if user_filter == UserFilter.WARNED:
                rows = status_query.gt("warning_count", 0).execute().data or []
            else:
                flag = f"is_{user_filter.value}"
                rows = [
                    row for row in (status_query.eq(flag, True).execute().data or [])
                    if getattr(effective_status(row, now), flag)
                ]
            user_ids = [row["user_id"] for row in rows]
            if not user_ids:
                return [], 0
            query = query.in_("id", user_ids)

        search_clause = SupabaseClient.search_filter(search, ("username", "full_name", "email")) if search else None
        if search_clause:
            query = query.or_(search_clause)

        response = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        users = response.data or []

        statuses = SupabaseClient.fetch_by_ids(
            "user_moderation_status", [u["id"] for u in users], key="user_id"
        )
        for user in users:
            user["moderation_status"] = effective_status(statuses.get(str(user["id"])), now).model_dump()

        return users, response.count or 0

    @staticmethod
    def get_user_detail(user_id: UUID | str, now: datetime | None = None) -> dict[str, Any]:
        uid = normalize_uuid(user_id)
        profile = SupabaseClient.fetch_profile(uid)
        if not profile:
            raise NotFoundError("User", uid)

        client = SupabaseClient.get_client()
        history = (
            client.table("user_moderation_actions")
            .select("*")
            .eq("user_id", uid)
            .order("created_at", desc=True)
            .execute()
        )
        against = (
            client.table("user_reports").select("*").eq("reported_user_id", uid)
            .order("created_at", desc=True).execute()
        )
        made = (
            client.table("user_reports").select("*").eq("reporter_id", uid)
            .order("created_at", desc=True).execute()
        )

        return {
            "profile": profile,
            "moderation_status": ModerationService.get_status(uid, now).model_dump(),
            "moderation_history": history.data or [],
            "reports_against": against.data or [],
            "reports_made": made.data or [],
        }

    @staticmethod
    def take_action(
        admin_id: UUID | str,
        request: ModerationActionRequest,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Record a moderation action and update the user's status.

        duration_hours only applies to mute, suspend and ban; without it
        the restriction is indefinite.
        """
        now = now or utc_now()
        uid = normalize_uuid(request.user_id)

        if not SupabaseClient.fetch_profile(uid):
            raise NotFoundError("User", uid)

        expires_at = None
        if request.action_type in TIMED_ACTIONS and request.duration_hours:
            expires_at = now + timedelta(hours=request.duration_hours)

        client = SupabaseClient.get_client()
        response = client.table("user_moderation_actions").insert({
            "user_id": uid,
            "action_type": request.action_type.value,
            "reason": request.reason.strip(),
            "duration_hours": request.duration_hours if expires_at else None,
            "expires_at": expires_at.isoformat() if expires_at else None,
            "performed_by": normalize_uuid(admin_id),
            "related_report_id": request.related_report_id,
            "metadata": request.metadata or {},
        }).execute()
        action = response.data[0]

        current = SupabaseClient.fetch_row("user_moderation_status", "user_id", uid)
        new_status = apply_moderation_action(current, request.action_type, expires_at)
        client.table("user_moderation_status").upsert(
            {"user_id": uid, **new_status, "updated_at": now.isoformat()},
            on_conflict="user_id",
        ).execute()

        logger.info(f"Moderation {request.action_type.value} on {uid} by {admin_id}")
        return {"action": action, "moderation_status": effective_status(new_status, now).model_dump()}

    @staticmethod
    def stats(now: datetime | None = None) -> dict[str, int]:
        now = now or utc_now()
        client = SupabaseClient.get_client()

        def count(table: str, column: str, value: Any) -> int:
            return client.table(table).select("id", count="exact").eq(column, value).execute().count or 0

        recent = (
            client.table("user_moderation_actions")
            .select("id", count="exact")
            .gte("created_at", (now - timedelta(hours=24)).isoformat())
            .execute()
        )

        # Timed restrictions past their expiry still have the flag set
        restricted = [
            effective_status(row, now)
            for row in (
                client.table("user_moderation_status")
                .select("*")
                .or_("is_banned.eq.true,is_muted.eq.true,is_suspended.eq.true")
                .execute()
                .data or []
            )
        ]

        return {
            "pending_reports": count("user_reports", "status", ReportStatus.PENDING.value),
            "under_review_reports": count("user_reports", "status", ReportStatus.UNDER_REVIEW.value),
            "resolved_reports": count("user_reports", "status", ReportStatus.RESOLVED.value),
            "banned_users": sum(1 for s in restricted if s.is_banned),
            "muted_users": sum(1 for s in restricted if s.is_muted),
            "suspended_users": sum(1 for s in restricted if s.is_suspended),
            "recent_actions": recent.count or 0,
        }
