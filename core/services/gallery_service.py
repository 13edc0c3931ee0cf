# =============================================================================
# core/services/gallery_service.py - Project Gallery
# =============================================================================
# Public showcase of hackathon and side projects.
#
# Lifecycle:
#   create -> pending -> (admin) approved | rejected -> featured
# Only approved and featured projects are listed publicly; owners can always
# see their own.
#
# Also hosts the gallery side of the hackathon lifecycle: importing finished
# submissions and publishing galleries once a hackathon ends.
# =============================================================================

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from app.exceptions import EmailDeliveryError, ForbiddenError, InvalidInputError, NotFoundError
from core.models.gallery import (
    PUBLIC_GALLERY_STATUSES,
    GalleryModerationRequest,
    GalleryProjectCreate,
    GalleryProjectUpdate,
    GallerySort,
    GalleryStatus,
    Pagination,
)
from core.services.judging_service import JUDGEABLE_SUBMISSION_STATUSES, JudgingService
from core.services.moderation_service import ModerationService
from lib import email_templates
from lib.email_client import EmailClient
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now

logger = logging.getLogger(__name__)

TABLE = "gallery_projects"
LIKES_TABLE = "gallery_project_likes"
MAX_PAGE_SIZE = 50
AUTHOR_COLUMNS = "id, username, full_name, avatar_url"
HACKATHON_COLUMNS = "id, hackathon_name, slug"
SEARCH_COLUMNS = ("name", "tagline", "description")

_SORT_ORDER = {
    GallerySort.NEWEST: ("created_at", True),
    GallerySort.OLDEST: ("created_at", False),
    GallerySort.POPULAR: ("like_count", True),
    GallerySort.VIEWS: ("view_count", True),
}


class GalleryService:
    """Service for gallery projects."""

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _enrich(projects: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Attach author profile and hackathon summary to each project."""
        authors = SupabaseClient.fetch_by_ids("profiles", [p.get("user_id") for p in projects], columns=AUTHOR_COLUMNS)
        hackathons = SupabaseClient.fetch_by_ids(
            "organizer_hackathons", [p.get("hackathon_id") for p in projects], columns=HACKATHON_COLUMNS
        )
        for project in projects:
            project["author"] = authors.get(str(project.get("user_id")))
            project["hackathon"] = hackathons.get(str(project.get("hackathon_id")))
        return projects

    @staticmethod
    def _get_or_404(project_id: int) -> dict[str, Any]:
        project = SupabaseClient.fetch_row(TABLE, "id", project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    def _get_owned(project_id: int, user_id: UUID | str) -> dict[str, Any]:
        project = GalleryService._get_or_404(project_id)
        if str(project.get("user_id")) != normalize_uuid(user_id):
            raise ForbiddenError("You can only modify your own projects")
        return project

    @staticmethod
    def _clamp_paging(page: int, limit: int) -> tuple[int, int, int]:
        page = max(1, page)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return page, limit, (page - 1) * limit

    # -------------------------------------------------------------------------
    # Public
    # -------------------------------------------------------------------------

    @staticmethod
    def list_projects(
        category: str | None = None,
        search: str | None = None,
        hackathon_only: bool = False,
        featured_only: bool = False,
        sort: GallerySort = GallerySort.NEWEST,
        page: int = 1,
        limit: int = 12,
    ) -> tuple[list[dict[str, Any]], Pagination]:
        page, limit, offset = GalleryService._clamp_paging(page, limit)

        query = SupabaseClient.get_client().table(TABLE).select("*", count="exact")
        if featured_only:
            query = query.eq("status", GalleryStatus.FEATURED.value)
        else:
            query = query.in_("status", list(PUBLIC_GALLERY_STATUSES))
        if category:
            query = query.eq("category", category)
        if hackathon_only:
            query = query.not_.is_("hackathon_id", "null")
        search_clause = SupabaseClient.search_filter(search, SEARCH_COLUMNS) if search else None
        if search_clause:
            query = query.or_(search_clause)

        column, desc = _SORT_ORDER[sort]
        response = query.order(column, desc=desc).range(offset, offset + limit - 1).execute()

        projects = GalleryService._enrich(response.data or [])
        return projects, Pagination.build(page, limit, response.count or 0)

    @staticmethod
    def get_project(project_id: int, viewer_id: UUID | str | None = None) -> dict[str, Any]:
        """
        Fetch one project and count the view.

        Non-public projects are only visible to their owner; everyone else
        gets a 404 so their existence isn't revealed.
        """
        project = GalleryService._get_or_404(project_id)
        viewer = normalize_uuid(viewer_id) if viewer_id else None
        is_owner = viewer is not None and str(project.get("user_id")) == viewer

        if project.get("status") not in PUBLIC_GALLERY_STATUSES and not is_owner:
            raise NotFoundError("Project", project_id)

        client = SupabaseClient.get_client()
        view_count = int(project.get("view_count") or 0) + 1
        client.table(TABLE).update({"view_count": view_count}).eq("id", project_id).execute()
        project["view_count"] = view_count

        has_liked = False
        if viewer:
            likes = (
                client.table(LIKES_TABLE)
                .select("id")
                .eq("project_id", project_id)
                .eq("user_id", viewer)
                .limit(1)
                .execute()
            )
            has_liked = bool(likes.data)

        project = GalleryService._enrich([project])[0]
        project["has_liked"] = has_liked
        project["is_owner"] = is_owner
        return project

    @staticmethod
    def categories() -> list[dict[str, Any]]:
        """Categories in use by public projects with their counts."""
        response = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("category")
            .in_("status", list(PUBLIC_GALLERY_STATUSES))
            .not_.is_("category", "null")
            .execute()
        )
        counts: dict[str, int] = {}
        for row in response.data or []:
            counts[row["category"]] = counts.get(row["category"], 0) + 1
        return [{"category": name, "count": counts[name]} for name in sorted(counts)]

    # -------------------------------------------------------------------------
    # Owner
    # -------------------------------------------------------------------------

    @staticmethod
    def create_project(user_id: UUID | str, project: GalleryProjectCreate) -> dict[str, Any]:
        uid = normalize_uuid(user_id)
        ModerationService.assert_can_post(uid)

        data = project.model_dump(exclude_none=True)
        data["name"] = data["name"].strip()
        data["description"] = data["description"].strip()
        if not data["name"] or not data["description"]:
            raise InvalidInputError("Project name and description are required")

        data.update({
            "user_id": uid,
            "status": GalleryStatus.PENDING.value,
            "view_count": 0,
            "like_count": 0,
        })
        response = SupabaseClient.get_client().table(TABLE).insert(data).execute()
        created = response.data[0]
        logger.info(f"Gallery project {created.get('id')} submitted by {uid}")
        return created

    @staticmethod
    def update_project(project_id: int, user_id: UUID | str, update: GalleryProjectUpdate) -> dict[str, Any]:
        GalleryService._get_owned(project_id, user_id)

        data = update.model_dump(exclude_unset=True)
        for field_name in ("name", "description"):
            if field_name in data:
                if data[field_name] is None or not data[field_name].strip():
                    raise InvalidInputError(f"Project {field_name} cannot be empty")
                data[field_name] = data[field_name].strip()
        if not data:
            raise InvalidInputError("No fields to update")

        data["updated_at"] = utc_now().isoformat()
        response = SupabaseClient.get_client().table(TABLE).update(data).eq("id", project_id).execute()
        logger.info(f"Gallery project {project_id} updated: {sorted(data)}")
        return response.data[0]

    @staticmethod
    def delete_project(project_id: int, user_id: UUID | str) -> None:
        GalleryService._get_owned(project_id, user_id)
        client = SupabaseClient.get_client()
        client.table(LIKES_TABLE).delete().eq("project_id", project_id).execute()
        client.table(TABLE).delete().eq("id", project_id).execute()
        logger.info(f"Gallery project {project_id} deleted by {user_id}")

    @staticmethod
    def toggle_like(project_id: int, user_id: UUID | str) -> dict[str, Any]:
        """
        Like a project, or remove the like if the user already liked it.

        Returns:
            {"liked": bool, "like_count": int}
        """
        uid = normalize_uuid(user_id)
        project = GalleryService._get_or_404(project_id)
        if project.get("status") not in PUBLIC_GALLERY_STATUSES and str(project.get("user_id")) != uid:
            raise NotFoundError("Project", project_id)

        client = SupabaseClient.get_client()
        existing = (
            client.table(LIKES_TABLE)
            .select("id")
            .eq("project_id", project_id)
            .eq("user_id", uid)
            .limit(1)
            .execute()
        ).data

        like_count = int(project.get("like_count") or 0)
        if existing:
            client.table(LIKES_TABLE).delete().eq("id", existing[0]["id"]).execute()
            like_count = max(0, like_count - 1)
            liked = False
        else:
            client.table(LIKES_TABLE).insert({"project_id": project_id, "user_id": uid}).execute()
            like_count += 1
            liked = True

        client.table(TABLE).update({"like_count": like_count}).eq("id", project_id).execute()
        return {"liked": liked, "like_count": like_count}

    @staticmethod
    def my_projects(user_id: UUID | str) -> list[dict[str, Any]]:
        response = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    @staticmethod
    def admin_list(
        status: GalleryStatus | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[dict[str, Any]], Pagination]:
        page, limit, offset = GalleryService._clamp_paging(page, limit)

        query = SupabaseClient.get_client().table(TABLE).select("*", count="exact")
        if status is not None:
            query = query.eq("status", status.value)
        search_clause = SupabaseClient.search_filter(search, SEARCH_COLUMNS) if search else None
        if search_clause:
            query = query.or_(search_clause)

        response = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        projects = GalleryService._enrich(response.data or [])
        return projects, Pagination.build(page, limit, response.count or 0)

    @staticmethod
    def moderate(
        project_id: int,
        admin_id: UUID | str,
        decision: GalleryModerationRequest,
    ) -> dict[str, Any]:
        GalleryService._get_or_404(project_id)
        now = utc_now().isoformat()
        data = {
            "status": decision.status.value,
            "moderation_notes": decision.moderation_notes,
            "moderated_by": normalize_uuid(admin_id),
            "moderated_at": now,
            "updated_at": now,
        }
        response = SupabaseClient.get_client().table(TABLE).update(data).eq("id", project_id).execute()
        logger.info(f"Gallery project {project_id} moderated to {decision.status.value} by {admin_id}")
        return response.data[0]

    @staticmethod
    def stats() -> dict[str, int]:
        rows = SupabaseClient.get_client().table(TABLE).select("status, view_count, like_count").execute().data or []

        by_status = {status.value: 0 for status in GalleryStatus}
        for row in rows:
            if row.get("status") in by_status:
                by_status[row["status"]] += 1

        return {
            "total": len(rows),
            **by_status,
            "total_views": sum(int(r.get("view_count") or 0) for r in rows),
            "total_likes": sum(int(r.get("like_count") or 0) for r in rows),
        }

    @staticmethod
    def submission_to_project(submission: dict[str, Any]) -> dict[str, Any]:
        """Map a hackathon_submissions row onto a gallery project row."""
        return {
            "user_id": submission.get("user_id"),
            "hackathon_id": submission.get("hackathon_id"),
            "hackathon_submission_id": submission["id"],
            "name": submission.get("project_name") or "Untitled Project",
            "tagline": submission.get("tagline"),
            "description": submission.get("description") or "",
            "logo_url": submission.get("project_logo"),
            "cover_image_url": submission.get("cover_image"),
            "github_url": submission.get("github_repo"),
            "demo_url": submission.get("demo_url"),
            "video_url": submission.get("video_url"),
            "technologies": submission.get("technologies_used") or [],
            "hackathon_position": submission.get("prize_won"),
            "status": GalleryStatus.APPROVED.value,
            "view_count": 0,
            "like_count": 0,
        }

    @staticmethod
    def sync_hackathon_submissions() -> dict[str, int]:
        """
        Import submitted/judged hackathon submissions into the gallery.

        Already-imported submissions are skipped. Imports are approved.
        """
        client = SupabaseClient.get_client()

        imported = (
            client.table(TABLE)
            .select("hackathon_submission_id")
            .not_.is_("hackathon_submission_id", "null")
            .execute()
        ).data or []
        seen = {str(row["hackathon_submission_id"]) for row in imported}

        submissions = (
            client.table("hackathon_submissions")
            .select("*")
            .in_("status", list(JUDGEABLE_SUBMISSION_STATUSES))
            .execute()
        ).data or []

        rows = [
            GalleryService.submission_to_project(s)
            for s in submissions
            if str(s["id"]) not in seen and s.get("user_id")
        ]
        if rows:
            client.table(TABLE).insert(rows).execute()

        logger.info(f"Synced hackathon submissions: {len(rows)} imported, {len(submissions) - len(rows)} skipped")
        return {"imported": len(rows), "skipped": len(submissions) - len(rows), "total": len(submissions)}

    # -------------------------------------------------------------------------
    # Scheduled
    # -------------------------------------------------------------------------

    @staticmethod
    def auto_publish_galleries(now: datetime | None = None) -> list[dict[str, Any]]:
        """
        Publish galleries of hackathons that have ended and open judging.

        Targets published hackathons with auto_publish_gallery set, an end
        date in the past and a gallery that isn't public yet. Each judge
        gets a fresh scoring token and an email with the link. An email
        failure is counted, not raised.

        Returns:
            One result dict per processed hackathon
        """
        now = now or utc_now()
        client = SupabaseClient.get_client()

        hackathons = (
            client.table("organizer_hackathons")
            .select("id, hackathon_name, end_date")
            .eq("status", "published")
            .eq("auto_publish_gallery", True)
            .lt("end_date", now.isoformat())
            .or_("gallery_public.is.null,gallery_public.eq.false")
            .execute()
        ).data or []

        results = []
        for hackathon in hackathons:
            hackathon_id = hackathon["id"]
            name = hackathon.get("hackathon_name") or "Hackathon"

            client.table("organizer_hackathons").update({
                "gallery_public": True,
                "gallery_published_at": now.isoformat(),
                "hackathon_status": "ended",
            }).eq("id", hackathon_id).execute()

            judges = (
                client.table("hackathon_judges")
                .select("id, name, email")
                .eq("hackathon_id", hackathon_id)
                .execute()
            ).data or []

            notified = 0
            for judge in judges:
                issued = JudgingService.issue_judge_token(hackathon_id, judge["id"], now)
                if not judge.get("email"):
                    continue
                subject, html = email_templates.judge_scoring_email(
                    judge.get("name") or "", name, issued["scoring_url"]
                )
                try:
                    EmailClient.send(judge["email"], subject, html)
                    notified += 1
                except EmailDeliveryError as e:
                    logger.warning(f"Judge email to {judge['email']} failed: {e.message}")

            logger.info(f"Published gallery for hackathon {hackathon_id}; notified {notified}/{len(judges)} judges")
            results.append({
                "hackathon_id": hackathon_id,
                "name": name,
                "gallery_published": True,
                "judges_notified": notified,
                "total_judges": len(judges),
            })

        return results
