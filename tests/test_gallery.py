# =============================================================================
# tests/test_gallery.py - Project Gallery Tests
# =============================================================================

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from app.exceptions import AccountRestrictedError, ForbiddenError, NotFoundError
from core.models.gallery import GalleryProjectCreate, GalleryProjectUpdate, GallerySort, Pagination
from core.services.gallery_service import LIKES_TABLE, TABLE, GalleryService
from tests.conftest import OTHER_USER_ID, USER_ID

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _project(project_id: int, status: str = "approved", user_id: str = USER_ID, **extra) -> dict:
    return {
        "id": project_id,
        "user_id": user_id,
        "name": f"Project {project_id}",
        "tagline": None,
        "description": "Built in a weekend",
        "status": status,
        "category": "web",
        "hackathon_id": None,
        "view_count": 0,
        "like_count": 0,
        "created_at": f"2025-05-{project_id:02d}T00:00:00+00:00",
        **extra,
    }


@pytest.fixture
def gallery(fake_supabase):
    fake_supabase.seed(TABLE, [
        _project(1),
        _project(2, status="featured", category="ai"),
        _project(3, status="pending"),
        _project(4, status="rejected", user_id=OTHER_USER_ID),
        _project(5, category="ai", hackathon_id=7),
    ])
    fake_supabase.seed("organizer_hackathons", [{"id": 7, "hackathon_name": "Spring Jam", "slug": "spring-jam"}])
    return fake_supabase


# =============================================================================
# Pagination
# =============================================================================

class TestPagination:

    def test_total_pages_rounds_up(self):
        assert Pagination.build(1, 12, 25).total_pages == 3

    def test_empty(self):
        assert Pagination.build(1, 12, 0).total_pages == 0


# =============================================================================
# Service
# =============================================================================

class TestListProjects:

    def test_only_public_statuses(self, gallery):
        projects, pagination = GalleryService.list_projects()

        assert {p["id"] for p in projects} == {1, 2, 5}
        assert pagination.total == 3

    def test_newest_first_with_paging(self, gallery):
        projects, pagination = GalleryService.list_projects(sort=GallerySort.NEWEST, page=2, limit=2)

        assert [p["id"] for p in projects] == [1]
        assert pagination.total_pages == 2

    def test_featured_only(self, gallery):
        projects, _ = GalleryService.list_projects(featured_only=True)
        assert [p["id"] for p in projects] == [2]

    def test_hackathon_only_and_enrichment(self, gallery):
        projects, _ = GalleryService.list_projects(hackathon_only=True)

        assert [p["id"] for p in projects] == [5]
        assert projects[0]["hackathon"]["hackathon_name"] == "Spring Jam"
        assert projects[0]["author"]["username"] == "builder"

    def test_search_matches_name(self, gallery):
        projects, _ = GalleryService.list_projects(search="Project 2")
        assert [p["id"] for p in projects] == [2]

    def test_search_ignores_filter_syntax(self, gallery):
        projects, _ = GalleryService.list_projects(search="Project (2),*")
        assert [p["id"] for p in projects] == [2]

    def test_search_of_only_symbols_lists_everything(self, gallery):
        everything, _ = GalleryService.list_projects()
        projects, _ = GalleryService.list_projects(search="(),*")
        assert [p["id"] for p in projects] == [p["id"] for p in everything]

    def test_categories_counts_public_only(self, gallery):
        assert GalleryService.categories() == [
            {"category": "ai", "count": 2},
            {"category": "web", "count": 1},
        ]


class TestGetProject:

    def test_counts_view(self, gallery):
        project = GalleryService.get_project(1)

        assert project["view_count"] == 1
        assert gallery.rows(TABLE)[0]["view_count"] == 1

    def test_pending_hidden_from_others(self, gallery):
        with pytest.raises(NotFoundError):
            GalleryService.get_project(3, viewer_id=OTHER_USER_ID)

    def test_pending_visible_to_owner(self, gallery):
        project = GalleryService.get_project(3, viewer_id=USER_ID)
        assert project["is_owner"] is True

    def test_unknown(self, gallery):
        with pytest.raises(NotFoundError):
            GalleryService.get_project(999)


class TestOwnerActions:

    def test_create_starts_pending(self, gallery):
        project = GalleryService.create_project(
            USER_ID, GalleryProjectCreate(name="  DevMatch ", description="Teammate finder")
        )

        assert project["status"] == "pending"
        assert project["name"] == "DevMatch"
        assert project["user_id"] == USER_ID

    def test_banned_user_cannot_create(self, gallery):
        gallery.seed("user_moderation_status", [{"user_id": USER_ID, "is_banned": True, "ban_expires_at": None}])

        with pytest.raises(AccountRestrictedError):
            GalleryService.create_project(USER_ID, GalleryProjectCreate(name="X", description="Y"))

    def test_update_by_non_owner_forbidden(self, gallery):
        with pytest.raises(ForbiddenError):
            GalleryService.update_project(1, OTHER_USER_ID, GalleryProjectUpdate(name="Mine now"))

    def test_update_by_owner(self, gallery):
        project = GalleryService.update_project(1, USER_ID, GalleryProjectUpdate(tagline="Now with AI"))
        assert project["tagline"] == "Now with AI"

    def test_delete_removes_likes(self, gallery):
        gallery.seed(LIKES_TABLE, [{"project_id": 1, "user_id": OTHER_USER_ID}])

        GalleryService.delete_project(1, USER_ID)

        assert all(p["id"] != 1 for p in gallery.rows(TABLE))
        assert gallery.rows(LIKES_TABLE) == []

    def test_my_projects_includes_unapproved(self, gallery):
        ids = {p["id"] for p in GalleryService.my_projects(USER_ID)}
        assert ids == {1, 2, 3, 5}


class TestToggleLike:

    def test_like_then_unlike(self, gallery):
        first = GalleryService.toggle_like(1, OTHER_USER_ID)
        second = GalleryService.toggle_like(1, OTHER_USER_ID)

        assert first == {"liked": True, "like_count": 1}
        assert second == {"liked": False, "like_count": 0}
        assert gallery.rows(LIKES_TABLE) == []

    def test_cannot_like_hidden_project(self, gallery):
        with pytest.raises(NotFoundError):
            GalleryService.toggle_like(3, OTHER_USER_ID)


class TestAdmin:

    def test_stats(self, gallery):
        stats = GalleryService.stats()

        assert stats["total"] == 5
        assert stats["approved"] == 2
        assert stats["pending"] == 1

    def test_sync_skips_imported(self, gallery):
        gallery.seed("hackathon_submissions", [
            {"id": 100, "hackathon_id": 7, "user_id": USER_ID, "project_name": "Old", "status": "submitted"},
            {"id": 101, "hackathon_id": 7, "user_id": USER_ID, "project_name": "New", "status": "judged"},
            {"id": 102, "hackathon_id": 7, "user_id": USER_ID, "project_name": "Draft", "status": "draft"},
        ])
        gallery.seed(TABLE, [_project(6, hackathon_submission_id=100)])

        result = GalleryService.sync_hackathon_submissions()

        assert result == {"imported": 1, "skipped": 1, "total": 2}
        imported = [p for p in gallery.rows(TABLE) if p.get("hackathon_submission_id") == 101]
        assert imported[0]["status"] == "approved"
        assert imported[0]["name"] == "New"


class TestAutoPublish:

    def test_publishes_ended_hackathon_and_emails_judges(self, fake_supabase):
        fake_supabase.seed("organizer_hackathons", [
            {"id": 1, "hackathon_name": "Ended", "status": "published", "auto_publish_gallery": True,
             "end_date": "2025-05-30T00:00:00+00:00", "gallery_public": None},
            {"id": 2, "hackathon_name": "Running", "status": "published", "auto_publish_gallery": True,
             "end_date": "2025-06-30T00:00:00+00:00", "gallery_public": None},
            {"id": 3, "hackathon_name": "Already", "status": "published", "auto_publish_gallery": True,
             "end_date": "2025-05-01T00:00:00+00:00", "gallery_public": True},
        ])
        fake_supabase.seed("hackathon_judges", [
            {"id": 10, "hackathon_id": 1, "name": "Grace", "email": "grace@example.com"},
            {"id": 11, "hackathon_id": 1, "name": "No Mail", "email": None},
        ])

        with patch("core.services.gallery_service.EmailClient.send") as send:
            results = GalleryService.auto_publish_galleries(NOW)

        assert [r["hackathon_id"] for r in results] == [1]
        assert results[0]["judges_notified"] == 1
        assert results[0]["total_judges"] == 2
        send.assert_called_once()
        assert send.call_args.args[0] == "grace@example.com"

        hackathon = fake_supabase.rows("organizer_hackathons")[0]
        assert hackathon["gallery_public"] is True
        assert len(fake_supabase.rows("judge_scoring_tokens")) == 2


# =============================================================================
# Routes
# =============================================================================

class TestGalleryRoutes:

    def test_public_list(self, client, gallery):
        response = client.get("/api/gallery/projects", params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["data"]) == 2
        assert body["pagination"]["total"] == 3

    def test_create_requires_auth(self, client, gallery):
        response = client.post("/api/gallery/projects", json={"name": "X", "description": "Y"})

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_create(self, client, gallery, user_headers):
        response = client.post(
            "/api/gallery/projects", json={"name": "DevMatch", "description": "Teammates"}, headers=user_headers
        )

        assert response.status_code == 201
        assert response.json()["data"]["status"] == "pending"

    def test_update_by_other_user_is_403(self, client, gallery, other_headers):
        response = client.put("/api/gallery/projects/1", json={"name": "Mine"}, headers=other_headers)
        assert response.status_code == 403

    def test_pending_project_404_for_anonymous(self, client, gallery):
        assert client.get("/api/gallery/projects/3").status_code == 404

    def test_like(self, client, gallery, other_headers):
        response = client.post("/api/gallery/projects/1/like", headers=other_headers)
        assert response.json()["data"] == {"liked": True, "like_count": 1}

    def test_admin_requires_token(self, client, gallery):
        assert client.get("/api/gallery/admin/projects").status_code == 401

    def test_admin_rejects_plain_user(self, client, gallery, user_headers):
        assert client.get("/api/gallery/admin/stats", headers=user_headers).status_code == 403

    def test_admin_moderates(self, client, gallery, admin_headers):
        response = client.post(
            "/api/gallery/admin/projects/3/moderate", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "approved"

    def test_invalid_moderation_status(self, client, gallery, admin_headers):
        response = client.post(
            "/api/gallery/admin/projects/3/moderate", json={"status": "deleted"}, headers=admin_headers
        )
        assert response.status_code == 422
