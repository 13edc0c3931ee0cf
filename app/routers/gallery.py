# =============================================================================
# app/routers/gallery.py - Project Gallery Endpoints
# =============================================================================
# Public browsing, owner CRUD and likes, plus admin moderation.
# =============================================================================

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query

from app.auth import AuthUser, get_current_user, get_current_user_optional, require_admin
from app.dependencies import enforce_rate_limit
from core.models.gallery import (
    GalleryModerationRequest,
    GalleryProjectCreate,
    GalleryProjectUpdate,
    GallerySort,
    GalleryStatus,
)
from core.services.gallery_service import MAX_PAGE_SIZE, GalleryService

router = APIRouter()

ProjectId = Annotated[int, Path(ge=1, description="Gallery project id")]


# =============================================================================
# Public
# =============================================================================

@router.get("/projects")
async def list_projects(
    category: Annotated[Optional[str], Query(max_length=50)] = None,
    search: Annotated[Optional[str], Query(max_length=100)] = None,
    hackathon_only: bool = False,
    featured_only: bool = False,
    sort: GallerySort = GallerySort.NEWEST,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 12,
):
    """
    Browse approved and featured projects.

    Search matches name, tagline and description.
    """
    projects, pagination = GalleryService.list_projects(
        category=category,
        search=search,
        hackathon_only=hackathon_only,
        featured_only=featured_only,
        sort=sort,
        page=page,
        limit=limit,
    )
    return {"success": True, "data": projects, "pagination": pagination.model_dump()}


@router.get("/projects/{project_id}")
async def get_project(
    project_id: ProjectId,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """One project; counts a view. Unapproved projects are visible to their owner only."""
    project = GalleryService.get_project(project_id, viewer_id=user.id if user else None)
    return {"success": True, "data": project}


@router.get("/categories")
async def list_categories():
    return {"success": True, "data": GalleryService.categories()}


# =============================================================================
# Owner
# =============================================================================

@router.post("/projects", status_code=201)
async def create_project(body: GalleryProjectCreate, user: AuthUser = Depends(get_current_user)):
    """Submit a project for review. It starts as pending."""
    enforce_rate_limit("gallery_create", str(user.id))
    project = GalleryService.create_project(user.id, body)
    return {"success": True, "message": "Project submitted for review", "data": project}


@router.put("/projects/{project_id}")
async def update_project(
    project_id: ProjectId,
    body: GalleryProjectUpdate,
    user: AuthUser = Depends(get_current_user),
):
    project = GalleryService.update_project(project_id, user.id, body)
    return {"success": True, "message": "Project updated", "data": project}


@router.delete("/projects/{project_id}")
async def delete_project(project_id: ProjectId, user: AuthUser = Depends(get_current_user)):
    GalleryService.delete_project(project_id, user.id)
    return {"success": True, "message": "Project deleted"}


@router.post("/projects/{project_id}/like")
async def toggle_like(project_id: ProjectId, user: AuthUser = Depends(get_current_user)):
    """Like, or unlike if already liked."""
    result = GalleryService.toggle_like(project_id, user.id)
    return {"success": True, "data": result}


@router.get("/my-projects")
async def my_projects(user: AuthUser = Depends(get_current_user)):
    return {"success": True, "data": GalleryService.my_projects(user.id)}


# =============================================================================
# Admin
# =============================================================================

@router.get("/admin/projects")
async def admin_list_projects(
    status: Optional[GalleryStatus] = None,
    search: Annotated[Optional[str], Query(max_length=100)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
    admin: AuthUser = Depends(require_admin),
):
    projects, pagination = GalleryService.admin_list(status=status, search=search, page=page, limit=limit)
    return {"success": True, "data": projects, "pagination": pagination.model_dump()}


@router.post("/admin/projects/{project_id}/moderate")
async def moderate_project(
    project_id: ProjectId,
    body: GalleryModerationRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Approve, reject, feature, or send back to pending."""
    project = GalleryService.moderate(project_id, admin.id, body)
    return {"success": True, "message": f"Project {body.status.value}", "data": project}


@router.get("/admin/stats")
async def gallery_stats(admin: AuthUser = Depends(require_admin)):
    return {"success": True, "data": GalleryService.stats()}


@router.post("/admin/sync-hackathon-submissions")
async def sync_hackathon_submissions(admin: AuthUser = Depends(require_admin)):
    """Import finished hackathon submissions into the gallery."""
    result = GalleryService.sync_hackathon_submissions()
    return {"success": True, "message": f"Imported {result['imported']} projects", "data": result}
