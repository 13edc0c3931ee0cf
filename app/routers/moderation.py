# =============================================================================
# app/routers/moderation.py - Reports & Moderation Endpoints
# =============================================================================
# Two routers:
# - router: user-facing (file a report, see own reports and status)
# - admin_router: report triage, user lookup, moderation actions
# =============================================================================

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from app.auth import AuthUser, get_current_user, require_admin
from app.dependencies import enforce_rate_limit
from core.models.moderation import (
    ModerationActionRequest,
    ReportCreate,
    ReportUpdate,
    UserFilter,
)
from core.services.moderation_service import ModerationService

router = APIRouter()
admin_router = APIRouter()


# =============================================================================
# User
# =============================================================================

@router.post("/report", status_code=201)
async def create_report(body: ReportCreate, user: AuthUser = Depends(get_current_user)):
    """File a report against another user."""
    enforce_rate_limit("report_create", str(user.id))
    report = ModerationService.create_report(user.id, body)
    return {"success": True, "message": "Report submitted", "data": report}


@router.get("/my-reports")
async def my_reports(user: AuthUser = Depends(get_current_user)):
    return {"success": True, "data": ModerationService.list_my_reports(user.id)}


@router.get("/status")
async def my_status(user: AuthUser = Depends(get_current_user)):
    """The caller's current restrictions (expired ones already lifted)."""
    return {"success": True, "data": ModerationService.get_status(user.id).model_dump()}


# =============================================================================
# Admin
# =============================================================================

@admin_router.get("/reports")
async def list_reports(
    status: Annotated[
        Optional[str],
        Query(pattern="^(all|pending|under_review|resolved|dismissed)$", description="Report status or 'all'"),
    ] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    admin: AuthUser = Depends(require_admin),
):
    reports, total = ModerationService.list_reports(status=status, limit=limit, offset=offset)
    return {"success": True, "data": reports, "total": total}


@admin_router.patch("/reports/{report_id}")
async def update_report(
    report_id: Annotated[int, Path(ge=1)],
    body: ReportUpdate,
    admin: AuthUser = Depends(require_admin),
):
    report = ModerationService.update_report(report_id, body, admin.id)
    return {"success": True, "message": "Report updated", "data": report}


@admin_router.get("/users")
async def list_users(
    search: Annotated[Optional[str], Query(max_length=100)] = None,
    filter: Optional[UserFilter] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    admin: AuthUser = Depends(require_admin),
):
    users, total = ModerationService.list_users(search=search, user_filter=filter, limit=limit, offset=offset)
    return {"success": True, "data": users, "total": total}


@admin_router.get("/users/{user_id}")
async def user_detail(
    user_id: Annotated[UUID, Path(description="Profile id")],
    admin: AuthUser = Depends(require_admin),
):
    return {"success": True, "data": ModerationService.get_user_detail(user_id)}


@admin_router.post("/action")
async def take_action(body: ModerationActionRequest, admin: AuthUser = Depends(require_admin)):
    """Warn, mute, suspend, ban (optionally timed), lift, note, or (un)verify a user."""
    result = ModerationService.take_action(admin.id, body)
    return {"success": True, "message": f"Action '{body.action_type.value}' applied", "data": result}


@admin_router.get("/stats")
async def moderation_stats(admin: AuthUser = Depends(require_admin)):
    return {"success": True, "data": ModerationService.stats()}
