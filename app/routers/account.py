# =============================================================================
# app/routers/account.py - Core Account Endpoints
# =============================================================================
# Notifications badge, CAPTCHA, profile edits, data export, account
# deletion, and the two admin account operations (invite, role change).
# =============================================================================

import hmac
import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Path, Request

from app.auth import AuthUser, get_current_user, get_current_user_optional, require_admin
from app.config import settings
from app.dependencies import client_ip, enforce_rate_limit
from app.exceptions import ForbiddenError, InvalidInputError, ServiceNotConfiguredError
from core.models.account import (
    AdminInviteRequest,
    CaptchaRequest,
    ProfileUpdate,
    RoleUpdateRequest,
)
from core.services.account_service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/notifications/unread-count")
async def unread_notification_count(
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """Unread notifications for the caller; 0 for anonymous visitors."""
    count = AccountService.unread_notification_count(user.id if user else None)
    return {"success": True, "data": {"count": count}}


@router.post("/verify-captcha")
async def verify_captcha(body: CaptchaRequest, request: Request):
    """Verify a reCAPTCHA v3 token."""
    ip = client_ip(request)
    enforce_rate_limit("captcha", ip)
    result = AccountService.verify_captcha(body.token, remote_ip=ip)
    if not result["success"]:
        raise InvalidInputError(result["message"], details={"score": result.get("score")})
    return result


@router.post("/profile/update")
async def update_profile(body: ProfileUpdate, user: AuthUser = Depends(get_current_user)):
    """
    Update the caller's profile.

    Only whitelisted fields are written; text is trimmed and truncated and
    empty strings clear the field.
    """
    enforce_rate_limit("profile_update", str(user.id))
    profile = AccountService.update_profile(user.id, body)
    return {"success": True, "message": "Profile updated", "data": profile}


@router.get("/user/export-data")
async def export_user_data(user: AuthUser = Depends(get_current_user)):
    """Everything stored about the caller."""
    return {"success": True, "data": AccountService.export_user_data(user.id)}


@router.post("/account/delete")
async def delete_account(user: AuthUser = Depends(get_current_user)):
    """Permanently delete the caller's profile and auth account."""
    AccountService.delete_account(user.id)
    return {"success": True, "message": "Account deleted"}


# =============================================================================
# Admin
# =============================================================================

@router.post("/admin/invite")
async def invite_admin(
    body: AdminInviteRequest,
    x_admin_invite_token: Annotated[Optional[str], Header()] = None,
):
    """
    Invite a new admin by email.

    Requires the X-Admin-Invite-Token header to match ADMIN_INVITE_TOKEN.
    """
    if not settings.ADMIN_INVITE_TOKEN:
        raise ServiceNotConfiguredError("Admin invites")
    if not x_admin_invite_token or not hmac.compare_digest(x_admin_invite_token, settings.ADMIN_INVITE_TOKEN):
        logger.warning("Admin invite attempted with a bad token")
        raise ForbiddenError("Invalid admin invite token")

    result = AccountService.invite_admin(body.email, body.full_name)
    return {"success": True, "message": "Invite sent", "data": result}


@router.patch("/admin/users/{user_id}/role")
async def update_user_role(
    user_id: Annotated[UUID, Path(description="Profile id")],
    body: RoleUpdateRequest,
    admin: AuthUser = Depends(require_admin),
):
    """Change a user's role (user | admin | organizer)."""
    profile = AccountService.update_role(user_id, body.role)
    logger.info(f"Admin {admin.id} changed role of {user_id} to {profile.get('role')}")
    return {"success": True, "message": "Role updated", "data": profile}
