# =============================================================================
# core/services/account_service.py - Accounts, Profiles & Admin Ops
# =============================================================================
# Handles profile edits, password management, data export, account deletion,
# admin invites, role changes and CAPTCHA verification.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

import httpx

from app.config import settings
from app.exceptions import (
    InvalidInputError,
    NotFoundError,
    PlatformException,
    ServiceNotConfiguredError,
)
from core.models.account import MIN_PASSWORD_LENGTH, PROFILE_FIELD_LIMITS, ProfileUpdate
from core.validation.email import is_valid_email_format
from core.validation.roles import validate_profile_role_update
from lib.supabase_client import SupabaseClient
from lib.utils import clean_text, normalize_email, normalize_uuid, utc_now

logger = logging.getLogger(__name__)

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
MIN_CAPTCHA_SCORE = 0.3


class AccountService:
    """Service for account and profile operations."""

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    @staticmethod
    def clean_profile_update(update: ProfileUpdate) -> dict[str, Any]:
        """
        Whitelist, trim and truncate submitted profile fields.

        Only fields present in the request body are returned.
        """
        data: dict[str, Any] = {}
        for field_name in update.model_fields_set:
            value = getattr(update, field_name)
            if field_name in PROFILE_FIELD_LIMITS:
                data[field_name] = clean_text(value, PROFILE_FIELD_LIMITS[field_name])
            elif field_name == "avatar_url":
                data[field_name] = value or None
        return data

    @staticmethod
    def update_profile(user_id: UUID | str, update: ProfileUpdate) -> dict[str, Any]:
        data = AccountService.clean_profile_update(update)
        if not data:
            raise InvalidInputError("No profile fields provided")

        client = SupabaseClient.get_client()
        response = client.table("profiles").update(data).eq("id", normalize_uuid(user_id)).execute()
        if not response.data:
            raise NotFoundError("Profile", str(user_id))

        logger.info(f"Updated profile {user_id}: {sorted(data)}")
        return response.data[0]

    @staticmethod
    def export_user_data(user_id: UUID | str) -> dict[str, Any]:
        """Collect everything stored about a user (GDPR-style export)."""
        client = SupabaseClient.get_client()
        uid = normalize_uuid(user_id)

        profile = SupabaseClient.fetch_profile(uid)
        registrations = client.table("hackathon_registrations").select("*").eq("user_id", uid).execute()
        submissions = client.table("hackathon_submissions").select("*").eq("user_id", uid).execute()

        certificates: list[dict] = []
        if profile and profile.get("email"):
            certificates = (
                client.table("certificates")
                .select("*")
                .eq("participant_email", profile["email"])
                .execute()
            ).data or []

        return {
            "profile": profile,
            "registrations": registrations.data or [],
            "submissions": submissions.data or [],
            "certificates": certificates,
            "exported_at": utc_now().isoformat(),
        }

    @staticmethod
    def delete_account(user_id: UUID | str) -> None:
        """Delete the profile row, then the auth user."""
        client = SupabaseClient.get_client()
        uid = normalize_uuid(user_id)
        client.table("profiles").delete().eq("id", uid).execute()
        client.auth.admin.delete_user(uid)
        logger.info(f"Deleted account {uid}")

    @staticmethod
    def unread_notification_count(user_id: UUID | str | None) -> int:
        if user_id is None:
            return 0
        response = (
            SupabaseClient.get_client()
            .table("notifications")
            .select("id", count="exact")
            .eq("user_id", normalize_uuid(user_id))
            .eq("is_read", False)
            .execute()
        )
        return response.count or 0

    # -------------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------------

    @staticmethod
    def _get_auth_user(user_id: str):
        response = SupabaseClient.get_client().auth.admin.get_user_by_id(user_id)
        user = getattr(response, "user", None)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    @staticmethod
    def password_status(user_id: UUID | str) -> dict[str, Any]:
        """
        Whether the account can sign in with a password.

        True for email identities and for OAuth accounts that later set one.
        """
        user = AccountService._get_auth_user(normalize_uuid(user_id))
        providers = [getattr(i, "provider", None) for i in (getattr(user, "identities", None) or [])]
        metadata = getattr(user, "user_metadata", None) or {}
        has_password = "email" in providers or metadata.get("has_password") is True
        return {"has_password": has_password, "identities": [p for p in providers if p]}

    @staticmethod
    def change_password(user_id: UUID | str, new_password: str) -> None:
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        uid = normalize_uuid(user_id)
        user = AccountService._get_auth_user(uid)
        metadata = dict(getattr(user, "user_metadata", None) or {})
        metadata.update({"has_password": True, "password_set_at": utc_now().isoformat()})

        try:
            SupabaseClient.get_client().auth.admin.update_user_by_id(
                uid, {"password": new_password, "user_metadata": metadata}
            )
        except Exception as e:
            logger.warning(f"Password change rejected for {uid}: {e}")
            raise InvalidInputError(f"Could not update password: {e}")

        logger.info(f"Password updated for {uid}")

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    @staticmethod
    def invite_admin(email: str, full_name: str | None = None) -> dict[str, Any]:
        """Send a Supabase invite and pre-create the profile with role admin."""
        email = normalize_email(email)
        if not is_valid_email_format(email):
            raise InvalidInputError("Invalid email format")

        client = SupabaseClient.get_client()
        try:
            response = client.auth.admin.invite_user_by_email(email)
        except Exception as e:
            raise InvalidInputError(f"Invite failed: {e}")

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise PlatformException(
                message="Invite succeeded but user not returned",
                code="INVITE_INCOMPLETE",
                status_code=500,
            )

        profile = {"id": str(user.id), "email": email, "role": "admin"}
        if full_name:
            profile["full_name"] = clean_text(full_name, PROFILE_FIELD_LIMITS["full_name"])
        client.table("profiles").upsert(profile, on_conflict="id").execute()

        logger.info(f"Admin invite sent to {email}")
        return {"user_id": str(user.id)}

    @staticmethod
    def update_role(user_id: UUID | str, role: str) -> dict[str, Any]:
        try:
            role = validate_profile_role_update(role)
        except ValueError as e:
            raise InvalidInputError(str(e))

        uid = normalize_uuid(user_id)
        response = SupabaseClient.get_client().table("profiles").update({"role": role}).eq("id", uid).execute()
        if not response.data:
            raise NotFoundError("Profile", uid)

        logger.info(f"Role of {uid} set to {role}")
        return response.data[0]

    # -------------------------------------------------------------------------
    # CAPTCHA
    # -------------------------------------------------------------------------

    @staticmethod
    def verify_captcha(token: str, remote_ip: str | None = None) -> dict[str, Any]:
        """
        Verify a reCAPTCHA v3 token with Google.

        Returns:
            Dict with success, message and (when present) score
        """
        if not settings.RECAPTCHA_SECRET_KEY:
            raise ServiceNotConfiguredError("CAPTCHA")

        form = {"secret": settings.RECAPTCHA_SECRET_KEY, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            response = httpx.post(RECAPTCHA_VERIFY_URL, data=form, timeout=10)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            logger.error(f"reCAPTCHA verification request failed: {e}")
            raise PlatformException(
                message="CAPTCHA verification unavailable",
                code="CAPTCHA_UNAVAILABLE",
                status_code=502,
            )

        if not result.get("success"):
            return {"success": False, "message": "CAPTCHA verification failed"}

        score = result.get("score")
        if score is not None and score < MIN_CAPTCHA_SCORE:
            return {"success": False, "message": "Security verification failed", "score": score}

        return {"success": True, "message": "CAPTCHA verification successful", "score": score}
