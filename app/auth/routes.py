# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Signup with an emailed one-time code, email pre-validation, password
# management, and token introspection.
#
# Login itself happens client-side against Supabase Auth.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Request

from app.auth.dependencies import get_current_user
from app.auth.models import AuthUser, UserResponse
from app.dependencies import client_ip, enforce_rate_limit
from core.models.account import (
    ChangePasswordRequest,
    EmailRequest,
    SignupOTPRequest,
    VerifyOTPRequest,
)
from core.services.account_service import AccountService
from core.services.otp_service import OTPService
from core.validation.email import validate_email_quick
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


# =============================================================================
# OTP Signup
# =============================================================================

@router.post("/signup-request-otp")
async def signup_request_otp(body: SignupOTPRequest, request: Request):
    """
    Start signup: store the pending account and email a 6-digit code.

    Rate limited per IP. In development with SKIP_EMAIL_OTP the code is
    returned as `dev_otp` instead of emailed.
    """
    enforce_rate_limit("otp_request", client_ip(request))
    result = OTPService.request_signup_otp(
        email=body.email,
        password=body.password,
        name=body.name,
        username=body.username,
    )
    return {"success": True, "message": "Verification code sent", "data": result}


@router.post("/signup-verify-otp")
async def signup_verify_otp(body: VerifyOTPRequest, request: Request):
    """Finish signup: check the code and create the account."""
    enforce_rate_limit("otp_verify", client_ip(request))
    user = OTPService.verify_signup_otp(body.email, body.otp)
    return {"success": True, "message": "Account created successfully", "data": {"user": user}}


@router.post("/resend-otp")
async def resend_otp(body: EmailRequest):
    """Send a fresh code for a pending signup (rate limited per email)."""
    enforce_rate_limit("otp_resend", normalize_email(body.email))
    result = OTPService.resend_otp(body.email)
    return {"success": True, "message": "Verification code resent", "data": result}


@router.post("/validate-email")
async def validate_email(body: EmailRequest, request: Request):
    """
    Quick format and disposable-domain check before signup.

    Always 200; `is_valid` carries the verdict.
    """
    enforce_rate_limit("email_validate", client_ip(request))
    result = validate_email_quick(normalize_email(body.email))
    return {
        "success": True,
        "data": {
            "is_valid": result.is_valid,
            "domain": result.domain,
            "issues": result.issues,
            "is_safe": result.is_safe,
            "is_disposable": result.is_disposable,
        },
    }


# =============================================================================
# Passwords
# =============================================================================

@router.get("/check-password-status")
async def check_password_status(user: AuthUser = Depends(get_current_user)):
    """Whether the account can sign in with a password (OAuth-only accounts can't)."""
    return {"success": True, "data": AccountService.password_status(user.id)}


@router.post("/change-password")
async def change_password(body: ChangePasswordRequest, user: AuthUser = Depends(get_current_user)):
    """Set or change the password; rate limited per user."""
    enforce_rate_limit("password_change", str(user.id))
    AccountService.change_password(user.id, body.new_password)
    return {"success": True, "message": "Password updated successfully"}


# =============================================================================
# Token Introspection
# =============================================================================

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current authenticated user's profile.

    Returns:
        UserResponse: Profile from public.profiles, or token data if the
        profile row doesn't exist yet

    Raises:
        401: If not authenticated
    """
    profile = SupabaseClient.fetch_profile(user.id)
    if profile:
        return UserResponse(
            id=user.id,
            email=profile.get("email") or user.email,
            username=profile.get("username"),
            full_name=profile.get("full_name"),
            avatar_url=profile.get("avatar_url"),
            role=profile.get("role") or "user",
            created_at=profile.get("created_at"),
        )

    # Auth user exists but the profile trigger hasn't run yet
    return UserResponse(id=user.id, email=user.email)


@router.get("/verify")
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> dict:
    """
    Verify that the current token is valid.

    Raises:
        401: If token is invalid or expired
    """
    return {
        "success": True,
        "valid": True,
        "user_id": str(user.id),
        "email": user.email,
    }
