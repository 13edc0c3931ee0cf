# =============================================================================
# core/services/otp_service.py - Email-Verified Signup
# =============================================================================
# Signup happens in two steps:
# 1. request: a 6-digit code is emailed and a pending row is stored in
#    signup_otps (one row per email; a new request replaces the old row)
# 2. verify: the code is checked; on success the Supabase auth user is created
#
# The row holds a keyed hash of the code (never the code) and the password
# encrypted with a key derived from SECRET_KEY, so a database read alone
# can't recover either.
# =============================================================================

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from app.config import settings
from app.exceptions import (
    ConflictError,
    EmailDeliveryError,
    InvalidInputError,
    OTPVerificationError,
    PlatformException,
)
from core.models.account import MIN_PASSWORD_LENGTH
from core.validation.email import validate_email_quick
from lib import email_templates
from lib.email_client import EmailClient
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_email, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

OTP_TABLE = "signup_otps"
DEV_OTP = "123456"
USER_LIST_PAGE_SIZE = 1000


class OTPService:
    """
    Service for OTP signup operations.

    All methods accept an optional `now` so expiry can be tested
    without patching the clock.
    """

    # -------------------------------------------------------------------------
    # Secrets
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_code() -> str:
        if settings.SKIP_EMAIL_OTP:
            return DEV_OTP
        return str(100000 + secrets.randbelow(900000))

    @staticmethod
    def hash_code(email: str, code: str) -> str:
        return hmac.new(
            settings.SECRET_KEY.encode(),
            f"{email}:{code}".encode(),
            hashlib.sha256,
        ).hexdigest()

    @staticmethod
    def _fernet() -> Fernet:
        key = base64.urlsafe_b64encode(hashlib.sha256(settings.SECRET_KEY.encode()).digest())
        return Fernet(key)

    @staticmethod
    def encrypt_password(password: str) -> str:
        return OTPService._fernet().encrypt(password.encode()).decode()

    @staticmethod
    def decrypt_password(token: str) -> str:
        """
        Raises:
            InvalidToken: If SECRET_KEY changed since the row was written
        """
        return OTPService._fernet().decrypt(token.encode()).decode()

    # -------------------------------------------------------------------------
    # Auth helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def auth_user_exists(email: str) -> bool:
        """Page through auth users looking for `email`."""
        client = SupabaseClient.get_client()
        page = 1
        while True:
            users = client.auth.admin.list_users(page=page, per_page=USER_LIST_PAGE_SIZE)
            if any((getattr(u, "email", None) or "").lower() == email for u in users):
                return True
            if len(users) < USER_LIST_PAGE_SIZE:
                return False
            page += 1

    @staticmethod
    def _send_code(email: str, code: str, name: str | None) -> None:
        subject, html = email_templates.otp_email(code, name, settings.OTP_EXPIRY_MINUTES)
        EmailClient.send(email, subject, html)

    @staticmethod
    def _delete_pending(email: str) -> None:
        SupabaseClient.get_client().table(OTP_TABLE).delete().eq("email", email).execute()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    @staticmethod
    def request_signup_otp(
        email: str,
        password: str,
        name: str | None = None,
        username: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Store a pending signup and email its code.

        Returns:
            Dict with email and expires_at (plus dev_otp when SKIP_EMAIL_OTP)

        Raises:
            InvalidInputError: Bad email or short password
            ConflictError: An account already exists for the email
            EmailDeliveryError: The code couldn't be sent (row is removed)
        """
        now = now or utc_now()
        email = normalize_email(email)

        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        validation = validate_email_quick(email)
        if not validation.is_valid:
            raise InvalidInputError(validation.issues[0], details={"issues": validation.issues})

        if OTPService.auth_user_exists(email):
            raise ConflictError(
                "An account with this email already exists",
                suggestion="Sign in instead, or reset your password",
            )

        code = OTPService.generate_code()
        expires_at = now + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)

        client = SupabaseClient.get_client()
        OTPService._delete_pending(email)
        client.table(OTP_TABLE).insert({
            "email": email,
            "otp_hash": OTPService.hash_code(email, code),
            "password_encrypted": OTPService.encrypt_password(password),
            "name": name,
            "username": username,
            "expires_at": expires_at.isoformat(),
            "attempts": 0,
        }).execute()

        result: dict[str, Any] = {"email": email, "expires_at": expires_at.isoformat()}

        if settings.SKIP_EMAIL_OTP:
            logger.warning(f"SKIP_EMAIL_OTP enabled, not emailing code to {email}")
            result["dev_otp"] = code
            return result

        try:
            OTPService._send_code(email, code, name)
        except EmailDeliveryError:
            OTPService._delete_pending(email)
            raise

        logger.info(f"Signup OTP issued for {email}")
        return result

    @staticmethod
    def verify_signup_otp(email: str, otp: str, now: datetime | None = None) -> dict[str, Any]:
        """
        Check a code and create the account.

        The pending row is deleted on success, on expiry, and once the
        attempt limit is reached. A wrong code increments attempts.

        Returns:
            Dict with the new user's id, email, username

        Raises:
            OTPVerificationError: No pending row, expired, exhausted, or wrong code
        """
        now = now or utc_now()
        email = normalize_email(email)
        client = SupabaseClient.get_client()

        row = SupabaseClient.fetch_row(OTP_TABLE, "email", email)
        if not row:
            raise OTPVerificationError(
                "No pending verification found. Please request a new code."
            )

        expires_at = parse_timestamp(row.get("expires_at"))
        if expires_at is None or now > expires_at:
            OTPService._delete_pending(email)
            raise OTPVerificationError("Code expired. Please request a new code.")

        attempts = int(row.get("attempts") or 0)
        if attempts >= settings.OTP_MAX_ATTEMPTS:
            OTPService._delete_pending(email)
            raise OTPVerificationError("Too many failed attempts. Please request a new code.")

        if not hmac.compare_digest(OTPService.hash_code(email, otp.strip()), row.get("otp_hash") or ""):
            client.table(OTP_TABLE).update({"attempts": attempts + 1}).eq("email", email).execute()
            remaining = settings.OTP_MAX_ATTEMPTS - attempts - 1
            raise OTPVerificationError(
                f"Invalid code. {remaining} attempts remaining.",
                details={"attempts_remaining": remaining},
            )

        try:
            password = OTPService.decrypt_password(row["password_encrypted"])
        except InvalidToken:
            OTPService._delete_pending(email)
            raise OTPVerificationError("Verification expired. Please sign up again.")

        try:
            response = client.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {
                    "full_name": row.get("name"),
                    "username": row.get("username"),
                    "signup_method": "otp_verified",
                    "otp_verified": True,
                    "has_password": True,
                },
            })
        except Exception as e:
            if "already" in str(e).lower():
                OTPService._delete_pending(email)
                raise ConflictError("An account with this email already exists")
            logger.error(f"Failed to create user for {email}: {e}")
            raise PlatformException(
                message="Failed to create account",
                code="ACCOUNT_CREATE_FAILED",
                status_code=500,
                suggestion="Try again in a moment",
            )

        OTPService._delete_pending(email)
        user = response.user

        try:
            subject, html = email_templates.welcome_email(row.get("name"))
            EmailClient.send(email, subject, html)
        except EmailDeliveryError as e:
            logger.warning(f"Welcome email to {email} failed: {e.message}")

        logger.info(f"Account created via OTP: {user.id}")
        return {"id": str(user.id), "email": user.email, "username": row.get("username")}

    @staticmethod
    def resend_otp(email: str, now: datetime | None = None) -> dict[str, Any]:
        """
        Issue a fresh code for an existing pending signup.

        Attempts and expiry are reset. Requires a pending row.
        """
        now = now or utc_now()
        email = normalize_email(email)

        row = SupabaseClient.fetch_row(OTP_TABLE, "email", email)
        if not row:
            raise OTPVerificationError(
                "No pending verification found. Please start signup again."
            )

        code = OTPService.generate_code()
        expires_at = now + timedelta(minutes=settings.OTP_EXPIRY_MINUTES)
        SupabaseClient.get_client().table(OTP_TABLE).update({
            "otp_hash": OTPService.hash_code(email, code),
            "expires_at": expires_at.isoformat(),
            "attempts": 0,
        }).eq("email", email).execute()

        result: dict[str, Any] = {"email": email, "expires_at": expires_at.isoformat()}
        if settings.SKIP_EMAIL_OTP:
            result["dev_otp"] = code
            return result

        OTPService._send_code(email, code, row.get("name"))
        logger.info(f"Signup OTP re-sent for {email}")
        return result
