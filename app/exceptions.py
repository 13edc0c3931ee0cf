# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error leaves the API in the same envelope the success path uses:
#   {"success": false, "message": "...", "code": "...", "suggestion": "..."}
# =============================================================================

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PlatformException(Exception):
    """
    Base exception for the platform API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "PLATFORM_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Generic Exceptions
# =============================================================================

class NotFoundError(PlatformException):
    """Raised when a row doesn't exist (or the caller may not see it)."""

    def __init__(self, resource: str, resource_id: str | int | None = None):
        message = f"{resource} not found"
        super().__init__(
            message=message,
            code=f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
            suggestion=f"Check that the {resource.lower()} id is correct",
            details={"id": str(resource_id)} if resource_id is not None else None,
        )


class InvalidInputError(PlatformException):
    """Raised when a request passes schema validation but breaks a business rule."""

    def __init__(self, message: str, suggestion: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            status_code=400,
            suggestion=suggestion,
            details=details,
        )


class ConflictError(PlatformException):
    """Raised when the target row already exists."""

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            suggestion=suggestion,
        )


# =============================================================================
# Authorization Exceptions
# =============================================================================

class ForbiddenError(PlatformException):
    """Raised when the caller is authenticated but not allowed to act."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


class AdminRequiredError(PlatformException):
    """Raised when a non-admin calls an admin endpoint."""

    def __init__(self):
        super().__init__(
            message="Admin access required",
            code="ADMIN_REQUIRED",
            status_code=403,
            suggestion="Sign in with an account whose profile role is 'admin'",
        )


class AccountRestrictedError(PlatformException):
    """Raised when a banned or suspended user tries to create content."""

    def __init__(self, restriction: str, expires_at: str | None = None):
        super().__init__(
            message=f"Your account is {restriction}",
            code="ACCOUNT_RESTRICTED",
            status_code=403,
            suggestion="Contact support if you believe this is a mistake",
            details={"restriction": restriction, "expires_at": expires_at} if expires_at else {"restriction": restriction},
        )


class JudgeTokenError(PlatformException):
    """Raised when a judge scoring link cannot be used."""

    MESSAGES = {
        "missing_token": "Scoring token is required",
        "invalid_format": "Invalid scoring token format",
        "not_found": "Invalid scoring link",
        "expired": "This scoring link has expired",
        "revoked": "This scoring link has been revoked",
    }

    def __init__(self, reason: str):
        super().__init__(
            message=self.MESSAGES.get(reason, "Invalid scoring link"),
            code=reason.upper(),
            status_code=401,
            suggestion="Ask the organizer for a new scoring link",
        )


# =============================================================================
# Rate Limiting / Verification Exceptions
# =============================================================================

class RateLimitExceededError(PlatformException):
    """Raised when a token bucket is empty."""

    def __init__(self, retry_after: int):
        super().__init__(
            message="Too many requests. Please try again later.",
            code="RATE_LIMITED",
            status_code=429,
            suggestion=f"Wait {retry_after} seconds before retrying",
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after


class OTPVerificationError(PlatformException):
    """Raised when a signup code is missing, expired, exhausted or wrong."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="OTP_INVALID",
            status_code=400,
            details=details,
        )


# =============================================================================
# Integration Exceptions
# =============================================================================

class EmailDeliveryError(PlatformException):
    """Raised when Resend rejects a message."""

    def __init__(self, recipient: str, error: str):
        super().__init__(
            message=f"Failed to send email: {error}",
            code="EMAIL_DELIVERY_FAILED",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"recipient": recipient},
        )


class ServiceNotConfiguredError(PlatformException):
    """Raised when an optional integration has no credentials configured."""

    def __init__(self, service: str):
        super().__init__(
            message=f"{service} is not configured",
            code="SERVICE_NOT_CONFIGURED",
            status_code=503,
            suggestion="Set the corresponding environment variable and restart the API",
        )


class FileTooLargeError(PlatformException):
    """Raised when an uploaded import file exceeds the size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=413,
            suggestion=f"Upload a file smaller than {max_mb}MB",
            details={"size_mb": size_mb, "max_mb": max_mb},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def platform_exception_handler(
    request: Request,
    exc: PlatformException
) -> JSONResponse:
    """
    Convert PlatformException to JSON response.

    Rate limit errors also carry a Retry-After header.
    """
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """Wrap FastAPI's HTTPException (auth failures etc.) in the error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    The first error is promoted to the message; the rest go in details.
    """
    errors = exc.errors()
    message = "Validation error"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": message,
            "code": "VALIDATION_ERROR",
            "details": {"errors": [
                {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg")} for e in errors
            ]},
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )
