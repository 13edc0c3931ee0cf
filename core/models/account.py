# =============================================================================
# core/models/account.py - Account & Profile Schemas
# =============================================================================
# Request bodies for OTP signup, password management, profile edits and
# admin account operations.
# =============================================================================

from pydantic import BaseModel, Field

# Per-field truncation applied to profile edits
PROFILE_FIELD_LIMITS: dict[str, int] = {
    "full_name": 100,
    "bio": 500,
    "location": 100,
    "linkedin": 200,
    "github": 200,
    "twitter": 200,
    "website": 200,
}

MIN_PASSWORD_LENGTH = 8


class SignupOTPRequest(BaseModel):
    """
    Start an email-verified signup.

    Example:
        {"email": "ada@example.com", "password": "correct-horse", "name": "Ada", "username": "ada"}
    """
    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=128)
    name: str | None = Field(default=None, max_length=100)
    username: str | None = Field(default=None, max_length=50)


class VerifyOTPRequest(BaseModel):
    email: str = Field(..., max_length=254)
    otp: str = Field(..., min_length=1, max_length=10)


class EmailRequest(BaseModel):
    email: str = Field(..., max_length=254)


class ChangePasswordRequest(BaseModel):
    new_password: str = Field(..., max_length=128)


class ProfileUpdate(BaseModel):
    """
    Editable profile fields.

    Text fields are trimmed and truncated server-side (see
    PROFILE_FIELD_LIMITS); an empty string clears the field.
    """
    full_name: str | None = None
    bio: str | None = None
    location: str | None = None
    linkedin: str | None = None
    github: str | None = None
    twitter: str | None = None
    website: str | None = None
    avatar_url: str | None = Field(default=None, max_length=1000)


class CaptchaRequest(BaseModel):
    token: str = Field(..., min_length=1)
    action: str | None = None


class AdminInviteRequest(BaseModel):
    email: str = Field(..., max_length=254)
    full_name: str | None = Field(default=None, max_length=100)


class RoleUpdateRequest(BaseModel):
    role: str = Field(..., description="user | admin | organizer")
