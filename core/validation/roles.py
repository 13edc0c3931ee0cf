# =============================================================================
# core/validation/roles.py - Profile Roles
# =============================================================================
# profiles.role is one of user, admin, organizer. The retired 'judge' role
# (judging is now per-hackathon) maps back to 'user'.
# =============================================================================

from typing import Any

VALID_ROLES = ("user", "admin", "organizer")
DEFAULT_ROLE = "user"
ELEVATED_ROLES = ("admin", "organizer")
LEGACY_ROLES = ("judge",)


def is_valid_profile_role(role: Any) -> bool:
    return isinstance(role, str) and role in VALID_ROLES


def validate_profile_role_update(role: Any) -> str:
    """
    Raises:
        ValueError: If role isn't one of VALID_ROLES
    """
    if not is_valid_profile_role(role):
        raise ValueError(f"Invalid profile role: {role}. Valid roles are: {', '.join(VALID_ROLES)}")
    return role


def migrate_legacy_role(role: str | None) -> str:
    return role if is_valid_profile_role(role) else DEFAULT_ROLE
