# =============================================================================
# core/validation/email.py - Email Address Checks
# =============================================================================
# Syntax check (email-validator, no deliverability lookup), safe-provider
# whitelist, and disposable domain detection. Disposable checks also match
# subdomains (mail.tempmail.com -> tempmail.com).
# =============================================================================

from dataclasses import dataclass, field

from email_validator import EmailNotValidError, ValidatedEmail, validate_email

# Major providers that skip the disposable check
SAFE_DOMAINS = frozenset({
    "gmail.com",
    "outlook.com",
    "hotmail.com",
    "yahoo.com",
    "icloud.com",
    "protonmail.com",
    "proton.me",
    "aol.com",
    "live.com",
    "msn.com",
    "comcast.net",
    "verizon.net",
    "att.net",
    "sbcglobal.net",
    "cox.net",
    "charter.net",
    "earthlink.net",
})

DISPOSABLE_DOMAINS = frozenset({
    "tempmail.com",
    "throwaway.email",
    "guerrillamail.com",
    "guerrillamail.net",
    "sharklasers.com",
    "mailinator.com",
    "10minutemail.com",
    "temp-mail.org",
    "fakeinbox.com",
    "trashmail.com",
    "yopmail.com",
    "getnada.com",
    "maildrop.cc",
    "dispostable.com",
    "mintemail.com",
    "emailondeck.com",
    "tempinbox.com",
    "mohmal.com",
})


@dataclass
class EmailValidation:
    """Result of validate_email_quick."""
    is_valid: bool
    domain: str = ""
    issues: list[str] = field(default_factory=list)
    is_safe: bool = False
    is_disposable: bool = False


def parse_email(email: str) -> ValidatedEmail | None:
    """Syntax-checked, normalized address, or None when it isn't one."""
    try:
        return validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return None


def is_valid_email_format(email: str) -> bool:
    return parse_email(email) is not None


def extract_domain(email: str) -> str:
    """
    Domain part after the last '@', lowercased.

    Raises:
        ValueError: If there is no '@'
    """
    at = email.rfind("@")
    if at == -1:
        raise ValueError("Invalid email format")
    return email[at + 1:].strip().lower()


def is_safe_domain(domain: str) -> bool:
    return domain.lower() in SAFE_DOMAINS


def is_disposable_domain(domain: str) -> bool:
    domain = domain.lower()
    if domain in DISPOSABLE_DOMAINS:
        return True
    return any(domain.endswith("." + d) for d in DISPOSABLE_DOMAINS)


def validate_email_quick(email: str) -> EmailValidation:
    """
    Validate format and reject temporary inboxes.

    Example:
        validate_email_quick("a@mailinator.com").issues
        # ["Temporary emails are not allowed"]
    """
    validated = parse_email((email or "").strip())
    if validated is None:
        return EmailValidation(is_valid=False, issues=["Invalid email format"])

    domain = validated.domain.lower()
    result = EmailValidation(is_valid=False, domain=domain, is_safe=is_safe_domain(domain))

    if not result.is_safe:
        result.is_disposable = is_disposable_domain(domain)
        if result.is_disposable:
            result.issues.append("Temporary emails are not allowed")

    result.is_valid = not result.issues
    return result
