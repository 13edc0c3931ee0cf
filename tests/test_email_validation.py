# =============================================================================
# tests/test_email_validation.py - Email Check Tests
# =============================================================================

import pytest

from core.validation.email import (
    extract_domain,
    is_disposable_domain,
    is_valid_email_format,
    validate_email_quick,
)


@pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@example.org"])
def test_valid_formats(email):
    assert is_valid_email_format(email)


@pytest.mark.parametrize("email", [
    "",
    "plain",
    "a@b",
    "a b@c.com",
    "@x.com",
    "a@b..com",
    "a@-b.com",
    "\"a b\"@c.com",
    "a..b@c.com",
])
def test_invalid_formats(email):
    assert not is_valid_email_format(email)


def test_overlong_address_rejected():
    assert not is_valid_email_format("a" * 250 + "@x.com")


def test_extract_domain_lowercases_last_part():
    assert extract_domain("User@Mail.Example.COM") == "mail.example.com"
    with pytest.raises(ValueError):
        extract_domain("nope")


def test_disposable_matches_subdomains():
    assert is_disposable_domain("mailinator.com")
    assert is_disposable_domain("inbox.mailinator.com")
    assert not is_disposable_domain("notmailinator.com")


class TestQuickValidation:

    def test_safe_provider(self):
        result = validate_email_quick("  someone@gmail.com ")
        assert result.is_valid
        assert result.is_safe
        assert result.domain == "gmail.com"

    def test_disposable_rejected(self):
        result = validate_email_quick("x@yopmail.com")
        assert not result.is_valid
        assert result.is_disposable
        assert result.issues == ["Temporary emails are not allowed"]

    def test_bad_format(self):
        result = validate_email_quick("not-an-email")
        assert not result.is_valid
        assert result.issues == ["Invalid email format"]

    def test_unknown_domain_is_allowed(self):
        result = validate_email_quick("dev@startup.io")
        assert result.is_valid
        assert not result.is_safe

    def test_domain_normalized_before_disposable_check(self):
        result = validate_email_quick("x@Inbox.Mailinator.COM")

        assert result.domain == "inbox.mailinator.com"
        assert result.is_disposable
        assert not result.is_valid
