# =============================================================================
# tests/test_email.py - Email Client & Template Tests
# =============================================================================

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.config import settings
from app.exceptions import EmailDeliveryError
from lib import email_templates
from lib.email_client import RESEND_API_URL, EmailClient


# =============================================================================
# Templates
# =============================================================================

class TestTemplates:

    def test_otp_escapes_name(self):
        subject, body = email_templates.otp_email("123456", name="<b>Ada</b>")

        assert subject == "Your Maximally verification code"
        assert "123456" in body
        assert "<b>Ada</b>" not in body
        assert "&lt;b&gt;Ada&lt;/b&gt;" in body

    def test_unsubscribe_token_normalizes_address(self):
        token = email_templates.unsubscribe_token("Ada@Example.com ")

        assert token == email_templates.unsubscribe_token("ada@example.com")
        assert email_templates.verify_unsubscribe_token("ada@example.com", token)
        assert not email_templates.verify_unsubscribe_token("grace@example.com", token)
        assert not email_templates.verify_unsubscribe_token("ada@example.com", None)

    def test_unsubscribe_url_quotes_email(self):
        url = email_templates.generate_unsubscribe_url("a+b@example.com", base_url="https://maximally.in/")
        assert url.startswith("https://maximally.in/newsletter/unsubscribe?email=a%2Bb%40example.com&token=")

    def test_newsletter_wrapper_has_unsubscribe(self):
        body = email_templates.newsletter_email("March", "<h1>Hi</h1>", "https://x/unsub?a=1&b=2")

        assert "<h1>Hi</h1>" in body
        assert "https://x/unsub?a=1&amp;b=2" in body

    def test_preview_strips_markup(self):
        content = "<style>p{color:red}</style><p>Hello   <b>builders</b></p>"

        assert email_templates.strip_html(content) == "Hello builders"
        assert email_templates.preview_text("<p>" + "x" * 200 + "</p>", max_length=10) == "x" * 10 + "..."

    def test_html_issues(self):
        issues = email_templates.validate_email_html('<div class="a"><img src="http://x/a.png"><script></script></div>')
        assert len(issues) == 3
        assert email_templates.validate_email_html('<p style="color:red">ok</p>') == []

    def test_event_handlers_flagged(self):
        issues = email_templates.validate_email_html('<p style="x" onmouseover="y()">hi</p>')
        assert issues == ["Inline event handlers are removed before sending"]

    def test_sanitize_keeps_safe_markup(self):
        content = (
            '<table><tr><td align="center"><a href="https://maximally.in">Join</a></td></tr></table>'
            '<style>p{}</style><iframe src="https://evil"></iframe><img src="x" onerror="y()">'
        )

        cleaned = email_templates.sanitize_email_html(content)

        assert '<a href="https://maximally.in">Join</a>' in cleaned
        assert '<td align="center">' in cleaned
        assert "iframe" not in cleaned
        assert "p{}" not in cleaned
        assert "onerror" not in cleaned

    def test_sanitize_drops_script_urls(self):
        cleaned = email_templates.sanitize_email_html('<a href="javascript:alert(1)">x</a>')
        assert "javascript" not in cleaned

    def test_certificate_email_links_verification(self):
        subject, body = email_templates.certificate_email("Ada", "Spring Jam", "CERT-ABCD1234", "winner")

        assert subject == "Your certificate for Spring Jam"
        assert f"{settings.PLATFORM_URL}/certificates/verify/CERT-ABCD1234" in body

    def test_judge_email_escapes_hackathon_name(self):
        subject, body = email_templates.judge_scoring_email("", "<i>Jam</i>", "https://maximally.in/judge/abc")

        assert subject == "Judging is open: <i>Jam</i>"
        assert "&lt;i&gt;Jam&lt;/i&gt;" in body
        assert "Hi there," in body


# =============================================================================
# Client
# =============================================================================

class TestEmailClient:

    def test_disabled_skips_network(self, monkeypatch):
        monkeypatch.setattr(settings, "RESEND_API_KEY", "")

        with patch("lib.email_client.httpx.post") as post:
            assert EmailClient.send("a@example.com", "Hi", "<p>Hi</p>") is None

        post.assert_not_called()

    def test_sends_payload(self, monkeypatch):
        monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
        response = MagicMock()
        response.json.return_value = {"id": "msg_1"}

        with patch("lib.email_client.httpx.post", return_value=response) as post:
            message_id = EmailClient.send("a@example.com", "Hi", "<p>Hi</p>", text="Hi")

        assert message_id == "msg_1"
        assert post.call_args.args[0] == RESEND_API_URL
        payload = post.call_args.kwargs["json"]
        assert payload["to"] == ["a@example.com"]
        assert payload["text"] == "Hi"
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer re_test"

    def test_rejection_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
        request = httpx.Request("POST", RESEND_API_URL)
        rejected = httpx.Response(422, request=request, text="invalid from")

        with patch("lib.email_client.httpx.post", return_value=rejected):
            with pytest.raises(EmailDeliveryError) as exc:
                EmailClient.send("a@example.com", "Hi", "<p>Hi</p>")

        assert exc.value.details == {"recipient": "a@example.com"}
        assert "HTTP 422" in exc.value.message

    def test_network_error_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")

        with patch("lib.email_client.httpx.post", side_effect=httpx.ConnectTimeout("timeout")):
            with pytest.raises(EmailDeliveryError):
                EmailClient.send("a@example.com", "Hi", "<p>Hi</p>")
