# =============================================================================
# lib/email_templates.py - Transactional Email Templates
# =============================================================================
# Jinja2 templates for every email the platform sends:
# - Signup OTP and welcome
# - Newsletter wrapper (with per-recipient unsubscribe link)
# - Certificate issued
# - Judge scoring link
#
# Templates are autoescaped, so user-supplied values are always escaped.
# Admin-authored newsletter bodies go through the bleach allowlist before
# they are wrapped; BeautifulSoup handles text extraction and markup checks.
# =============================================================================

import hashlib
import hmac
from urllib.parse import quote

import bleach
from bleach.css_sanitizer import CSSSanitizer
from bs4 import BeautifulSoup
from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape
from markupsafe import Markup

from app.config import settings

# -----------------------------------------------------------------------------
# Templates
# -----------------------------------------------------------------------------

_TEMPLATES = {
    "base.html": """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }}</title>
</head>
<body style="margin:0;padding:0;background-color:#000000;color:#ffffff;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial,sans-serif;">
  <div style="max-width:600px;margin:0 auto;padding:32px 24px;">
    <div style="border-bottom:2px solid #dc2626;padding-bottom:16px;margin-bottom:24px;">
      <span style="font-size:22px;font-weight:bold;color:#dc2626;">MAXIMALLY</span>
    </div>
    {% block body %}{% endblock %}
    <div style="margin-top:32px;padding-top:16px;border-top:1px solid #333;font-size:12px;color:#888;">
      {% block footer %}{% endblock %}
      <p>&copy; Maximally</p>
    </div>
  </div>
</body>
</html>
""",
    "otp.html": """{% extends "base.html" %}
{% block body %}
<p>{% if name %}Hi {{ name }},{% else %}Hi,{% endif %}</p>
<p>Use this code to finish creating your Maximally account:</p>
<p style="font-size:32px;letter-spacing:8px;font-weight:bold;color:#dc2626;">{{ code }}</p>
<p>The code expires in {{ expiry_minutes }} minutes. If you didn't request it, ignore this email.</p>
{% endblock %}
""",
    "welcome.html": """{% extends "base.html" %}
{% block body %}
<h1 style="color:#ffffff;">{% if name %}Welcome, {{ name }}!{% else %}Welcome!{% endif %}</h1>
<p>Your account is verified. Find your next hackathon:</p>
<p><a href="{{ events_url }}" style="color:#dc2626;">Browse hackathons</a></p>
{% endblock %}
""",
    "newsletter.html": """{% extends "base.html" %}
{% block body %}{{ body }}{% endblock %}
{% block footer %}
<p>You're receiving this because you subscribed to the Maximally newsletter.</p>
<p><a href="{{ unsubscribe_url }}" style="color:#888;">Unsubscribe</a></p>
{% endblock %}
""",
    "certificate.html": """{% extends "base.html" %}
{% block body %}
<p>Hi {{ participant_name }},</p>
<p>Your <strong>{{ certificate_type }}</strong> certificate for
<strong>{{ hackathon_name }}</strong> is ready.</p>
<p>Certificate ID: <code>{{ certificate_id }}</code></p>
<p><a href="{{ verify_url }}" style="color:#dc2626;">View and verify your certificate</a></p>
{% endblock %}
""",
    "judge_scoring.html": """{% extends "base.html" %}
{% block body %}
<p>Hi {{ judge_name or "there" }},</p>
<p>Submissions for <strong>{{ hackathon_name }}</strong> are closed and ready for judging.</p>
<p><a href="{{ scoring_url }}" style="color:#dc2626;">Open your scoring dashboard</a></p>
<p>This link is personal. Don't forward it.</p>
{% endblock %}
""",
}

_env = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=select_autoescape(["html", "xml"]),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context)


# =============================================================================
# Account Emails
# =============================================================================

def otp_email(code: str, name: str | None = None, expiry_minutes: int = 10) -> tuple[str, str]:
    """Returns (subject, html) for a signup verification code."""
    body = render(
        "otp.html",
        title="Verify your email",
        code=code,
        name=name,
        expiry_minutes=expiry_minutes,
    )
    return "Your Maximally verification code", body


def welcome_email(name: str | None = None) -> tuple[str, str]:
    body = render("welcome.html", title="Welcome", name=name, events_url=f"{settings.PLATFORM_URL}/events")
    return "Welcome to Maximally", body


# =============================================================================
# Newsletter
# =============================================================================

def unsubscribe_token(email: str) -> str:
    """HMAC of the normalized address, so unsubscribe links can't be forged."""
    digest = hmac.new(
        settings.SECRET_KEY.encode(),
        email.strip().lower().encode(),
        hashlib.sha256,
    ).hexdigest()
    return digest[:32]


def verify_unsubscribe_token(email: str, token: str) -> bool:
    return hmac.compare_digest(unsubscribe_token(email), token or "")


def generate_unsubscribe_url(email: str, base_url: str | None = None) -> str:
    base = (base_url or settings.PLATFORM_URL).rstrip("/")
    return f"{base}/newsletter/unsubscribe?email={quote(email, safe='')}&token={unsubscribe_token(email)}"


# Newsletter bodies are limited to markup mail clients render reliably
EMAIL_SAFE_TAGS = [
    "p", "br", "strong", "em", "b", "i", "u", "s", "sub", "sup",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li",
    "a", "img", "figure", "figcaption",
    "table", "thead", "tbody", "tfoot", "tr", "td", "th", "caption",
    "div", "span", "section", "header", "footer",
    "hr", "blockquote", "pre", "code", "center",
]

EMAIL_SAFE_ATTRIBUTES = {
    "*": ["class", "id", "style", "title", "dir", "lang"],
    "a": ["href", "title", "rel", "target"],
    "img": ["src", "alt", "width", "height", "border", "align"],
    "table": ["border", "cellpadding", "cellspacing", "width", "align", "bgcolor"],
    "td": ["colspan", "rowspan", "width", "height", "align", "valign", "bgcolor"],
    "th": ["colspan", "rowspan", "width", "height", "align", "valign", "bgcolor"],
    "tr": ["align", "valign", "bgcolor"],
    "div": ["align"],
    "p": ["align"],
}

_css_sanitizer = CSSSanitizer(
    allowed_css_properties=[
        "color", "background-color", "background",
        "font-family", "font-size", "font-weight", "font-style",
        "text-align", "text-decoration", "text-transform", "letter-spacing",
        "margin", "margin-top", "margin-bottom", "margin-left", "margin-right",
        "padding", "padding-top", "padding-bottom", "padding-left", "padding-right",
        "border", "border-top", "border-bottom", "border-left", "border-right",
        "border-color", "border-style", "border-width", "border-radius",
        "width", "height", "max-width", "min-width",
        "display", "line-height", "vertical-align",
    ],
)

# Dropped together with their contents, not just unwrapped
_STRIPPED_ELEMENTS = ["script", "style", "iframe", "object", "embed", "form"]


def sanitize_email_html(content: str) -> str:
    """Reduce admin-authored HTML to the email-safe allowlist."""
    soup = BeautifulSoup(content, "html.parser")
    for element in soup.find_all(_STRIPPED_ELEMENTS):
        element.decompose()
    return bleach.clean(
        str(soup),
        tags=EMAIL_SAFE_TAGS,
        attributes=EMAIL_SAFE_ATTRIBUTES,
        protocols=["http", "https", "mailto"],
        css_sanitizer=_css_sanitizer,
        strip=True,
        strip_comments=True,
    )


def newsletter_email(subject: str, html_content: str, unsubscribe_url: str) -> str:
    """Wrap an admin-authored newsletter body in the branded layout."""
    return render(
        "newsletter.html",
        title=subject,
        body=Markup(sanitize_email_html(html_content)),
        unsubscribe_url=unsubscribe_url,
    )


def strip_html(content: str) -> str:
    """Plain-text rendition of an HTML body."""
    soup = BeautifulSoup(content, "html.parser")
    for element in soup.find_all(["head", "script", "style"]):
        element.decompose()
    return " ".join(soup.get_text(" ").split())


def preview_text(content: str, max_length: int = 150) -> str:
    text = strip_html(content)
    return text[:max_length] + "..." if len(text) > max_length else text


def validate_email_html(content: str) -> list[str]:
    """
    Flag markup that renders badly in mail clients.

    Returns:
        List of human-readable issues (empty when the HTML looks fine)
    """
    soup = BeautifulSoup(content, "html.parser")
    issues = []

    if soup.find_all(class_=True) and not soup.find_all(style=True):
        issues.append("Consider using inline styles instead of classes for better email client compatibility")
    if any(tag.get("src", "").lower().startswith("http:") for tag in soup.find_all(src=True)):
        issues.append("Use HTTPS for all external resources")
    if len(soup.find_all("img")) > 10:
        issues.append("Too many images may cause slow loading")
    if soup.find_all("script"):
        issues.append("JavaScript is not supported in email clients")
    if soup.find_all("form"):
        issues.append("Forms have limited support in email clients")
    if any(attr.lower().startswith("on") for tag in soup.find_all() for attr in tag.attrs):
        issues.append("Inline event handlers are removed before sending")
    return issues


# =============================================================================
# Hackathon Emails
# =============================================================================

def certificate_email(
    participant_name: str,
    hackathon_name: str,
    certificate_id: str,
    certificate_type: str,
) -> tuple[str, str]:
    body = render(
        "certificate.html",
        title="Certificate issued",
        participant_name=participant_name,
        hackathon_name=hackathon_name,
        certificate_id=certificate_id,
        certificate_type=certificate_type,
        verify_url=f"{settings.PLATFORM_URL}/certificates/verify/{quote(certificate_id)}",
    )
    return f"Your certificate for {hackathon_name}", body


def judge_scoring_email(judge_name: str, hackathon_name: str, scoring_url: str) -> tuple[str, str]:
    body = render(
        "judge_scoring.html",
        title="Judging is open",
        judge_name=judge_name,
        hackathon_name=hackathon_name,
        scoring_url=scoring_url,
    )
    return f"Judging is open: {hackathon_name}", body
