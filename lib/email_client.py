# =============================================================================
# lib/email_client.py - Resend Email Client
# =============================================================================
# Thin wrapper around Resend's REST API (https://api.resend.com/emails).
#
# When RESEND_API_KEY is empty the client logs the message and returns None
# instead of sending, so local development works without credentials.
#
# Usage:
#   from lib.email_client import EmailClient
#   message_id = EmailClient.send("a@b.com", "Hello", "<p>Hi</p>")
# =============================================================================

import logging

import httpx

from app.config import settings
from app.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
REQUEST_TIMEOUT = 15


class EmailClient:
    """Static facade over Resend; one HTTP call per message."""

    @staticmethod
    def default_sender() -> str:
        return f"Maximally <{settings.FROM_EMAIL}>"

    @staticmethod
    def newsletter_sender() -> str:
        return f"{settings.NEWSLETTER_SENDER_NAME} <{settings.FROM_EMAIL}>"

    @staticmethod
    def send(
        to: str,
        subject: str,
        html: str,
        sender: str | None = None,
        text: str | None = None,
    ) -> str | None:
        """
        Send one email.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body
            sender: "Name <address>" (defaults to the platform sender)
            text: Optional plain-text alternative

        Returns:
            Resend message id, or None when email is disabled

        Raises:
            EmailDeliveryError: If Resend rejects the request or is unreachable
        """
        if not settings.email_enabled:
            logger.info(f"Email disabled, skipping '{subject}' to {to}")
            return None

        payload = {
            "from": sender or EmailClient.default_sender(),
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text

        try:
            response = httpx.post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Resend rejected email to {to}: {e.response.status_code} {e.response.text[:200]}")
            raise EmailDeliveryError(to, f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed for {to}: {e}")
            raise EmailDeliveryError(to, str(e))

        message_id = response.json().get("id")
        logger.debug(f"Sent '{subject}' to {to} ({message_id})")
        return message_id
