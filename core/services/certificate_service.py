# =============================================================================
# core/services/certificate_service.py - Certificates
# =============================================================================
# Organizers issue certificates for a hackathon; anyone can verify one by
# its public id (CERT-XXXXXXXX).
# =============================================================================

import logging
import secrets
import string
from typing import Any
from uuid import UUID

from app.exceptions import EmailDeliveryError, ForbiddenError, NotFoundError
from core.models.certificate import CertificateStatus, GenerateCertificatesRequest
from core.services.judging_service import JudgingService
from core.validation.email import is_valid_email_format
from lib import email_templates
from lib.email_client import EmailClient
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_email, normalize_uuid

logger = logging.getLogger(__name__)

CERTIFICATE_PREFIX = "CERT-"
CERTIFICATE_ID_LENGTH = 8
CERTIFICATE_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_id() -> str:
    return CERTIFICATE_PREFIX + "".join(
        secrets.choice(CERTIFICATE_ALPHABET) for _ in range(CERTIFICATE_ID_LENGTH)
    )


class CertificateService:
    """Service for issuing and verifying certificates."""

    @staticmethod
    def generate(
        hackathon_id: int,
        user_id: UUID | str,
        request: GenerateCertificatesRequest,
    ) -> dict[str, Any]:
        """
        Issue one certificate per recipient.

        Recipients are processed independently: a failed insert or email is
        recorded and the loop moves on.

        Returns:
            Dict with totals, created certificates and per-recipient errors
        """
        hackathon = JudgingService.require_organizer(hackathon_id, user_id)
        hackathon_name = request.hackathon_name or hackathon.get("hackathon_name") or "Hackathon"
        client = SupabaseClient.get_client()

        created: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []
        emails_sent = 0

        for recipient in request.recipients:
            email = normalize_email(recipient.email) if recipient.email else None
            if email and not is_valid_email_format(email):
                errors.append({"name": recipient.name, "email": email, "error": "Invalid email format"})
                continue

            row = {
                "certificate_id": generate_certificate_id(),
                "hackathon_id": hackathon_id,
                "hackathon_name": hackathon_name,
                "participant_name": recipient.name.strip(),
                "participant_email": email,
                "type": recipient.type.value,
                "position": recipient.position,
                "status": CertificateStatus.ACTIVE.value,
                "generated_by": normalize_uuid(user_id),
            }

            try:
                response = client.table("certificates").insert(row).execute()
            except Exception as e:
                logger.error(f"Certificate insert failed for {recipient.name}: {e}")
                errors.append({"name": recipient.name, "email": email, "error": str(e)})
                continue

            certificate = response.data[0] if response.data else row
            created.append(certificate)

            if request.send_email and email:
                subject, html = email_templates.certificate_email(
                    row["participant_name"], hackathon_name, row["certificate_id"], row["type"]
                )
                try:
                    EmailClient.send(email, subject, html)
                    emails_sent += 1
                except EmailDeliveryError as e:
                    errors.append({"name": recipient.name, "email": email, "error": e.message})

        logger.info(
            f"Certificates for hackathon {hackathon_id}: {len(created)} created, "
            f"{emails_sent} emailed, {len(errors)} errors"
        )
        return {
            "total": len(request.recipients),
            "created": len(created),
            "emails_sent": emails_sent,
            "failed": len(errors),
            "certificates": created,
            "errors": errors,
        }

    @staticmethod
    def list_for_hackathon(hackathon_id: int, user_id: UUID | str) -> list[dict[str, Any]]:
        JudgingService.require_organizer(hackathon_id, user_id)
        response = (
            SupabaseClient.get_client()
            .table("certificates")
            .select("*")
            .eq("hackathon_id", hackathon_id)
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    @staticmethod
    def revoke(certificate_id: str, user_id: UUID | str) -> dict[str, Any]:
        """
        Mark a certificate inactive. Only its issuer or an admin may.

        Raises:
            NotFoundError: Unknown certificate id
            ForbiddenError: Caller is neither issuer nor admin
        """
        certificate = SupabaseClient.fetch_row("certificates", "certificate_id", certificate_id.upper())
        if not certificate:
            raise NotFoundError("Certificate", certificate_id)

        uid = normalize_uuid(user_id)
        if str(certificate.get("generated_by")) != uid and not SupabaseClient.is_admin(uid):
            raise ForbiddenError("Only the issuer can revoke this certificate")

        response = (
            SupabaseClient.get_client()
            .table("certificates")
            .update({"status": CertificateStatus.INACTIVE.value})
            .eq("certificate_id", certificate["certificate_id"])
            .execute()
        )
        logger.info(f"Certificate {certificate['certificate_id']} revoked by {uid}")
        return response.data[0] if response.data else {**certificate, "status": CertificateStatus.INACTIVE.value}

    @staticmethod
    def verify(certificate_id: str) -> dict[str, Any]:
        """
        Public lookup by certificate id.

        Returns:
            {"status": "verified" | "revoked" | "invalid_id", "certificate": {...} | None}
        """
        certificate_id = certificate_id.strip().upper()
        if not certificate_id.startswith(CERTIFICATE_PREFIX):
            return {"status": "invalid_id", "certificate": None}

        certificate = SupabaseClient.fetch_row(
            "certificates",
            "certificate_id",
            certificate_id,
            columns="certificate_id, participant_name, hackathon_name, type, position, status, created_at, maximally_username",
        )
        if not certificate:
            return {"status": "invalid_id", "certificate": None}

        if certificate.get("status") != CertificateStatus.ACTIVE.value:
            return {"status": "revoked", "certificate": certificate}
        return {"status": "verified", "certificate": certificate}
