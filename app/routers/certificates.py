# =============================================================================
# app/routers/certificates.py - Certificate Endpoints
# =============================================================================
# Mounted at /api. Issuing and revoking require the hackathon organizer;
# verification is public and rate limited per IP.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from app.auth import AuthUser, get_current_user
from app.dependencies import rate_limit_by_ip
from core.models.certificate import GenerateCertificatesRequest
from core.services.certificate_service import CertificateService

router = APIRouter(tags=["Certificates"])

HackathonId = Annotated[int, Path(ge=1, description="Hackathon id")]
CertificateId = Annotated[str, Path(min_length=1, max_length=32, examples=["CERT-7K2M9QXA"])]


@router.post("/organizer/hackathons/{hackathon_id}/certificates/generate")
async def generate_certificates(
    hackathon_id: HackathonId,
    body: GenerateCertificatesRequest,
    user: AuthUser = Depends(get_current_user),
):
    """Issue certificates, optionally emailing each recipient."""
    result = CertificateService.generate(hackathon_id, user.id, body)
    return {
        "success": True,
        "message": f"Generated {result['created']} of {result['total']} certificates",
        "data": result,
    }


@router.get("/organizer/hackathons/{hackathon_id}/certificates")
async def list_certificates(hackathon_id: HackathonId, user: AuthUser = Depends(get_current_user)):
    return {"success": True, "data": CertificateService.list_for_hackathon(hackathon_id, user.id)}


@router.post("/organizer/certificates/{certificate_id}/revoke")
async def revoke_certificate(certificate_id: CertificateId, user: AuthUser = Depends(get_current_user)):
    certificate = CertificateService.revoke(certificate_id, user.id)
    return {"success": True, "message": "Certificate revoked", "data": certificate}


@router.get(
    "/certificates/verify/{certificate_id}",
    dependencies=[Depends(rate_limit_by_ip("certificate_verify"))],
)
async def verify_certificate(certificate_id: CertificateId):
    """Public check: verified, revoked, or invalid_id."""
    return {"success": True, "data": CertificateService.verify(certificate_id)}
