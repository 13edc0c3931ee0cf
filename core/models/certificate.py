# =============================================================================
# core/models/certificate.py - Certificate Schemas
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class CertificateType(str, Enum):
    PARTICIPANT = "participant"
    WINNER = "winner"
    JUDGE = "judge"


class CertificateStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CertificateRecipient(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=254)
    type: CertificateType = CertificateType.PARTICIPANT
    position: str | None = Field(default=None, max_length=50, examples=["1st Place"])


class GenerateCertificatesRequest(BaseModel):
    """
    Example:
        {"recipients": [{"name": "Ada Lovelace", "email": "ada@example.com", "type": "winner",
                         "position": "1st Place"}],
         "send_email": true}
    """
    recipients: list[CertificateRecipient] = Field(..., min_length=1, max_length=1000)
    hackathon_name: str | None = Field(default=None, description="Overrides the hackathon's name")
    send_email: bool = False
