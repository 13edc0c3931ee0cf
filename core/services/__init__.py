# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .otp_service import OTPService
from .account_service import AccountService
from .moderation_service import ModerationService
from .gallery_service import GalleryService
from .newsletter_service import NewsletterService
from .judging_service import JudgingService
from .certificate_service import CertificateService

__all__ = [
    "OTPService",
    "AccountService",
    "ModerationService",
    "GalleryService",
    "NewsletterService",
    "JudgingService",
    "CertificateService",
]
