# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains the schemas for each feature area:
# - account.py: signup OTP, passwords, profile edits, admin account ops
# - gallery.py: project gallery
# - moderation.py: user reports and moderation actions
# - newsletter.py: subscribers, newsletters, schedules, send reports
# - judging.py: rubric ratings, token scores, winners
# - certificate.py: certificate generation
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Account Models
# -----------------------------------------------------------------------------
from .account import (
    MIN_PASSWORD_LENGTH,
    PROFILE_FIELD_LIMITS,
    AdminInviteRequest,
    CaptchaRequest,
    ChangePasswordRequest,
    EmailRequest,
    ProfileUpdate,
    RoleUpdateRequest,
    SignupOTPRequest,
    VerifyOTPRequest,
)

# -----------------------------------------------------------------------------
# Gallery Models
# -----------------------------------------------------------------------------
from .gallery import (
    PUBLIC_GALLERY_STATUSES,
    GalleryModerationRequest,
    GalleryProjectCreate,
    GalleryProjectUpdate,
    GallerySort,
    GalleryStatus,
    Pagination,
)

# -----------------------------------------------------------------------------
# Moderation Models
# -----------------------------------------------------------------------------
from .moderation import (
    TIMED_ACTIONS,
    ModerationActionRequest,
    ModerationActionType,
    ModerationStatus,
    ReportCategory,
    ReportCreate,
    ReportPriority,
    ReportStatus,
    ReportUpdate,
    UserFilter,
)

# -----------------------------------------------------------------------------
# Newsletter Models
# -----------------------------------------------------------------------------
from .newsletter import (
    NewsletterSave,
    NewsletterSchedule,
    NewsletterSend,
    NewsletterStatus,
    RecipientResult,
    ScheduleFrequency,
    ScheduleSettings,
    SendReport,
    SubscribeRequest,
    SubscriberImport,
    SubscriberStatus,
    UnsubscribeRequest,
)

# -----------------------------------------------------------------------------
# Judging Models
# -----------------------------------------------------------------------------
from .judging import (
    DEFAULT_CRITERIA,
    CriterionRating,
    ProposeWinnersRequest,
    RankedSubmission,
    RateSubmissionRequest,
    TokenScoreRequest,
    WinnerProposal,
)

# -----------------------------------------------------------------------------
# Certificate Models
# -----------------------------------------------------------------------------
from .certificate import (
    CertificateRecipient,
    CertificateStatus,
    CertificateType,
    GenerateCertificatesRequest,
)

__all__ = [
    # Account
    "MIN_PASSWORD_LENGTH",
    "PROFILE_FIELD_LIMITS",
    "AdminInviteRequest",
    "CaptchaRequest",
    "ChangePasswordRequest",
    "EmailRequest",
    "ProfileUpdate",
    "RoleUpdateRequest",
    "SignupOTPRequest",
    "VerifyOTPRequest",
    # Gallery
    "PUBLIC_GALLERY_STATUSES",
    "GalleryModerationRequest",
    "GalleryProjectCreate",
    "GalleryProjectUpdate",
    "GallerySort",
    "GalleryStatus",
    "Pagination",
    # Moderation
    "TIMED_ACTIONS",
    "ModerationActionRequest",
    "ModerationActionType",
    "ModerationStatus",
    "ReportCategory",
    "ReportCreate",
    "ReportPriority",
    "ReportStatus",
    "ReportUpdate",
    "UserFilter",
    # Newsletter
    "NewsletterSave",
    "NewsletterSchedule",
    "NewsletterSend",
    "NewsletterStatus",
    "RecipientResult",
    "ScheduleFrequency",
    "ScheduleSettings",
    "SendReport",
    "SubscribeRequest",
    "SubscriberImport",
    "SubscriberStatus",
    "UnsubscribeRequest",
    # Judging
    "DEFAULT_CRITERIA",
    "CriterionRating",
    "ProposeWinnersRequest",
    "RankedSubmission",
    "RateSubmissionRequest",
    "TokenScoreRequest",
    "WinnerProposal",
    # Certificate
    "CertificateRecipient",
    "CertificateStatus",
    "CertificateType",
    "GenerateCertificatesRequest",
]
