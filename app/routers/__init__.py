# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - account.py: Notifications, captcha, profile, data export, admin account ops
# - gallery.py: Project gallery and gallery moderation
# - moderation.py: User reports and admin moderation actions
# - newsletter.py: Public subscribe / unsubscribe
# - admin_newsletter.py: Newsletter authoring, scheduling and sending
# - judging.py: Rubric judging, rankings, winners and scoring links
# - certificates.py: Certificate issuing and verification
# - cron.py: Triggers for scheduled jobs
# - tasks.py: Background task status endpoints
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import account
from . import gallery
from . import moderation
from . import newsletter
from . import admin_newsletter
from . import judging
from . import certificates
from . import cron
from . import tasks

__all__ = [
    "health",
    "account",
    "gallery",
    "moderation",
    "newsletter",
    "admin_newsletter",
    "judging",
    "certificates",
    "cron",
    "tasks",
]
