# =============================================================================
# app/routers/cron.py - Scheduled Job Triggers
# =============================================================================
# HTTP entry points for external schedulers. The same jobs run on Celery
# beat (see workers/config.py); these exist for hosts without a worker.
# Guarded by CRON_SECRET when it is set.
# =============================================================================

from fastapi import APIRouter, Depends

from app.dependencies import require_cron_secret
from core.services.gallery_service import GalleryService
from core.services.newsletter_service import NewsletterService

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.post("/auto-publish-galleries")
async def auto_publish_galleries():
    """Publish galleries of ended hackathons and send judges their scoring links."""
    results = GalleryService.auto_publish_galleries()
    return {
        "success": True,
        "message": f"Processed {len(results)} hackathon(s)",
        "data": results,
    }


@router.post("/send-newsletters")
async def send_due_newsletters():
    """Send newsletters whose scheduled time has passed."""
    reports = NewsletterService.send_due()
    return {
        "success": True,
        "message": f"Sent {len(reports)} newsletter(s)",
        "data": [r.to_dict() for r in reports],
    }
