# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Tasks:
# - send_newsletter: Send one newsletter to every active subscriber
# - send_due_newsletters: Send whatever is scheduled and due (beat, 5 min)
# - auto_publish_galleries: Publish galleries of ended hackathons (beat, 10 min)
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from core.services.gallery_service import GalleryService
from core.services.newsletter_service import NewsletterService

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="workers.tasks.send_newsletter")
def send_newsletter(self, newsletter_id: int) -> dict[str, Any]:
    """
    Send a saved newsletter in the background.

    Per-recipient failures are recorded in the send log and do not fail
    the task; only an error that stops the whole send does.

    Returns:
        The send totals (recipients, sent, failed)
    """
    logger.info(f"Sending newsletter {newsletter_id} [{self.request.id}]")
    report = NewsletterService.send_newsletter(newsletter_id)
    return report.to_dict()


@shared_task(name="workers.tasks.send_due_newsletters")
def send_due_newsletters() -> dict[str, Any]:
    reports = NewsletterService.send_due()
    if reports:
        logger.info(f"Sent {len(reports)} scheduled newsletter(s)")
    return {
        "sent": len(reports),
        "newsletters": [r.to_dict() for r in reports],
    }


@shared_task(name="workers.tasks.auto_publish_galleries")
def auto_publish_galleries() -> dict[str, Any]:
    results = GalleryService.auto_publish_galleries()
    if results:
        logger.info(f"Auto-published {len(results)} gallery(ies)")
    return {
        "processed": len(results),
        "results": results,
    }
