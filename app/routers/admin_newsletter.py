# =============================================================================
# app/routers/admin_newsletter.py - Newsletter Administration
# =============================================================================
# Authoring, scheduling and sending newsletters, and managing subscribers.
# Every endpoint requires profiles.role == 'admin'.
#
# Sending runs inline by default and returns the send report. With
# ?background=true it is queued on the Celery worker and the task id is
# returned (poll /api/tasks/{task_id}).
# =============================================================================

import io
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile
from fastapi.responses import Response

from app.auth import AuthUser, require_admin
from app.config import settings
from app.exceptions import FileTooLargeError
from core.models.account import EmailRequest
from core.models.newsletter import (
    NewsletterSave,
    NewsletterSchedule,
    NewsletterSend,
    ScheduleSettings,
    SubscriberImport,
    SubscriberStatus,
)
from core.services.newsletter_service import NewsletterService, read_subscriber_csv
from lib import email_templates

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

NewsletterId = Annotated[int, Path(ge=1, description="Newsletter id")]


# =============================================================================
# Subscribers
# =============================================================================

@router.get("/subscribers")
async def list_subscribers(
    status: Optional[SubscriberStatus] = None,
    search: Annotated[Optional[str], Query(max_length=254)] = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    subscribers, total = NewsletterService.list_subscribers(status=status, search=search, limit=limit, offset=offset)
    return {"success": True, "data": subscribers, "total": total}


@router.get("/subscribers/export")
async def export_subscribers():
    """All subscribers as a CSV download."""
    csv_text = NewsletterService.export_subscribers_csv()
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="newsletter_subscribers.csv"'},
    )


@router.post("/subscribers/import")
async def import_subscribers(body: SubscriberImport):
    """Bulk-add a JSON list of addresses."""
    result = NewsletterService.import_subscribers(body.emails)
    return {"success": True, "message": f"Imported {result['imported']} subscribers", "data": result}


@router.post("/subscribers/import-csv")
async def import_subscribers_csv(
    file: Annotated[UploadFile, File(description="CSV with an 'email' column (or emails in the first column)")],
):
    """Bulk-add addresses from an uploaded CSV."""
    content = await file.read()
    if len(content) > settings.max_import_size_bytes:
        raise FileTooLargeError(len(content) / (1024 * 1024), settings.MAX_IMPORT_SIZE_MB)

    emails = read_subscriber_csv(io.BytesIO(content))
    logger.info(f"Subscriber CSV {file.filename}: {len(emails)} addresses")
    result = NewsletterService.import_subscribers(emails)
    return {"success": True, "message": f"Imported {result['imported']} subscribers", "data": result}


@router.post("/subscribers/unsubscribe")
async def admin_unsubscribe(body: EmailRequest):
    NewsletterService.admin_unsubscribe(body.email)
    return {"success": True, "message": f"{body.email} unsubscribed"}


@router.get("/stats")
async def newsletter_stats():
    """Totals and a 30-day signup chart."""
    return {"success": True, "data": NewsletterService.stats()}


# =============================================================================
# Recurring Schedule
# =============================================================================

@router.get("/schedule-settings")
async def get_schedule_settings():
    return {"success": True, "data": NewsletterService.get_schedule_settings()}


@router.put("/schedule-settings")
async def save_schedule_settings(body: ScheduleSettings, admin: AuthUser = Depends(require_admin)):
    """Save the recurring schedule; the next slot is computed on save."""
    saved = NewsletterService.save_schedule_settings(body, str(admin.id))
    return {"success": True, "message": "Schedule saved", "data": saved}


# =============================================================================
# Newsletters
# =============================================================================

@router.get("")
async def list_newsletters():
    return {"success": True, "data": NewsletterService.list_newsletters()}


@router.post("/save")
async def save_newsletter(body: NewsletterSave, admin: AuthUser = Depends(require_admin)):
    """Create (no id) or update a draft. Markup mail clients handle badly comes back as warnings."""
    saved = NewsletterService.save(body, str(admin.id))
    return {
        "success": True,
        "message": "Newsletter saved",
        "data": saved,
        "warnings": email_templates.validate_email_html(body.html_content),
    }


@router.post("/schedule")
async def schedule_newsletter(body: NewsletterSchedule, admin: AuthUser = Depends(require_admin)):
    saved = NewsletterService.schedule(body, str(admin.id))
    return {"success": True, "message": f"Newsletter scheduled for {saved.get('scheduled_for')}", "data": saved}


@router.post("/send")
async def send_newsletter(
    body: NewsletterSend,
    background: bool = False,
    admin: AuthUser = Depends(require_admin),
):
    """
    Send to all active subscribers now.

    Returns the totals, or the queued task id with ?background=true.
    """
    if background:
        from workers.tasks import send_newsletter as send_newsletter_task

        saved = NewsletterService.save(
            NewsletterSave(id=body.id, subject=body.subject, content=body.content, html_content=body.html_content),
            str(admin.id),
        )
        task = send_newsletter_task.delay(saved["id"])
        logger.info(f"Queued newsletter {saved['id']} as task {task.id}")
        return {
            "success": True,
            "message": "Newsletter queued for sending",
            "data": {"newsletter_id": saved["id"], "task_id": task.id},
        }

    report = NewsletterService.send_now(body, str(admin.id))
    return {
        "success": True,
        "message": f"Newsletter sent to {report.total_sent} subscribers",
        "data": report.to_dict(),
    }


@router.post("/send-pending")
async def send_pending_newsletters():
    """Send every newsletter whose scheduled time has passed."""
    reports = NewsletterService.send_due()
    return {
        "success": True,
        "message": f"Sent {len(reports)} pending newsletter(s)",
        "data": [r.to_dict() for r in reports],
    }


@router.get("/{newsletter_id}")
async def get_newsletter(newsletter_id: NewsletterId):
    return {"success": True, "data": NewsletterService.get_newsletter(newsletter_id)}


@router.delete("/{newsletter_id}")
async def delete_newsletter(newsletter_id: NewsletterId):
    NewsletterService.delete(newsletter_id)
    return {"success": True, "message": "Newsletter deleted"}
