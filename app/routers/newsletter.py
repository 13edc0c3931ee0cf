# =============================================================================
# app/routers/newsletter.py - Public Newsletter Endpoints
# =============================================================================

from fastapi import APIRouter, Depends

from app.dependencies import rate_limit_by_ip
from core.models.newsletter import SubscribeRequest, UnsubscribeRequest
from core.services.newsletter_service import NewsletterService

router = APIRouter()


@router.post("/subscribe", dependencies=[Depends(rate_limit_by_ip("newsletter_subscribe"))])
async def subscribe(body: SubscribeRequest):
    """Subscribe an email; previously unsubscribed addresses are reactivated."""
    result = NewsletterService.subscribe(body.email)
    message = "Welcome back! You've been resubscribed." if result["reactivated"] else "Successfully subscribed!"
    return {"success": True, "message": message, "data": {"email": result["email"]}}


@router.post("/unsubscribe")
async def unsubscribe(body: UnsubscribeRequest):
    """Unsubscribe by email, optionally with the signed token from the email link."""
    NewsletterService.unsubscribe(body.email, token=body.token)
    return {"success": True, "message": "You have been unsubscribed"}
