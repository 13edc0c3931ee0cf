# =============================================================================
# app/routers/tasks.py - Task Status Endpoints
# =============================================================================
# Status of background jobs queued on the Celery worker (newsletter sends).
# Admin only.
# =============================================================================

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from app.auth import require_admin
from app.exceptions import PlatformException

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


# =============================================================================
# Response Models
# =============================================================================

class TaskStatusResponse(BaseModel):
    """Response model for task status."""
    success: bool = True
    task_id: str
    status: str
    message: str | None = None
    result: dict | None = None
    error: str | None = None


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{task_id}", response_model=TaskStatusResponse)
async def get_task_status(
    task_id: Annotated[str, Path(description="Celery task ID")]
):
    """
    Get the status of a background task.

    - PENDING: waiting in queue (or unknown id)
    - STARTED: picked up by a worker
    - RETRY: failed and scheduled for retry
    - SUCCESS: includes the task result (send totals)
    - FAILURE: includes the error
    """
    from workers.celery_app import celery_app

    try:
        result = celery_app.AsyncResult(task_id)
        state = result.status
    except Exception as e:
        logger.error(f"Error getting task status: {e}")
        raise PlatformException(
            message="Task backend unavailable",
            code="TASK_BACKEND_UNAVAILABLE",
            status_code=503,
            suggestion="Check that Redis is running",
        )

    response = TaskStatusResponse(task_id=task_id, status=state)

    if state == "SUCCESS":
        response.result = result.result if isinstance(result.result, dict) else {"value": result.result}
        response.message = "Complete"
    elif state == "FAILURE":
        response.error = str(result.result) if result.result else "Unknown error"
        response.message = "Failed"
    elif state == "RETRY":
        response.message = "Retrying..."
    elif state == "PENDING":
        response.message = "Waiting in queue..."
    elif state == "STARTED":
        response.message = "Sending..."

    return response
