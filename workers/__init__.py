# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# Celery configuration and task definitions for work that shouldn't block a
# request: newsletter fan-out and the periodic jobs driven by Celery beat.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (newsletter sends, gallery auto-publish)
# - config.py: Worker-specific settings and the beat schedule
#
# Usage:
#   # Start worker with the embedded beat scheduler
#   celery -A workers.celery_app worker --beat --loglevel=info
#
#   # Submit task (from API)
#   from workers.tasks import send_newsletter
#   result = send_newsletter.delay(newsletter_id)
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
