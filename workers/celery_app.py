# =============================================================================
# workers/celery_app.py - Celery Application
# =============================================================================
# One Celery app serves both the API (which enqueues newsletter sends) and the
# worker process (which also runs beat for scheduled newsletters and gallery
# auto-publishing).
#
#   celery -A workers.celery_app worker --beat --loglevel=info -Q default,email
#   celery -A workers.celery_app inspect active
# =============================================================================

import logging
import os
import sys

# Worker processes are started from the repo root without an install
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, worker_ready
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_BROKER_URL = "redis://localhost:6379/0"


def _redacted(url: str) -> str:
    """Drop credentials from a broker URL before logging it."""
    return url.split("@")[-1] if "@" in url else url


def create_celery_app() -> Celery:
    """
    Build the Celery app from REDIS_URL.

    Redis serves as broker and result backend so GET /api/tasks/{id} can
    report on sends queued by the API.
    """
    broker_url = os.getenv("REDIS_URL", DEFAULT_BROKER_URL)

    app = Celery(
        "maximally_worker",
        broker=broker_url,
        backend=broker_url,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")

    logger.info(f"Celery configured against {_redacted(broker_url)}")
    return app


celery_app = create_celery_app()


# -----------------------------------------------------------------------------
# Task lifecycle logging
# -----------------------------------------------------------------------------

@worker_ready.connect
def on_worker_ready(sender=None, **extra):
    queues = sorted(q.name for q in celery_app.amqp.queues.values())
    logger.info(f"Worker ready, consuming: {', '.join(queues)}")


@task_prerun.connect
def on_task_start(sender=None, task_id=None, task=None, **extra):
    logger.info(f"{task.name} [{task_id}] started")


@task_postrun.connect
def on_task_done(sender=None, task_id=None, task=None, state=None, **extra):
    logger.info(f"{task.name} [{task_id}] finished with {state}")


@task_failure.connect
def on_task_failure(sender=None, task_id=None, exception=None, **extra):
    logger.error(f"{sender.name} [{task_id}] failed: {exception}")


if __name__ == "__main__":
    celery_app.start()
