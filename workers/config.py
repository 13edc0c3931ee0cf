# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Settings specific to Celery workers, including the beat schedule for the
# periodic jobs that app/routers/cron.py also exposes over HTTP.
# =============================================================================

from app.config import settings


class CeleryConfig:
    """
    Celery configuration settings.

    These are applied to the Celery app via app.config_from_object().
    """

    # -------------------------------------------------------------------------
    # Broker Settings (Redis)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Task Settings
    # -------------------------------------------------------------------------

    # Acknowledge tasks after they complete (not before)
    task_acks_late = True

    worker_prefetch_multiplier = 1

    # Task results expire after 1 day; admins poll send results later
    result_expires = 86400

    # A newsletter fan-out to a large list can run long
    task_time_limit = 1800
    task_soft_time_limit = 1700

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Task Routing
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "email": {
            "exchange": "email",
            "routing_key": "email",
        },
    }

    # Anything that sends mail goes to its own queue
    task_routes = {
        "workers.tasks.send_newsletter": {"queue": "email"},
        "workers.tasks.send_due_newsletters": {"queue": "email"},
        "workers.tasks.auto_publish_galleries": {"queue": "email"},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Retry Settings
    # -------------------------------------------------------------------------

    task_annotations = {
        "*": {
            "max_retries": 3,
            "default_retry_delay": 60,
        }
    }

    # -------------------------------------------------------------------------
    # Periodic Jobs (Celery beat)
    # -------------------------------------------------------------------------

    beat_schedule = {
        "send-due-newsletters": {
            "task": "workers.tasks.send_due_newsletters",
            "schedule": 300.0,
        },
        "auto-publish-galleries": {
            "task": "workers.tasks.auto_publish_galleries",
            "schedule": 600.0,
        },
    }

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    worker_send_task_events = True
    task_send_sent_event = True

    # -------------------------------------------------------------------------
    # Timezone
    # -------------------------------------------------------------------------

    timezone = "UTC"
    enable_utc = True
