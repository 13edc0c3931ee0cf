#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Worker Launcher
# =============================================================================
# Runs one Celery worker with beat embedded, consuming both the default and
# email queues. Extra arguments are forwarded to Celery:
#
#   python scripts/start_worker.py
#   python scripts/start_worker.py --concurrency=4
#
# Needs REDIS_URL reachable and the Supabase/Resend settings in .env.
# Run a single beat-enabled worker per deployment; more workers should be
# started with `celery -A workers.celery_app worker -Q email` and no --beat.
# =============================================================================

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app

WORKER_ARGS = [
    "worker",
    "--beat",
    "--loglevel=info",
    "--concurrency=2",
    "--queues=default,email",
]


def main(extra_args: list[str]) -> None:
    print("Maximally worker: queues default,email with beat scheduler")
    print("Ctrl+C to stop")
    celery_app.worker_main(WORKER_ARGS + extra_args)


if __name__ == "__main__":
    main(sys.argv[1:])
