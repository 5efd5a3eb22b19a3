"""Celery worker configuration.

Periodic jobs:
- Nightly rebuild of every supplier view
- Cleanup of manual blocks on past dates
- Report of payments waiting for reconciliation
"""

from celery import Celery
from celery.schedules import crontab

from boda_backend.config import settings

# Create Celery app
celery_app = Celery(
    "boda_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["boda_backend.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Africa/Luanda",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=600,
    task_soft_time_limit=540,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Result backend settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Rebuild all supplier views nightly at 2 AM
        "backfill-supplier-views": {
            "task": "boda_backend.tasks.backfill_supplier_views",
            "schedule": crontab(hour=2, minute=0),
        },
        # Drop manual blocks on past dates daily at 3 AM
        "cleanup-past-blocks": {
            "task": "boda_backend.tasks.cleanup_past_manual_blocks",
            "schedule": crontab(hour=3, minute=0),
        },
        # Report late payments every morning at 8 AM
        "report-unreconciled-payments": {
            "task": "boda_backend.tasks.report_unreconciled_payments",
            "schedule": crontab(hour=8, minute=0),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
