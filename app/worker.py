"""Celery worker configuration.

Background processing for housekeeping that must not run on a request:
- Expiring meal validations from previous conference days
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "summit_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.conference_timezone,
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Result backend settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    # Beat schedule for periodic tasks (crontab in conference time)
    beat_schedule={
        # Close out yesterday's meal validations just after midnight
        "expire-meal-validations": {
            "task": "app.tasks.expire_meal_validations",
            "schedule": crontab(hour=0, minute=5),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
