"""
Celery worker configuration
Task queue for transactional email and periodic maintenance
"""

from celery import Celery
from smartdocs.config import settings

celery_app = Celery(
    "smartdocs",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "smartdocs.tasks.email_tasks",
        "smartdocs.tasks.maintenance",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,
    task_soft_time_limit=240,
    worker_max_tasks_per_child=1000,
    worker_prefetch_multiplier=4,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
)

# Celery Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    'cleanup-expired-email-tokens': {
        'task': 'cleanup_expired_email_tokens',
        'schedule': 3600.0,  # Hourly
        'options': {
            'expires': 1800.0,
        }
    },
}
