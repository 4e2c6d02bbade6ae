"""
Celery Tasks
Email delivery and maintenance jobs
"""

from smartdocs.tasks.email_tasks import send_verification_email_task, send_password_reset_email_task, queue_email
from smartdocs.tasks.maintenance import cleanup_expired_email_tokens_task

__all__ = [
    "queue_email",
    "send_verification_email_task",
    "send_password_reset_email_task",
    "cleanup_expired_email_tokens_task",
]
