"""
Email Tasks
Send verification and password reset emails outside the request cycle
"""

import logging

from kombu.exceptions import OperationalError

from smartdocs.worker import celery_app
from smartdocs.services.email_service import EmailService

logger = logging.getLogger(__name__)


@celery_app.task(name="send_verification_email", bind=True, max_retries=3, default_retry_delay=60)
def send_verification_email_task(self, email: str, name: str, token: str, locale: str = "en"):
    """Retries up to three times when the SMTP server refuses the message"""
    sent = EmailService().send_verification_email(email, name, token, locale)
    if not sent:
        logger.warning(f"Verification email not sent (attempt {self.request.retries + 1})")
        if self.request.retries < self.max_retries:
            raise self.retry()
    return {"sent": sent}


@celery_app.task(name="send_password_reset_email", bind=True, max_retries=3, default_retry_delay=60)
def send_password_reset_email_task(self, email: str, name: str, token: str, locale: str = "en"):
    sent = EmailService().send_password_reset_email(email, name, token, locale)
    if not sent:
        logger.warning(f"Password reset email not sent (attempt {self.request.retries + 1})")
        if self.request.retries < self.max_retries:
            raise self.retry()
    return {"sent": sent}


def queue_email(task, email: str, name: str, token: str, locale: str = "en") -> bool:
    """
    Hand an email task to the broker

    A broker outage is logged and reported as False so signup and password
    reset requests still succeed.
    """
    try:
        task.delay(email, name, token, locale)
        return True
    except OperationalError as e:
        logger.error(f"Could not queue {task.name}: {e}")
        return False
