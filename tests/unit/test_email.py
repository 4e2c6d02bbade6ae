"""
Unit tests for email rendering, delivery, queueing and token cleanup

SMTP and the Celery broker are always mocked.
"""

import smtplib
import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from kombu.exceptions import OperationalError

from smartdocs.config import settings
from smartdocs.models.email_token import EmailToken
from smartdocs.services.email_service import (
    EMAIL_VERIFICATION,
    MAILJET_SMTP_HOST,
    PASSWORD_RESET,
    EmailService,
    create_email_token,
    reset_url,
    verification_url,
)
from smartdocs.tasks.email_tasks import queue_email
from smartdocs.tasks.maintenance import cleanup_expired_email_tokens
from smartdocs.utils.time import ensure_utc, utcnow


@pytest.fixture
def smtp():
    with patch("smartdocs.services.email_service.smtplib.SMTP") as mock_smtp:
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server
        yield mock_smtp, server


@pytest.mark.unit
class TestEmailLinks:

    def test_verification_url(self):
        assert verification_url("abc", "ar") == f"{settings.APP_URL}/ar/auth/verify-email?token=abc"

    def test_reset_url_defaults_unknown_locale_to_english(self):
        assert reset_url("abc", "fr") == f"{settings.APP_URL}/en/auth/reset-password/abc"

    def test_token_lifetimes(self, db_session, test_user):
        verification = create_email_token(db_session, test_user, EMAIL_VERIFICATION)
        reset = create_email_token(db_session, test_user, PASSWORD_RESET)

        assert len(verification.token) == 64
        assert verification.token != reset.token
        assert verification.expires_at - utcnow() > timedelta(hours=23)
        assert reset.expires_at - utcnow() <= timedelta(hours=1)


@pytest.mark.unit
class TestEmailService:

    def test_send_verification_english(self, smtp):
        mock_smtp, server = smtp

        assert EmailService().send_verification_email("sara@example.com", "Sara", "tok123") is True

        message = server.send_message.call_args.args[0]
        assert message["Subject"] == "Verify your SmartDocs account"
        html = message.get_body(preferencelist=("html",)).get_content()
        assert 'dir="ltr"' in html
        assert "Hi Sara," in html
        assert "/en/auth/verify-email?token=tok123" in html
        mock_smtp.assert_called_once_with(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)

    def test_arabic_reset_is_right_to_left(self, smtp):
        _, server = smtp

        EmailService().send_password_reset_email("omar@example.com", "عمر", "tok", locale="ar")

        message = server.send_message.call_args.args[0]
        html = message.get_body(preferencelist=("html",)).get_content()
        assert 'dir="rtl"' in html
        assert "/ar/auth/reset-password/tok" in html

    def test_name_is_escaped(self, smtp):
        _, server = smtp

        EmailService().send_verification_email("x@example.com", "<b>Eve</b>", "tok")

        html = server.send_message.call_args.args[0].get_body(preferencelist=("html",)).get_content()
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html

    def test_mailjet_relay_when_keys_present(self, smtp):
        mock_smtp, server = smtp

        with patch.object(settings, "MAILJET_API_KEY", "mj_key"), \
                patch.object(settings, "MAILJET_SECRET_KEY", "mj_secret"):
            EmailService().send_verification_email("sara@example.com", "Sara", "tok")

        mock_smtp.assert_called_once_with(MAILJET_SMTP_HOST, 2525, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mj_key", "mj_secret")

    def test_smtp_failure_returns_false(self, smtp):
        _, server = smtp
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

        assert EmailService().send_verification_email("sara@example.com", "Sara", "tok") is False


@pytest.mark.unit
class TestEmailQueue:

    def test_queue_email(self):
        task = MagicMock()

        assert queue_email(task, "a@example.com", "A", "tok", "ar") is True
        task.delay.assert_called_once_with("a@example.com", "A", "tok", "ar")

    def test_broker_outage_is_reported(self):
        task = MagicMock()
        task.delay.side_effect = OperationalError("redis down")

        assert queue_email(task, "a@example.com", "A", "tok") is False


@pytest.mark.unit
class TestTokenCleanup:

    def test_removes_used_and_expired_tokens(self, db_session, test_user):
        fresh = create_email_token(db_session, test_user, EMAIL_VERIFICATION)
        used = create_email_token(db_session, test_user, EMAIL_VERIFICATION)
        used.used = True
        expired = create_email_token(db_session, test_user, PASSWORD_RESET)
        expired.expires_at = utcnow() - timedelta(minutes=5)
        db_session.commit()

        assert cleanup_expired_email_tokens(db_session) == 2

        remaining = db_session.query(EmailToken).all()
        assert [t.token for t in remaining] == [fresh.token]
        assert ensure_utc(remaining[0].expires_at) > utcnow()
