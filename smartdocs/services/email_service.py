"""
Email Service - verification and password reset emails

Mail goes out over SMTP: through the Mailjet relay when Mailjet keys are
configured, otherwise through the generic SMTP settings. Bodies are
rendered from templates/email with Jinja2, in English or Arabic.
"""

import logging
import smtplib
from datetime import timedelta
from email.message import EmailMessage
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.orm import Session

from smartdocs.config import settings
from smartdocs.core.security import generate_email_token
from smartdocs.models.email_token import EmailToken
from smartdocs.models.user import User
from smartdocs.utils.sanitize import mask_email
from smartdocs.utils.time import utcnow

logger = logging.getLogger(__name__)

MAILJET_SMTP_HOST = "in-v3.mailjet.com"
MAILJET_SMTP_PORT = 2525

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"

TOKEN_LIFETIMES = {
    EMAIL_VERIFICATION: timedelta(hours=24),
    PASSWORD_RESET: timedelta(hours=1),
}

VERIFICATION_GRADIENT = "linear-gradient(135deg, #667eea 0%, #764ba2 100%)"
RESET_GRADIENT = "linear-gradient(135deg, #f093fb 0%, #f5576c 100%)"

VERIFICATION_TEXT = {
    "en": {
        "subject": "Verify your SmartDocs account",
        "heading": "Welcome to SmartDocs!",
        "greeting": "Hi {name},",
        "message": "Thank you for signing up! Please verify your email address to complete your registration.",
        "button_text": "Verify Email Address",
        "valid_for": "This link is valid for 24 hours.",
        "footer": "If you didn't create this account, please ignore this email.",
    },
    "ar": {
        "subject": "تأكيد حساب SmartDocs",
        "heading": "مرحباً بك في SmartDocs!",
        "greeting": "مرحباً {name}،",
        "message": "شكراً لك على التسجيل! يرجى تأكيد عنوان بريدك الإلكتروني لإكمال التسجيل.",
        "button_text": "تأكيد البريد الإلكتروني",
        "valid_for": "هذا الرابط صالح لمدة 24 ساعة.",
        "footer": "إذا لم تقم بإنشاء هذا الحساب، يرجى تجاهل هذا البريد الإلكتروني.",
    },
}

RESET_TEXT = {
    "en": {
        "subject": "Reset your SmartDocs password",
        "heading": "Password Reset Request",
        "greeting": "Hi {name},",
        "message": "We received a request to reset your password. Click the button below to create a new password.",
        "button_text": "Reset Password",
        "valid_for": "This link is valid for 1 hour.",
        "footer": "If you didn't request this, please ignore this email. Your password won't be changed.",
    },
    "ar": {
        "subject": "إعادة تعيين كلمة مرور SmartDocs",
        "heading": "طلب إعادة تعيين كلمة المرور",
        "greeting": "مرحباً {name}،",
        "message": "لقد تلقينا طلباً لإعادة تعيين كلمة المرور الخاصة بك. انقر على الزر أدناه لإنشاء كلمة مرور جديدة.",
        "button_text": "إعادة تعيين كلمة المرور",
        "valid_for": "هذا الرابط صالح لمدة ساعة واحدة.",
        "footer": "إذا لم تطلب هذا، يرجى تجاهل هذا البريد الإلكتروني. لن يتم تغيير كلمة المرور الخاصة بك.",
    },
}


def normalize_locale(locale: Optional[str]) -> str:
    return "ar" if locale == "ar" else "en"


def verification_url(token: str, locale: str = "en") -> str:
    return f"{settings.APP_URL}/{normalize_locale(locale)}/auth/verify-email?token={token}"


def reset_url(token: str, locale: str = "en") -> str:
    return f"{settings.APP_URL}/{normalize_locale(locale)}/auth/reset-password/{token}"


def create_email_token(db: Session, user: User, token_type: str) -> EmailToken:
    """Store a fresh single-use token for the user (not committed)"""
    email_token = EmailToken(
        user_id=user.id,
        email=user.email,
        token=generate_email_token(),
        type=token_type,
        expires_at=utcnow() + TOKEN_LIFETIMES[token_type],
        used=False,
    )
    db.add(email_token)
    return email_token


class EmailService:
    """
    Render and send transactional emails

    Every send returns a bool and logs failures; nothing is raised into the
    caller's request path.
    """

    def __init__(self):
        templates_dir = Path(__file__).parent.parent / "templates" / "email"
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _smtp_settings(self) -> Dict[str, object]:
        if settings.MAILJET_API_KEY and settings.MAILJET_SECRET_KEY:
            return {
                "host": MAILJET_SMTP_HOST,
                "port": MAILJET_SMTP_PORT,
                "user": settings.MAILJET_API_KEY,
                "password": settings.MAILJET_SECRET_KEY,
                "starttls": True,
            }
        return {
            "host": settings.SMTP_HOST,
            "port": settings.SMTP_PORT,
            "user": settings.SMTP_USER,
            "password": settings.SMTP_PASSWORD,
            "starttls": settings.SMTP_USE_TLS,
        }

    def render(self, text: Dict[str, str], name: str, action_url: str, locale: str, gradient: str) -> str:
        template = self.env.get_template("action.html")
        return template.render(
            locale=locale,
            direction="rtl" if locale == "ar" else "ltr",
            subject=text["subject"],
            heading=text["heading"],
            paragraphs=[text["greeting"].format(name=name), text["message"]],
            action_url=action_url,
            button_text=text["button_text"],
            valid_for=text["valid_for"],
            footer=text["footer"],
            gradient=gradient,
        )

    def send(self, to_email: str, subject: str, html: str) -> bool:
        message = EmailMessage()
        message["From"] = settings.FROM_EMAIL
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content("Please view this email in an HTML capable client.")
        message.add_alternative(html, subtype="html")

        smtp = self._smtp_settings()
        try:
            with smtplib.SMTP(smtp["host"], smtp["port"], timeout=30) as server:
                if smtp["starttls"]:
                    server.starttls()
                if smtp["user"]:
                    server.login(smtp["user"], smtp["password"])
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {mask_email(to_email)}: {e}")
            return False

        logger.info(f"Sent '{subject}' to {mask_email(to_email)}")
        return True

    def send_verification_email(self, email: str, name: Optional[str], token: str, locale: str = "en") -> bool:
        locale = normalize_locale(locale)
        text = VERIFICATION_TEXT[locale]
        html = self.render(text, name or email, verification_url(token, locale), locale, VERIFICATION_GRADIENT)
        return self.send(email, text["subject"], html)

    def send_password_reset_email(self, email: str, name: Optional[str], token: str, locale: str = "en") -> bool:
        locale = normalize_locale(locale)
        text = RESET_TEXT[locale]
        html = self.render(text, name or email, reset_url(token, locale), locale, RESET_GRADIENT)
        return self.send(email, text["subject"], html)
