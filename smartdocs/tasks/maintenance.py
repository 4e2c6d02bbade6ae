"""
Maintenance Tasks
Periodic cleanup of single-use email tokens
"""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from smartdocs.worker import celery_app
from smartdocs.database import SessionLocal
from smartdocs.models.email_token import EmailToken
from smartdocs.utils.time import utcnow

logger = logging.getLogger(__name__)


def cleanup_expired_email_tokens(db: Session) -> int:
    """Delete used or expired email tokens, returning how many were removed"""
    deleted = db.query(EmailToken).filter(
        or_(
            EmailToken.used.is_(True),
            EmailToken.expires_at < utcnow()
        )
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


@celery_app.task(name="cleanup_expired_email_tokens")
def cleanup_expired_email_tokens_task():
    """Runs hourly from Celery Beat"""
    db: Session = SessionLocal()

    try:
        deleted = cleanup_expired_email_tokens(db)
        logger.info(f"[Cleanup Task] Removed {deleted} used or expired email tokens")
        return {"status": "success", "deleted_count": deleted}

    except Exception as e:
        logger.error(f"[Cleanup Task] Failed to clean up email tokens: {e}", exc_info=True)
        db.rollback()
        return {"status": "error", "error": str(e)}

    finally:
        db.close()
