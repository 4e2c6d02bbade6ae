"""
Feedback and contact endpoints
Ratings, bug reports from the in-app widget, testimonials and the contact form
"""

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional
from starlette.datastructures import UploadFile
import json
import logging
import re
import secrets
import string
import time

from smartdocs.database import get_db
from smartdocs.api.deps import get_optional_user, get_storage
from smartdocs.models.user import User
from smartdocs.models.feedback import Feedback
from smartdocs.models.contact_request import ContactRequest
from smartdocs.schemas.feedback import FeedbackCreate, FeedbackSubmitPayload, ContactCreate
from smartdocs.core.exceptions import http_400_bad_request
from smartdocs.config import settings
from smartdocs.middleware.rate_limiter import upload_rate_limit
from smartdocs.utils.time import isoformat

logger = logging.getLogger(__name__)

router = APIRouter(tags=["feedback"])

FEEDBACK_CATEGORIES = ("feature", "bug", "improvement", "praise", "complaint")
CONTACT_TYPES = ("general", "support", "sales", "technical", "billing")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SUBMISSION_ID_ALPHABET = string.ascii_lowercase + string.digits

THANK_YOU_MESSAGE = "Thank you for your feedback! We appreciate your input."


def new_submission_id() -> str:
    """feedback_<epoch ms>_<9 random base36 chars>"""
    suffix = "".join(secrets.choice(SUBMISSION_ID_ALPHABET) for _ in range(9))
    return f"feedback_{int(time.time() * 1000)}_{suffix}"


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


@router.post("/feedback", status_code=status.HTTP_201_CREATED)
async def create_feedback(
    payload: FeedbackCreate,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Submit a rating with feedback

    Works signed in or anonymously; anonymous feedback needs an email so
    the team can follow up.

    Raises:
        HTTPException: 400 for missing fields, a rating outside 1..5 or an unknown category
    """
    if not payload.title or not payload.message or payload.rating is None or not payload.category:
        raise http_400_bad_request("Title, message, rating and category are required")
    if not 1 <= payload.rating <= 5:
        raise http_400_bad_request("Rating must be between 1 and 5")
    if payload.category not in FEEDBACK_CATEGORIES:
        raise http_400_bad_request("Invalid category")
    if current_user is None and not payload.email:
        raise http_400_bad_request("Email is required for anonymous feedback")

    feedback = Feedback(
        user_id=current_user.id if current_user else None,
        title=payload.title.strip(),
        message=payload.message.strip(),
        rating=payload.rating,
        category=payload.category,
        email=payload.email or (current_user.email if current_user else None),
        name=payload.name or (current_user.name if current_user else None),
        status="pending",
        is_public=False,
    )
    db.add(feedback)
    db.commit()
    db.refresh(feedback)

    return {"success": True, "message": THANK_YOU_MESSAGE, "feedback_id": feedback.id}


@router.get("/feedback")
async def list_feedback(
    public: bool = False,
    limit: int = 10,
    offset: int = 0,
    db: Session = Depends(get_db)
):
    """
    Feedback entries, newest first

    With public=true only approved entries marked public are returned,
    for use as testimonials.
    """
    limit = min(max(limit, 1), 100)
    query = db.query(Feedback)
    if public:
        query = query.filter(Feedback.is_public.is_(True), Feedback.status == "approved")

    total = query.count()
    entries = query.order_by(Feedback.created_at.desc()).offset(max(offset, 0)).limit(limit).all()

    return {
        "feedback": [
            {
                "id": f.id,
                "title": f.title,
                "message": f.message,
                "rating": f.rating,
                "category": f.category,
                "status": f.status,
                "user_name": (f.user.name if f.user and f.user.name else None) or f.name or "Anonymous",
                "created_at": isoformat(f.created_at),
            }
            for f in entries
        ],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/feedback/submit", status_code=status.HTTP_201_CREATED)
@upload_rate_limit()
async def submit_feedback(
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Feedback widget submission (multipart)

    Form fields:
        feedback: JSON with type, message, email, url, user_agent, console_logs
        screenshot: optional image
        attachment_*: any number of extra files

    Files are stored under feedback/<submission id>/ in the configured
    storage backend.

    Raises:
        HTTPException: 400 when the JSON part is missing or invalid, the
            message is empty or a file is too large
    """
    form = await request.form()
    raw = form.get("feedback")
    if not raw or not isinstance(raw, str):
        raise http_400_bad_request("Feedback data is required")

    try:
        payload = FeedbackSubmitPayload(**json.loads(raw))
    except (ValueError, TypeError, ValidationError):
        raise http_400_bad_request("Invalid feedback data")
    if not payload.message.strip():
        raise http_400_bad_request("Message is required")

    submission_id = new_submission_id()
    prefix = f"feedback/{submission_id}"
    storage = None
    screenshot = None
    attachments = []

    for field, value in form.multi_items():
        if not isinstance(value, UploadFile) or not value.filename:
            continue
        if field != "screenshot" and not field.startswith("attachment_"):
            continue

        data = await value.read()
        if len(data) > settings.MAX_UPLOAD_SIZE:
            raise http_400_bad_request(f"File {value.filename} is too large")

        storage = storage or get_storage()
        path = storage.save(data, prefix, value.filename, value.content_type)
        stored = {"filename": value.filename, "path": path, "size": len(data), "content_type": value.content_type}
        if field == "screenshot":
            screenshot = stored
        else:
            attachments.append(stored)

    feedback = Feedback(
        user_id=current_user.id if current_user else None,
        title=f"{payload.type.capitalize()} report",
        message=payload.message.strip(),
        rating=0,
        category=payload.type if payload.type in FEEDBACK_CATEGORIES else None,
        type=payload.type,
        email=payload.email or (current_user.email if current_user else None),
        name=current_user.name if current_user else None,
        status="pending",
        is_public=False,
        metadata_={
            "submission_id": submission_id,
            "url": payload.url,
            "user_agent": payload.user_agent,
            "console_logs": payload.console_logs,
            "screenshot": screenshot,
            "attachments": attachments,
            "ip_address": client_ip(request),
        },
    )
    db.add(feedback)
    db.commit()
    db.refresh(feedback)

    logger.info(f"Feedback {submission_id} stored with {len(attachments)} attachment(s)")
    return {
        "success": True,
        "message": THANK_YOU_MESSAGE,
        "feedback_id": submission_id,
        "id": feedback.id,
    }


@router.post("/contact", status_code=status.HTTP_201_CREATED)
async def create_contact_request(
    payload: ContactCreate,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Contact form

    Raises:
        HTTPException: 400 for missing fields or an invalid email
    """
    if not all([payload.name, payload.email, payload.subject, payload.message]):
        raise http_400_bad_request("Name, email, subject and message are required")
    email = payload.email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise http_400_bad_request("Invalid email address")

    contact = ContactRequest(
        user_id=current_user.id if current_user else None,
        name=payload.name.strip(),
        email=email,
        subject=payload.subject.strip(),
        message=payload.message.strip(),
        type=payload.type if payload.type in CONTACT_TYPES else "general",
        status="open",
        priority="medium",
    )
    db.add(contact)
    db.commit()
    db.refresh(contact)

    return {
        "success": True,
        "message": "Thank you for contacting us. We will get back to you soon.",
        "id": contact.id,
    }
