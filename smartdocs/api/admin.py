"""
Admin API endpoints
Back office: users, subscriptions, analytics, audit log, feedback, contacts and settings
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import case, func
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

import stripe

from smartdocs.database import get_db
from smartdocs.api.deps import require_admin, require_permission
from smartdocs.models.user import User
from smartdocs.models.feedback import Feedback
from smartdocs.models.contact_request import ContactRequest
from smartdocs.models.system_setting import SystemSetting
from smartdocs.schemas.admin import (
    AdminUserCreate,
    AdminUserUpdate,
    UserActionRequest,
    SubscriptionUpdate,
    FeedbackStatusUpdate,
    ContactUpdate,
    SettingUpdate,
)
from smartdocs.core.exceptions import http_400_bad_request, http_404_not_found
from smartdocs.core.permissions import AdminPermission, is_super_admin
from smartdocs.middleware.rate_limiter import admin_rate_limit
from smartdocs.services import stripe_service
from smartdocs.services.admin_service import AdminService, log_admin_activity, sanitize_user_response
from smartdocs.services.email_service import PASSWORD_RESET, create_email_token
from smartdocs.tasks.email_tasks import queue_email, send_password_reset_email_task
from smartdocs.utils.time import isoformat, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

FEEDBACK_STATUSES = ("pending", "in_review", "approved", "rejected", "implemented")
CONTACT_STATUSES = ("open", "in_progress", "resolved", "closed")
CONTACT_PRIORITIES = ("high", "medium", "low")

SECRET_MASK = "****"

DEFAULT_SETTINGS = [
    {"key": "DEFAULT_LANGUAGE", "value": "en", "category": "general",
     "description": "Default interface and document language"},
    {"key": "MAX_DOCUMENT_SIZE_MB", "value": "10", "category": "limits",
     "description": "Largest accepted upload in megabytes"},
    {"key": "RATE_LIMIT_PER_MINUTE", "value": "60", "category": "limits",
     "description": "Default requests per minute per caller"},
    {"key": "SESSION_TIMEOUT_MINUTES", "value": "60", "category": "security",
     "description": "Idle time before a project session is closed"},
    {"key": "ENABLE_2FA", "value": "false", "category": "security",
     "description": "Require two-factor authentication for admins"},
    {"key": "ENABLE_ADVANCED_MODE", "value": "true", "category": "features",
     "description": "Allow advanced business planning conversations"},
]


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    return AdminService(db)


def serialize_feedback(feedback: Feedback) -> dict:
    return {
        "id": feedback.id,
        "user_id": feedback.user_id,
        "user_name": (feedback.user.name if feedback.user else None) or feedback.name or "Anonymous",
        "email": feedback.email,
        "title": feedback.title,
        "message": feedback.message,
        "rating": feedback.rating,
        "category": feedback.category,
        "type": feedback.type,
        "status": feedback.status,
        "is_public": feedback.is_public,
        "admin_response": feedback.admin_response,
        "approved_at": isoformat(feedback.approved_at),
        "metadata": dict(feedback.metadata_ or {}),
        "created_at": isoformat(feedback.created_at),
    }


def serialize_contact(contact: ContactRequest) -> dict:
    return {
        "id": contact.id,
        "user_id": contact.user_id,
        "name": contact.name,
        "email": contact.email,
        "subject": contact.subject,
        "message": contact.message,
        "type": contact.type,
        "status": contact.status,
        "priority": contact.priority,
        "admin_notes": contact.admin_notes,
        "created_at": isoformat(contact.created_at),
        "updated_at": isoformat(contact.updated_at),
    }


def serialize_setting(setting: SystemSetting) -> dict:
    return {
        "id": setting.id,
        "key": setting.key,
        "value": SECRET_MASK if setting.is_secret and setting.value else setting.value,
        "category": setting.category,
        "description": setting.description,
        "is_secret": setting.is_secret,
        "is_editable": setting.is_editable,
        "updated_at": isoformat(setting.updated_at),
    }


# ==============================================================================
# Users
# ==============================================================================


@router.get("/users")
@admin_rate_limit("user_management")
async def list_users(
    request: Request,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    role: Optional[str] = None,
    subscription_tier: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """
    Paginated user list

    Args:
        search: Matches name, email or company
        role: user, admin or super_admin
        subscription_tier: FREE, HOBBY, PROFESSIONAL, BUSINESS
        sort_by: created_at, name, email, tokens_used or subscription_tier

    Returns:
        dict: users (with documents_count and referrals_count) and pagination
    """
    return service.list_users(
        page=page,
        limit=limit,
        search=search,
        role=role,
        subscription_tier=subscription_tier,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post("/users", status_code=status.HTTP_201_CREATED)
@admin_rate_limit("user_management")
async def create_user(
    request: Request,
    payload: AdminUserCreate,
    admin: User = Depends(require_permission(AdminPermission.MANAGE_USERS)),
    service: AdminService = Depends(get_admin_service)
):
    """
    Create a user with a verified email

    Raises:
        HTTPException: 400 for missing fields, a short password, a taken
            email or an unknown role
    """
    user = service.create_user(admin, payload.model_dump())
    return {"success": True, "user": sanitize_user_response(user)}


@router.put("/users")
@admin_rate_limit("user_management")
async def update_user(
    request: Request,
    payload: AdminUserUpdate,
    admin: User = Depends(require_permission(AdminPermission.MANAGE_USERS)),
    service: AdminService = Depends(get_admin_service)
):
    """
    Update a user; the body carries the id plus the fields to change

    Raises:
        HTTPException: 404 for an unknown user, 400 "Email already in use"
    """
    changes = payload.model_dump(exclude_unset=True)
    user_id = changes.pop("id")
    user = service.update_user(admin, user_id, changes)
    return {"success": True, "user": sanitize_user_response(user)}


@router.get("/users/{user_id}")
async def get_user(
    user_id: UUID,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """User detail with recent documents and payments"""
    return service.get_user_detail(user_id)


@router.delete("/users/{user_id}")
@admin_rate_limit("actions")
async def delete_user(
    request: Request,
    user_id: UUID,
    admin: User = Depends(require_permission(AdminPermission.MANAGE_USERS)),
    service: AdminService = Depends(get_admin_service)
):
    """
    Delete a user and everything they own

    Logged as a critical action.

    Raises:
        HTTPException: 400 when deleting your own account, 404 for an unknown user
    """
    service.delete_user(admin, user_id)
    return {"success": True, "message": "User deleted successfully"}


@router.post("/users/{user_id}/actions")
@admin_rate_limit("actions")
async def user_action(
    request: Request,
    user_id: UUID,
    payload: UserActionRequest,
    admin: User = Depends(require_permission(AdminPermission.MANAGE_USERS)),
    service: AdminService = Depends(get_admin_service)
):
    """
    Apply a back office action

    Actions: suspend, activate, verify_email, reset_tokens, change_role,
    adjust_tokens, set_permissions.

    Raises:
        HTTPException: 400 for self-modification, an unknown action or
            invalid parameters; 404 for an unknown user
    """
    params = payload.model_dump(exclude={"action"}, exclude_none=True)
    return service.perform_action(admin, user_id, payload.action, params)


@router.post("/users/{user_id}/reset-password")
@admin_rate_limit("actions")
async def reset_user_password(
    request: Request,
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission(AdminPermission.MANAGE_USERS)),
    service: AdminService = Depends(get_admin_service)
):
    """Issue a password reset token and email it to the user"""
    user = service.get_user(user_id)

    email_token = create_email_token(db, user, PASSWORD_RESET)
    log_admin_activity(db, admin, "reset_password", user.id, {"email": user.email})
    db.commit()

    queued = queue_email(
        send_password_reset_email_task,
        user.email,
        user.name or "",
        email_token.token,
        user.language or "en",
    )
    return {
        "success": True,
        "message": "Password reset email sent" if queued else "Password reset token created; email could not be queued",
    }


# ==============================================================================
# Subscriptions
# ==============================================================================


@router.get("/subscriptions")
async def list_subscriptions(
    search: Optional[str] = None,
    tier: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.list_subscriptions(search=search, tier=tier, status=status, page=page, limit=limit)


@router.get("/subscriptions/stats")
async def subscription_stats(
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Counts by tier and status, active paid subscriptions and estimated MRR"""
    return service.subscription_stats()


@router.get("/subscriptions/{user_id}")
async def get_subscription(
    user_id: UUID,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """
    Subscription of a single user

    Includes the ten most recent payments and, when the user has a Stripe
    subscription, its live state from Stripe.
    """
    return service.get_subscription(user_id)


@router.put("/subscriptions/{user_id}")
async def update_subscription(
    user_id: UUID,
    payload: SubscriptionUpdate,
    admin: User = Depends(require_permission(AdminPermission.MANAGE_SUBSCRIPTIONS)),
    service: AdminService = Depends(get_admin_service)
):
    subscription = service.update_subscription(admin, user_id, payload.model_dump(exclude_unset=True))
    return {"success": True, "subscription": subscription}


# ==============================================================================
# Analytics, dashboard and audit log
# ==============================================================================


@router.get("/analytics")
@admin_rate_limit("analytics")
async def analytics(
    request: Request,
    period: str = "30d",
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """
    Usage analytics for 7d, 30d or 90d

    Raises:
        HTTPException: 400 for any other period
    """
    return service.analytics(period)


@router.get("/dashboard")
@admin_rate_limit("analytics")
async def dashboard(
    request: Request,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.dashboard()


@router.get("/activity")
@admin_rate_limit("activity")
async def activity_log(
    request: Request,
    page: int = 1,
    limit: int = 50,
    admin_id: Optional[UUID] = None,
    action: Optional[str] = None,
    target_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """
    Admin audit trail

    Regular admins see only their own entries; super admins see all of
    them plus a top-10 admin summary.
    """
    return service.activity_log(
        admin,
        is_super_admin(admin),
        page=page,
        limit=limit,
        admin_id=admin_id,
        action=action,
        target_id=target_id,
        start_date=start_date,
        end_date=end_date,
    )


# ==============================================================================
# Feedback management
# ==============================================================================


@router.get("/feedback")
async def list_feedback(
    status: Optional[str] = None,
    category: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.query(Feedback)
    if status:
        query = query.filter(Feedback.status == status)
    if category:
        query = query.filter(Feedback.category == category)

    total = query.count()
    entries = query.order_by(Feedback.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "feedback": [serialize_feedback(f) for f in entries],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.get("/feedback/stats")
async def feedback_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Counts by status and category, and the average of the 1..5 ratings"""
    by_status = dict(db.query(Feedback.status, func.count(Feedback.id)).group_by(Feedback.status).all())
    by_category = dict(
        db.query(Feedback.category, func.count(Feedback.id))
        .filter(Feedback.category.isnot(None))
        .group_by(Feedback.category)
        .all()
    )
    average = db.query(func.avg(Feedback.rating)).filter(Feedback.rating > 0).scalar()

    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "by_category": by_category,
        "average_rating": round(float(average), 2) if average is not None else 0,
    }


@router.put("/feedback/{feedback_id}/status")
async def update_feedback_status(
    feedback_id: UUID,
    payload: FeedbackStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission(AdminPermission.MANAGE_FEEDBACK))
):
    """
    Move feedback through review

    Approving records who approved it and when.

    Raises:
        HTTPException: 400 for an unknown status, 404 for unknown feedback
    """
    if payload.status not in FEEDBACK_STATUSES:
        raise http_400_bad_request("Invalid status")

    feedback = db.query(Feedback).filter(Feedback.id == feedback_id).first()
    if not feedback:
        raise http_404_not_found("Feedback not found")

    feedback.status = payload.status
    if payload.admin_response is not None:
        feedback.admin_response = payload.admin_response
    if payload.is_public is not None:
        feedback.is_public = payload.is_public
    if payload.status == "approved":
        feedback.approved_at = utcnow()
        feedback.approved_by = admin.id

    log_admin_activity(db, admin, "update_feedback_status", feedback.id, {"status": payload.status})
    db.commit()
    db.refresh(feedback)
    return {"success": True, "feedback": serialize_feedback(feedback)}


# ==============================================================================
# Contact requests
# ==============================================================================


@router.get("/contacts")
async def list_contacts(
    status: Optional[str] = None,
    type: Optional[str] = None,
    priority: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Contact requests, high priority first, then newest first"""
    limit = min(max(limit, 1), 100)

    query = db.query(ContactRequest)
    if status:
        query = query.filter(ContactRequest.status == status)
    if type:
        query = query.filter(ContactRequest.type == type)
    if priority:
        query = query.filter(ContactRequest.priority == priority)

    priority_order = case(
        {p: i for i, p in enumerate(CONTACT_PRIORITIES)},
        value=ContactRequest.priority,
        else_=len(CONTACT_PRIORITIES),
    )

    total = query.count()
    contacts = (
        query.order_by(priority_order, ContactRequest.created_at.desc())
        .offset(max(offset, 0))
        .limit(limit)
        .all()
    )

    return {
        "contacts": [serialize_contact(c) for c in contacts],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.patch("/contacts/{contact_id}")
async def update_contact(
    contact_id: UUID,
    payload: ContactUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """
    Raises:
        HTTPException: 400 for an unknown status or priority, 404 for an unknown request
    """
    contact = db.query(ContactRequest).filter(ContactRequest.id == contact_id).first()
    if not contact:
        raise http_404_not_found("Contact request not found")

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("status") is not None and changes["status"] not in CONTACT_STATUSES:
        raise http_400_bad_request("Invalid status")
    if changes.get("priority") is not None and changes["priority"] not in CONTACT_PRIORITIES:
        raise http_400_bad_request("Invalid priority")

    for field, value in changes.items():
        if value is not None:
            setattr(contact, field, value)

    log_admin_activity(db, admin, "update_contact", contact.id, changes)
    db.commit()
    db.refresh(contact)
    return {"success": True, "contact": serialize_contact(contact)}


# ==============================================================================
# System settings
# ==============================================================================


@router.get("/settings")
async def list_settings(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """All settings, secrets masked"""
    query = db.query(SystemSetting)
    if category:
        query = query.filter(SystemSetting.category == category)
    settings_rows = query.order_by(SystemSetting.category, SystemSetting.key).all()
    return {"settings": [serialize_setting(s) for s in settings_rows]}


@router.put("/settings/{setting_id}")
async def update_setting(
    setting_id: UUID,
    payload: SettingUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission(AdminPermission.MANAGE_SYSTEM))
):
    """
    Raises:
        HTTPException: 404 for an unknown setting, 400 when it is not editable
    """
    setting = db.query(SystemSetting).filter(SystemSetting.id == setting_id).first()
    if not setting:
        raise http_404_not_found("Setting not found")
    if not setting.is_editable:
        raise http_400_bad_request("Setting is not editable")

    setting.value = payload.value
    setting.updated_by = admin.id
    log_admin_activity(
        db,
        admin,
        "update_setting",
        setting.id,
        {"key": setting.key, "value": SECRET_MASK if setting.is_secret else payload.value},
    )
    db.commit()
    db.refresh(setting)
    return {"success": True, "setting": serialize_setting(setting)}


@router.post("/settings/seed")
async def seed_settings(
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission(AdminPermission.MANAGE_SYSTEM))
):
    """Create the default settings that do not exist yet"""
    existing = {key for (key,) in db.query(SystemSetting.key).all()}
    created = []
    for default in DEFAULT_SETTINGS:
        if default["key"] in existing:
            continue
        db.add(SystemSetting(updated_by=admin.id, **default))
        created.append(default["key"])

    if created:
        log_admin_activity(db, admin, "seed_settings", None, {"created": created})
    db.commit()
    return {"success": True, "created": created}


@router.post("/setup-stripe")
async def setup_stripe(
    db: Session = Depends(get_db),
    admin: User = Depends(require_permission(AdminPermission.MANAGE_SYSTEM))
):
    """
    Create the Stripe products and prices for every paid plan

    Returns:
        dict: price ids keyed "<plan>_<interval>", to copy into settings

    Raises:
        HTTPException: 502 when Stripe rejects the request
    """
    try:
        price_ids = stripe_service.setup_products()
    except stripe.StripeError as e:
        logger.error(f"Stripe product setup failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Stripe setup failed"
        )

    log_admin_activity(db, admin, "setup_stripe", None, {"price_ids": price_ids})
    db.commit()
    return {"success": True, "price_ids": price_ids}
