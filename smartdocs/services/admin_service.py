"""
Admin Service - back office queries and user management

Everything an administrator changes is written to the AdminActivity audit
trail. Sensitive actions are stored with a critical_ prefix so they can be
filtered out of the regular activity stream.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

import stripe
from sqlalchemy import func, or_, text
from sqlalchemy.orm import Session

from smartdocs.core.exceptions import http_400_bad_request, http_404_not_found
from smartdocs.core.permissions import SENSITIVE_ACTIONS, UserRole, validate_permissions
from smartdocs.core.plans import SubscriptionTier, TOKEN_LIMITS, get_monthly_revenue, get_token_limit, parse_tier
from smartdocs.core.security import hash_password
from smartdocs.models.admin_activity import AdminActivity
from smartdocs.models.document import Document
from smartdocs.models.payment import Payment
from smartdocs.models.user import User
from smartdocs.services import stripe_service
from smartdocs.utils.sanitize import sanitize_dict
from smartdocs.utils.time import isoformat, relative_time, utcnow

logger = logging.getLogger(__name__)

CRITICAL_PREFIX = "critical_"

PRIVATE_USER_FIELDS = ("hashed_password", "stripe_customer_id", "stripe_subscription_id")

USER_SORT_COLUMNS = {
    "created_at": User.created_at,
    "name": User.name,
    "email": User.email,
    "tokens_used": User.tokens_used,
    "subscription_tier": User.subscription_tier,
}

ANALYTICS_PERIODS = {"7d": 7, "30d": 30, "90d": 90}

USER_ACTIONS = ("suspend", "activate", "verify_email", "reset_tokens", "change_role", "adjust_tokens", "set_permissions")

ROLES = {r.value for r in UserRole}
SELF_PROTECTED_FIELDS = {"role", "is_active", "subscription_status"}

SUBSCRIPTION_STATUSES = {"active", "canceled", "past_due", "suspended", "trialing", "incomplete"}


def log_admin_activity(
    db: Session,
    admin: User,
    action: str,
    target_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AdminActivity:
    """
    Add an audit row (committed with the caller's transaction)

    Details are passed through sanitize_dict so passwords and keys never
    land in the log.
    """
    if action in SENSITIVE_ACTIONS and not action.startswith(CRITICAL_PREFIX):
        action = f"{CRITICAL_PREFIX}{action}"

    activity = AdminActivity(
        admin_id=admin.id,
        action=action,
        target_id=str(target_id) if target_id is not None else None,
        details=sanitize_dict(details or {}),
    )
    db.add(activity)
    logger.info(f"Admin {admin.id} performed {action} on {target_id}")
    return activity


def log_critical_action(
    db: Session,
    admin: User,
    action: str,
    target_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AdminActivity:
    logger.warning(f"Critical admin action {action} by {admin.id} on {target_id}")
    return log_admin_activity(db, admin, f"{CRITICAL_PREFIX}{action}", target_id, details)


def sanitize_user_response(user: User) -> Dict[str, Any]:
    """Column values of a user minus password hash and Stripe references"""
    data = {}
    for column in User.__table__.columns:
        if column.name in PRIVATE_USER_FIELDS:
            continue
        value = getattr(user, column.key)
        if isinstance(value, datetime):
            value = isoformat(value)
        elif isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, list):
            value = list(value)
        data[column.name] = value
    return data


def _pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    pages = (total + limit - 1) // limit if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": pages,
        "has_next_page": page < pages,
        "has_previous_page": page > 1,
    }


class AdminService:
    """
    Back office operations

    Usage:
        service = AdminService(db)
        result = service.list_users(page=1, search="acme")
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: UUID) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise http_404_not_found("User not found")
        return user

    # Users

    def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        role: Optional[str] = None,
        subscription_tier: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)

        query = self.db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.company_name.ilike(pattern),
            ))
        if role:
            query = query.filter(User.role == role)
        if subscription_tier:
            query = query.filter(User.subscription_tier == subscription_tier.upper())

        column = USER_SORT_COLUMNS.get(sort_by, User.created_at)
        query = query.order_by(column.asc() if sort_order == "asc" else column.desc())

        total = query.count()
        users = query.offset((page - 1) * limit).limit(limit).all()

        user_ids = [u.id for u in users]
        document_counts = {}
        referral_counts = {}
        if user_ids:
            document_counts = dict(
                self.db.query(Document.user_id, func.count(Document.id))
                .filter(Document.user_id.in_(user_ids))
                .group_by(Document.user_id)
                .all()
            )
            referral_counts = dict(
                self.db.query(User.referred_by_id, func.count(User.id))
                .filter(User.referred_by_id.in_(user_ids))
                .group_by(User.referred_by_id)
                .all()
            )

        items = []
        for user in users:
            item = sanitize_user_response(user)
            item["documents_count"] = document_counts.get(user.id, 0)
            item["referrals_count"] = referral_counts.get(user.id, 0)
            items.append(item)

        return {"users": items, "pagination": _pagination(page, limit, total)}

    def create_user(self, admin: User, data: Dict[str, Any]) -> User:
        name = (data.get("name") or "").strip()
        email = (data.get("email") or "").strip().lower()
        password = data.get("password") or ""

        if not name or not email or not password:
            raise http_400_bad_request("Name, email and password are required")
        if len(password) < 6:
            raise http_400_bad_request("Password must be at least 6 characters")
        if self.db.query(User).filter(User.email == email).first():
            raise http_400_bad_request("User with this email already exists")

        role = data.get("role") or UserRole.USER.value
        if role not in ROLES:
            raise http_400_bad_request("Invalid role")
        tier = parse_tier(data.get("subscription_tier"))

        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role=role,
            subscription_tier=tier.value,
            subscription_status="active",
            tokens_limit=get_token_limit(tier),
            tokens_used=0,
            company_name=data.get("company_name"),
            industry=data.get("industry"),
            email_verified=utcnow(),
        )
        self.db.add(user)
        self.db.flush()

        log_admin_activity(self.db, admin, "create_user", user.id, {"email": email, "role": role, "tier": tier.value})
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_user(self, admin: User, user_id: UUID, changes: Dict[str, Any]) -> User:
        """
        Apply profile and plan changes

        Raises:
            HTTPException 400 for a taken email, or when an admin changes the
            role or account status of their own account
        """
        user = self.get_user(user_id)
        changes = {field: value for field, value in changes.items() if value is not None}

        if user.id == admin.id and SELF_PROTECTED_FIELDS & changes.keys():
            raise http_400_bad_request("Cannot modify your own account")
        if "role" in changes:
            raise http_400_bad_request("Use the change_role action to change roles")

        if "email" in changes and changes["email"]:
            email = changes["email"].strip().lower()
            taken = self.db.query(User).filter(User.email == email, User.id != user.id).first()
            if taken:
                raise http_400_bad_request("Email already in use")
            changes["email"] = email
        if changes.get("subscription_tier"):
            changes["subscription_tier"] = parse_tier(changes["subscription_tier"]).value

        for field, value in changes.items():
            setattr(user, field, value)

        log_admin_activity(self.db, admin, "update_user", user.id, changes)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_user_detail(self, user_id: UUID) -> Dict[str, Any]:
        user = self.get_user(user_id)

        documents = (
            self.db.query(Document)
            .filter(Document.user_id == user.id)
            .order_by(Document.created_at.desc())
            .limit(10)
            .all()
        )
        payments = (
            self.db.query(Payment)
            .filter(Payment.user_id == user.id)
            .order_by(Payment.created_at.desc())
            .limit(10)
            .all()
        )
        documents_count = self.db.query(func.count(Document.id)).filter(Document.user_id == user.id).scalar()

        detail = sanitize_user_response(user)
        detail["documents_count"] = documents_count
        detail["recent_documents"] = [
            {
                "id": str(d.id),
                "title": d.title,
                "type": d.type,
                "status": d.status,
                "tokens_used": d.tokens_used,
                "created_at": isoformat(d.created_at),
            }
            for d in documents
        ]
        detail["recent_payments"] = [serialize_payment(p) for p in payments]
        return detail

    def delete_user(self, admin: User, user_id: UUID) -> None:
        user = self.get_user(user_id)
        if user.id == admin.id:
            raise http_400_bad_request("Cannot delete your own account")

        log_admin_activity(self.db, admin, "delete_user", user.id, {"email": user.email})
        self.db.delete(user)
        self.db.commit()

    def perform_action(self, admin: User, user_id: UUID, action: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a single back office action to a user

        Raises:
            HTTPException 404: unknown user
            HTTPException 400: self-modification, invalid action or invalid parameters
        """
        user = self.get_user(user_id)
        if user.id == admin.id:
            raise http_400_bad_request("Cannot modify your own account")
        if action not in USER_ACTIONS:
            raise http_400_bad_request("Invalid action")

        if action == "suspend":
            user.subscription_status = "suspended"
            user.is_active = False
            description = "Suspended user account"
        elif action == "activate":
            user.subscription_status = "active"
            user.is_active = True
            description = "Activated user account"
        elif action == "verify_email":
            user.email_verified = utcnow()
            description = "Verified user email"
        elif action == "reset_tokens":
            user.tokens_used = 0
            description = "Reset token usage"
        elif action == "change_role":
            role = params.get("role")
            if role not in ROLES:
                raise http_400_bad_request("Invalid role")
            user.role = role
            description = f"Changed role to {role}"
        elif action == "adjust_tokens":
            tokens_limit = params.get("tokens_limit")
            if not isinstance(tokens_limit, int) or tokens_limit < 0:
                raise http_400_bad_request("Invalid token limit")
            user.tokens_limit = tokens_limit
            description = f"Adjusted token limit to {tokens_limit}"
        else:
            permissions = params.get("permissions")
            if permissions is None or validate_permissions(permissions):
                raise http_400_bad_request("Invalid permissions")
            user.admin_permissions = list(permissions)
            description = "Updated admin permissions"

        log_admin_activity(self.db, admin, action, user.id, {"description": description, **params})
        self.db.commit()
        self.db.refresh(user)

        return {
            "success": True,
            "user": sanitize_user_response(user),
            "message": f"{description} successfully",
        }

    # Subscriptions

    def _last_payments(self, user_ids: List[UUID]) -> Dict[UUID, Payment]:
        latest = {}
        if not user_ids:
            return latest
        payments = (
            self.db.query(Payment)
            .filter(Payment.user_id.in_(user_ids))
            .order_by(Payment.created_at.desc())
            .all()
        )
        for payment in payments:
            latest.setdefault(payment.user_id, payment)
        return latest

    def list_subscriptions(
        self,
        search: Optional[str] = None,
        tier: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Dict[str, Any]:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)

        query = self.db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if tier:
            query = query.filter(User.subscription_tier == tier.upper())
        if status:
            query = query.filter(User.subscription_status == status)

        total = query.count()
        users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        last_payments = self._last_payments([u.id for u in users])

        subscriptions = []
        for user in users:
            item = serialize_subscription(user)
            payment = last_payments.get(user.id)
            item["last_payment"] = serialize_payment(payment) if payment else None
            subscriptions.append(item)

        return {"subscriptions": subscriptions, "pagination": _pagination(page, limit, total)}

    def get_subscription(self, user_id: UUID) -> Dict[str, Any]:
        user = self.get_user(user_id)
        payments = (
            self.db.query(Payment)
            .filter(Payment.user_id == user.id)
            .order_by(Payment.created_at.desc())
            .limit(10)
            .all()
        )

        detail = serialize_subscription(user)
        detail["payments"] = [serialize_payment(p) for p in payments]
        detail["stripe_subscription"] = None

        if user.stripe_subscription_id:
            try:
                subscription = stripe_service.retrieve_subscription(user.stripe_subscription_id)
                detail["stripe_subscription"] = {
                    "id": subscription["id"],
                    "status": subscription["status"],
                    "current_period_end": subscription.get("current_period_end"),
                    "cancel_at_period_end": subscription.get("cancel_at_period_end"),
                }
            except stripe.StripeError as e:
                logger.warning(f"Could not load Stripe subscription for user {user.id}: {e}")

        return detail

    def update_subscription(self, admin: User, user_id: UUID, changes: Dict[str, Any]) -> Dict[str, Any]:
        user = self.get_user(user_id)

        if changes.get("status") is not None and changes["status"] not in SUBSCRIPTION_STATUSES:
            raise http_400_bad_request("Invalid status")

        if changes.get("tier"):
            tier = parse_tier(changes["tier"])
            user.subscription_tier = tier.value
            if changes.get("tokens_limit") is None:
                user.tokens_limit = get_token_limit(tier, user.billing_cycle)
        if changes.get("status"):
            user.subscription_status = changes["status"]
        if changes.get("tokens_limit") is not None:
            user.tokens_limit = changes["tokens_limit"]

        log_admin_activity(self.db, admin, "update_subscription", user.id, changes)
        self.db.commit()
        self.db.refresh(user)
        return serialize_subscription(user)

    def subscription_stats(self) -> Dict[str, Any]:
        by_tier = dict(
            self.db.query(User.subscription_tier, func.count(User.id)).group_by(User.subscription_tier).all()
        )
        by_status = dict(
            self.db.query(User.subscription_status, func.count(User.id)).group_by(User.subscription_status).all()
        )

        active_paid = (
            self.db.query(User.subscription_tier, func.count(User.id))
            .filter(User.subscription_status == "active", User.subscription_tier != SubscriptionTier.FREE.value)
            .group_by(User.subscription_tier)
            .all()
        )
        mrr = sum(get_monthly_revenue(tier) * count for tier, count in active_paid)

        return {
            "by_tier": by_tier,
            "by_status": by_status,
            "active_paid_subscriptions": sum(count for _, count in active_paid),
            "estimated_mrr": round(mrr, 2),
        }

    # Reporting

    def analytics(self, period: str = "30d") -> Dict[str, Any]:
        if period not in ANALYTICS_PERIODS:
            raise http_400_bad_request("Invalid period")
        since = utcnow() - timedelta(days=ANALYTICS_PERIODS[period])

        total_users = self.db.query(func.count(User.id)).scalar()
        new_users = self.db.query(func.count(User.id)).filter(User.created_at >= since).scalar()
        total_documents = self.db.query(func.count(Document.id)).scalar()
        active_users = (
            self.db.query(func.count(func.distinct(Document.user_id)))
            .filter(Document.created_at >= since)
            .scalar()
        )
        total_tokens = self.db.query(func.coalesce(func.sum(User.tokens_used), 0)).scalar()

        user_distribution = dict(
            self.db.query(User.subscription_tier, func.count(User.id)).group_by(User.subscription_tier).all()
        )
        document_types = dict(
            self.db.query(Document.type, func.count(Document.id))
            .filter(Document.created_at >= since)
            .group_by(Document.type)
            .all()
        )

        return {
            "period": period,
            "overview": {
                "total_users": total_users,
                "new_users": new_users,
                "total_documents": total_documents,
                "active_users": active_users,
                "engagement_rate": round(active_users / total_users * 100, 1) if total_users else 0,
                "total_tokens_used": int(total_tokens or 0),
            },
            "user_distribution": user_distribution,
            "document_types": document_types,
        }

    def dashboard(self) -> Dict[str, Any]:
        now = utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        try:
            self.db.execute(text("SELECT 1"))
            system_health = "healthy"
        except Exception as e:
            logger.error(f"Dashboard database check failed: {e}")
            system_health = "degraded"

        recent_users = self.db.query(User).order_by(User.created_at.desc()).limit(5).all()

        return {
            "total_users": self.db.query(func.count(User.id)).scalar(),
            "active_subscriptions": (
                self.db.query(func.count(User.id))
                .filter(User.subscription_status == "active", User.subscription_tier != SubscriptionTier.FREE.value)
                .scalar()
            ),
            "total_revenue": (
                self.db.query(func.coalesce(func.sum(Payment.amount), 0))
                .filter(Payment.status == "succeeded")
                .scalar()
            ),
            "documents_generated": self.db.query(func.count(Document.id)).scalar(),
            "new_users_today": self.db.query(func.count(User.id)).filter(User.created_at >= start_of_day).scalar(),
            "system_health": system_health,
            "recent_activities": [
                {
                    "type": "signup",
                    "user_id": str(u.id),
                    "name": u.name or u.email,
                    "message": f"{u.name or u.email} signed up",
                    "time": relative_time(u.created_at, now),
                }
                for u in recent_users
            ],
        }

    def activity_log(
        self,
        admin: User,
        is_super_admin: bool,
        page: int = 1,
        limit: int = 50,
        admin_id: Optional[UUID] = None,
        action: Optional[str] = None,
        target_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Audit trail with per-action counts

        Regular admins only ever see their own rows. A super admin sees
        everyone, plus the ten most active admins when no admin_id filter
        is given.
        """
        page = max(page, 1)
        limit = min(max(limit, 1), 200)

        query = self.db.query(AdminActivity)
        if not is_super_admin:
            query = query.filter(AdminActivity.admin_id == admin.id)
        elif admin_id:
            query = query.filter(AdminActivity.admin_id == admin_id)
        if action:
            query = query.filter(AdminActivity.action == action)
        if target_id:
            query = query.filter(AdminActivity.target_id == target_id)
        if start_date:
            query = query.filter(AdminActivity.created_at >= start_date)
        if end_date:
            query = query.filter(AdminActivity.created_at <= end_date)

        total = query.count()
        activities = query.order_by(AdminActivity.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

        action_summary = dict(
            query.with_entities(AdminActivity.action, func.count(AdminActivity.id))
            .order_by(None)
            .group_by(AdminActivity.action)
            .all()
        )

        admins = {}
        admin_ids = {a.admin_id for a in activities}
        if admin_ids:
            admins = {u.id: u for u in self.db.query(User).filter(User.id.in_(admin_ids)).all()}

        result = {
            "activities": [
                {
                    "id": str(a.id),
                    "admin_id": str(a.admin_id),
                    "admin_name": admins[a.admin_id].name if a.admin_id in admins else None,
                    "admin_email": admins[a.admin_id].email if a.admin_id in admins else None,
                    "action": a.action,
                    "target_id": a.target_id,
                    "details": dict(a.details or {}),
                    "created_at": isoformat(a.created_at),
                }
                for a in activities
            ],
            "pagination": _pagination(page, limit, total),
            "action_summary": action_summary,
        }

        if is_super_admin and not admin_id:
            top_admins = (
                self.db.query(AdminActivity.admin_id, User.name, User.email, func.count(AdminActivity.id).label("count"))
                .join(User, User.id == AdminActivity.admin_id)
                .group_by(AdminActivity.admin_id, User.name, User.email)
                .order_by(func.count(AdminActivity.id).desc())
                .limit(10)
                .all()
            )
            result["admin_summary"] = [
                {"admin_id": str(row[0]), "name": row[1], "email": row[2], "count": row[3]}
                for row in top_admins
            ]

        return result


def serialize_payment(payment: Payment) -> Dict[str, Any]:
    return {
        "id": str(payment.id),
        "provider": payment.provider,
        "provider_payment_id": payment.provider_payment_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "description": payment.description,
        "created_at": isoformat(payment.created_at),
    }


def serialize_subscription(user: User) -> Dict[str, Any]:
    tier = parse_tier(user.subscription_tier)
    return {
        "user_id": str(user.id),
        "name": user.name,
        "email": user.email,
        "tier": tier.value,
        "status": user.subscription_status,
        "billing_cycle": user.billing_cycle,
        "tokens_used": user.tokens_used,
        "tokens_limit": user.tokens_limit,
        "plan_token_limit": TOKEN_LIMITS[tier],
        "monthly_revenue": get_monthly_revenue(tier),
        "subscription_starts_at": isoformat(user.subscription_starts_at),
        "subscription_ends_at": isoformat(user.subscription_ends_at),
        "has_stripe_subscription": bool(user.stripe_subscription_id),
        "payment_provider": "moyasar" if user.moyasar_customer_id else ("stripe" if user.stripe_customer_id else None),
    }
