"""
Billing Service - checkout, subscription status and provider webhooks

Stripe manages recurring subscriptions itself and reports changes through
webhooks. Moyasar only knows payments, so a paid Moyasar payment activates
a Subscription row for one billing period.
"""

import logging
import math
import uuid
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from smartdocs.config import settings
from smartdocs.core.exceptions import http_400_bad_request
from smartdocs.core.plans import (
    BillingInterval,
    SubscriptionTier,
    get_token_limit,
    parse_interval,
    parse_tier,
)
from smartdocs.models.payment import Payment
from smartdocs.models.subscription import Subscription
from smartdocs.models.user import User
from smartdocs.services import stripe_service
from smartdocs.services.moyasar_service import (
    MoyasarClient,
    get_plan_description,
    get_plan_from_moyasar_price,
    get_plan_price,
)
from smartdocs.utils.time import ensure_utc, isoformat, utcnow

logger = logging.getLogger(__name__)

STRIPE_PERIOD = timedelta(days=30)
MONTHLY_PERIOD = timedelta(days=30)
YEARLY_PERIOD = timedelta(days=365)

STATUS_ACTIVE = "active"
STATUS_CANCELED = "canceled"
STATUS_PAST_DUE = "past_due"


def has_active_paid_subscription(user: User) -> bool:
    return user.subscription_status == STATUS_ACTIVE and parse_tier(user.subscription_tier) != SubscriptionTier.FREE


def subscription_is_active(user: User, now=None) -> bool:
    now = ensure_utc(now) or utcnow()
    ends_at = ensure_utc(user.subscription_ends_at)
    return user.subscription_status == STATUS_ACTIVE and (ends_at is None or ends_at > now)


def _parse_user_id(value: Any) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class BillingService:
    """
    Checkout and webhook processing for Stripe and Moyasar

    Usage:
        service = BillingService(db)
        session = service.create_stripe_checkout(user, "price_hobby_monthly_x")
        service.handle_stripe_event(event)
    """

    def __init__(self, db: Session, moyasar: Optional[MoyasarClient] = None):
        self.db = db
        self.moyasar = moyasar or MoyasarClient()

    # Checkout

    def create_stripe_checkout(
        self,
        user: User,
        price_id: Optional[str],
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            HTTPException 400: missing price, existing subscription or a price Stripe rejects
        """
        if not price_id:
            raise http_400_bad_request("Price ID is required")
        if has_active_paid_subscription(user):
            raise http_400_bad_request("User already has an active subscription")

        if not user.stripe_customer_id:
            customer = stripe_service.create_customer(user.email, user.name, str(user.id))
            user.stripe_customer_id = customer.id
            self.db.commit()

        try:
            session = stripe_service.create_checkout_session(
                price_id=price_id,
                customer_id=user.stripe_customer_id,
                success_url=success_url or f"{settings.APP_URL}/dashboard?checkout=success",
                cancel_url=cancel_url or f"{settings.APP_URL}/dashboard?checkout=canceled",
                metadata={"user_id": str(user.id), "price_id": price_id},
            )
        except stripe.InvalidRequestError as e:
            logger.warning(f"Stripe rejected price {price_id}: {e}")
            raise http_400_bad_request("Invalid price ID")

        logger.info(f"Created Stripe checkout session {session.id} for user {user.id}")
        return {"session_id": session.id, "url": session.url}

    def create_moyasar_checkout(self, user: User, price_id: Optional[str], callback_url: Optional[str] = None) -> Dict[str, Any]:
        plan = get_plan_from_moyasar_price(price_id)
        if plan is None:
            raise http_400_bad_request("Invalid price ID")
        if has_active_paid_subscription(user):
            raise http_400_bad_request("User already has an active subscription")

        plan_key, interval = plan
        payment = self.moyasar.create_payment(
            amount=get_plan_price(plan_key, interval),
            description=get_plan_description(plan_key, interval),
            callback_url=callback_url or f"{settings.APP_URL}/dashboard?checkout=success",
            metadata={
                "user_id": str(user.id),
                "plan_key": plan_key,
                "interval": interval.value,
                "tier": plan_key.upper(),
            },
        )

        return {
            "payment_id": payment.get("id"),
            "status": payment.get("status"),
            "amount": payment.get("amount"),
            "currency": payment.get("currency"),
            "checkout_url": (payment.get("source") or {}).get("transaction_url"),
            "metadata": payment.get("metadata") or {},
        }

    def create_portal(self, user: User, return_url: Optional[str] = None) -> Dict[str, Any]:
        if not user.stripe_customer_id:
            raise http_400_bad_request("No billing account found")
        session = stripe_service.create_portal_session(
            user.stripe_customer_id,
            return_url or f"{settings.APP_URL}/dashboard",
        )
        return {"url": session.url}

    def cancel(self, user: User) -> Dict[str, Any]:
        if user.stripe_subscription_id:
            stripe_service.cancel_subscription(user.stripe_subscription_id)
        user.subscription_status = STATUS_CANCELED
        self.db.commit()
        logger.info(f"Cancelled subscription for user {user.id}")
        return {"success": True, "message": "Subscription cancelled"}

    def get_status(self, user: User) -> Dict[str, Any]:
        now = utcnow()
        ends_at = ensure_utc(user.subscription_ends_at)
        days_until_renewal = None
        if ends_at is not None:
            days_until_renewal = max(math.ceil((ends_at - now).total_seconds() / 86400), 0)

        limit = user.tokens_limit or 0
        used = user.tokens_used or 0
        return {
            "user": {"id": user.id, "email": user.email, "name": user.name},
            "subscription": {
                "tier": user.subscription_tier,
                "status": user.subscription_status,
                "billing_cycle": user.billing_cycle,
                "is_active": subscription_is_active(user, now),
                "ends_at": isoformat(ends_at),
                "days_until_renewal": days_until_renewal,
                "has_stripe_customer": bool(user.stripe_customer_id),
                "has_active_subscription": bool(user.stripe_subscription_id),
            },
            "usage": {
                "tokens_used": used,
                "tokens_limit": limit,
                "tokens_remaining": max(limit - used, 0),
                "usage_percentage": round(used / limit * 100) if limit > 0 else 0,
                "is_over_limit": used >= limit,
            },
        }

    # Stripe webhooks

    def handle_stripe_event(self, event: Dict[str, Any]) -> None:
        handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            "customer.subscription.created": self._stripe_subscription_created,
            "customer.subscription.updated": self._stripe_subscription_updated,
            "customer.subscription.deleted": self._stripe_subscription_deleted,
            "invoice.payment_succeeded": self._stripe_payment_succeeded,
            "invoice.payment_failed": self._stripe_payment_failed,
            "checkout.session.completed": self._stripe_checkout_completed,
        }
        event_type = event.get("type")
        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return
        logger.info(f"Processing Stripe event {event_type}")
        handler(event["data"]["object"])
        self.db.commit()

    def _apply_stripe_subscription(self, user: User, subscription: Dict[str, Any]) -> None:
        items = (subscription.get("items") or {}).get("data") or []
        price_id = ((items[0].get("price") or {}).get("id")) if items else None
        plan = stripe_service.get_plan_from_price_id(price_id)

        if plan is not None:
            plan_key, interval = plan
            user.subscription_tier = plan_key.upper()
            user.tokens_limit = get_token_limit(plan_key, interval)
            user.billing_cycle = interval.value
        else:
            logger.warning(f"Unrecognised Stripe price {price_id} on subscription {subscription.get('id')}")

        user.subscription_status = subscription.get("status") or STATUS_ACTIVE
        user.stripe_subscription_id = subscription.get("id")
        user.subscription_ends_at = utcnow() + STRIPE_PERIOD

    def _stripe_subscription_created(self, subscription: Dict[str, Any]) -> None:
        user = self.db.query(User).filter(User.stripe_customer_id == subscription.get("customer")).first()
        if not user:
            logger.warning(f"No user for Stripe customer {subscription.get('customer')}")
            return
        self._apply_stripe_subscription(user, subscription)
        logger.info(f"Subscription created for user {user.id}: {user.subscription_tier}")

    def _stripe_subscription_updated(self, subscription: Dict[str, Any]) -> None:
        user = self.db.query(User).filter(User.stripe_subscription_id == subscription.get("id")).first()
        if not user:
            logger.warning(f"No user for Stripe subscription {subscription.get('id')}")
            return
        self._apply_stripe_subscription(user, subscription)
        logger.info(f"Subscription updated for user {user.id}: {user.subscription_tier}")

    def _stripe_subscription_deleted(self, subscription: Dict[str, Any]) -> None:
        user = self.db.query(User).filter(User.stripe_subscription_id == subscription.get("id")).first()
        if not user:
            logger.warning(f"No user for Stripe subscription {subscription.get('id')}")
            return
        user.subscription_tier = SubscriptionTier.FREE.value
        user.subscription_status = STATUS_CANCELED
        user.tokens_limit = get_token_limit(SubscriptionTier.FREE)
        user.stripe_subscription_id = None
        logger.info(f"Subscription deleted for user {user.id}")

    def _stripe_payment_succeeded(self, invoice: Dict[str, Any]) -> None:
        logger.info(f"Stripe invoice {invoice.get('id')} paid")
        user = self.db.query(User).filter(User.stripe_customer_id == invoice.get("customer")).first()
        if not user:
            return
        self.db.add(Payment(
            user_id=user.id,
            provider="stripe",
            provider_payment_id=invoice.get("id"),
            amount=invoice.get("amount_paid") or 0,
            currency=(invoice.get("currency") or "usd").upper(),
            status="succeeded",
            description="Subscription payment",
        ))

    def _stripe_payment_failed(self, invoice: Dict[str, Any]) -> None:
        user = self.db.query(User).filter(User.stripe_customer_id == invoice.get("customer")).first()
        if not user:
            logger.warning(f"Payment failed for unknown Stripe customer {invoice.get('customer')}")
            return
        user.subscription_status = STATUS_PAST_DUE
        logger.warning(f"Payment failed for user {user.id}, subscription is past due")

    def _stripe_checkout_completed(self, session: Dict[str, Any]) -> None:
        user_id = _parse_user_id((session.get("metadata") or {}).get("user_id"))
        user = self.db.query(User).filter(User.id == user_id).first() if user_id else None
        if user is None and session.get("customer"):
            user = self.db.query(User).filter(User.stripe_customer_id == session.get("customer")).first()
        if user is None:
            logger.warning(f"No user for checkout session {session.get('id')}")
            return
        if session.get("subscription"):
            user.stripe_subscription_id = session["subscription"]
        if session.get("customer") and not user.stripe_customer_id:
            user.stripe_customer_id = session["customer"]
        logger.info(f"Checkout completed for user {user.id}")

    # Moyasar webhooks

    def handle_moyasar_event(self, event: Dict[str, Any]) -> None:
        handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            "payment.paid": self._moyasar_payment_paid,
            "payment.captured": self._moyasar_payment_paid,
            "payment.failed": self._moyasar_payment_failed,
            "payment.refunded": self._moyasar_payment_refunded,
        }
        event_type = event.get("type")
        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Moyasar event type: {event_type}")
            return
        logger.info(f"Processing Moyasar event {event_type}")
        handler(event.get("data") or {})
        self.db.commit()

    def _moyasar_user(self, payment: Dict[str, Any]) -> Optional[User]:
        metadata = payment.get("metadata") or {}
        user_id = _parse_user_id(metadata.get("user_id") or metadata.get("userId"))
        if user_id is None:
            logger.error(f"Missing user_id in Moyasar payment metadata: {payment.get('id')}")
            return None
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            logger.error(f"User {user_id} not found for Moyasar payment {payment.get('id')}")
        return user

    def _record_moyasar_payment(self, user: User, payment: Dict[str, Any], status: str) -> None:
        self.db.add(Payment(
            user_id=user.id,
            provider="moyasar",
            provider_payment_id=payment.get("id"),
            amount=payment.get("amount") or 0,
            currency=(payment.get("currency") or "SAR").upper(),
            status=status,
            description=payment.get("description"),
        ))

    def _moyasar_payment_paid(self, payment: Dict[str, Any]) -> None:
        user = self._moyasar_user(payment)
        if user is None:
            return
        metadata = payment.get("metadata") or {}
        plan_key = metadata.get("plan_key") or metadata.get("planKey")
        if not plan_key:
            logger.error(f"Missing plan_key in Moyasar payment metadata: {payment.get('id')}")
            return

        interval = parse_interval(metadata.get("interval")) or BillingInterval.MONTHLY
        now = utcnow()
        ends_at = now + (YEARLY_PERIOD if interval == BillingInterval.YEARLY else MONTHLY_PERIOD)
        tokens_limit = get_token_limit(plan_key, interval)
        tier = plan_key.upper()

        user.subscription_status = STATUS_ACTIVE
        user.subscription_tier = tier
        user.billing_cycle = interval.value
        user.subscription_starts_at = now
        user.subscription_ends_at = ends_at
        user.tokens_used = 0
        user.tokens_limit = tokens_limit
        source = payment.get("source") or {}
        user.moyasar_customer_id = payment.get("customer_id") or source.get("reference_number") or payment.get("id")

        self.db.add(Subscription(
            user_id=user.id,
            tier=tier,
            status="ACTIVE",
            billing_cycle="ANNUAL" if interval == BillingInterval.YEARLY else "MONTHLY",
            amount=(payment.get("amount") or 0) / 100,
            currency=(payment.get("currency") or "SAR").upper(),
            moyasar_payment_id=payment.get("id"),
            tokens_included=tokens_limit,
            starts_at=now,
            ends_at=ends_at,
        ))
        self._record_moyasar_payment(user, payment, "succeeded")
        logger.info(f"Subscription activated for user {user.id}, plan: {plan_key}")

    def _moyasar_payment_failed(self, payment: Dict[str, Any]) -> None:
        user = self._moyasar_user(payment)
        if user is None:
            return
        logger.warning(f"Moyasar payment failed for user {user.id}, payment: {payment.get('id')}")
        self._record_moyasar_payment(user, payment, "failed")

    def _moyasar_payment_refunded(self, payment: Dict[str, Any]) -> None:
        user = self._moyasar_user(payment)
        if user is None:
            return
        subscription = (
            self.db.query(Subscription)
            .filter(
                Subscription.user_id == user.id,
                Subscription.moyasar_payment_id == payment.get("id"),
                Subscription.status == "ACTIVE",
            )
            .first()
        )
        if subscription is None:
            logger.info(f"No active subscription for refunded payment {payment.get('id')}")
            return

        subscription.status = "CANCELLED"
        user.subscription_status = STATUS_CANCELED
        user.subscription_tier = SubscriptionTier.FREE.value
        user.subscription_ends_at = utcnow()
        user.tokens_limit = get_token_limit(SubscriptionTier.FREE)
        logger.info(f"Subscription cancelled due to refund for user {user.id}")
