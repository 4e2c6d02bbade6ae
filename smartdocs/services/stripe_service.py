"""
Stripe integration - customers, checkout, subscriptions and webhooks

Thin wrappers over the official stripe SDK. Stripe errors propagate as
stripe.StripeError and are turned into 502 responses by the global
error handler.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import stripe

from smartdocs.config import settings
from smartdocs.core.plans import STRIPE_PLANS, BillingInterval, parse_interval

logger = logging.getLogger(__name__)

APP_NAME = "smartdocs"

STRIPE_INTERVALS = {
    BillingInterval.MONTHLY: "month",
    BillingInterval.YEARLY: "year",
}


def _configure() -> None:
    stripe.api_key = settings.STRIPE_SECRET_KEY


def create_customer(email: str, name: Optional[str], user_id: str):
    _configure()
    customer = stripe.Customer.create(
        email=email,
        name=name,
        metadata={"user_id": str(user_id), "app": APP_NAME},
    )
    logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
    return customer


def create_checkout_session(
    price_id: str,
    success_url: str,
    cancel_url: str,
    customer_id: Optional[str] = None,
    customer_email: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
):
    """Subscription checkout for a single price, billed to a customer or an email"""
    _configure()
    metadata = {**(metadata or {}), "app": APP_NAME}
    params: Dict[str, Any] = {
        "mode": "subscription",
        "payment_method_types": ["card"],
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "subscription_data": {"metadata": metadata},
    }
    if customer_id:
        params["customer"] = customer_id
    elif customer_email:
        params["customer_email"] = customer_email

    return stripe.checkout.Session.create(**params)


def create_portal_session(customer_id: str, return_url: str):
    _configure()
    return stripe.billing_portal.Session.create(customer=customer_id, return_url=return_url)


def cancel_subscription(subscription_id: str):
    _configure()
    logger.info(f"Cancelling Stripe subscription {subscription_id}")
    return stripe.Subscription.cancel(subscription_id)


def retrieve_subscription(subscription_id: str):
    _configure()
    return stripe.Subscription.retrieve(subscription_id)


def update_subscription(subscription_id: str, new_price_id: str):
    """Swap the first subscription item to a new price, with proration"""
    _configure()
    subscription = stripe.Subscription.retrieve(subscription_id)
    item_id = subscription["items"]["data"][0]["id"]
    return stripe.Subscription.modify(
        subscription_id,
        items=[{"id": item_id, "price": new_price_id}],
        proration_behavior="create_prorations",
    )


def get_plan_from_price_id(price_id: Optional[str]) -> Optional[Tuple[str, BillingInterval]]:
    """
    Parse price ids of the form price_<plan>_<interval>_<suffix>

    Returns:
        (plan, interval) or None when the id does not follow the format
    """
    parts = (price_id or "").split("_")
    if len(parts) < 3:
        return None
    plan = parts[1]
    interval = parse_interval(parts[2])
    if plan not in STRIPE_PLANS or interval is None:
        return None
    return plan, interval


def setup_products() -> Dict[str, str]:
    """
    Create the plan products and their recurring prices in Stripe

    Idempotent: products are matched on metadata plan_key and prices on
    metadata key, so running it again only fills in what is missing.

    Returns:
        {"hobby_monthly": "price_...", ...}
    """
    _configure()
    price_ids: Dict[str, str] = {}
    existing_products = stripe.Product.list(limit=100, active=True)

    for plan_key, plan in STRIPE_PLANS.items():
        product = next(
            (p for p in existing_products.data if (p.metadata or {}).get("plan_key") == plan_key),
            None,
        )
        if product is None:
            product = stripe.Product.create(
                name=plan["name"],
                description=plan["description"],
                metadata={"plan_key": plan_key, "app": APP_NAME},
            )
            logger.info(f"Created Stripe product {product.id} for {plan_key}")

        existing_prices = stripe.Price.list(product=product.id, active=True)

        for interval, stripe_interval in STRIPE_INTERVALS.items():
            price_key = f"{plan_key}_{interval.value}"
            price = next(
                (p for p in existing_prices.data if (p.metadata or {}).get("key") == price_key),
                None,
            )
            if price is None:
                price = stripe.Price.create(
                    product=product.id,
                    currency="usd",
                    unit_amount=plan[interval.value],
                    recurring={"interval": stripe_interval},
                    metadata={
                        "key": price_key,
                        "plan": plan_key,
                        "interval": interval.value,
                        "app": APP_NAME,
                    },
                )
                logger.info(f"Created Stripe price {price.id} for {price_key}")
            price_ids[price_key] = price.id

    return price_ids


def verify_webhook_signature(payload: bytes, signature: str):
    """
    Raises:
        stripe.SignatureVerificationError: signature does not match
        ValueError: payload is not valid JSON
    """
    return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
