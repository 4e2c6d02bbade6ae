"""
Subscription plans: tiers, prices and per-tier limits

Single source of truth for everything that varies by tier:
- Monthly token quota (TOKEN_LIMITS)
- Number of active projects (PROJECT_LIMITS)
- Conversation context window and summarization threshold (TIER_CONTEXT_LIMITS)
- Stripe (USD cents) and Moyasar (SAR halalas) prices
"""

from enum import Enum
from typing import Dict, Optional, Tuple


class SubscriptionTier(str, Enum):
    FREE = "FREE"
    HOBBY = "HOBBY"
    PROFESSIONAL = "PROFESSIONAL"
    BUSINESS = "BUSINESS"
    ENTERPRISE = "ENTERPRISE"


class BillingInterval(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


PAID_TIERS = [
    SubscriptionTier.HOBBY,
    SubscriptionTier.PROFESSIONAL,
    SubscriptionTier.BUSINESS,
    SubscriptionTier.ENTERPRISE,
]

TOKEN_LIMITS: Dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 10000,
    SubscriptionTier.HOBBY: 50000,
    SubscriptionTier.PROFESSIONAL: 100000,
    SubscriptionTier.BUSINESS: 200000,
    SubscriptionTier.ENTERPRISE: 1000000,
}

YEARLY_TOKEN_BONUS = 1.1

PROJECT_LIMITS: Dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 3,
    SubscriptionTier.HOBBY: 10,
    SubscriptionTier.PROFESSIONAL: 20,
    SubscriptionTier.BUSINESS: 50,
    SubscriptionTier.ENTERPRISE: 999,
}

TIER_CONTEXT_LIMITS: Dict[SubscriptionTier, Dict[str, int]] = {
    SubscriptionTier.FREE: {"max_active_tokens": 4000, "summarize_threshold": 3000},
    SubscriptionTier.HOBBY: {"max_active_tokens": 6000, "summarize_threshold": 4500},
    SubscriptionTier.PROFESSIONAL: {"max_active_tokens": 8000, "summarize_threshold": 6000},
    SubscriptionTier.BUSINESS: {"max_active_tokens": 12000, "summarize_threshold": 9000},
    SubscriptionTier.ENTERPRISE: {"max_active_tokens": 16000, "summarize_threshold": 12000},
}

CONTEXT_CONFIG = {
    "MIN_MESSAGES_TO_KEEP": 10,
    "SUMMARY_TARGET_TOKENS": 1500,
    "BUFFER_TOKENS": 500,
    "DEFAULT_MODEL": "gpt-3.5-turbo",
}

# Stripe prices in USD cents (yearly plans are billed at the discounted monthly rate)
STRIPE_PLANS = {
    "hobby": {
        "name": "Hobby Plan",
        "description": "Perfect for individuals getting started with AI document generation",
        "monthly": 380,
        "yearly": 325,
    },
    "professional": {
        "name": "Professional Plan",
        "description": "Advanced features for professionals and small teams",
        "monthly": 1980,
        "yearly": 1650,
    },
    "business": {
        "name": "Business Plan",
        "description": "Team collaboration with enhanced AI models and templates",
        "monthly": 1680,
        "yearly": 1480,
    },
    "enterprise": {
        "name": "Enterprise Plan",
        "description": "Custom solutions with premium AI models and dedicated support",
        "monthly": 19900,
        "yearly": 14990,
    },
}

# Moyasar prices in SAR halalas (yearly is the full annual charge)
MOYASAR_PLANS = {
    "hobby": {"name": "خطة الهواة", "monthly": 1425, "yearly": 12825},
    "professional": {"name": "الخطة الاحترافية", "monthly": 5550, "yearly": 49950},
    "business": {"name": "خطة الأعمال", "monthly": 11175, "yearly": 100575},
    "enterprise": {"name": "خطة المؤسسات", "monthly": 22425, "yearly": 201825},
}

INTERVAL_ALIASES = {
    "monthly": BillingInterval.MONTHLY,
    "month": BillingInterval.MONTHLY,
    "yearly": BillingInterval.YEARLY,
    "year": BillingInterval.YEARLY,
    "annual": BillingInterval.YEARLY,
}


def parse_tier(value: Optional[str]) -> SubscriptionTier:
    """Case-insensitive tier lookup, unknown values map to FREE"""
    if isinstance(value, SubscriptionTier):
        return value
    try:
        return SubscriptionTier((value or "").upper())
    except ValueError:
        return SubscriptionTier.FREE


def parse_interval(value: Optional[str]) -> Optional[BillingInterval]:
    return INTERVAL_ALIASES.get((value or "").lower())


def get_token_limit(tier, interval=BillingInterval.MONTHLY) -> int:
    """
    Monthly token quota for a tier

    Yearly subscribers get a 10% bonus (rounded down).
    """
    base_limit = TOKEN_LIMITS[parse_tier(tier)]
    if parse_interval(interval) == BillingInterval.YEARLY:
        return int(base_limit * YEARLY_TOKEN_BONUS)
    return base_limit


def get_project_limit(tier) -> int:
    return PROJECT_LIMITS[parse_tier(tier)]


def get_context_limits(tier) -> Dict[str, int]:
    return TIER_CONTEXT_LIMITS[parse_tier(tier)]


def split_plan_key(value: str) -> Optional[Tuple[str, BillingInterval]]:
    """
    Split "<plan>_<interval>" (e.g. "hobby_monthly") into its parts

    Returns None when the plan is unknown or the interval is not recognised.
    """
    if not value or "_" not in value:
        return None
    plan, _, interval_part = value.partition("_")
    interval = parse_interval(interval_part)
    if plan not in STRIPE_PLANS or interval is None:
        return None
    return plan, interval


def get_monthly_revenue(tier) -> float:
    """Nominal monthly list price in USD, 0 for FREE"""
    tier = parse_tier(tier)
    if tier == SubscriptionTier.FREE:
        return 0.0
    return STRIPE_PLANS[tier.value.lower()]["monthly"] / 100
