"""
Unit tests for subscription plans

Tests:
- Tier and interval parsing
- Token limits with the yearly bonus
- Plan key splitting
- Monthly revenue
"""

import pytest

from smartdocs.core.plans import (
    BillingInterval,
    SubscriptionTier,
    get_context_limits,
    get_monthly_revenue,
    get_project_limit,
    get_token_limit,
    parse_interval,
    parse_tier,
    split_plan_key,
)


@pytest.mark.unit
class TestPlans:
    """Test suite for plan helpers"""

    def test_parse_tier_is_case_insensitive(self):
        assert parse_tier("hobby") == SubscriptionTier.HOBBY
        assert parse_tier("Professional") == SubscriptionTier.PROFESSIONAL

    def test_parse_tier_unknown_is_free(self):
        assert parse_tier("platinum") == SubscriptionTier.FREE
        assert parse_tier(None) == SubscriptionTier.FREE

    def test_parse_interval_aliases(self):
        assert parse_interval("annual") == BillingInterval.YEARLY
        assert parse_interval("month") == BillingInterval.MONTHLY
        assert parse_interval("weekly") is None

    @pytest.mark.parametrize("tier,expected", [
        ("FREE", 10000),
        ("HOBBY", 50000),
        ("PROFESSIONAL", 100000),
        ("BUSINESS", 200000),
        ("ENTERPRISE", 1000000),
    ])
    def test_monthly_token_limits(self, tier, expected):
        assert get_token_limit(tier) == expected

    def test_yearly_bonus_is_ten_percent(self):
        assert get_token_limit("HOBBY", "yearly") == 55000
        assert get_token_limit("PROFESSIONAL", BillingInterval.YEARLY) == 110000

    def test_project_and_context_limits(self):
        assert get_project_limit("FREE") == 3
        assert get_project_limit("ENTERPRISE") == 999
        assert get_context_limits("BUSINESS") == {"max_active_tokens": 12000, "summarize_threshold": 9000}

    def test_split_plan_key(self):
        assert split_plan_key("hobby_monthly") == ("hobby", BillingInterval.MONTHLY)
        assert split_plan_key("business_yearly") == ("business", BillingInterval.YEARLY)
        assert split_plan_key("gold_monthly") is None
        assert split_plan_key("hobby") is None
        assert split_plan_key("") is None

    def test_monthly_revenue(self):
        assert get_monthly_revenue("FREE") == 0.0
        assert get_monthly_revenue("HOBBY") == 3.80
        assert get_monthly_revenue("ENTERPRISE") == 199.0
