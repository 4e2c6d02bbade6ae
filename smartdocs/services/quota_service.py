"""
Quota Management Service

Tracks and enforces the monthly token quota of each user.
Limits are set from the subscription tier (see smartdocs.core.plans).
"""

from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from smartdocs.core.exceptions import http_429_too_many_requests
from smartdocs.models.user import User
from smartdocs.models.usage_history import UsageHistory
from smartdocs.utils.tokens import get_usage_status
import logging

logger = logging.getLogger(__name__)

INSUFFICIENT_TOKENS_MESSAGE = "Insufficient tokens. Please upgrade your plan or wait for next billing cycle."


class QuotaService:
    """
    Track and enforce user token quotas

    Fields (on User):
    - tokens_used: Tokens consumed in the current cycle
    - tokens_limit: Tokens available per cycle for the user's tier
    """

    def __init__(self, db: Session):
        """Initialize quota service with database session"""
        self.db = db

    @staticmethod
    def remaining(user: User) -> int:
        return max((user.tokens_limit or 0) - (user.tokens_used or 0), 0)

    def has_tokens(self, user: User, amount: int) -> bool:
        return (user.tokens_used or 0) + amount <= (user.tokens_limit or 0)

    def check_tokens(self, user: User, amount: int, message: str = INSUFFICIENT_TOKENS_MESSAGE) -> bool:
        """
        Check that the user can spend amount tokens

        Args:
            user: User to check
            amount: Estimated tokens the operation will use
            message: Error message shown when the quota is exceeded

        Returns:
            True if quota available

        Raises:
            HTTPException 429 if quota exceeded
        """
        if not self.has_tokens(user, amount):
            logger.info(
                f"Token quota exceeded for user {user.id}: "
                f"used={user.tokens_used} limit={user.tokens_limit} needed={amount}"
            )
            raise http_429_too_many_requests({
                "error": "quota_exceeded",
                "message": message,
                "tokens_needed": amount,
                "tokens_remaining": self.remaining(user),
                "limit": user.tokens_limit,
                "used": user.tokens_used,
            })

        logger.debug(f"Quota check PASSED for user {user.id} (amount={amount})")
        return True

    def increment_usage(self, user: User, amount: int, commit: bool = True) -> int:
        """
        Add amount to the user's tokens_used

        Returns:
            The new tokens_used value
        """
        user.tokens_used = (user.tokens_used or 0) + max(amount, 0)
        if commit:
            self.db.commit()
        logger.debug(f"Incremented token usage for user {user.id} by {amount}")
        return user.tokens_used

    def get_usage(self, user: User) -> Dict[str, Any]:
        """
        Current usage for the user

        Returns:
            Dictionary with used, limit, remaining, percentage, tier and status
        """
        limit = user.tokens_limit or 0
        used = user.tokens_used or 0
        percentage = min(round(used / limit * 100), 100) if limit > 0 else 0
        return {
            "used": used,
            "limit": limit,
            "remaining": self.remaining(user),
            "percentage": percentage,
            "tier": user.subscription_tier,
            "status": get_usage_status(percentage),
        }

    def reset_usage(self, user: User) -> bool:
        """Reset the cycle counter (typically called at renewal)"""
        user.tokens_used = 0
        self.db.commit()
        logger.info(f"Reset token usage for user {user.id}")
        return True

    def update_limit(self, user: User, limit: int) -> bool:
        """Set a new token limit (typically when the user changes plan)"""
        user.tokens_limit = limit
        self.db.commit()
        logger.info(f"Updated token limit for user {user.id}: {limit}")
        return True

    def check_and_increment(self, user: User, amount: int) -> int:
        """
        Check quota and increment usage

        Raises:
            HTTPException 429 if quota exceeded
        """
        self.check_tokens(user, amount)
        return self.increment_usage(user, amount)

    def is_quota_warning(self, user: User, threshold: float = 0.8) -> bool:
        """True if usage >= threshold * limit"""
        limit = user.tokens_limit or 0
        if limit <= 0:
            return False
        return (user.tokens_used or 0) >= threshold * limit

    def record_usage(
        self,
        user: User,
        operation: str,
        tokens: int,
        success: bool = True,
        metadata: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> UsageHistory:
        """Write a UsageHistory row"""
        entry = UsageHistory(
            user_id=user.id,
            operation=operation,
            tokens_used=tokens,
            success=success,
            metadata_=metadata or {},
        )
        self.db.add(entry)
        if commit:
            self.db.commit()
        return entry
