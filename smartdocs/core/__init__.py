"""
Core Utilities

Modules:
    - security: API key generation, password hashing, one-time tokens
    - exceptions: Custom exceptions and HTTP helpers
    - plans: Subscription tiers, prices and limits
    - permissions: Admin roles and permission checks
"""

from smartdocs.core import security, exceptions, plans, permissions

__all__ = ["security", "exceptions", "plans", "permissions"]
