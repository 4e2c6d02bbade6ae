"""
Admin roles and permissions

Roles live in User.role, fine-grained permissions in User.admin_permissions.
A super_admin implicitly holds every permission.
"""

from enum import Enum
from typing import Iterable


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AdminPermission(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_FEEDBACK = "manage_feedback"
    MANAGE_CONTENT = "manage_content"
    MANAGE_SUBSCRIPTIONS = "manage_subscriptions"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_SYSTEM = "manage_system"


ALL_PERMISSIONS = [p.value for p in AdminPermission]

ADMIN_ROLES = {UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value}

# Actions that are always recorded with the critical_ prefix
SENSITIVE_ACTIONS = {"delete_user", "suspend", "change_role", "set_permissions"}

# Requests per minute per admin, keyed by area
ADMIN_RATE_LIMITS = {
    "user_management": "60/minute",
    "analytics": "30/minute",
    "activity": "100/minute",
    "actions": "20/minute",
    "default": "100/minute",
}


def is_admin(user) -> bool:
    return user is not None and user.role in ADMIN_ROLES


def is_super_admin(user) -> bool:
    return user is not None and user.role == UserRole.SUPER_ADMIN.value


def has_permission(user, permission) -> bool:
    """Check a single admin permission (super admins always pass)"""
    if not is_admin(user):
        return False
    if is_super_admin(user):
        return True
    value = permission.value if isinstance(permission, AdminPermission) else permission
    return value in (user.admin_permissions or [])


def has_any_permission(user, permissions: Iterable) -> bool:
    return any(has_permission(user, p) for p in permissions)


def validate_permissions(permissions: Iterable[str]) -> list:
    """Return the unknown entries (empty list means all valid)"""
    return [p for p in permissions if p not in ALL_PERMISSIONS]
