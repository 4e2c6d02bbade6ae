"""
Unit tests for admin roles and permissions
"""

import pytest
from types import SimpleNamespace

from smartdocs.core.permissions import (
    AdminPermission,
    has_any_permission,
    has_permission,
    is_admin,
    is_super_admin,
    validate_permissions,
)


def _user(role, permissions=None):
    return SimpleNamespace(role=role, admin_permissions=permissions or [])


@pytest.mark.unit
class TestPermissions:

    def test_roles(self):
        assert is_admin(_user("admin")) is True
        assert is_admin(_user("super_admin")) is True
        assert is_admin(_user("user")) is False
        assert is_admin(None) is False
        assert is_super_admin(_user("admin")) is False

    def test_super_admin_has_everything(self):
        root = _user("super_admin")
        for permission in AdminPermission:
            assert has_permission(root, permission)

    def test_admin_needs_explicit_permission(self):
        admin = _user("admin", ["manage_users"])
        assert has_permission(admin, AdminPermission.MANAGE_USERS)
        assert has_permission(admin, "manage_users")
        assert not has_permission(admin, AdminPermission.MANAGE_SYSTEM)

    def test_regular_user_never_has_permissions(self):
        user = _user("user", ["manage_users"])
        assert not has_permission(user, AdminPermission.MANAGE_USERS)

    def test_has_any_permission(self):
        admin = _user("admin", ["view_analytics"])
        assert has_any_permission(admin, [AdminPermission.MANAGE_USERS, AdminPermission.VIEW_ANALYTICS])
        assert not has_any_permission(admin, [AdminPermission.MANAGE_USERS])

    def test_validate_permissions(self):
        assert validate_permissions(["manage_users", "view_analytics"]) == []
        assert validate_permissions(["manage_users", "fly"]) == ["fly"]
