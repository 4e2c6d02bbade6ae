"""
Unit tests for AdminService

Tests:
- Audit logging (critical prefix, redaction)
- User creation validation
- Back office actions and self-modification guard
- Subscription overrides and statistics
- Activity log visibility
"""

import pytest
from fastapi import HTTPException

from smartdocs.models.admin_activity import AdminActivity
from smartdocs.services.admin_service import (
    AdminService,
    log_admin_activity,
    log_critical_action,
    sanitize_user_response,
)


@pytest.mark.unit
class TestAuditLog:

    def test_sensitive_action_gets_critical_prefix(self, db_session, admin_user, test_user):
        activity = log_admin_activity(db_session, admin_user, "suspend", test_user.id)
        assert activity.action == "critical_suspend"
        assert activity.target_id == str(test_user.id)

    def test_regular_action_is_unchanged(self, db_session, admin_user):
        assert log_admin_activity(db_session, admin_user, "reset_tokens").action == "reset_tokens"

    def test_log_critical_action(self, db_session, admin_user, test_user):
        activity = log_critical_action(db_session, admin_user, "export_users", test_user.id)
        assert activity.action == "critical_export_users"
        assert db_session.query(AdminActivity).filter(AdminActivity.action == "critical_export_users").count() == 1

    def test_details_are_redacted(self, db_session, admin_user):
        activity = log_admin_activity(db_session, admin_user, "create_user", details={"password": "hunter22"})
        assert activity.details == {"password": "***REDACTED***"}

    def test_sanitize_user_response_hides_secrets(self, make_user):
        user = make_user(hashed_password="hash", stripe_customer_id="cus_1")
        data = sanitize_user_response(user)

        assert "hashed_password" not in data
        assert "stripe_customer_id" not in data
        assert data["id"] == str(user.id)
        assert data["email"] == user.email


@pytest.mark.unit
class TestUserManagement:

    def test_create_user(self, db_session, admin_user):
        user = AdminService(db_session).create_user(admin_user, {
            "name": "New Person",
            "email": " New@Example.com ",
            "password": "secret1",
            "subscription_tier": "professional",
        })

        assert user.email == "new@example.com"
        assert user.subscription_tier == "PROFESSIONAL"
        assert user.tokens_limit == 100000
        assert user.email_verified is not None

        logged = db_session.query(AdminActivity).filter(AdminActivity.action == "create_user").one()
        assert logged.target_id == str(user.id)

    @pytest.mark.parametrize("data,message", [
        ({"name": "A", "email": "a@example.com"}, "Name, email and password are required"),
        ({"name": "A", "email": "a@example.com", "password": "123"}, "Password must be at least 6 characters"),
        ({"name": "A", "email": "admin@example.com", "password": "123456"}, "User with this email already exists"),
        ({"name": "A", "email": "b@example.com", "password": "123456", "role": "owner"}, "Invalid role"),
    ])
    def test_create_user_validation(self, db_session, admin_user, data, message):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).create_user(admin_user, data)
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == message

    def test_update_user_rejects_taken_email(self, db_session, admin_user, test_user):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).update_user(admin_user, test_user.id, {"email": "ADMIN@example.com"})
        assert exc_info.value.detail == "Email already in use"

    def test_update_user_refuses_role_changes(self, db_session, admin_user, test_user):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).update_user(admin_user, test_user.id, {"role": "super_admin"})
        assert exc_info.value.detail == "Use the change_role action to change roles"
        db_session.refresh(test_user)
        assert test_user.role == "user"

    @pytest.mark.parametrize("changes", [
        {"role": "super_admin"},
        {"is_active": False},
        {"subscription_status": "canceled"},
    ])
    def test_update_user_guards_own_account(self, db_session, admin_user, changes):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).update_user(admin_user, admin_user.id, changes)
        assert exc_info.value.detail == "Cannot modify your own account"

    def test_cannot_delete_self(self, db_session, admin_user):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).delete_user(admin_user, admin_user.id)
        assert exc_info.value.status_code == 400

    def test_list_users_search_and_pagination(self, db_session, make_user):
        make_user(name="Acme Owner", company_name="Acme")
        make_user(name="Someone Else")

        result = AdminService(db_session).list_users(search="acme", limit=10)

        assert [u["name"] for u in result["users"]] == ["Acme Owner"]
        assert result["users"][0]["documents_count"] == 0
        assert result["pagination"]["total"] == 1
        assert result["pagination"]["has_next_page"] is False


@pytest.mark.unit
class TestUserActions:

    def test_suspend_and_activate(self, db_session, admin_user, test_user):
        service = AdminService(db_session)

        result = service.perform_action(admin_user, test_user.id, "suspend", {})
        assert result["message"] == "Suspended user account successfully"
        assert result["user"]["subscription_status"] == "suspended"
        assert result["user"]["is_active"] is False

        service.perform_action(admin_user, test_user.id, "activate", {})
        db_session.refresh(test_user)
        assert test_user.is_active is True

        actions = [a.action for a in db_session.query(AdminActivity).all()]
        assert "critical_suspend" in actions
        assert "activate" in actions

    def test_cannot_modify_self(self, db_session, admin_user):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).perform_action(admin_user, admin_user.id, "reset_tokens", {})
        assert exc_info.value.detail == "Cannot modify your own account"

    def test_adjust_tokens_validates_limit(self, db_session, admin_user, test_user):
        service = AdminService(db_session)

        with pytest.raises(HTTPException):
            service.perform_action(admin_user, test_user.id, "adjust_tokens", {"tokens_limit": -5})

        service.perform_action(admin_user, test_user.id, "adjust_tokens", {"tokens_limit": 25000})
        db_session.refresh(test_user)
        assert test_user.tokens_limit == 25000

    def test_set_permissions_rejects_unknown(self, db_session, admin_user, make_user):
        other_admin = make_user(role="admin")
        service = AdminService(db_session)

        with pytest.raises(HTTPException):
            service.perform_action(admin_user, other_admin.id, "set_permissions", {"permissions": ["fly"]})

        service.perform_action(admin_user, other_admin.id, "set_permissions", {"permissions": ["view_analytics"]})
        db_session.refresh(other_admin)
        assert other_admin.admin_permissions == ["view_analytics"]

    def test_unknown_action(self, db_session, admin_user, test_user):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).perform_action(admin_user, test_user.id, "explode", {})
        assert exc_info.value.detail == "Invalid action"


@pytest.mark.unit
class TestSubscriptionsAndReports:

    def test_update_subscription_resets_limit_for_tier(self, db_session, admin_user, test_user):
        result = AdminService(db_session).update_subscription(admin_user, test_user.id, {"tier": "hobby"})

        assert result["tier"] == "HOBBY"
        assert result["tokens_limit"] == 50000
        assert result["monthly_revenue"] == 3.8

    def test_update_subscription_rejects_status(self, db_session, admin_user, test_user):
        with pytest.raises(HTTPException):
            AdminService(db_session).update_subscription(admin_user, test_user.id, {"status": "sleeping"})

    def test_subscription_stats(self, db_session, make_user):
        make_user(subscription_tier="HOBBY")
        make_user(subscription_tier="HOBBY")
        make_user(subscription_tier="FREE")

        stats = AdminService(db_session).subscription_stats()

        assert stats["by_tier"] == {"HOBBY": 2, "FREE": 1}
        assert stats["active_paid_subscriptions"] == 2
        assert stats["estimated_mrr"] == 7.6

    def test_analytics_rejects_unknown_period(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            AdminService(db_session).analytics("1y")
        assert exc_info.value.status_code == 400

    def test_activity_log_visibility(self, db_session, admin_user, super_admin, test_user):
        log_admin_activity(db_session, admin_user, "reset_tokens", test_user.id)
        log_admin_activity(db_session, super_admin, "suspend", test_user.id)
        db_session.commit()
        service = AdminService(db_session)

        own = service.activity_log(admin_user, is_super_admin=False)
        assert [a["action"] for a in own["activities"]] == ["reset_tokens"]
        assert "admin_summary" not in own

        everything = service.activity_log(super_admin, is_super_admin=True)
        assert everything["pagination"]["total"] == 2
        assert everything["action_summary"] == {"reset_tokens": 1, "critical_suspend": 1}
        assert len(everything["admin_summary"]) == 2
