"""
Integration tests for authentication endpoints
"""

import pytest
from datetime import timedelta
from unittest.mock import patch

from smartdocs.core.security import hash_password
from smartdocs.models.api_key import APIKey
from smartdocs.models.email_token import EmailToken
from smartdocs.models.referral_reward import ReferralReward
from smartdocs.models.user import User
from smartdocs.services.email_service import EMAIL_VERIFICATION, PASSWORD_RESET, create_email_token
from smartdocs.utils.time import utcnow


@pytest.fixture
def mock_queue():
    with patch("smartdocs.api.auth.queue_email") as mock:
        yield mock


@pytest.mark.integration
class TestSignup:

    def test_signup_creates_user_and_key(self, client, db_session, mock_queue):
        response = client.post("/api/v1/auth/signup", json={
            "name": "Sara",
            "email": "Sara@Example.com",
            "password": "secret1",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "sara@example.com"
        assert data["api_key"].startswith("sd_")

        user = db_session.query(User).filter(User.email == "sara@example.com").one()
        assert user.subscription_tier == "FREE"
        assert user.tokens_limit == 10000
        assert user.email_verified is None
        assert len(user.referral_code) > 0
        mock_queue.assert_called_once()

    def test_signup_with_referral_credits_referrer(self, client, db_session, make_user, mock_queue):
        referrer = make_user(referral_code="FRIEND01")

        response = client.post("/api/v1/auth/signup", json={
            "name": "Omar",
            "email": "omar@example.com",
            "password": "secret1",
            "referral_code": "friend01",
        })

        assert response.status_code == 201
        db_session.refresh(referrer)
        assert referrer.total_referral_tokens == 10000
        reward = db_session.query(ReferralReward).one()
        assert reward.type == "signup"
        assert reward.tokens == 10000

    @pytest.mark.parametrize("payload,message", [
        ({"name": "A", "email": "a@example.com"}, "Name, email and password are required"),
        ({"name": "A", "email": "not-an-email", "password": "secret1"}, "Invalid email address"),
        ({"name": "A", "email": "a@example.com", "password": "123"}, "Password must be at least 6 characters long"),
    ])
    def test_signup_validation(self, client, mock_queue, payload, message):
        response = client.post("/api/v1/auth/signup", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"] == message
        mock_queue.assert_not_called()

    def test_duplicate_email(self, client, test_user, mock_queue):
        response = client.post("/api/v1/auth/signup", json={
            "name": "Again",
            "email": "TEST@example.com",
            "password": "secret1",
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "User with this email already exists"


@pytest.mark.integration
class TestLogin:

    def test_login_issues_new_key(self, client, db_session, make_user):
        user = make_user(email="login@example.com", hashed_password=hash_password("correct horse"))

        response = client.post("/api/v1/auth/login", json={"email": "login@example.com", "password": "correct horse"})

        assert response.status_code == 200
        assert response.json()["api_key"].startswith("sd_")
        assert db_session.query(APIKey).filter(APIKey.user_id == user.id).count() == 1

    def test_login_wrong_password(self, client, make_user):
        make_user(email="login@example.com", hashed_password=hash_password("correct horse"))

        response = client.post("/api/v1/auth/login", json={"email": "login@example.com", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_inactive_account(self, client, make_user):
        make_user(email="gone@example.com", hashed_password=hash_password("secret12"), is_active=False)

        response = client.post("/api/v1/auth/login", json={"email": "gone@example.com", "password": "secret12"})

        assert response.status_code == 401


@pytest.mark.integration
class TestEmailVerification:

    def test_verify_email(self, client, db_session, make_user):
        user = make_user(email_verified=None)
        token = create_email_token(db_session, user, EMAIL_VERIFICATION)
        db_session.commit()

        response = client.post("/api/v1/auth/verify-email", json={"token": token.token})

        assert response.status_code == 200
        db_session.refresh(user)
        db_session.refresh(token)
        assert user.email_verified is not None
        assert token.used is True

    def test_verify_link_rejects_used_token(self, client, db_session, make_user):
        user = make_user(email_verified=None)
        token = create_email_token(db_session, user, EMAIL_VERIFICATION)
        token.used = True
        db_session.commit()

        response = client.get("/api/v1/auth/verify-email", params={"token": token.token})

        assert response.status_code == 400
        assert response.json()["detail"] == "Token has already been used"

    def test_verify_rejects_reset_token(self, client, db_session, test_user):
        token = create_email_token(db_session, test_user, PASSWORD_RESET)
        db_session.commit()

        response = client.post("/api/v1/auth/verify-email", json={"token": token.token})

        assert response.json()["detail"] == "Token type mismatch"

    def test_resend_only_for_unverified(self, client, make_user, mock_queue):
        make_user(email="pending@example.com", email_verified=None)
        make_user(email="done@example.com")

        first = client.post("/api/v1/auth/resend-verification", json={"email": "pending@example.com"})
        second = client.post("/api/v1/auth/resend-verification", json={"email": "done@example.com"})

        assert first.json() == second.json()
        assert mock_queue.call_count == 1


@pytest.mark.integration
class TestPasswordReset:

    def test_forgot_password_is_silent_for_unknown_email(self, client, mock_queue):
        response = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})

        assert response.status_code == 200
        mock_queue.assert_not_called()

    def test_full_reset_flow(self, client, db_session, make_user, mock_queue):
        user = make_user(email="reset@example.com", hashed_password=hash_password("old-password"))

        client.post("/api/v1/auth/forgot-password", json={"email": "reset@example.com"})
        token = db_session.query(EmailToken).filter(EmailToken.user_id == user.id).one()

        check = client.get("/api/v1/auth/reset-password", params={"token": token.token})
        assert check.json() == {"valid": True, "email": "reset@example.com"}

        response = client.post("/api/v1/auth/reset-password", json={"token": token.token, "password": "new-password"})
        assert response.status_code == 200

        login = client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": "new-password"})
        assert login.status_code == 200

        reuse = client.post("/api/v1/auth/reset-password", json={"token": token.token, "password": "another-pass"})
        assert reuse.json()["detail"] == "Reset token has already been used"

    def test_reset_rejects_short_password(self, client):
        response = client.post("/api/v1/auth/reset-password", json={"token": "abc", "password": "short"})
        assert response.json()["detail"] == "Password must be at least 8 characters long"

    def test_expired_reset_token(self, client, db_session, test_user):
        token = create_email_token(db_session, test_user, PASSWORD_RESET)
        token.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = client.post("/api/v1/auth/reset-password", json={"token": token.token, "password": "new-password"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Reset token has expired"


@pytest.mark.integration
class TestAPIKeys:

    def test_requires_authorization(self, client):
        assert client.get("/api/v1/auth/api-keys").status_code == 422
        assert client.get("/api/v1/auth/api-keys", headers={"Authorization": "Bearer sd_nope"}).status_code == 401

    def test_list_and_revoke(self, client, db_session, test_user, auth_headers):
        headers = auth_headers(test_user)

        keys = client.get("/api/v1/auth/api-keys", headers=headers).json()
        assert len(keys) == 1
        assert "key_hash" not in keys[0]

        other_headers = auth_headers(test_user)
        response = client.delete(f"/api/v1/auth/api-keys/{keys[0]['id']}", headers=other_headers)

        assert response.status_code == 204
        assert client.get("/api/v1/auth/api-keys", headers=headers).status_code == 401
