"""
Integration tests for billing endpoints and payment webhooks

Webhook payloads are signed with the test secrets configured in conftest,
so signature verification runs for real.
"""

import hashlib
import hmac
import json
import pytest
import time
from types import SimpleNamespace
from unittest.mock import Mock, patch

from smartdocs.api import billing
from smartdocs.main import app
from smartdocs.models.payment import Payment
from smartdocs.models.subscription import Subscription
from smartdocs.services.billing_service import BillingService

STRIPE_SECRET = "whsec_test"
MOYASAR_SECRET = "moyasar_test_secret"


def stripe_signed(event):
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac.new(STRIPE_SECRET.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return payload, {"stripe-signature": f"t={timestamp},v1={signature}", "content-type": "application/json"}


def moyasar_signed(event):
    payload = json.dumps(event).encode()
    signature = hmac.new(MOYASAR_SECRET.encode(), payload, hashlib.sha256).hexdigest()
    return payload, {"x-moyasar-signature": signature, "content-type": "application/json"}


@pytest.fixture
def headers(test_user, auth_headers):
    return auth_headers(test_user)


@pytest.fixture
def moyasar_client(client, db_session):
    moyasar = Mock()
    app.dependency_overrides[billing.get_billing_service] = lambda: BillingService(db_session, moyasar=moyasar)
    return moyasar


@pytest.mark.integration
class TestBillingAPI:

    def test_payment_config_from_query(self, client):
        data = client.get("/api/v1/billing/payment-config", params={"country": "sa"}).json()

        assert data["provider"] == "moyasar"
        assert data["currency"] == "sar"

    def test_payment_config_from_geo_header(self, client):
        data = client.get("/api/v1/billing/payment-config", headers={"cf-ipcountry": "US"}).json()
        assert data["provider"] == "stripe"

    def test_status(self, client, db_session, test_user, headers):
        test_user.tokens_used = 2500
        db_session.commit()

        data = client.get("/api/v1/billing/status", headers=headers).json()

        assert data["subscription"]["tier"] == "FREE"
        assert data["usage"]["tokens_remaining"] == 7500
        assert data["usage"]["usage_percentage"] == 25

    def test_stripe_checkout_requires_price(self, client, headers):
        response = client.post("/api/v1/billing/stripe/checkout", json={}, headers=headers)
        assert response.json()["detail"] == "Price ID is required"

    @patch("smartdocs.services.billing_service.stripe_service")
    def test_stripe_checkout_creates_customer(self, mock_stripe, client, db_session, test_user, headers):
        mock_stripe.create_customer.return_value = SimpleNamespace(id="cus_123")
        mock_stripe.create_checkout_session.return_value = SimpleNamespace(id="cs_1", url="https://checkout/cs_1")

        response = client.post(
            "/api/v1/billing/stripe/checkout", json={"price_id": "price_hobby_monthly_x"}, headers=headers
        )

        assert response.json() == {"session_id": "cs_1", "url": "https://checkout/cs_1"}
        db_session.refresh(test_user)
        assert test_user.stripe_customer_id == "cus_123"
        metadata = mock_stripe.create_checkout_session.call_args.kwargs["metadata"]
        assert metadata["user_id"] == str(test_user.id)

    def test_stripe_checkout_rejects_active_subscriber(self, client, make_user, auth_headers):
        subscriber = make_user(subscription_tier="HOBBY", subscription_status="active")

        response = client.post("/api/v1/billing/stripe/checkout", json={"price_id": "price_hobby_monthly_x"},
                               headers=auth_headers(subscriber))

        assert response.json()["detail"] == "User already has an active subscription"

    def test_moyasar_checkout(self, client, moyasar_client, test_user, headers):
        moyasar_client.create_payment.return_value = {
            "id": "pay_1",
            "status": "initiated",
            "amount": 1425,
            "currency": "SAR",
            "source": {"transaction_url": "https://moyasar/pay_1"},
            "metadata": {"plan_key": "hobby"},
        }

        response = client.post("/api/v1/billing/moyasar/checkout", json={"price_id": "hobby_monthly"}, headers=headers)

        data = response.json()
        assert data["checkout_url"] == "https://moyasar/pay_1"
        kwargs = moyasar_client.create_payment.call_args.kwargs
        assert kwargs["amount"] == 1425
        assert kwargs["metadata"]["interval"] == "monthly"

    def test_moyasar_checkout_invalid_price(self, client, moyasar_client, headers):
        response = client.post("/api/v1/billing/moyasar/checkout", json={"price_id": "gold"}, headers=headers)

        assert response.status_code == 400
        moyasar_client.create_payment.assert_not_called()

    def test_portal_without_customer(self, client, headers):
        response = client.post("/api/v1/billing/stripe/portal", json={}, headers=headers)
        assert response.json()["detail"] == "No billing account found"


@pytest.mark.integration
class TestStripeWebhook:

    def test_missing_signature(self, client):
        response = client.post("/api/v1/webhooks/stripe", content=b"{}")
        assert response.json()["detail"] == "Missing stripe-signature header"

    def test_invalid_signature(self, client):
        response = client.post("/api/v1/webhooks/stripe", content=b"{}",
                               headers={"stripe-signature": "t=1,v1=deadbeef"})
        assert response.json()["detail"] == "Invalid signature"

    def test_subscription_created(self, client, db_session, make_user):
        user = make_user(stripe_customer_id="cus_9")
        payload, headers = stripe_signed({
            "id": "evt_1",
            "object": "event",
            "type": "customer.subscription.created",
            "data": {"object": {
                "id": "sub_9",
                "object": "subscription",
                "customer": "cus_9",
                "status": "active",
                "items": {"data": [{"price": {"id": "price_professional_yearly_abc"}}]},
            }},
        })

        response = client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)

        assert response.json() == {"received": True}
        db_session.refresh(user)
        assert user.subscription_tier == "PROFESSIONAL"
        assert user.billing_cycle == "yearly"
        assert user.tokens_limit == 110000
        assert user.stripe_subscription_id == "sub_9"

    def test_subscription_deleted_downgrades(self, client, db_session, make_user):
        user = make_user(subscription_tier="HOBBY", tokens_limit=50000, stripe_subscription_id="sub_5")
        payload, headers = stripe_signed({
            "id": "evt_2",
            "object": "event",
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_5", "object": "subscription"}},
        })

        client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)

        db_session.refresh(user)
        assert user.subscription_tier == "FREE"
        assert user.subscription_status == "canceled"
        assert user.tokens_limit == 10000

    def test_invoice_paid_records_payment(self, client, db_session, make_user):
        make_user(stripe_customer_id="cus_7")
        payload, headers = stripe_signed({
            "id": "evt_3",
            "object": "event",
            "type": "invoice.payment_succeeded",
            "data": {"object": {"id": "in_1", "object": "invoice", "customer": "cus_7",
                                "amount_paid": 380, "currency": "usd"}},
        })

        client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)

        payment = db_session.query(Payment).one()
        assert payment.provider == "stripe"
        assert payment.amount == 380
        assert payment.currency == "USD"


@pytest.mark.integration
class TestMoyasarWebhook:

    def test_invalid_signature(self, client):
        response = client.post("/api/v1/webhooks/moyasar", content=b"{}", headers={"x-moyasar-signature": "nope"})
        assert response.json()["detail"] == "Invalid signature"

    def test_payment_paid_activates_plan(self, client, db_session, test_user):
        test_user.tokens_used = 900
        db_session.commit()
        payload, headers = moyasar_signed({
            "type": "payment.paid",
            "data": {
                "id": "pay_42",
                "amount": 12825,
                "currency": "sar",
                "metadata": {"user_id": str(test_user.id), "plan_key": "hobby", "interval": "yearly"},
            },
        })

        response = client.post("/api/v1/webhooks/moyasar", content=payload, headers=headers)

        assert response.json() == {"received": True}
        db_session.refresh(test_user)
        assert test_user.subscription_tier == "HOBBY"
        assert test_user.billing_cycle == "yearly"
        assert test_user.tokens_used == 0
        assert test_user.tokens_limit == 55000
        assert test_user.moyasar_customer_id == "pay_42"

        subscription = db_session.query(Subscription).one()
        assert subscription.billing_cycle == "ANNUAL"
        assert subscription.amount == 128.25
        assert db_session.query(Payment).one().status == "succeeded"

    def test_refund_cancels_subscription(self, client, db_session, test_user):
        event = {
            "type": "payment.paid",
            "data": {"id": "pay_7", "amount": 1425,
                     "metadata": {"user_id": str(test_user.id), "plan_key": "hobby", "interval": "monthly"}},
        }
        payload, headers = moyasar_signed(event)
        client.post("/api/v1/webhooks/moyasar", content=payload, headers=headers)

        payload, headers = moyasar_signed({**event, "type": "payment.refunded"})
        client.post("/api/v1/webhooks/moyasar", content=payload, headers=headers)

        db_session.refresh(test_user)
        assert test_user.subscription_tier == "FREE"
        assert test_user.subscription_status == "canceled"
        assert db_session.query(Subscription).one().status == "CANCELLED"

    def test_missing_user_is_acknowledged(self, client):
        payload, headers = moyasar_signed({"type": "payment.paid", "data": {"id": "pay_1", "metadata": {}}})

        response = client.post("/api/v1/webhooks/moyasar", content=payload, headers=headers)

        assert response.json() == {"received": True}
