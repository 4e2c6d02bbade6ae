"""
Unit tests for the domain exception mapping and the registered handlers
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from smartdocs.core.exceptions import (
    DuplicateError,
    NotFoundError,
    PaymentProviderError,
    PermissionDeniedError,
    QuotaExceededError,
    SmartDocsException,
    WebhookVerificationError,
)
from smartdocs.utils.error_handlers import ErrorHandler, setup_error_handlers


@pytest.fixture
def app_client():
    app = FastAPI()
    setup_error_handlers(app)

    @app.get("/missing")
    def missing():
        raise NotFoundError("Project not found")

    @app.get("/quota")
    def quota():
        raise QuotaExceededError("Token limit reached", needed=3000, remaining=500)

    @app.get("/moyasar")
    def moyasar():
        raise PaymentProviderError("Moyasar API error: Invalid amount", "moyasar", 400)

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.unit
class TestDomainErrors:

    @pytest.mark.parametrize("error, expected", [
        (PermissionDeniedError("Insufficient permissions"), 403),
        (NotFoundError("User not found"), 404),
        (DuplicateError("Email already registered"), 409),
        (WebhookVerificationError("Invalid signature"), 400),
        (SmartDocsException("Something odd"), 400),
    ])
    def test_status_mapping(self, error, expected):
        status_code, content = ErrorHandler.handle_domain_error(error)

        assert status_code == expected
        assert content == {"detail": str(error)}

    def test_quota_error_carries_token_counts(self):
        status_code, content = ErrorHandler.handle_domain_error(
            QuotaExceededError("Token limit reached", needed=3000, remaining=500)
        )

        assert status_code == 429
        assert content["tokens_needed"] == 3000
        assert content["tokens_remaining"] == 500

    def test_payment_error_payload(self):
        payload = ErrorHandler.handle_payment_error(PaymentProviderError("declined", "moyasar", 402))

        assert payload["error"] == "payment_provider_error"
        assert payload["provider"] == "moyasar"


@pytest.mark.unit
class TestRegisteredHandlers:

    def test_not_found(self, app_client):
        response = app_client.get("/missing")

        assert response.status_code == 404
        assert response.json() == {"detail": "Project not found"}

    def test_quota(self, app_client):
        response = app_client.get("/quota")

        assert response.status_code == 429
        assert response.json()["tokens_remaining"] == 500

    def test_payment_provider_error_is_bad_gateway(self, app_client):
        response = app_client.get("/moyasar")

        assert response.status_code == 502
        assert response.json()["provider"] == "moyasar"
