"""
Moyasar integration - SAR card payments for Arabic-speaking countries

Moyasar has no subscription object; every billing period is a standalone
payment whose metadata carries the plan and interval.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from smartdocs.config import settings
from smartdocs.core.exceptions import PaymentProviderError
from smartdocs.core.plans import MOYASAR_PLANS, BillingInterval, parse_interval
from smartdocs.utils.retry import retry_on_payment_provider_error

logger = logging.getLogger(__name__)

APP_NAME = "smartdocs"
PROVIDER = "moyasar"

INTERVAL_LABELS_AR = {
    BillingInterval.MONTHLY: "شهري",
    BillingInterval.YEARLY: "سنوي",
}


class MoyasarClient:
    """
    Minimal client for the Moyasar payments API

    Authenticates with HTTP basic auth: the secret key as the username and
    an empty password.

    Usage:
        client = MoyasarClient()
        payment = client.create_payment(1425, description="...", callback_url="...")
    """

    def __init__(self, secret_key: Optional[str] = None, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.secret_key = secret_key if secret_key is not None else settings.MOYASAR_SECRET_KEY
        self.base_url = (base_url or settings.MOYASAR_API_URL).rstrip("/")
        self.timeout = timeout or settings.MOYASAR_TIMEOUT

    def _handle_error(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            message = response.json().get("message") or response.text
        except ValueError:
            message = response.text or f"HTTP {response.status_code} error"
        logger.error(f"Moyasar API error {response.status_code}: {message}")
        raise PaymentProviderError(f"Moyasar API error: {message}", PROVIDER, response.status_code)

    @retry_on_payment_provider_error()
    def _request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        with httpx.Client(
            base_url=self.base_url,
            auth=(self.secret_key, ""),
            timeout=self.timeout,
        ) as client:
            response = client.request(method, endpoint, json=json)
        self._handle_error(response)
        return response.json()

    def create_payment(
        self,
        amount: int,
        description: str,
        callback_url: str,
        currency: str = "SAR",
        metadata: Optional[Dict[str, Any]] = None,
        source: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create a payment

        Args:
            amount: Amount in halalas
            description: Shown on the payment page
            callback_url: Where Moyasar redirects after the payment
            currency: ISO currency code
            metadata: Stored with the payment and echoed back in webhooks
            source: Payment source, a credit card by default
        """
        payload = {
            "amount": amount,
            "currency": currency,
            "description": description,
            "callback_url": callback_url,
            "source": source or {"type": "creditcard"},
            "metadata": {**(metadata or {}), "app": APP_NAME},
        }
        payment = self._request("POST", "/payments", json=payload)
        logger.info(f"Created Moyasar payment {payment.get('id')} for {amount} {currency}")
        return payment

    def retrieve_payment(self, payment_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/payments/{payment_id}")

    def capture_payment(self, payment_id: str, amount: Optional[int] = None) -> Dict[str, Any]:
        return self._request("POST", f"/payments/{payment_id}/capture", json={"amount": amount} if amount else {})

    def refund_payment(self, payment_id: str, amount: Optional[int] = None) -> Dict[str, Any]:
        return self._request("POST", f"/payments/{payment_id}/refund", json={"amount": amount} if amount else {})


def get_plan_price(plan: str, interval) -> int:
    interval = parse_interval(interval) or BillingInterval.MONTHLY
    return MOYASAR_PLANS[plan][interval.value]


def get_plan_description(plan: str, interval) -> str:
    """Arabic plan name with the billing period, e.g. "خطة الهواة - شهري" """
    interval = parse_interval(interval) or BillingInterval.MONTHLY
    return f"{MOYASAR_PLANS[plan]['name']} - {INTERVAL_LABELS_AR[interval]}"


def get_plan_from_moyasar_price(price_key: Optional[str]) -> Optional[Tuple[str, BillingInterval]]:
    """Parse "<plan>_<interval>" into (plan, interval), None when invalid"""
    parts = (price_key or "").split("_")
    if len(parts) < 2:
        return None
    plan = parts[0]
    interval = parse_interval(parts[1])
    if plan not in MOYASAR_PLANS or interval is None:
        return None
    return plan, interval


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: Optional[str] = None) -> bool:
    """HMAC-SHA256 hex digest of the raw body, compared in constant time"""
    if not signature:
        return False
    secret = secret if secret is not None else settings.MOYASAR_WEBHOOK_SECRET
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)
