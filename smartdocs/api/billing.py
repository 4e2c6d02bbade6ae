"""
Billing API endpoints
Payment provider routing, checkout, customer portal and subscription status
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import Optional

from smartdocs.database import get_db
from smartdocs.api.deps import get_current_user, get_moyasar_client
from smartdocs.models.user import User
from smartdocs.schemas.billing import StripeCheckoutRequest, MoyasarCheckoutRequest, PortalRequest
from smartdocs.services.billing_service import BillingService
from smartdocs.services.payment_router import build_payment_options, detect_country

router = APIRouter(prefix="/billing", tags=["billing"])


def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    return BillingService(db, moyasar=get_moyasar_client())


@router.get("/payment-config")
async def payment_config(request: Request, country: Optional[str] = None):
    """
    Payment provider, currency and localized prices for a country

    Arabic-speaking countries are routed to Moyasar in SAR, everyone else
    to Stripe in USD. Without an explicit country the CDN geolocation
    headers are used.
    """
    country_code = country.upper() if country else detect_country(request.headers)
    return build_payment_options(country_code)


@router.post("/stripe/checkout")
async def stripe_checkout(
    payload: StripeCheckoutRequest,
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    """
    Start a Stripe Checkout session for a subscription

    Returns:
        dict: session_id and the hosted checkout url

    Raises:
        HTTPException: 400 for a missing or invalid price, or an existing paid subscription
    """
    return service.create_stripe_checkout(
        current_user,
        payload.price_id,
        success_url=payload.success_url,
        cancel_url=payload.cancel_url,
    )


@router.post("/moyasar/checkout")
async def moyasar_checkout(
    payload: MoyasarCheckoutRequest,
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    """
    Create a Moyasar payment for "<plan>_<interval>"

    Raises:
        HTTPException: 400 for an invalid price id or an existing paid subscription
    """
    return service.create_moyasar_checkout(current_user, payload.price_id, payload.callback_url)


@router.post("/stripe/portal")
async def stripe_portal(
    payload: Optional[PortalRequest] = None,
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    """Stripe customer portal link (400 when the user never paid through Stripe)"""
    return service.create_portal(current_user, payload.return_url if payload else None)


@router.post("/cancel")
async def cancel_subscription(
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    return service.cancel(current_user)


@router.get("/status")
async def billing_status(
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service)
):
    """Subscription state and token usage for the billing page"""
    return service.get_status(current_user)
