"""
Payment provider webhooks
Stripe and Moyasar notify subscription and payment changes here
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import json
import logging

import stripe

from smartdocs.database import get_db
from smartdocs.api.deps import get_moyasar_client
from smartdocs.core.exceptions import WebhookVerificationError, http_400_bad_request
from smartdocs.services import stripe_service
from smartdocs.services import moyasar_service
from smartdocs.services.billing_service import BillingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Stripe event receiver

    The raw body is verified against the Stripe-Signature header before
    anything is read from it. Handled events: subscription created,
    updated and deleted; invoice payment succeeded and failed; checkout
    session completed. Other events are acknowledged and ignored.

    Raises:
        WebhookVerificationError: missing or invalid signature (400)
        HTTPException: 400 when processing the event fails
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise WebhookVerificationError("Missing stripe-signature header")

    try:
        stripe_service.verify_webhook_signature(payload, signature)
    except (stripe.SignatureVerificationError, ValueError) as e:
        logger.warning(f"Stripe webhook verification failed: {e}")
        raise WebhookVerificationError("Invalid signature")

    event = json.loads(payload)
    try:
        BillingService(db, moyasar=get_moyasar_client()).handle_stripe_event(event)
    except Exception as e:
        db.rollback()
        logger.error(f"Stripe webhook {event.get('type')} failed: {e}")
        raise http_400_bad_request("Webhook handler failed")

    return {"received": True}


@router.post("/moyasar")
async def moyasar_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Moyasar event receiver

    The signature is an HMAC-SHA256 hex digest of the raw body, sent in
    x-moyasar-signature (or signature). Paid and captured payments
    activate the plan named in the payment metadata; refunds cancel it.
    """
    payload = await request.body()
    signature = request.headers.get("x-moyasar-signature") or request.headers.get("signature")
    if not signature:
        raise WebhookVerificationError("Missing signature")
    if not moyasar_service.verify_webhook_signature(payload, signature):
        logger.warning("Moyasar webhook verification failed")
        raise WebhookVerificationError("Invalid signature")

    try:
        event = json.loads(payload)
    except ValueError:
        raise http_400_bad_request("Invalid payload")

    try:
        BillingService(db, moyasar=get_moyasar_client()).handle_moyasar_event(event)
    except Exception as e:
        db.rollback()
        logger.error(f"Moyasar webhook {event.get('type')} failed: {e}")
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})

    return {"received": True}
