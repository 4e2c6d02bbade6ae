"""
Pydantic Schemas for Billing endpoints
"""

from pydantic import BaseModel
from typing import Optional


class StripeCheckoutRequest(BaseModel):
    price_id: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class MoyasarCheckoutRequest(BaseModel):
    price_id: Optional[str] = None
    callback_url: Optional[str] = None


class PortalRequest(BaseModel):
    return_url: Optional[str] = None
