"""
Payment Domain Models

Featured-story upgrades (Stripe or PayPal) and marketplace checkout payloads.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

from innovates.domain.marketplace import CartItemInput, ShippingAddress


PAYMENT_STATUSES = ("pending", "completed", "failed", "expired")


class FeaturedStoryPayment(BaseModel):
    """featured_story_payments row"""

    id: str
    submission_id: str
    stripe_session_id: Optional[str] = None
    stripe_payment_id: Optional[str] = None
    paypal_order_id: Optional[str] = None
    paypal_payment_id: Optional[str] = None
    amount: int = Field(..., description="Amount in cents")
    currency: str = "usd"
    status: str = "pending"
    payer_email: Optional[str] = None
    payer_name: Optional[str] = None
    featured_start_date: Optional[datetime] = None
    featured_end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class FeaturedCheckoutRequest(BaseModel):
    submission_id: str
    payer_email: Optional[str] = None
    payer_name: Optional[str] = None


class StripeCaptureRequest(BaseModel):
    session_id: str


class PayPalCaptureRequest(BaseModel):
    order_id: str


class MarketplaceCheckoutRequest(BaseModel):
    items: List[CartItemInput] = Field(..., min_length=1)
    shipping_address: Optional[ShippingAddress] = None
    customer_name: Optional[str] = None


class CheckoutSession(BaseModel):
    url: Optional[str] = None
    session_id: str
