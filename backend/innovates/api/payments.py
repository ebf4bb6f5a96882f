"""
Payments API Endpoints

Featured story upgrades through Stripe Checkout or PayPal, marketplace
checkout, and the Stripe webhook.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from innovates.core.auth import TokenUser, get_current_user, require_admin
from innovates.core.exceptions import InnovatesError, to_http_exception
from innovates.domain.payment import (
    FeaturedCheckoutRequest, MarketplaceCheckoutRequest, PayPalCaptureRequest, StripeCaptureRequest,
)
from innovates.services.payment_service import PaymentService, get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _origin(request: Request):
    return request.headers.get("origin")


# ==================== FEATURED STORY ====================

@router.post("/featured/stripe/checkout")
async def create_featured_stripe_checkout(
    data: FeaturedCheckoutRequest,
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    """Start a Stripe Checkout session for upgrading an approved story"""
    try:
        session = await service.create_featured_stripe_checkout(data, origin=_origin(request))
        return {"status": "success", "data": session.model_dump()}

    except InnovatesError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating featured checkout: {e}")
        raise HTTPException(status_code=500, detail=f"Error creating checkout: {str(e)}")


@router.post("/featured/stripe/capture")
async def capture_featured_stripe(
    data: StripeCaptureRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """Complete the upgrade after the Stripe redirect; safe to call twice"""
    try:
        return {"status": "success", "data": await service.capture_featured_stripe(data.session_id)}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/featured/paypal/order")
async def create_featured_paypal_order(
    data: FeaturedCheckoutRequest,
    service: PaymentService = Depends(get_payment_service),
):
    try:
        return {"status": "success", "data": await service.create_featured_paypal_order(data)}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/featured/paypal/capture")
async def capture_featured_paypal(
    data: PayPalCaptureRequest,
    service: PaymentService = Depends(get_payment_service),
):
    try:
        return {"status": "success", "data": await service.capture_featured_paypal(data.order_id)}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/featured/expire")
async def expire_featured_stories(
    admin: TokenUser = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Unfeature stories whose paid period has ended"""
    return {"status": "success", "data": service.expire_featured_stories()}


# ==================== MARKETPLACE ====================

@router.post("/marketplace/checkout")
async def create_marketplace_checkout(
    data: MarketplaceCheckoutRequest,
    request: Request,
    user: TokenUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        session = await service.create_marketplace_checkout(user, data, origin=_origin(request))
        return {"status": "success", "data": session.model_dump()}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/marketplace/confirm")
async def confirm_marketplace_payment(
    data: StripeCaptureRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """Create the order for a paid session; returns the existing order on repeat calls"""
    try:
        order = await service.confirm_marketplace_payment(data.session_id)
        return {"status": "success", "data": order.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


# ==================== WEBHOOK ====================

@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        return await service.handle_stripe_webhook(payload, signature)
    except InnovatesError as e:
        logger.error(f"Stripe webhook rejected: {e.message}")
        raise to_http_exception(e)
