"""
Payment Service - Stripe and PayPal flows

Featured story upgrade:
    create checkout (Stripe session or PayPal order) -> pending payment row
    capture -> payment completed, story featured for FEATURED_STORY_DAYS
    expire_featured_stories() -> ended periods expired, stories unfeatured

Marketplace checkout:
    create Stripe session with cart metadata on the payment intent
    confirm (client return or webhook) -> order + items, stock, cart, vendor emails

Capture and confirm are idempotent: the client return page and the Stripe
webhook may both run them for the same payment.
"""
import json
import uuid
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from innovates.core.auth import TokenUser
from innovates.core.config import settings
from innovates.core.exceptions import NotFoundError, PaymentError, ValidationError
from innovates.connectors.paypal_connector import PayPalConnector
from innovates.connectors.stripe_connector import StripeConnector
from innovates.domain.marketplace import Order, OrderItem, Product
from innovates.domain.payment import (
    CheckoutSession, FeaturedCheckoutRequest, FeaturedStoryPayment, MarketplaceCheckoutRequest,
)
from innovates.domain.submission import Submission
from innovates.repositories.cart_repository import CartRepository
from innovates.repositories.order_repository import OrderRepository
from innovates.repositories.payment_repository import PaymentRepository
from innovates.repositories.product_repository import ProductRepository
from innovates.repositories.submission_repository import SubmissionRepository
from innovates.repositories.vendor_repository import VendorRepository
from innovates.services.email_service import EmailService

logger = logging.getLogger(__name__)

MAX_PRODUCT_IMAGES = 8
MAX_DESCRIPTION_LENGTH = 200


def log_step(step: str, details: Optional[Dict[str, Any]] = None) -> None:
    suffix = f" - {json.dumps(details, default=str)}" if details else ""
    logger.info(f"[PAYMENT] {step}{suffix}")


def generate_order_number(now: datetime = None) -> str:
    """AI-YYYYMMDD-XXXXXX"""
    now = now or datetime.now(timezone.utc)
    return f"AI-{now.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"


def _intent_id(session: Dict[str, Any]) -> Optional[str]:
    intent = session.get('payment_intent')
    if isinstance(intent, dict):
        return intent.get('id')
    return intent


def quantities_by_product(lines) -> Dict[str, int]:
    """Total quantity per product_id across (product_id, quantity) pairs"""
    totals: Dict[str, int] = defaultdict(int)
    for product_id, quantity in lines:
        totals[product_id] += quantity
    return dict(totals)


class PaymentService:

    def __init__(
        self,
        stripe: StripeConnector = None,
        paypal: PayPalConnector = None,
        submission_repo: SubmissionRepository = None,
        payment_repo: PaymentRepository = None,
        product_repo: ProductRepository = None,
        order_repo: OrderRepository = None,
        cart_repo: CartRepository = None,
        vendor_repo: VendorRepository = None,
        email_service: EmailService = None,
    ):
        self._stripe = stripe
        self._paypal = paypal
        self.submission_repo = submission_repo or SubmissionRepository()
        self.payment_repo = payment_repo or PaymentRepository()
        self.product_repo = product_repo or ProductRepository()
        self.order_repo = order_repo or OrderRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.vendor_repo = vendor_repo or VendorRepository()
        self.email_service = email_service or EmailService()

    @property
    def stripe(self) -> StripeConnector:
        if self._stripe is None:
            self._stripe = StripeConnector()
        return self._stripe

    @property
    def paypal(self) -> PayPalConnector:
        if self._paypal is None:
            self._paypal = PayPalConnector()
        return self._paypal

    # ==================== FEATURED STORIES ====================

    def _featurable_submission(self, submission_id: str) -> Submission:
        submission = self.submission_repo.find_by_id(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission not found: {submission_id}")
        if not submission.is_approved:
            raise PaymentError("Submission must be approved before featuring")
        if submission.featured:
            raise PaymentError("Submission is already featured")

        existing = self.payment_repo.find_open_for_submission(submission_id)
        if existing:
            raise PaymentError(f"Payment already exists with status: {existing.status}")
        return submission

    def _featured_period(self) -> Tuple[datetime, datetime]:
        start = datetime.now(timezone.utc)
        return start, start + timedelta(days=settings.FEATURED_STORY_DAYS)

    async def _feature_story(self, payment: FeaturedStoryPayment) -> None:
        self.submission_repo.set_featured([payment.submission_id], True)
        log_step("Submission featured", {'submission_id': payment.submission_id})

        submission = self.submission_repo.find_by_id(payment.submission_id)
        if submission is None or not submission.email:
            return
        try:
            await self.email_service.send_featured(submission)
        except Exception as e:
            logger.error(f"Featured email for submission {submission.id} failed: {e}")

    async def create_featured_stripe_checkout(self, request: FeaturedCheckoutRequest,
                                              origin: Optional[str] = None) -> CheckoutSession:
        submission = self._featurable_submission(request.submission_id)
        amount = settings.FEATURED_STORY_PRICE_CENTS
        origin = origin or settings.SITE_URL
        log_step("Creating Stripe checkout session", {'submission_id': submission.id, 'amount': amount})

        session = await self.stripe.create_checkout_session({
            'payment_method_types': ['card'],
            'line_items': [{
                'price_data': {
                    'currency': 'usd',
                    'product_data': {
                        'name': f"Featured Story: {submission.product_name}",
                        'description': f"Feature your story for {settings.FEATURED_STORY_DAYS} days",
                    },
                    'unit_amount': amount,
                },
                'quantity': 1,
            }],
            'mode': 'payment',
            'customer_email': request.payer_email,
            'success_url': f"{origin}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            'cancel_url': f"{origin}/payment-cancelled",
            'metadata': {
                'submission_id': submission.id,
                'amount': str(amount),
                'purpose': 'featured_story',
            },
        })

        self.payment_repo.create_pending(
            submission_id=submission.id,
            amount=amount,
            currency='usd',
            stripe_session_id=session['id'],
            payer_email=request.payer_email or submission.email,
            payer_name=request.payer_name or submission.full_name,
        )
        log_step("Payment record created", {'session_id': session['id']})
        return CheckoutSession(url=session.get('url'), session_id=session['id'])

    async def capture_featured_stripe(self, session_id: str) -> Dict[str, Any]:
        log_step("Retrieving Stripe session", {'session_id': session_id})
        session = await self.stripe.retrieve_checkout_session(session_id)
        return await self._complete_featured_stripe(session)

    async def _complete_featured_stripe(self, session: Dict[str, Any]) -> Dict[str, Any]:
        if session.get('payment_status') != 'paid':
            raise PaymentError(f"Payment not completed. Status: {session.get('payment_status')}")

        submission_id = (session.get('metadata') or {}).get('submission_id')
        if not submission_id:
            raise PaymentError("Submission ID not found in session metadata")

        payment = self.payment_repo.find_by_stripe_session(session['id'])
        if payment is None:
            raise NotFoundError(f"No payment recorded for session {session['id']}")

        if payment.is_completed:
            log_step("Payment already completed", {'payment_id': payment.id})
            return {'success': True, 'message': 'Payment already completed', 'submission_id': submission_id}

        customer = session.get('customer_details') or {}
        start, end = self._featured_period()
        completed = self.payment_repo.complete(
            payment.id, start, end,
            stripe_payment_id=_intent_id(session),
            payer_email=customer.get('email'),
            payer_name=customer.get('name'),
        )
        if completed is None:
            raise PaymentError(f"Payment {payment.id} is no longer pending")

        await self._feature_story(completed)
        log_step("Successfully completed payment and featured submission", {'submission_id': submission_id})
        return {
            'success': True,
            'message': 'Payment completed and story featured successfully',
            'submission_id': submission_id,
        }

    async def create_featured_paypal_order(self, request: FeaturedCheckoutRequest) -> Dict[str, Any]:
        submission = self._featurable_submission(request.submission_id)
        amount = settings.FEATURED_STORY_PRICE_CENTS
        log_step("Creating PayPal order", {'submission_id': submission.id, 'amount': amount})

        order = await self.paypal.create_order(
            amount_cents=amount,
            currency='USD',
            description=f"Featured Story Upgrade - {submission.product_name}",
            reference_id=submission.id,
            return_url=f"{settings.SITE_URL}/payment/success",
            cancel_url=f"{settings.SITE_URL}/payment/cancel",
        )

        self.payment_repo.create_pending(
            submission_id=submission.id,
            amount=amount,
            currency='USD',
            paypal_order_id=order['id'],
            payer_email=request.payer_email or submission.email,
            payer_name=request.payer_name or submission.full_name,
        )

        approval_url = next(
            (link['href'] for link in order.get('links', []) if link.get('rel') == 'approve'), None
        )
        return {'order_id': order['id'], 'approval_url': approval_url}

    async def capture_featured_paypal(self, order_id: str) -> Dict[str, Any]:
        payment = self.payment_repo.find_by_paypal_order(order_id)
        if payment is None:
            raise NotFoundError(f"No payment recorded for PayPal order {order_id}")
        if payment.is_completed:
            return {'success': True, 'message': 'Payment already completed', 'submission_id': payment.submission_id}

        capture = await self.paypal.capture_order(order_id)
        if capture.get('status') != 'COMPLETED':
            self.payment_repo.mark_failed(payment.id)
            raise PaymentError(f"PayPal capture failed with status: {capture.get('status')}")

        payer = capture.get('payer') or {}
        name = payer.get('name') or {}
        payer_name = " ".join(p for p in [name.get('given_name'), name.get('surname')] if p) or None

        capture_id = None
        for unit in capture.get('purchase_units', []):
            captures = (unit.get('payments') or {}).get('captures') or []
            if captures:
                capture_id = captures[0].get('id')
                break

        start, end = self._featured_period()
        completed = self.payment_repo.complete(
            payment.id, start, end,
            paypal_payment_id=capture_id or order_id,
            payer_email=payer.get('email_address'),
            payer_name=payer_name,
        )
        if completed is None:
            raise PaymentError(f"Payment {payment.id} is no longer pending")

        await self._feature_story(completed)
        log_step("PayPal payment captured", {'order_id': order_id, 'submission_id': payment.submission_id})
        return {
            'success': True,
            'message': 'Payment completed and story featured successfully',
            'submission_id': payment.submission_id,
        }

    def expire_featured_stories(self, now: datetime = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        submission_ids = self.payment_repo.expire_due(now)
        if submission_ids:
            self.submission_repo.set_featured(submission_ids, False)
        log_step("Expired featured stories", {'count': len(submission_ids)})
        return {'expired_count': len(submission_ids), 'submission_ids': submission_ids}

    # ==================== MARKETPLACE ====================

    def _checkout_products(self, request: MarketplaceCheckoutRequest) -> Dict[str, Product]:
        product_ids = [item.product_id for item in request.items]
        products = self.product_repo.find_by_ids(product_ids)

        # a product listed on several lines is checked against its combined quantity
        quantities = quantities_by_product((item.product_id, item.quantity) for item in request.items)
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None:
                raise NotFoundError(f"Product not found: {product_id}")
            if not product.is_available:
                raise ValidationError(f"Product is not available: {product.name}")
            if not product.has_stock_for(quantity):
                raise ValidationError(f"Not enough stock for {product.name}")

        currencies = {products[item.product_id].currency.lower() for item in request.items}
        if len(currencies) > 1:
            raise ValidationError("All items in a checkout must use the same currency")
        return products

    async def create_marketplace_checkout(self, user: TokenUser, request: MarketplaceCheckoutRequest,
                                          origin: Optional[str] = None) -> CheckoutSession:
        log_step("Marketplace checkout started", {'user_id': user.id, 'items': len(request.items)})
        products = self._checkout_products(request)
        origin = origin or settings.SITE_URL

        line_items = []
        for item in request.items:
            product = products[item.product_id]
            line_items.append({
                'price_data': {
                    'currency': product.currency.lower(),
                    'product_data': {
                        'name': product.name,
                        'description': (product.description or "")[:MAX_DESCRIPTION_LENGTH] or None,
                        'images': product.images[:MAX_PRODUCT_IMAGES],
                        'metadata': {'product_id': product.id, 'vendor_id': product.vendor_id},
                    },
                    'unit_amount': product.price,
                },
                'quantity': item.quantity,
            })

        customer_name = request.customer_name or user.name
        customer_id = await self.stripe.get_or_create_customer(user.email, customer_name)

        cart_items = json.dumps([
            {'product_id': item.product_id, 'quantity': item.quantity, 'price': products[item.product_id].price}
            for item in request.items
        ], separators=(",", ":"))
        shipping_address = json.dumps(
            request.shipping_address.model_dump() if request.shipping_address else {},
            separators=(",", ":"),
        )

        session = await self.stripe.create_checkout_session({
            'customer': customer_id,
            'line_items': line_items,
            'mode': 'payment',
            'success_url': f"{origin}/marketplace-payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            'cancel_url': f"{origin}/cart",
            'payment_intent_data': {
                'metadata': {
                    'user_id': user.id,
                    'customer_email': user.email,
                    'customer_name': customer_name or "",
                    'cart_items': cart_items,
                    'shipping_address': shipping_address,
                },
            },
            'shipping_address_collection': {'allowed_countries': ['US']},
            'metadata': {
                'purpose': 'marketplace',
                'user_id': user.id,
                'cart_items': cart_items,
            },
        })
        log_step("Marketplace checkout session created", {'session_id': session['id']})
        return CheckoutSession(url=session.get('url'), session_id=session['id'])

    async def confirm_marketplace_payment(self, session_id: str) -> Order:
        log_step("Processing marketplace payment", {'session_id': session_id})
        session = await self.stripe.retrieve_checkout_session(session_id)
        return await self._create_order_from_session(session)

    async def _create_order_from_session(self, session: Dict[str, Any]) -> Order:
        if session.get('payment_status') != 'paid':
            raise PaymentError(f"Payment not completed. Status: {session.get('payment_status')}")

        payment_intent_id = _intent_id(session)
        if not payment_intent_id:
            raise PaymentError("Checkout session has no payment intent")

        existing = self.order_repo.find_by_payment_intent(payment_intent_id)
        if existing:
            log_step("Order already exists", {'order_id': existing.id})
            return existing

        intent = await self.stripe.retrieve_payment_intent(payment_intent_id)
        metadata = intent.get('metadata') or {}
        try:
            cart_items = json.loads(metadata.get('cart_items') or "[]")
            shipping_address = json.loads(metadata.get('shipping_address') or "{}")
        except json.JSONDecodeError:
            raise PaymentError("Invalid order metadata on payment intent")
        if not cart_items:
            raise PaymentError("No cart items found in payment metadata")

        # Stripe-collected shipping details win over the form address
        shipping_details = session.get('shipping_details') or {}
        if shipping_details.get('address'):
            shipping_address = dict(shipping_details['address'])

        products = self.product_repo.find_by_ids([item['product_id'] for item in cart_items])
        items = []
        for item in cart_items:
            product = products.get(item['product_id'])
            items.append({
                'product_id': item['product_id'],
                'product_name': product.name if product else "Product",
                'product_price': int(item.get('price', product.price if product else 0)),
                'quantity': int(item['quantity']),
                'vendor_id': product.vendor_id if product else None,
            })

        vendor_ids = {item['vendor_id'] for item in items if item['vendor_id']}
        customer = session.get('customer_details') or {}

        order, created = self.order_repo.create_with_items(
            order_number=generate_order_number(),
            buyer_id=metadata.get('user_id'),
            vendor_id=next(iter(vendor_ids)) if len(vendor_ids) == 1 else None,
            customer_email=metadata.get('customer_email') or customer.get('email'),
            customer_name=metadata.get('customer_name') or customer.get('name'),
            shipping_address=shipping_address,
            payment_intent_id=payment_intent_id,
            currency=(session.get('currency') or 'usd').lower(),
            items=items,
        )
        if not created:
            log_step("Order already created by a concurrent confirmation", {'order_id': order.id})
            return order
        log_step("Order created", {'order_id': order.id, 'order_number': order.order_number})

        if order.buyer_id:
            self.cart_repo.clear(order.buyer_id)

        await self._notify_vendors(order, items)
        return order

    async def _notify_vendors(self, order: Order, items: List[Dict[str, Any]]) -> None:
        """Email each vendor their part of the order; failures are logged only"""
        by_vendor: Dict[str, List[OrderItem]] = defaultdict(list)
        for item in items:
            if item['vendor_id']:
                by_vendor[item['vendor_id']].append(OrderItem(
                    product_id=item['product_id'],
                    product_name=item['product_name'],
                    product_price=item['product_price'],
                    quantity=item['quantity'],
                    total_amount=item['product_price'] * item['quantity'],
                ))

        for vendor_id, vendor_items in by_vendor.items():
            try:
                vendor = self.vendor_repo.find_by_user(vendor_id)
                if vendor is None:
                    logger.warning(f"No vendor application for vendor {vendor_id}, order {order.id}")
                    continue
                await self.email_service.send_vendor_order(vendor.contact_email, order, vendor_items)
                log_step("Vendor notified", {'vendor_id': vendor_id, 'order_id': order.id})
            except Exception as e:
                logger.error(f"Vendor notification failed for order {order.id}, vendor {vendor_id}: {e}")

    # ==================== WEBHOOK ====================

    async def handle_stripe_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify and dispatch a Stripe webhook event

        checkout.session.completed is routed by its metadata: a submission_id
        completes a featured upgrade, anything else is a marketplace order.
        """
        event = self.stripe.construct_event(payload, signature)
        event_type = event.get('type')
        log_step("Webhook received", {'type': event_type, 'id': event.get('id')})

        if event_type != 'checkout.session.completed':
            return {'received': True, 'handled': False}

        session = (event.get('data') or {}).get('object') or {}
        metadata = session.get('metadata') or {}

        if metadata.get('submission_id'):
            await self._complete_featured_stripe(session)
        else:
            await self._create_order_from_session(session)
        return {'received': True, 'handled': True}


_payment_service: Optional[PaymentService] = None


def get_payment_service() -> PaymentService:
    global _payment_service
    if _payment_service is None:
        _payment_service = PaymentService()
    return _payment_service
