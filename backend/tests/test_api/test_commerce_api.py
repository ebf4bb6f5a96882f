"""
Tests for the vendor, marketplace and payment endpoints
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from innovates.core.auth import get_current_user, require_admin
from innovates.core.exceptions import ConflictError, PaymentError, PermissionDeniedError, ValidationError
from innovates.domain.marketplace import Cart
from innovates.domain.payment import CheckoutSession
from innovates.services.email_service import EmailService, get_email_service
from innovates.services.email_template_service import EmailTemplateService
from innovates.services.marketplace_service import get_marketplace_service
from innovates.services.payment_service import get_payment_service
from innovates.services.vendor_service import get_vendor_service


@pytest.fixture
def signed_in(app, user):
    app.dependency_overrides[get_current_user] = lambda: user
    return user


@pytest.fixture
def vendors(app):
    mock = MagicMock()
    app.dependency_overrides[get_vendor_service] = lambda: mock
    return mock


@pytest.fixture
def marketplace(app):
    mock = MagicMock()
    app.dependency_overrides[get_marketplace_service] = lambda: mock
    return mock


@pytest.fixture
def payments(app):
    mock = MagicMock()
    app.dependency_overrides[get_payment_service] = lambda: mock
    return mock


class TestVendors:

    def test_apply(self, client, signed_in, vendors, vendor_application):
        vendors.apply = AsyncMock(return_value=vendor_application)

        response = client.post("/api/v1/vendors/applications", json={
            'businessName': 'Solar Goods LLC', 'contactEmail': 'hello@solargoods.example.com',
        })

        assert response.status_code == 201
        assert vendors.apply.call_args[0][0] is signed_in

    def test_apply_twice(self, client, signed_in, vendors):
        vendors.apply = AsyncMock(side_effect=ConflictError("You have already submitted a vendor application"))

        response = client.post("/api/v1/vendors/applications", json={
            'businessName': 'Solar Goods LLC', 'contactEmail': 'hello@solargoods.example.com',
        })

        assert response.status_code == 409

    def test_apply_requires_sign_in(self, client, vendors):
        response = client.post("/api/v1/vendors/applications", json={
            'businessName': 'Solar Goods LLC', 'contactEmail': 'hello@solargoods.example.com',
        })
        assert response.status_code == 401

    def test_reject_passes_reason(self, app, client, vendors, admin_user, vendor_application):
        app.dependency_overrides[require_admin] = lambda: admin_user
        vendors.reject = AsyncMock(return_value=vendor_application)

        response = client.post("/api/v1/vendors/applications/vendor-app-1/reject",
                               json={'rejection_reason': 'Incomplete details'})

        assert response.status_code == 200
        vendors.reject.assert_awaited_once_with("vendor-app-1", "Incomplete details")

    @patch('innovates.api.vendors.is_admin', return_value=True)
    def test_invite_as_admin(self, mock_is_admin, client, signed_in, vendors):
        vendors.invite = AsyncMock(return_value={'invite_email': 'maker@example.com', 'email_id': 'email-1'})

        response = client.post("/api/v1/vendors/invite", json={
            'inviteEmail': 'maker@example.com', 'context': 'admin',
        })

        assert response.status_code == 200
        assert response.json()["data"]["email_id"] == "email-1"
        request = vendors.invite.call_args[0][1]
        assert request.invite_email == 'maker@example.com'
        assert vendors.invite.call_args[1] == {'inviter_is_admin': True}

    @patch('innovates.api.vendors.is_admin')
    def test_personal_invite_skips_admin_lookup(self, mock_is_admin, client, signed_in, vendors):
        vendors.invite = AsyncMock(return_value={'invite_email': 'maker@example.com', 'email_id': 'email-1'})

        response = client.post("/api/v1/vendors/invite", json={
            'inviteEmail': 'maker@example.com', 'message': 'Come sell with us',
        })

        assert response.status_code == 200
        mock_is_admin.assert_not_called()
        assert vendors.invite.call_args[1] == {'inviter_is_admin': False}

    @patch('innovates.api.vendors.is_admin', return_value=False)
    def test_admin_invite_by_non_admin(self, mock_is_admin, client, signed_in, vendors):
        vendors.invite = AsyncMock(side_effect=PermissionDeniedError("Only admins can send marketplace invitations"))

        response = client.post("/api/v1/vendors/invite", json={
            'inviteEmail': 'maker@example.com', 'context': 'admin',
        })

        assert response.status_code == 403

    def test_invite_requires_sign_in(self, client, vendors):
        response = client.post("/api/v1/vendors/invite", json={'inviteEmail': 'maker@example.com'})
        assert response.status_code == 401


class TestMarketplace:

    def test_list_products_is_public(self, client, marketplace, product):
        marketplace.list_products.return_value = [product]

        response = client.get("/api/v1/marketplace/products?category=Kitchen")

        assert response.status_code == 200
        assert response.json()["data"][0]["slug"] == "solar-snack-box"

    def test_add_to_cart(self, client, signed_in, marketplace):
        marketplace.add_to_cart.return_value = Cart()

        response = client.post("/api/v1/marketplace/cart/items", json={'product_id': 'prod-1', 'quantity': 2})

        assert response.status_code == 200
        marketplace.add_to_cart.assert_called_once_with(signed_in, 'prod-1', 2)

    def test_add_to_cart_out_of_stock(self, client, signed_in, marketplace):
        marketplace.add_to_cart.side_effect = ValidationError("Not enough stock for Solar Snack Box")

        response = client.post("/api/v1/marketplace/cart/items", json={'product_id': 'prod-1', 'quantity': 20})

        assert response.status_code == 400
        assert response.json()["detail"] == "Not enough stock for Solar Snack Box"

    @patch('innovates.api.marketplace.is_admin', return_value=False)
    def test_add_tracking(self, mock_is_admin, client, signed_in, marketplace, order):
        marketplace.add_tracking = AsyncMock(return_value=order)

        response = client.post("/api/v1/marketplace/orders/order-1/tracking", json={'tracking_number': '1Z999'})

        assert response.status_code == 200
        marketplace.add_tracking.assert_awaited_once_with(signed_in, "order-1", "1Z999", is_admin=False)


class TestPayments:

    def test_featured_checkout_uses_origin(self, client, payments):
        payments.create_featured_stripe_checkout = AsyncMock(
            return_value=CheckoutSession(url="https://checkout.stripe.com/cs_1", session_id="cs_1")
        )

        response = client.post("/api/v1/payments/featured/stripe/checkout",
                               json={'submission_id': 'sub-1'}, headers={'Origin': 'https://preview.example.com'})

        assert response.json()["data"] == {'url': "https://checkout.stripe.com/cs_1", 'session_id': "cs_1"}
        assert payments.create_featured_stripe_checkout.call_args.kwargs['origin'] == 'https://preview.example.com'

    def test_capture_not_paid(self, client, payments):
        payments.capture_featured_stripe = AsyncMock(side_effect=PaymentError("Payment not completed. Status: unpaid"))

        response = client.post("/api/v1/payments/featured/stripe/capture", json={'session_id': 'cs_1'})

        assert response.status_code == 400

    def test_marketplace_checkout_requires_sign_in(self, client, payments):
        response = client.post("/api/v1/payments/marketplace/checkout",
                               json={'items': [{'product_id': 'prod-1', 'quantity': 1}]})
        assert response.status_code == 401

    def test_confirm_returns_order(self, client, payments, order):
        payments.confirm_marketplace_payment = AsyncMock(return_value=order)

        response = client.post("/api/v1/payments/marketplace/confirm", json={'session_id': 'cs_2'})

        assert response.json()["data"]["order_number"] == "AI-20250301-ABC123"

    def test_webhook_passes_raw_body_and_signature(self, client, payments):
        payments.handle_stripe_webhook = AsyncMock(return_value={'received': True, 'handled': True})

        response = client.post("/api/v1/payments/stripe/webhook", content=b'{"id":"evt_1"}',
                               headers={'Stripe-Signature': 't=1,v1=abc'})

        assert response.json() == {'received': True, 'handled': True}
        payments.handle_stripe_webhook.assert_awaited_once_with(b'{"id":"evt_1"}', 't=1,v1=abc')

    def test_webhook_bad_signature(self, client, payments):
        payments.handle_stripe_webhook = AsyncMock(side_effect=ValidationError("Invalid Stripe webhook signature"))

        response = client.post("/api/v1/payments/stripe/webhook", content=b'{}', headers={'Stripe-Signature': 'x'})

        assert response.status_code == 400


def test_email_preview_header_is_ascii(app, client, admin_user):
    repo = MagicMock()
    repo.find_latest.return_value = None
    app.dependency_overrides[require_admin] = lambda: admin_user
    app.dependency_overrides[get_email_service] = lambda: EmailService(
        connector=MagicMock(), templates=EmailTemplateService(customization_repo=repo)
    )

    response = client.get("/api/v1/emails/preview/approval")

    assert response.status_code == 200
    assert response.headers["X-Email-Subject"].startswith("%F0%9F%8E%89")
