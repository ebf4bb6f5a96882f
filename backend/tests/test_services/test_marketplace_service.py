"""
Tests for products, carts and vendor order fulfilment
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from innovates.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from innovates.domain.marketplace import CartItem, ProductCreate, ProductUpdate
from innovates.services.marketplace_service import MarketplaceService


@pytest.fixture
def email_service():
    service = MagicMock()
    service.send_customer_tracking = AsyncMock()
    return service


@pytest.fixture
def service(email_service):
    return MarketplaceService(
        product_repo=MagicMock(),
        cart_repo=MagicMock(),
        order_repo=MagicMock(),
        vendor_service=MagicMock(),
        email_service=email_service,
    )


def _cart_item(quantity=1):
    return CartItem(product_id="prod-1", quantity=quantity, name="Solar Snack Box", price=4999, vendor_id="vendor-1")


class TestProducts:

    def test_get_inactive_product_is_hidden(self, service, product):
        service.product_repo.find_by_slug_or_id.return_value = product.model_copy(update={'status': 'draft'})
        with pytest.raises(NotFoundError):
            service.get_product("solar-snack-box")

    def test_create_product_sanitizes_and_slugs(self, service, product):
        # Arrange
        service.product_repo.slug_exists.return_value = False
        service.product_repo.create.return_value = product
        vendor = MagicMock(id="vendor-1")
        data = ProductCreate(
            name="Solar <Snack> Box", price=4999, currency="USD",
            description='<p>Cold <script>alert(1)</script>lunch</p>',
        )

        # Act
        service.create_product(vendor, data)

        # Assert
        service.vendor_service.get_approved_vendor.assert_called_once_with("vendor-1")
        vendor_id, slug, values = service.product_repo.create.call_args[0]
        assert vendor_id == "vendor-1"
        assert slug == "solar-snack-box"
        assert values['name'] == "Solar Snack Box"
        assert values['currency'] == "usd"
        assert "<script>" not in values['description']

    def test_create_product_requires_approved_vendor(self, service, user):
        service.vendor_service.get_approved_vendor.side_effect = NotFoundError("Approved vendor account required")
        with pytest.raises(NotFoundError):
            service.create_product(user, ProductCreate(name="Box", price=100))
        service.product_repo.create.assert_not_called()

    def test_create_product_rejects_bad_links(self, service, user):
        with pytest.raises(ValidationError):
            service.create_product(user, ProductCreate(name="Box", price=100, sales_links=["javascript:alert(1)"]))

    def test_taken_slug_gets_suffix(self, service, user, product):
        service.product_repo.slug_exists.return_value = True
        service.product_repo.create.return_value = product

        service.create_product(user, ProductCreate(name="Box", price=100))

        slug = service.product_repo.create.call_args[0][1]
        assert slug.startswith("box-") and len(slug) == len("box-") + 6

    def test_update_someone_elses_product(self, service, user, product):
        service.product_repo.find_by_id.return_value = product
        with pytest.raises(PermissionDeniedError):
            service.update_product(user, product.id, ProductUpdate(price=100))

    def test_admin_may_update_any_product(self, service, user, product):
        service.product_repo.find_by_id.return_value = product
        service.update_product(user, product.id, ProductUpdate(price=100), is_admin=True)
        service.product_repo.update.assert_called_once_with(product.id, {'price': 100})

    def test_update_invalid_status(self, service, product):
        service.product_repo.find_by_id.return_value = product
        owner = MagicMock(id="vendor-1")
        with pytest.raises(ValidationError):
            service.update_product(owner, product.id, ProductUpdate(status="sold-out"))


class TestCart:

    def test_add_to_cart(self, service, user, product):
        service.product_repo.find_by_id.return_value = product
        service.cart_repo.find_items.side_effect = [[], [_cart_item(2)]]

        cart = service.add_to_cart(user, "prod-1", 2)

        service.cart_repo.add_item.assert_called_once_with("user-1", "prod-1", 2)
        assert cart.total_items == 2
        assert cart.totals == {'usd': 9998}

    def test_add_counts_what_is_already_in_cart(self, service, user, product):
        service.product_repo.find_by_id.return_value = product
        service.cart_repo.find_items.return_value = [_cart_item(9)]

        with pytest.raises(ValidationError):
            service.add_to_cart(user, "prod-1", 2)
        service.cart_repo.add_item.assert_not_called()

    def test_add_unavailable_product(self, service, user):
        service.product_repo.find_by_id.return_value = None
        with pytest.raises(NotFoundError):
            service.add_to_cart(user, "ghost")

    def test_zero_quantity_removes_line(self, service, user):
        service.cart_repo.remove_item.return_value = True
        service.cart_repo.find_items.return_value = []

        cart = service.update_cart_quantity(user, "prod-1", 0)

        service.cart_repo.remove_item.assert_called_once_with("user-1", "prod-1")
        service.cart_repo.set_quantity.assert_not_called()
        assert cart.items == []

    def test_update_line_not_in_cart(self, service, user, product):
        service.product_repo.find_by_id.return_value = product
        service.cart_repo.set_quantity.return_value = False
        with pytest.raises(NotFoundError):
            service.update_cart_quantity(user, "prod-1", 3)

    def test_clear_cart(self, service, user):
        service.cart_repo.clear.return_value = 3
        assert service.clear_cart(user).total_items == 0


class TestTracking:

    def test_vendor_adds_tracking_and_customer_is_emailed(self, service, email_service, order):
        service.order_repo.find_by_id.return_value = order
        shipped = order.model_copy(update={'status': 'shipped', 'tracking_number': '1Z999'})
        service.order_repo.set_tracking.return_value = shipped

        result = asyncio.run(service.add_tracking(MagicMock(id="vendor-1"), "order-1", " 1Z999 "))

        assert result is shipped
        service.order_repo.set_tracking.assert_called_once_with("order-1", "1Z999")
        email_service.send_customer_tracking.assert_awaited_once_with(shipped)

    def test_vendor_of_an_item_may_add_tracking(self, service, order, product):
        multi_vendor = order.model_copy(update={'vendor_id': None})
        service.order_repo.find_by_id.return_value = multi_vendor
        service.order_repo.set_tracking.return_value = multi_vendor
        service.product_repo.find_by_ids.return_value = {product.id: product}

        asyncio.run(service.add_tracking(MagicMock(id="vendor-1"), "order-1", "1Z999"))

        service.order_repo.set_tracking.assert_called_once()

    def test_other_vendor_is_refused(self, service, user, order, product):
        service.order_repo.find_by_id.return_value = order
        service.product_repo.find_by_ids.return_value = {product.id: product}

        with pytest.raises(PermissionDeniedError):
            asyncio.run(service.add_tracking(user, "order-1", "1Z999"))

    def test_blank_tracking_number(self, service, order):
        service.order_repo.find_by_id.return_value = order
        with pytest.raises(ValidationError):
            asyncio.run(service.add_tracking(MagicMock(id="vendor-1"), "order-1", "<>"))

    def test_email_failure_is_not_fatal(self, service, email_service, order):
        service.order_repo.find_by_id.return_value = order
        service.order_repo.set_tracking.return_value = order
        email_service.send_customer_tracking.side_effect = RuntimeError("resend down")

        assert asyncio.run(service.add_tracking(MagicMock(id="admin-1"), "order-1", "1Z999", is_admin=True)) is order
