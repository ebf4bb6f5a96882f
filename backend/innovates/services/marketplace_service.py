"""
Marketplace Service - products, carts and vendor order fulfilment
"""
import uuid
import logging
from typing import List, Optional

from innovates.core.auth import TokenUser
from innovates.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from innovates.domain.marketplace import (
    Cart, Order, Product, ProductCreate, ProductUpdate, PRODUCT_STATUSES,
)
from innovates.repositories.cart_repository import CartRepository
from innovates.repositories.order_repository import OrderRepository
from innovates.repositories.product_repository import ProductRepository
from innovates.services.email_service import EmailService
from innovates.services.validation_service import sanitize_html, sanitize_text, slugify, validate_url
from innovates.services.vendor_service import VendorService

logger = logging.getLogger(__name__)


class MarketplaceService:

    def __init__(self, product_repo: ProductRepository = None, cart_repo: CartRepository = None,
                 order_repo: OrderRepository = None, vendor_service: VendorService = None,
                 email_service: EmailService = None):
        self.product_repo = product_repo or ProductRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.order_repo = order_repo or OrderRepository()
        self.email_service = email_service or EmailService()
        self.vendor_service = vendor_service or VendorService(email_service=self.email_service)

    # ==================== PRODUCTS ====================

    def list_products(self, category: Optional[str] = None, search: Optional[str] = None,
                      vendor_id: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[Product]:
        return self.product_repo.find_active(
            category=category, search=search, vendor_id=vendor_id, limit=limit, offset=offset
        )

    def get_product(self, slug_or_id: str) -> Product:
        product = self.product_repo.find_by_slug_or_id(slug_or_id)
        if product is None or not product.is_available:
            raise NotFoundError(f"Product '{slug_or_id}' not found")
        return product

    def _unique_slug(self, name: str) -> str:
        base = slugify(name) or "product"
        if not self.product_repo.slug_exists(base):
            return base
        return f"{base}-{uuid.uuid4().hex[:6]}"

    def _check_links(self, links: List[str]) -> None:
        for link in links:
            check = validate_url(link)
            if not check.is_valid:
                raise ValidationError(f"Invalid sales link '{link}': {check.error}")

    def create_product(self, user: TokenUser, data: ProductCreate) -> Product:
        """Create a product for the signed-in, approved vendor"""
        self.vendor_service.get_approved_vendor(user.id)
        if data.status not in PRODUCT_STATUSES:
            raise ValidationError(f"Invalid product status: {data.status}")
        self._check_links(data.sales_links)

        values = data.model_dump()
        values['name'] = sanitize_text(data.name)
        values['description'] = sanitize_html(data.description) or None
        values['currency'] = data.currency.lower()

        product = self.product_repo.create(user.id, self._unique_slug(data.name), values)
        logger.info(f"Product {product.id} created by vendor {user.id}")
        return product

    def update_product(self, user: TokenUser, product_id: str, data: ProductUpdate,
                       is_admin: bool = False) -> Product:
        product = self.product_repo.find_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if product.vendor_id != user.id and not is_admin:
            raise PermissionDeniedError("You can only edit your own products")

        changes = data.changes()
        if 'status' in changes and changes['status'] not in PRODUCT_STATUSES:
            raise ValidationError(f"Invalid product status: {changes['status']}")
        if changes.get('sales_links'):
            self._check_links(changes['sales_links'])
        if changes.get('name'):
            changes['name'] = sanitize_text(changes['name'])
        if 'description' in changes:
            changes['description'] = sanitize_html(changes['description']) or None

        return self.product_repo.update(product_id, changes)

    # ==================== CART ====================

    def get_cart(self, user: TokenUser) -> Cart:
        return Cart.from_items(self.cart_repo.find_items(user.id))

    def add_to_cart(self, user: TokenUser, product_id: str, quantity: int = 1) -> Cart:
        product = self.product_repo.find_by_id(product_id)
        if product is None or not product.is_available:
            raise NotFoundError(f"Product {product_id} not found")

        in_cart = next((i.quantity for i in self.cart_repo.find_items(user.id) if i.product_id == product_id), 0)
        if not product.has_stock_for(in_cart + quantity):
            raise ValidationError(f"Not enough stock for {product.name}")

        self.cart_repo.add_item(user.id, product_id, quantity)
        return self.get_cart(user)

    def update_cart_quantity(self, user: TokenUser, product_id: str, quantity: int) -> Cart:
        """Set a line's quantity; zero or less removes the line"""
        if quantity <= 0:
            return self.remove_from_cart(user, product_id)

        product = self.product_repo.find_by_id(product_id)
        if product is not None and not product.has_stock_for(quantity):
            raise ValidationError(f"Not enough stock for {product.name}")

        if not self.cart_repo.set_quantity(user.id, product_id, quantity):
            raise NotFoundError("Item not in cart")
        return self.get_cart(user)

    def remove_from_cart(self, user: TokenUser, product_id: str) -> Cart:
        if not self.cart_repo.remove_item(user.id, product_id):
            raise NotFoundError("Item not in cart")
        return self.get_cart(user)

    def clear_cart(self, user: TokenUser) -> Cart:
        removed = self.cart_repo.clear(user.id)
        logger.info(f"Cleared {removed} cart items for user {user.id}")
        return Cart()

    # ==================== ORDERS ====================

    def buyer_orders(self, user: TokenUser) -> List[Order]:
        return self.order_repo.find_by_buyer(user.id)

    def vendor_orders(self, user: TokenUser) -> List[Order]:
        self.vendor_service.get_approved_vendor(user.id)
        return self.order_repo.find_by_vendor(user.id)

    def _vendor_owns_order(self, user: TokenUser, order: Order) -> bool:
        if order.vendor_id == user.id:
            return True
        product_ids = [item.product_id for item in order.items]
        products = self.product_repo.find_by_ids(product_ids)
        return any(p.vendor_id == user.id for p in products.values())

    async def add_tracking(self, user: TokenUser, order_id: str, tracking_number: str,
                           is_admin: bool = False) -> Order:
        """Mark an order shipped and email the tracking number to the customer"""
        order = self.order_repo.find_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if not is_admin and not self._vendor_owns_order(user, order):
            raise PermissionDeniedError("You can only update your own orders")

        tracking_number = sanitize_text(tracking_number)
        if not tracking_number:
            raise ValidationError("Tracking number is required")

        updated = self.order_repo.set_tracking(order_id, tracking_number)
        logger.info(f"Order {order_id} shipped with tracking {tracking_number}")

        if updated.customer_email:
            try:
                await self.email_service.send_customer_tracking(updated)
            except Exception as e:
                logger.error(f"Tracking email for order {order_id} failed: {e}")
        return updated


_marketplace_service: Optional[MarketplaceService] = None


def get_marketplace_service() -> MarketplaceService:
    global _marketplace_service
    if _marketplace_service is None:
        _marketplace_service = MarketplaceService()
    return _marketplace_service
