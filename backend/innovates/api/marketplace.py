"""
Marketplace API Endpoints
Products, shopping cart and order fulfilment
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from innovates.core.auth import TokenUser, get_current_user, is_admin
from innovates.core.exceptions import InnovatesError, to_http_exception
from innovates.domain.marketplace import (
    CartItemInput, CartQuantityUpdate, ProductCreate, ProductUpdate, TrackingUpdate,
)
from innovates.services.marketplace_service import MarketplaceService, get_marketplace_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== PRODUCTS ====================

@router.get("/products")
async def list_products(
    category: Optional[str] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search name and description"),
    vendor_id: Optional[str] = Query(None, description="Filter by vendor"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    """Active products, featured first"""
    try:
        products = service.list_products(
            category=category, search=search, vendor_id=vendor_id, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "count": len(products),
            "data": [p.model_dump(mode="json") for p in products],
        }

    except Exception as e:
        logger.error(f"Error fetching products: {e}")
        raise HTTPException(status_code=500, detail=f"Error fetching products: {str(e)}")


@router.get("/products/{slug_or_id}")
async def get_product(
    slug_or_id: str,
    service: MarketplaceService = Depends(get_marketplace_service),
):
    try:
        return {"status": "success", "data": service.get_product(slug_or_id).model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/products", status_code=201)
async def create_product(
    data: ProductCreate,
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    try:
        product = service.create_product(user, data)
        return {"status": "success", "data": product.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.patch("/products/{product_id}")
async def update_product(
    product_id: str,
    data: ProductUpdate,
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    try:
        product = service.update_product(user, product_id, data, is_admin=is_admin(user))
        return {"status": "success", "data": product.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


# ==================== CART ====================

@router.get("/cart")
async def get_cart(
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    return {"status": "success", "data": service.get_cart(user).model_dump(mode="json")}


@router.post("/cart/items")
async def add_to_cart(
    item: CartItemInput,
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    try:
        cart = service.add_to_cart(user, item.product_id, item.quantity)
        return {"status": "success", "data": cart.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.patch("/cart/items/{product_id}")
async def update_cart_item(
    product_id: str,
    update: CartQuantityUpdate,
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    try:
        cart = service.update_cart_quantity(user, product_id, update.quantity)
        return {"status": "success", "data": cart.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.delete("/cart/items/{product_id}")
async def remove_from_cart(
    product_id: str,
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    try:
        cart = service.remove_from_cart(user, product_id)
        return {"status": "success", "data": cart.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.delete("/cart")
async def clear_cart(
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    return {"status": "success", "data": service.clear_cart(user).model_dump(mode="json")}


# ==================== ORDERS ====================

@router.get("/orders")
async def my_orders(
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    orders = service.buyer_orders(user)
    return {"status": "success", "count": len(orders), "data": [o.model_dump(mode="json") for o in orders]}


@router.get("/vendor-orders")
async def vendor_orders(
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    """Orders containing the signed-in vendor's products"""
    try:
        orders = service.vendor_orders(user)
        return {"status": "success", "count": len(orders), "data": [o.model_dump(mode="json") for o in orders]}
    except InnovatesError as e:
        raise to_http_exception(e)


@router.post("/orders/{order_id}/tracking")
async def add_tracking(
    order_id: str,
    update: TrackingUpdate,
    user: TokenUser = Depends(get_current_user),
    service: MarketplaceService = Depends(get_marketplace_service),
):
    """Mark an order shipped and email the tracking number to the buyer"""
    try:
        order = await service.add_tracking(user, order_id, update.tracking_number, is_admin=is_admin(user))
        return {"status": "success", "data": order.model_dump(mode="json")}
    except InnovatesError as e:
        raise to_http_exception(e)
