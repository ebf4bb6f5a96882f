"""
Marketplace Domain Models

Products sold by approved vendors, shopping carts and the orders created
after a successful Stripe checkout. All amounts are integer cents.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime


ORDER_STATUSES = ("pending", "paid", "shipped", "delivered", "cancelled")
PRODUCT_STATUSES = ("draft", "active", "inactive")


class Product(BaseModel):
    """
    Marketplace product

    Fields:
        price: Unit price in cents
        stock_quantity: None means unlimited stock
        sales_links: External pages used to generate AI product copy
    """

    id: str
    vendor_id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    price: int = Field(..., description="Price in cents", ge=0)
    currency: str = "usd"
    images: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    specifications: Optional[Dict[str, Any]] = None
    stock_quantity: Optional[int] = None
    status: str = "draft"
    featured: bool = False
    sales_links: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_available(self) -> bool:
        return self.status == "active"

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock_quantity is None or self.stock_quantity >= quantity


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: int = Field(..., description="Price in cents", ge=0)
    currency: str = "usd"
    images: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    specifications: Optional[Dict[str, Any]] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    status: str = "draft"
    sales_links: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    specifications: Optional[Dict[str, Any]] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    featured: Optional[bool] = None
    sales_links: Optional[List[str]] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class CartItem(BaseModel):
    """Cart line joined with its product"""

    product_id: str
    quantity: int = Field(..., ge=1)
    name: str
    price: int
    currency: str = "usd"
    image: Optional[str] = None
    vendor_id: Optional[str] = None

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


class Cart(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    total_items: int = 0
    totals: Dict[str, int] = Field(default_factory=dict, description="Total cents per currency")

    @classmethod
    def from_items(cls, items: List[CartItem]) -> "Cart":
        totals: Dict[str, int] = {}
        for item in items:
            totals[item.currency] = totals.get(item.currency, 0) + item.line_total
        return cls(
            items=items,
            total_items=sum(item.quantity for item in items),
            totals=totals,
        )


class CartItemInput(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class CartQuantityUpdate(BaseModel):
    quantity: int


class ShippingAddress(BaseModel):
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = "US"


class OrderItem(BaseModel):
    id: Optional[str] = None
    order_id: Optional[str] = None
    product_id: str
    product_name: str
    product_price: int
    quantity: int = Field(..., ge=1)
    total_amount: int

    model_config = ConfigDict(from_attributes=True)


class Order(BaseModel):
    """marketplace_orders row with its items"""

    id: str
    order_number: Optional[str] = None
    buyer_id: Optional[str] = None
    vendor_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    payment_intent_id: Optional[str] = None
    total_amount: int = 0
    currency: str = "usd"
    status: str = "pending"
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TrackingUpdate(BaseModel):
    tracking_number: str = Field(..., min_length=1)
    carrier: Optional[str] = None
