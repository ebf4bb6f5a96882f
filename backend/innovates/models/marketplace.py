"""
Marketplace tables: vendors, products, carts, orders and featured-story payments
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID, ARRAY, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from innovates.core.database import Base
from innovates.models.content import uuid_pk


class VendorApplication(Base):
    __tablename__ = "vendor_applications"

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), unique=True)
    business_name = Column(Text, nullable=False)
    contact_email = Column(Text, nullable=False)
    contact_phone = Column(Text)
    shipping_country = Column(Text)
    vendor_bio = Column(Text)
    status = Column(String(20), nullable=False, server_default="pending", index=True)
    reviewed_at = Column(DateTime(timezone=True))
    rejection_reason = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class MarketplaceProduct(Base):
    __tablename__ = "marketplace_products"

    id = uuid_pk()
    vendor_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, unique=True)
    description = Column(Text)
    price = Column(Integer, nullable=False)  # cents
    currency = Column(String(3), nullable=False, server_default="usd")
    images = Column(ARRAY(Text), server_default=text("'{}'"))
    category = Column(Text, index=True)
    tags = Column(ARRAY(Text), server_default=text("'{}'"))
    specifications = Column(JSONB)
    stock_quantity = Column(Integer)
    status = Column(String(20), nullable=False, server_default="draft", index=True)
    featured = Column(Boolean, server_default=text("false"))
    sales_links = Column(ARRAY(Text), server_default=text("'{}'"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="cart_items_user_product_key"),)

    id = uuid_pk()
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=False), ForeignKey("marketplace_products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class MarketplaceOrder(Base):
    __tablename__ = "marketplace_orders"

    id = uuid_pk()
    order_number = Column(String(40), unique=True)
    buyer_id = Column(UUID(as_uuid=False), index=True)
    vendor_id = Column(UUID(as_uuid=False), index=True)
    customer_email = Column(Text)
    customer_name = Column(Text)
    shipping_address = Column(JSONB)
    payment_intent_id = Column(Text, unique=True)
    total_amount = Column(Integer, nullable=False)  # cents
    currency = Column(String(3), nullable=False, server_default="usd")
    status = Column(String(20), nullable=False, server_default="pending", index=True)
    tracking_number = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = uuid_pk()
    order_id = Column(UUID(as_uuid=False), ForeignKey("marketplace_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=False), ForeignKey("marketplace_products.id"), nullable=False)
    product_name = Column(Text, nullable=False)
    product_price = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    total_amount = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("MarketplaceOrder", back_populates="items")


class FeaturedStoryPayment(Base):
    __tablename__ = "featured_story_payments"

    id = uuid_pk()
    submission_id = Column(UUID(as_uuid=False), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    stripe_session_id = Column(Text, unique=True)
    stripe_payment_id = Column(Text)
    paypal_order_id = Column(Text, unique=True)
    paypal_payment_id = Column(Text)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, server_default="usd")
    status = Column(String(20), nullable=False, server_default="pending", index=True)
    payer_email = Column(Text)
    payer_name = Column(Text)
    featured_start_date = Column(DateTime(timezone=True))
    featured_end_date = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
