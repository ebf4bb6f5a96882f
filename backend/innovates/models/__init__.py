"""
Database table definitions (SQLAlchemy)
"""
from .content import Submission, Recommendation, UserRole, EmailCustomization
from .marketplace import (
    VendorApplication,
    MarketplaceProduct,
    CartItem,
    MarketplaceOrder,
    OrderItem,
    FeaturedStoryPayment,
)
from .newsletter import Newsletter, NewsletterSubscriber, NewsletterLink, EmailAnalytics

__all__ = [
    "Submission",
    "Recommendation",
    "UserRole",
    "EmailCustomization",
    "VendorApplication",
    "MarketplaceProduct",
    "CartItem",
    "MarketplaceOrder",
    "OrderItem",
    "FeaturedStoryPayment",
    "Newsletter",
    "NewsletterSubscriber",
    "NewsletterLink",
    "EmailAnalytics",
]
