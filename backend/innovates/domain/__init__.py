"""
Domain Layer - Business Entities

Pydantic models for request payloads and the rows the repositories return.
"""
from innovates.domain.submission import (
    Submission, SubmissionCreate, SubmissionUpdate, Recommendation, ArticleSummary, StoryFields
)
from innovates.domain.vendor import VendorApplication, VendorApplicationCreate, ManualVendorCreate
from innovates.domain.marketplace import Product, Cart, CartItem, Order, OrderItem
from innovates.domain.payment import FeaturedStoryPayment
from innovates.domain.newsletter import Newsletter, Subscriber
from innovates.domain.email import EmailCustomization, EmailMessage

__all__ = [
    'Submission', 'SubmissionCreate', 'SubmissionUpdate', 'Recommendation', 'ArticleSummary', 'StoryFields',
    'VendorApplication', 'VendorApplicationCreate', 'ManualVendorCreate',
    'Product', 'Cart', 'CartItem', 'Order', 'OrderItem',
    'FeaturedStoryPayment',
    'Newsletter', 'Subscriber',
    'EmailCustomization', 'EmailMessage',
]
