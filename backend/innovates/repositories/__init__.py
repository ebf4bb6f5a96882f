"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from innovates.repositories.submission_repository import SubmissionRepository
from innovates.repositories.recommendation_repository import RecommendationRepository
from innovates.repositories.vendor_repository import VendorRepository
from innovates.repositories.product_repository import ProductRepository
from innovates.repositories.cart_repository import CartRepository
from innovates.repositories.order_repository import OrderRepository
from innovates.repositories.payment_repository import PaymentRepository
from innovates.repositories.newsletter_repository import NewsletterRepository
from innovates.repositories.email_customization_repository import EmailCustomizationRepository
from innovates.repositories.user_role_repository import UserRoleRepository

__all__ = [
    'SubmissionRepository',
    'RecommendationRepository',
    'VendorRepository',
    'ProductRepository',
    'CartRepository',
    'OrderRepository',
    'PaymentRepository',
    'NewsletterRepository',
    'EmailCustomizationRepository',
    'UserRoleRepository',
]
