"""
Pytest fixtures and configuration for America Innovates backend tests

Shared fixtures: database rows, domain models, signed-in users and mocked
repository connections. No test needs a live database or API key.
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from innovates.core.auth import TokenUser
from innovates.core.config import settings
from innovates.core.rate_limit import (
    admin_action_limiter,
    invite_limiter,
    newsletter_limiter,
    rate_limiter,
    submission_limiter,
)
from innovates.domain.marketplace import Order, OrderItem, Product
from innovates.domain.newsletter import Newsletter, Subscriber
from innovates.domain.submission import Submission
from innovates.domain.vendor import VendorApplication


SUBMISSION_ID = "6f1c2b1e-9a57-4d0e-8a51-2b6a8c3f9d10"


@pytest.fixture(autouse=True)
def csrf_secret(monkeypatch):
    monkeypatch.setattr(settings, "CSRF_SECRET", "test-csrf-secret")


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    """Rate limiters are module-level; start every test with a clean slate"""
    yield
    rate_limiter.reset()
    submission_limiter.clear()
    newsletter_limiter.clear()
    admin_action_limiter.clear()
    invite_limiter.clear()


@pytest.fixture
def mock_db():
    """
    Provides (connection, cursor) mocks wired together

    Patch get_db_connection_dict_with_retry in the repository module and return
    the connection from it.
    """
    conn = MagicMock()
    cursor = MagicMock()
    conn.cursor.return_value = cursor
    return conn, cursor


@pytest.fixture
def submission_row():
    """A submissions row as RealDictCursor returns it"""
    return {
        'id': SUBMISSION_ID,
        'full_name': 'Jane Inventor',
        'email': 'jane@example.com',
        'phone_number': '(555) 123-4567',
        'city': 'Austin',
        'state': 'TX',
        'background': 'Mechanical engineer',
        'website': 'https://solarsnack.example.com',
        'social_media': None,
        'product_name': 'Solar Snack Box',
        'category': 'Food & Beverage',
        'description': 'A lunchbox that keeps food cold with solar power',
        'problem_solved': 'Warm lunches on job sites',
        'stage': 'Selling',
        'idea_origin': 'My own job site lunches',
        'biggest_challenge': 'Battery weight',
        'proudest_moment': 'First retail order',
        'inspiration': None,
        'motivation': None,
        'image_urls': ['https://cdn.example.com/box.png'],
        'recommendations': [],
        'selected_vendors': ['amazon'],
        'generated_article': '# Solar Snack Box\n\nJane Inventor built a lunchbox that never gets warm.',
        'status': 'pending',
        'slug': None,
        'featured': False,
        'pinned': False,
        'is_manual_submission': False,
        'approved_at': None,
        'approved_by': None,
        'created_at': datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc),
        'updated_at': None,
    }


@pytest.fixture
def submission(submission_row):
    return Submission(**submission_row)


@pytest.fixture
def approved_submission(submission_row):
    return Submission(**{
        **submission_row,
        'status': 'approved',
        'slug': 'solar-snack-box',
        'approved_at': datetime(2025, 3, 2, 9, 0, tzinfo=timezone.utc),
    })


@pytest.fixture
def user():
    return TokenUser(id="user-1", email="buyer@example.com", name="Bob Buyer", role="authenticated")


@pytest.fixture
def admin_user():
    return TokenUser(id="admin-1", email="admin@americainnovates.us", name="Admin", role="admin")


@pytest.fixture
def vendor_application():
    return VendorApplication(
        id="vendor-app-1",
        user_id="vendor-1",
        business_name="Solar Goods LLC",
        contact_email="hello@solargoods.example.com",
        status="approved",
    )


@pytest.fixture
def product():
    return Product(
        id="prod-1",
        vendor_id="vendor-1",
        name="Solar Snack Box",
        slug="solar-snack-box",
        description="Keeps lunch cold",
        price=4999,
        currency="usd",
        images=["https://cdn.example.com/box.png"],
        stock_quantity=10,
        status="active",
    )


@pytest.fixture
def order():
    return Order(
        id="order-1",
        order_number="AI-20250301-ABC123",
        buyer_id="user-1",
        vendor_id="vendor-1",
        customer_email="buyer@example.com",
        customer_name="Bob Buyer",
        shipping_address={'line1': '1 Main St', 'city': 'Austin', 'state': 'TX', 'postal_code': '78701'},
        payment_intent_id="pi_123",
        total_amount=9998,
        status="paid",
        items=[OrderItem(
            product_id="prod-1", product_name="Solar Snack Box",
            product_price=4999, quantity=2, total_amount=9998,
        )],
    )


@pytest.fixture
def newsletter():
    return Newsletter(
        id="nl-1",
        title="Spring Issue",
        subject="Spring stories",
        html_content='<p>Hello {{subscriber_name}}</p><p><a href="https://americainnovates.us/stories">Read</a></p>',
    )


@pytest.fixture
def subscribers():
    return [
        Subscriber(id=f"sub-{i}", email=f"reader{i}@example.com", full_name=f"Reader {i}")
        for i in range(1, 5)
    ]


@pytest.fixture
def app():
    """The FastAPI app; dependency overrides are cleared after each test"""
    from innovates.main import app as fastapi_app
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app)
