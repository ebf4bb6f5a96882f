"""
Tests for newsletter subscription, tracking and admin endpoints
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from psycopg2.errors import InvalidTextRepresentation

from innovates.core.auth import require_admin
from innovates.core.exceptions import NotFoundError
from innovates.core.security import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, generate_csrf_token
from innovates.domain.newsletter import Subscriber
from innovates.services.newsletter_service import TRACKING_PIXEL, get_newsletter_service


@pytest.fixture
def service(app):
    mock = MagicMock()
    app.dependency_overrides[get_newsletter_service] = lambda: mock
    return mock


class TestSubscription:

    def test_subscribe(self, client, service):
        service.subscribe = AsyncMock(return_value=Subscriber(id="sub-1", email="reader@example.com"))
        token = generate_csrf_token()
        client.cookies.set(CSRF_COOKIE_NAME, token)

        response = client.post(
            "/api/v1/newsletters/subscribe",
            json={'email': 'reader@example.com'},
            headers={CSRF_HEADER_NAME: token},
        )

        assert response.status_code == 201
        assert response.json()["data"]["email"] == "reader@example.com"

    def test_unsubscribe_link(self, client, service):
        service.unsubscribe.return_value = Subscriber(id="sub-1", email="reader@example.com", is_active=False)

        response = client.get("/api/v1/newsletters/unsubscribe?email=reader%40example.com")

        assert response.status_code == 200
        assert "reader@example.com will no longer receive" in response.text
        service.unsubscribe.assert_called_once_with("reader@example.com")

    def test_one_click_unsubscribe_form(self, client, service):
        service.unsubscribe.return_value = Subscriber(id="sub-1", email="reader@example.com", is_active=False)

        response = client.post("/api/v1/newsletters/unsubscribe", data={'email': 'reader@example.com'})

        assert response.status_code == 200
        service.unsubscribe.assert_called_once_with("reader@example.com")

    def test_unsubscribe_unknown_email(self, client, service):
        service.unsubscribe.side_effect = NotFoundError("Subscriber not found")

        response = client.get("/api/v1/newsletters/unsubscribe?email=ghost%40example.com")

        assert response.status_code == 404
        assert "not on our subscriber list" in response.text


class TestTracking:

    def test_open_pixel(self, client, service):
        response = client.get("/api/v1/newsletters/track/open?newsletter_id=nl-1&subscriber_id=sub-1")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/gif"
        assert response.content == TRACKING_PIXEL
        assert "no-cache" in response.headers["cache-control"]
        assert service.track_open.call_args[0] == ("nl-1", "sub-1")

    def test_open_pixel_served_when_tracking_fails(self, client, service):
        service.track_open.side_effect = NotFoundError("unknown newsletter")

        response = client.get("/api/v1/newsletters/track/open?newsletter_id=x&subscriber_id=y")

        assert response.status_code == 200
        assert response.content == TRACKING_PIXEL

    def test_open_pixel_served_when_database_rejects_ids(self, client, service):
        service.track_open.side_effect = InvalidTextRepresentation(
            'invalid input syntax for type uuid: "not-a-uuid"'
        )

        response = client.get("/api/v1/newsletters/track/open?newsletter_id=not-a-uuid&subscriber_id=sub-1")

        assert response.status_code == 200
        assert response.content == TRACKING_PIXEL

    def test_click_redirects(self, client, service):
        service.track_click.return_value = "https://americainnovates.us/stories"

        response = client.get("/api/v1/newsletters/track/click?token=abc", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://americainnovates.us/stories"

    def test_unknown_click_token(self, client, service):
        service.track_click.side_effect = NotFoundError("Unknown link")
        assert client.get("/api/v1/newsletters/track/click?token=bad", follow_redirects=False).status_code == 404


def test_admin_routes_require_admin(client, service):
    assert client.post("/api/v1/newsletters/nl-1/send", json={}).status_code == 401


def test_get_newsletter(app, client, service, admin_user, newsletter):
    app.dependency_overrides[require_admin] = lambda: admin_user
    service.get.return_value = newsletter

    response = client.get("/api/v1/newsletters/nl-1")

    assert response.status_code == 200
    assert response.json()["data"]["title"] == "Spring Issue"
