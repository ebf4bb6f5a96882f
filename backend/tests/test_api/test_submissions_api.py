"""
Tests for the submission, article and AI endpoints
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from innovates.core.auth import get_current_user, require_admin
from innovates.core.exceptions import NotFoundError, ValidationError
from innovates.core.rate_limit import submission_limiter
from innovates.core.security import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, generate_csrf_token
from innovates.services.submission_service import get_submission_service

WIZARD = {
    'fullName': 'Jane Inventor',
    'email': 'jane@example.com',
    'productName': 'Solar Snack Box',
    'selectedVendors': ['amazon'],
    'consent': True,
}


@pytest.fixture
def service(app):
    mock = MagicMock()
    app.dependency_overrides[get_submission_service] = lambda: mock
    return mock


@pytest.fixture
def as_admin(app, admin_user):
    app.dependency_overrides[require_admin] = lambda: admin_user
    return admin_user


def _csrf(client):
    token = generate_csrf_token()
    client.cookies.set(CSRF_COOKIE_NAME, token)
    return {CSRF_HEADER_NAME: token}


class TestCreateSubmission:

    def test_created(self, client, service, submission):
        service.create = AsyncMock(return_value=submission)

        response = client.post("/api/v1/submissions", json=WIZARD, headers=_csrf(client))

        assert response.status_code == 201
        assert response.json()["data"]["product_name"] == "Solar Snack Box"
        sent = service.create.call_args[0][0]
        assert sent.full_name == 'Jane Inventor'

    def test_requires_csrf(self, client, service):
        service.create = AsyncMock()

        response = client.post("/api/v1/submissions", json=WIZARD)

        assert response.status_code == 403
        service.create.assert_not_called()

    def test_validation_errors_are_400(self, client, service):
        service.create = AsyncMock(side_effect=ValidationError("Invalid submission", details={'consent': 'required'}))

        response = client.post("/api/v1/submissions", json=WIZARD, headers=_csrf(client))

        assert response.status_code == 400
        assert response.json()["detail"] == {"error": "Invalid submission", "details": {'consent': 'required'}}

    def test_rate_limited(self, client, service, submission):
        service.create = AsyncMock(return_value=submission)
        headers = _csrf(client)

        statuses = [
            client.post("/api/v1/submissions", json=WIZARD, headers=headers).status_code
            for _ in range(submission_limiter.max_attempts + 1)
        ]

        assert statuses[-1] == 429
        assert set(statuses[:-1]) == {201}


class TestAdminRoutes:

    def test_list_requires_auth(self, client, service):
        assert client.get("/api/v1/submissions").status_code == 401

    def test_list(self, client, service, as_admin, submission):
        service.list_submissions.return_value = ([submission], 1)

        response = client.get("/api/v1/submissions?status=pending&search=solar&limit=10")

        body = response.json()
        assert body["total"] == 1 and body["count"] == 1 and body["limit"] == 10
        service.list_submissions.assert_called_once_with(status="pending", search="solar", limit=10, offset=0)

    def test_list_invalid_status(self, client, service, as_admin):
        assert client.get("/api/v1/submissions?status=archived").status_code == 400

    def test_approve_records_admin(self, client, service, as_admin, approved_submission):
        service.approve = AsyncMock(return_value=approved_submission)

        response = client.post(f"/api/v1/submissions/{approved_submission.id}/approve")

        assert response.status_code == 200
        assert response.json()["data"]["slug"] == "solar-snack-box"
        service.approve.assert_awaited_once_with(approved_submission.id, approved_by="admin-1")

    def test_unknown_submission(self, client, service, as_admin):
        service.get.side_effect = NotFoundError("Submission x not found")
        assert client.get("/api/v1/submissions/x").status_code == 404

    def test_image_upload(self, client, service, as_admin, submission):
        service.add_image.return_value = submission

        response = client.post(
            f"/api/v1/submissions/{submission.id}/images",
            files={"file": ("box.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 200
        service.add_image.assert_called_once_with(submission.id, b"\x89PNG", "image/png")


class TestArticles:

    def test_get_article(self, client, service, approved_submission):
        service.get_article.return_value = approved_submission

        response = client.get("/api/v1/articles/solar-snack-box")

        assert response.status_code == 200
        assert response.json()["data"]["generated_article"].startswith("# Solar Snack Box")

    def test_missing_article(self, client, service):
        service.get_article.side_effect = NotFoundError("Article 'x' not found")
        assert client.get("/api/v1/articles/x").status_code == 404

    def test_search(self, client, service):
        service.search_articles.return_value = []
        assert client.get("/api/v1/articles/search?q=solar").json()["count"] == 0
        service.search_articles.assert_called_once_with("solar")


def test_generate_article(client, service):
    service.generate_article = AsyncMock(return_value="# Solar Snack Box")

    response = client.post("/api/v1/ai/generate-article", json={**WIZARD, 'submissionId': 'sub-1'})

    assert response.status_code == 200
    assert response.json() == {"article": "# Solar Snack Box"}
    assert service.generate_article.call_args.kwargs['submission_id'] == 'sub-1'
