"""
Tests for newsletter delivery, tracking and the weekly digest
"""
import asyncio
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from innovates.core.exceptions import NotFoundError, ValidationError
from innovates.domain.newsletter import (
    Newsletter, SendNewsletterRequest, SubscribeRequest, Subscriber, WeeklyNewsletterRequest,
)
from innovates.services.email_service import EmailService
from innovates.services.email_template_service import EmailTemplateService
from innovates.services.newsletter_service import (
    NewsletterService, build_subscriber_email, extract_first_paragraph, rewrite_links,
)


@pytest.fixture
def repo():
    return MagicMock()


@pytest.fixture
def email_service():
    customization_repo = MagicMock()
    customization_repo.find_latest.return_value = None
    connector = MagicMock()
    connector.send = AsyncMock(return_value={'id': 'email-1'})
    return EmailService(connector=connector, templates=EmailTemplateService(customization_repo=customization_repo))


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def service(repo, email_service, sleep):
    return NewsletterService(repo=repo, submission_repo=MagicMock(), email_service=email_service, sleep=sleep)


class TestLinkRewriting:

    def test_absolute_links_are_tracked(self):
        html = '<a href="https://americainnovates.us/stories" style="x">Read</a> <a href="mailto:a@b.c">Mail</a>'

        rewritten, links = rewrite_links(html)

        assert len(links) == 1
        assert links[0]['original_url'] == "https://americainnovates.us/stories"
        token = links[0]['tracking_token']
        assert f'/api/v1/newsletters/track/click?token={token}" style="x">' in rewritten
        assert 'href="mailto:a@b.c"' in rewritten

    def test_subscriber_email_is_personalized(self, newsletter):
        subscriber = Subscriber(id="sub-9", email="reader@example.com", full_name=None)

        message = build_subscriber_email(newsletter, newsletter.html_content, subscriber)

        assert "Hello Valued Reader" in message.html
        assert "subscriber_id=sub-9" in message.html
        assert "newsletter_id=nl-1" in message.html
        assert message.headers['List-Unsubscribe-Post'] == "List-Unsubscribe=One-Click"
        assert "To unsubscribe:" in message.text

    def test_subscriber_values_are_escaped_in_html(self, newsletter):
        subscriber = Subscriber(id="sub-9", email="reader@example.com",
                                full_name='<a href="https://evil.example">Click</a>')

        message = build_subscriber_email(newsletter, newsletter.html_content, subscriber)

        assert '<a href="https://evil.example">' not in message.html
        assert "&lt;a href=&quot;https://evil.example&quot;&gt;Click&lt;/a&gt;" in message.html
        # the text part shows the name as typed
        assert 'Hello <a href="https://evil.example">Click</a>' in message.text


class TestSend:

    def test_sends_in_batches_and_records_events(self, service, repo, email_service, sleep, newsletter, subscribers):
        """Four subscribers with batch size three: two batches, one pause"""
        # Arrange
        repo.find_by_id.return_value = newsletter
        repo.find_active_subscribers.return_value = subscribers

        # Act
        result = asyncio.run(service.send("nl-1", SendNewsletterRequest()))

        # Assert
        assert result.success_count == 4
        assert result.total_subscribers == 4
        assert email_service.connector.send.await_count == 4
        sleep.assert_awaited_once()
        assert repo.record_event.call_count == 4
        repo.mark_sent.assert_called_once_with("nl-1", 4)
        repo.create_links.assert_called_once()

    def test_test_email_does_not_record_or_mark_sent(self, service, repo, email_service, newsletter):
        repo.find_by_id.return_value = newsletter

        result = asyncio.run(service.send("nl-1", SendNewsletterRequest(test_email="me@example.com")))

        assert result.test_mode is True
        assert result.success_count == 1
        repo.find_active_subscribers.assert_not_called()
        repo.record_event.assert_not_called()
        repo.mark_sent.assert_not_called()
        sent = email_service.connector.send.call_args[0][0]
        assert sent.to == ["me@example.com"]

    def test_resend_to_failed_skips_already_sent(self, service, repo, email_service, newsletter, subscribers):
        repo.find_by_id.return_value = newsletter
        repo.find_active_subscribers.return_value = subscribers
        repo.find_sent_subscriber_ids.return_value = {"sub-1", "sub-2", "sub-3"}

        result = asyncio.run(service.send("nl-1", SendNewsletterRequest(resend_to_failed=True)))

        assert result.total_subscribers == 1
        assert email_service.connector.send.call_args[0][0].to == ["reader4@example.com"]

    def test_failures_are_reported_not_raised(self, service, repo, email_service, newsletter, subscribers):
        repo.find_by_id.return_value = newsletter
        repo.find_active_subscribers.return_value = subscribers[:2]
        email_service.connector.send.side_effect = [{'id': 'ok'}, RuntimeError("bounced")]

        result = asyncio.run(service.send("nl-1", SendNewsletterRequest()))

        assert result.success_count == 1
        assert result.error_count == 1
        assert "reader2@example.com" in result.errors[0]
        repo.mark_sent.assert_called_once_with("nl-1", 1)

    def test_no_content(self, service, repo):
        repo.find_by_id.return_value = Newsletter(id="nl-2", title="Empty", subject="Empty")
        with pytest.raises(ValidationError):
            asyncio.run(service.send("nl-2", SendNewsletterRequest()))

    def test_no_subscribers(self, service, repo, newsletter):
        repo.find_by_id.return_value = newsletter
        repo.find_active_subscribers.return_value = []
        with pytest.raises(ValidationError):
            asyncio.run(service.send("nl-1", SendNewsletterRequest()))

    def test_unknown_newsletter(self, service, repo):
        repo.find_by_id.return_value = None
        with pytest.raises(NotFoundError):
            asyncio.run(service.send("missing", SendNewsletterRequest()))


class TestSubscribers:

    def test_subscribe_normalizes_email_and_sends_welcome(self, service, repo, email_service):
        repo.upsert_subscriber.return_value = Subscriber(id="sub-1", email="jane@example.com")

        asyncio.run(service.subscribe(SubscribeRequest(email=" Jane@Example.com ", full_name="Jane")))

        repo.upsert_subscriber.assert_called_once_with("jane@example.com", "Jane", "website")
        assert email_service.connector.send.await_count == 1

    def test_subscribe_survives_welcome_failure(self, service, repo, email_service):
        repo.upsert_subscriber.return_value = Subscriber(id="sub-1", email="jane@example.com")
        email_service.connector.send.side_effect = RuntimeError("resend down")

        subscriber = asyncio.run(service.subscribe(SubscribeRequest(email="jane@example.com")))

        assert subscriber.id == "sub-1"

    def test_subscribe_strips_markup_from_name(self, service, repo):
        repo.upsert_subscriber.return_value = Subscriber(id="sub-1", email="jane@example.com")

        asyncio.run(service.subscribe(SubscribeRequest(email="jane@example.com", full_name="<b>Jane</b>")))

        repo.upsert_subscriber.assert_called_once_with("jane@example.com", "bJane/b", "website")

    def test_subscribe_invalid_email(self, service):
        with pytest.raises(ValidationError):
            asyncio.run(service.subscribe(SubscribeRequest(email="not-an-email")))

    def test_unsubscribe_records_event(self, service, repo):
        repo.deactivate_subscriber.return_value = Subscriber(id="sub-1", email="jane@example.com", is_active=False)

        service.unsubscribe("JANE@example.com")

        repo.deactivate_subscriber.assert_called_once_with("jane@example.com")
        repo.record_event.assert_called_once_with(None, "sub-1", "unsubscribed", {'email': "jane@example.com"})

    def test_unsubscribe_unknown_email(self, service, repo):
        repo.deactivate_subscriber.return_value = None
        with pytest.raises(NotFoundError):
            service.unsubscribe("ghost@example.com")


class TestTracking:

    def test_test_subscriber_opens_are_ignored(self, service, repo):
        assert service.track_open("nl-1", "test") is False
        repo.register_open.assert_not_called()

    def test_open_requires_ids(self, service):
        with pytest.raises(ValidationError):
            service.track_open("", "sub-1")

    def test_click_unknown_token(self, service, repo):
        repo.register_click.return_value = None
        with pytest.raises(NotFoundError):
            service.track_click("bad-token")

    def test_analytics_rates(self, service, repo):
        repo.find_by_id.return_value = Newsletter(
            id="nl-1", title="T", subject="S", recipient_count=200, open_count=50, click_count=10,
        )
        repo.count_events.return_value = {'sent': 200, 'opened': 50}
        repo.find_links.return_value = []

        analytics = service.analytics("nl-1")

        assert analytics.open_rate == 25.0
        assert analytics.click_rate == 5.0


class TestWeeklyDigest:

    def test_extract_first_paragraph_skips_headline_and_joins_short(self):
        article = "# Big Headline\n\nShort intro.\n\nSecond paragraph here."
        assert extract_first_paragraph(article) == "Short intro. Second paragraph here."

    def test_extract_first_paragraph_truncates(self):
        excerpt = extract_first_paragraph("x" * 400)
        assert len(excerpt) == 300
        assert excerpt.endswith("...")

    def test_extract_first_paragraph_strips_html(self):
        article = "<p>Short intro.</p>\n\n<p>Second paragraph here.</p>"
        assert extract_first_paragraph(article) == "Short intro. Second paragraph here."

    def test_extract_first_paragraph_keeps_wrapped_lines_together(self):
        article = (
            "Jane Inventor spent three summers testing lunchboxes on job sites\n"
            "across Texas before the Solar Snack Box held its chill past noon.\n\n"
            "The second paragraph is not needed."
        )
        assert extract_first_paragraph(article) == (
            "Jane Inventor spent three summers testing lunchboxes on job sites "
            "across Texas before the Solar Snack Box held its chill past noon."
        )

    def test_extract_first_paragraph_empty(self):
        assert extract_first_paragraph(None) == ""

    def test_weekly_title_and_body(self, service, approved_submission):
        title, html = service.build_weekly_newsletter(
            [approved_submission], today=datetime(2025, 3, 7, tzinfo=timezone.utc)
        )

        assert title == "America Innovates Weekly - Week of March 7, 2025"
        assert "Solar Snack Box" in html
        assert "https://americainnovates.us/article/solar-snack-box" in html
        assert "Jane Inventor built a lunchbox" in html

    def test_send_weekly_test_mode_prefixes_subject(self, service, repo, approved_submission, email_service):
        service.submission_repo.find_latest_with_articles.return_value = [approved_submission]
        created = {}

        def _create(title, subject, content, html_content):
            created['newsletter'] = Newsletter(id="nl-weekly", title=title, subject=subject, html_content=html_content)
            return created['newsletter']

        repo.create.side_effect = _create
        repo.find_by_id.side_effect = lambda _id: created['newsletter']

        result = asyncio.run(service.send_weekly(WeeklyNewsletterRequest(test_email="me@example.com")))

        assert result.test_mode is True
        assert created['newsletter'].subject.startswith("[TEST] America Innovates Weekly")
        assert email_service.connector.send.await_count == 1

    def test_send_weekly_without_articles(self, service):
        service.submission_repo.find_latest_with_articles.return_value = []
        with pytest.raises(ValidationError):
            asyncio.run(service.send_weekly(WeeklyNewsletterRequest()))


class TestFeaturedPromotion:

    def test_window_is_24_to_25_hours_ago(self, service, approved_submission, email_service):
        service.submission_repo.find_approved_between.return_value = [approved_submission]
        now = datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)

        result = asyncio.run(service.send_featured_story_promotion(now=now))

        start, end = service.submission_repo.find_approved_between.call_args[0]
        assert start == datetime(2025, 3, 2, 12, 0, tzinfo=timezone.utc)
        assert end == datetime(2025, 3, 2, 13, 0, tzinfo=timezone.utc)
        assert result.success_count == 1
        assert email_service.connector.send.call_args[0][0].to == ["jane@example.com"]

    def test_specific_submission_must_be_approved(self, service, submission):
        service.submission_repo.find_by_id.return_value = submission
        with pytest.raises(NotFoundError):
            asyncio.run(service.send_featured_story_promotion(submission_id=submission.id))

    def test_nothing_to_promote(self, service):
        service.submission_repo.find_approved_between.return_value = []
        result = asyncio.run(service.send_featured_story_promotion())
        assert result.message == "No submissions found for promotion"
