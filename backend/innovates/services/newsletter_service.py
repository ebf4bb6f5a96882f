"""
Newsletter Service

Subscriber management, open/click tracking and newsletter delivery.

Sending a newsletter:
1. Resolve recipients (test address, failed recipients, or all active subscribers)
2. Rewrite absolute links to tracking URLs and persist their tokens
3. Per subscriber: append the open pixel and unsubscribe footer, fill
   {{subscriber_*}} placeholders, build the plain-text version
4. Deliver in small batches with a pause between batches (Resend rate limit)
5. Record a 'sent' event per delivered email and mark the newsletter sent
"""
import re
import html as html_lib
import uuid
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from innovates.core.config import settings
from innovates.core.exceptions import NotFoundError, ValidationError
from innovates.domain.email import EmailMessage
from innovates.domain.newsletter import (
    Newsletter, NewsletterAnalytics, NewsletterCreate, NewsletterUpdate,
    SendNewsletterRequest, SendResult, SubscribeRequest, Subscriber,
    WeeklyNewsletterRequest,
)
from innovates.domain.submission import Submission
from innovates.repositories.newsletter_repository import NewsletterRepository
from innovates.repositories.submission_repository import SubmissionRepository
from innovates.services.email_service import EmailService
from innovates.services.email_template_service import article_url, html_to_plain_text, unsubscribe_url
from innovates.services.validation_service import sanitize_text, validate_email

logger = logging.getLogger(__name__)

# 1x1 transparent GIF
TRACKING_PIXEL = bytes([
    0x47, 0x49, 0x46, 0x38, 0x39, 0x61, 0x01, 0x00, 0x01, 0x00, 0x80, 0x00, 0x00, 0xFF, 0xFF, 0xFF,
    0x00, 0x00, 0x00, 0x21, 0xF9, 0x04, 0x01, 0x00, 0x00, 0x00, 0x00, 0x2C, 0x00, 0x00, 0x00, 0x00,
    0x01, 0x00, 0x01, 0x00, 0x00, 0x02, 0x02, 0x44, 0x01, 0x00, 0x3B,
])

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}

LINK_RE = re.compile(r'<a\s+href="([^"]+)"([^>]*)>', re.IGNORECASE)
PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")

TEST_SUBSCRIBER_ID = "test"
DEFAULT_SUBSCRIBER_NAME = "Valued Reader"
WEEKLY_ARTICLE_COUNT = 5
EXCERPT_MAX_LENGTH = 300
SHORT_PARAGRAPH_LENGTH = 100
MAX_REPORTED_ERRORS = 10


def rewrite_links(html: str) -> Tuple[str, List[Dict[str, str]]]:
    """
    Replace absolute hrefs with click-tracking URLs

    Returns:
        (rewritten html, [{original_url, tracking_token}])
    """
    links: List[Dict[str, str]] = []

    def _replace(match: re.Match) -> str:
        url, rest = match.group(1), match.group(2)
        if not url.startswith("http"):
            return match.group(0)
        token = str(uuid.uuid4())
        links.append({'original_url': url, 'tracking_token': token})
        tracking_url = f"{settings.API_PUBLIC_URL}/api/v1/newsletters/track/click?token={token}"
        return f'<a href="{tracking_url}"{rest}>'

    return LINK_RE.sub(_replace, html), links


def tracking_pixel_html(newsletter_id: str, subscriber_id: str) -> str:
    src = (
        f"{settings.API_PUBLIC_URL}/api/v1/newsletters/track/open"
        f"?newsletter_id={newsletter_id}&subscriber_id={subscriber_id}"
    )
    return f'<img src="{src}" width="1" height="1" style="display:none;" alt="" />'


def unsubscribe_footer_html(email: str) -> str:
    return (
        '<div style="margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; '
        'text-align: center; font-size: 12px; color: #6b7280;">'
        '<p>You received this email because you subscribed to America Innovates Magazine.</p>'
        f'<p><a href="{unsubscribe_url(email)}" style="color: #6b7280;">Unsubscribe</a> | '
        f'<a href="{settings.SITE_URL}" style="color: #6b7280;">Visit our website</a></p>'
        '</div>'
    )


def personalize(content: str, subscriber: Subscriber) -> str:
    """Fill {{subscriber_*}} placeholders in an HTML body; values are HTML-escaped"""
    values = {
        "{{subscriber_id}}": subscriber.id,
        "{{subscriber_email}}": subscriber.email,
        "{{subscriber_name}}": subscriber.full_name or DEFAULT_SUBSCRIBER_NAME,
    }
    for placeholder, value in values.items():
        content = content.replace(placeholder, html_lib.escape(value))
    return content


def build_subscriber_email(newsletter: Newsletter, tracked_html: str, subscriber: Subscriber) -> EmailMessage:
    """Personalized HTML and text bodies for one recipient"""
    html = (
        tracked_html
        + tracking_pixel_html(newsletter.id, subscriber.id)
        + unsubscribe_footer_html(subscriber.email)
    )
    html = personalize(html, subscriber)
    unsubscribe = unsubscribe_url(subscriber.email)
    text = html_to_plain_text(html) + f"\n\n---\nTo unsubscribe: {unsubscribe}"

    return EmailMessage(
        to=[subscriber.email],
        subject=newsletter.subject,
        html=html,
        text=text,
        headers={
            'List-Unsubscribe': f"<{unsubscribe}>",
            'List-Unsubscribe-Post': "List-Unsubscribe=One-Click",
        },
    )


def extract_first_paragraph(article: Optional[str]) -> str:
    """
    Excerpt for the weekly digest

    A short first paragraph is joined with the second; long excerpts are cut
    to 297 characters plus '...'.
    """
    if not article:
        return ""

    text = html_to_plain_text(article)
    # lines inside a paragraph are joined; blank lines separate paragraphs
    paragraphs = [" ".join(p.split()) for p in PARAGRAPH_BREAK_RE.split(text) if p.strip()]
    # Skip a leading markdown headline
    if len(paragraphs) > 1 and paragraphs[0].startswith("#"):
        paragraphs = paragraphs[1:]
    if not paragraphs:
        return ""

    excerpt = paragraphs[0]
    if len(excerpt) < SHORT_PARAGRAPH_LENGTH and len(paragraphs) > 1:
        excerpt = f"{excerpt} {paragraphs[1]}"

    if len(excerpt) > EXCERPT_MAX_LENGTH:
        excerpt = excerpt[:EXCERPT_MAX_LENGTH - 3] + "..."
    return excerpt


class NewsletterService:

    def __init__(self, repo: NewsletterRepository = None, submission_repo: SubmissionRepository = None,
                 email_service: EmailService = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.repo = repo or NewsletterRepository()
        self.submission_repo = submission_repo or SubmissionRepository()
        self.email_service = email_service or EmailService()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    async def subscribe(self, request: SubscribeRequest) -> Subscriber:
        check = validate_email(request.email)
        if not check.is_valid:
            raise ValidationError(check.error)

        email = request.email.strip().lower()
        full_name = sanitize_text(request.full_name) or None
        subscriber = self.repo.upsert_subscriber(email, full_name, request.source)
        logger.info(f"Newsletter subscription for {email} (source={request.source})")

        try:
            await self.email_service.send_welcome(email, full_name)
        except Exception as e:
            logger.error(f"Welcome email to {email} failed: {e}")

        return subscriber

    def unsubscribe(self, email: str) -> Subscriber:
        if not email or not email.strip():
            raise ValidationError("Email is required")

        subscriber = self.repo.deactivate_subscriber(email.strip().lower())
        if subscriber is None:
            raise NotFoundError("Email not found in our subscriber list")

        self.repo.record_event(None, subscriber.id, "unsubscribed", {'email': subscriber.email})
        logger.info(f"Unsubscribed {subscriber.email}")
        return subscriber

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def track_open(self, newsletter_id: str, subscriber_id: str,
                   user_agent: Optional[str] = None, ip_address: Optional[str] = None) -> bool:
        if not newsletter_id or not subscriber_id:
            raise ValidationError("Missing newsletter_id or subscriber_id")
        if subscriber_id == TEST_SUBSCRIBER_ID:
            return False
        return self.repo.register_open(newsletter_id, subscriber_id, user_agent, ip_address)

    def track_click(self, token: str, user_agent: Optional[str] = None,
                    ip_address: Optional[str] = None) -> str:
        if not token:
            raise ValidationError("Missing tracking token")
        url = self.repo.register_click(token, user_agent, ip_address)
        if url is None:
            raise NotFoundError("Link not found")
        return url

    # ------------------------------------------------------------------
    # Newsletters
    # ------------------------------------------------------------------

    def create(self, data: NewsletterCreate) -> Newsletter:
        return self.repo.create(data.title, data.subject, data.content, data.html_content)

    def list_newsletters(self, limit: int = 50, offset: int = 0) -> List[Newsletter]:
        return self.repo.find_all(limit=limit, offset=offset)

    def get(self, newsletter_id: str) -> Newsletter:
        newsletter = self.repo.find_by_id(newsletter_id)
        if newsletter is None:
            raise NotFoundError(f"Newsletter {newsletter_id} not found")
        return newsletter

    def update(self, newsletter_id: str, data: NewsletterUpdate) -> Newsletter:
        newsletter = self.repo.update(newsletter_id, data.changes())
        if newsletter is None:
            raise NotFoundError(f"Newsletter {newsletter_id} not found")
        return newsletter

    def _recipients(self, newsletter_id: str, request: SendNewsletterRequest) -> List[Subscriber]:
        if request.test_email:
            return [Subscriber(id=TEST_SUBSCRIBER_ID, email=request.test_email, full_name="Test User")]

        subscribers = self.repo.find_active_subscribers()
        if request.resend_to_failed:
            already_sent = self.repo.find_sent_subscriber_ids(newsletter_id)
            subscribers = [s for s in subscribers if s.id not in already_sent]
        return subscribers

    async def send(self, newsletter_id: str, request: SendNewsletterRequest) -> SendResult:
        """
        Deliver a newsletter

        Raises:
            NotFoundError: unknown newsletter
            ValidationError: no content or no recipients
        """
        newsletter = self.get(newsletter_id)
        content = newsletter.html_content or newsletter.content
        if not content:
            raise ValidationError("Newsletter has no content")

        recipients = self._recipients(newsletter_id, request)
        if not recipients:
            raise ValidationError("No subscribers found")

        test_mode = bool(request.test_email)
        logger.info(
            f"Sending newsletter {newsletter_id} to {len(recipients)} recipients (test_mode={test_mode})"
        )

        tracked_html, links = rewrite_links(content)
        self.repo.create_links(newsletter_id, links)

        success_count = 0
        errors: List[str] = []
        batch_size = max(1, settings.NEWSLETTER_BATCH_SIZE)

        for start in range(0, len(recipients), batch_size):
            batch = recipients[start:start + batch_size]
            for subscriber in batch:
                message = build_subscriber_email(newsletter, tracked_html, subscriber)
                try:
                    await self.email_service.connector.send(message)
                except Exception as e:
                    logger.error(f"Newsletter {newsletter_id} failed for {subscriber.email}: {e}")
                    errors.append(f"{subscriber.email}: {e}")
                    continue

                success_count += 1
                if not test_mode:
                    self.repo.record_event(newsletter_id, subscriber.id, "sent", {'email': subscriber.email})

            if start + batch_size < len(recipients):
                await self._sleep(settings.NEWSLETTER_BATCH_DELAY_SECONDS)

        if not test_mode:
            self.repo.mark_sent(newsletter_id, success_count)

        label = "Test newsletter" if test_mode else "Newsletter"
        return SendResult(
            success=True,
            message=f"{label} sent to {success_count} of {len(recipients)} recipients",
            newsletter_id=newsletter_id,
            total_subscribers=len(recipients),
            success_count=success_count,
            error_count=len(errors),
            errors=errors[:MAX_REPORTED_ERRORS],
            test_mode=test_mode,
        )

    # ------------------------------------------------------------------
    # Weekly digest
    # ------------------------------------------------------------------

    def build_weekly_newsletter(self, articles: List[Submission], today: datetime = None) -> Tuple[str, str]:
        """Title and HTML for the weekly digest"""
        today = today or datetime.now(timezone.utc)
        title = f"America Innovates Weekly - Week of {today.strftime('%B')} {today.day}, {today.year}"

        entries = []
        for article in articles:
            entries.append({
                'product_name': article.product_name,
                'full_name': article.full_name,
                'category': article.category,
                'excerpt': extract_first_paragraph(article.generated_article),
                'image_url': article.image_urls[0] if article.image_urls else None,
                'url': article_url(article.slug) if article.slug else settings.SITE_URL,
            })

        _, html, _ = self.email_service.templates.render('newsletter', {
            'title': title,
            'intro': "Here are the latest innovation stories from entrepreneurs across America.",
            'articles': entries,
        }, include_unsubscribe=False)
        return title, html

    async def send_weekly(self, request: WeeklyNewsletterRequest, today: datetime = None) -> SendResult:
        articles = self.submission_repo.find_latest_with_articles(limit=WEEKLY_ARTICLE_COUNT)
        if not articles:
            raise ValidationError("No approved articles with content found")

        title, html = self.build_weekly_newsletter(articles, today)
        subject = f"[TEST] {title}" if request.test_email else title
        newsletter = self.repo.create(title, subject, None, html)
        logger.info(f"Weekly newsletter {newsletter.id} created with {len(articles)} articles")

        if not request.send:
            return SendResult(
                success=True,
                message="Weekly newsletter created",
                newsletter_id=newsletter.id,
                test_mode=bool(request.test_email),
            )

        return await self.send(
            newsletter.id, SendNewsletterRequest(test_email=request.test_email)
        )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def analytics(self, newsletter_id: str) -> NewsletterAnalytics:
        newsletter = self.get(newsletter_id)
        events = self.repo.count_events(newsletter_id)
        recipients = newsletter.recipient_count or events.get('sent', 0)

        open_rate = click_rate = 0.0
        if recipients:
            open_rate = round(newsletter.open_count / recipients * 100, 2)
            click_rate = round(newsletter.click_count / recipients * 100, 2)

        return NewsletterAnalytics(
            newsletter_id=newsletter_id,
            recipient_count=recipients,
            events=events,
            open_rate=open_rate,
            click_rate=click_rate,
            links=self.repo.find_links(newsletter_id),
        )

    # ------------------------------------------------------------------
    # Featured story promotion
    # ------------------------------------------------------------------

    async def send_featured_story_promotion(self, submission_id: Optional[str] = None,
                                            now: datetime = None) -> SendResult:
        """
        Invite authors of approved stories to upgrade to Featured

        With a submission_id only that author is emailed; otherwise every story
        approved between 24 and 25 hours ago that is not featured yet.
        """
        if submission_id:
            submission = self.submission_repo.find_by_id(submission_id)
            if submission is None or not submission.is_approved or not submission.email:
                raise NotFoundError("No eligible submission found for the given ID")
            submissions = [submission]
        else:
            now = now or datetime.now(timezone.utc)
            window_start = now - timedelta(hours=24)
            submissions = self.submission_repo.find_approved_between(
                window_start, window_start + timedelta(hours=1)
            )

        if not submissions:
            return SendResult(success=True, message="No submissions found for promotion")

        success_count = 0
        errors = []
        for submission in submissions:
            try:
                await self.email_service.send_featured_promotion(submission)
                success_count += 1
            except Exception as e:
                logger.error(f"Promotion email to {submission.email} failed: {e}")
                errors.append(f"{submission.email}: {e}")

        return SendResult(
            success=True,
            message=f"Promotion emails sent to {success_count} of {len(submissions)} authors",
            total_subscribers=len(submissions),
            success_count=success_count,
            error_count=len(errors),
            errors=errors[:MAX_REPORTED_ERRORS],
        )


_newsletter_service: Optional[NewsletterService] = None


def get_newsletter_service() -> NewsletterService:
    global _newsletter_service
    if _newsletter_service is None:
        _newsletter_service = NewsletterService()
    return _newsletter_service
