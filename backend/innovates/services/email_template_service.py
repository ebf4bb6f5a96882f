"""
Email Template Service

Registry and Jinja2 rendering for every email the platform sends. Templates
live in innovates/templates/email and extend base.html, which applies the
brand customization (colors, company name, logo, footer) stored in
email_customizations.

Each render returns the subject, the HTML body and a plain-text body.
"""
import re
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from jinja2.exceptions import TemplateError

from innovates.core.config import settings
from innovates.core.exceptions import NotFoundError, ValidationError
from innovates.domain.email import EmailCustomization, TemplateInfo
from innovates.repositories.email_customization_repository import EmailCustomizationRepository

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

DEFAULT_FOOTER_TEXT = "America Innovates Magazine - Celebrating Innovation and Entrepreneurship"

TEMPLATE_CATEGORIES = ("user", "vendor", "admin", "newsletter")

TEMPLATES: Dict[str, TemplateInfo] = {
    info.key: info for info in [
        TemplateInfo(key="welcome", name="Welcome Email", category="user",
                     description="Sent to new subscribers and users"),
        TemplateInfo(key="notification", name="General Notification", category="user",
                     description="Free-form update for a user"),
        TemplateInfo(key="approval", name="Story Approved", category="user",
                     description="Sent when a submission is approved and published"),
        TemplateInfo(key="featured", name="Story Featured", category="user",
                     description="Sent when a story becomes a Featured Story"),
        TemplateInfo(key="recommendation", name="Interview Recommendation", category="user",
                     description="Invites a person recommended by a submitter"),
        TemplateInfo(key="draft_follow_up", name="Draft Follow-up", category="user",
                     description="Offers help to submitters with an unfinished story"),
        TemplateInfo(key="vendor_confirmation", name="Vendor Application Received", category="vendor",
                     description="Confirms a marketplace vendor application"),
        TemplateInfo(key="vendor_approval", name="Vendor Approved", category="vendor",
                     description="Sent when a vendor application is approved"),
        TemplateInfo(key="vendor_rejection", name="Vendor Rejected", category="vendor",
                     description="Sent when a vendor application is rejected"),
        TemplateInfo(key="vendor_order", name="New Order", category="vendor",
                     description="Tells a vendor to ship a paid order"),
        TemplateInfo(key="customer_tracking", name="Order Shipped", category="vendor",
                     description="Sends the tracking number to the customer"),
        TemplateInfo(key="vendor_invite", name="Vendor Invitation", category="vendor",
                     description="Invites a business to apply as a marketplace vendor"),
        TemplateInfo(key="admin_notification", name="Admin Notification", category="admin",
                     description="New submission or vendor application alert"),
        TemplateInfo(key="newsletter", name="Newsletter", category="newsletter",
                     description="Weekly digest of the latest stories"),
        TemplateInfo(key="featured_story_promotion", name="Featured Story Promotion", category="newsletter",
                     description="Invites an approved author to upgrade to Featured"),
    ]
}

SUBJECTS = {
    'welcome': "Welcome to {company}!",
    'notification': "New Update from {company}",
    'approval': "🎉 Your Innovation Story \"{product_name}\" Has Been Approved!",
    'featured': "⭐ Your Story \"{product_name}\" is Now Featured!",
    'recommendation': "America Innovates Magazine Interview Recommendation",
    'draft_follow_up': "Need help completing your story submission?",
    'vendor_confirmation': "Your Vendor Application Has Been Received - America Innovates Marketplace",
    'vendor_approval': "🎉 Your Vendor Application Has Been Approved - America Innovates Marketplace",
    'vendor_rejection': "Update on Your Vendor Application - America Innovates Marketplace",
    'vendor_order': "New Order #{order_number} - Action Required",
    'customer_tracking': "Your Order Has Shipped! - {product_name}",
    'vendor_invite': "{invite_subject}",
    'admin_notification': "{heading} - America Innovates",
    'newsletter': "{title}",
    'featured_story_promotion': "🎉 Your Story is Approved! Upgrade to Featured for Maximum Exposure",
}

SAMPLE_DATA: Dict[str, Dict[str, Any]] = {
    'welcome': {'name': "Jane Doe"},
    'notification': {'name': "Jane Doe", 'message': "We have an exciting update to share with you!"},
    'approval': {'name': "Jane Doe", 'product_name': "SolarShade", 'slug': "solarshade"},
    'featured': {'name': "Jane Doe", 'product_name': "SolarShade", 'slug': "solarshade"},
    'recommendation': {'name': "John Smith", 'recommender_name': "Jane Doe"},
    'draft_follow_up': {'name': "Jane Doe", 'product_name': "SolarShade"},
    'vendor_confirmation': {'business_name': "Acme Outdoor", 'contact_name': "Jane Doe"},
    'vendor_approval': {'business_name': "Acme Outdoor", 'contact_name': "Jane Doe"},
    'vendor_rejection': {'business_name': "Acme Outdoor", 'rejection_reason': "Incomplete business details"},
    'vendor_order': {
        'order_number': "AI-20250101-ABC123", 'customer_name': "John Smith",
        'items': [{'product_name': "SolarShade", 'quantity': 2, 'total_display': "$50.00"}],
        'total_display': "$50.00",
        'address_lines': ["123 Main St", "Austin, TX 78701", "US"],
    },
    'customer_tracking': {
        'customer_name': "John Smith", 'order_number': "AI-20250101-ABC123",
        'product_name': "SolarShade", 'tracking_number': "1Z999AA10123456784",
    },
    'vendor_invite': {
        'message': "We believe your products would be a great fit for our community of innovative entrepreneurs.",
        'inviter_name': "Jane Doe", 'inviter_email': "jane@example.com", 'admin_invite': False,
    },
    'admin_notification': {
        'heading': "New Article Submission",
        'fields': [("Name", "Jane Doe"), ("Product", "SolarShade"), ("Email", "jane@example.com")],
    },
    'newsletter': {
        'title': "America Innovates Weekly",
        'intro': "Here are this week's innovation stories.",
        'articles': [{
            'product_name': "SolarShade", 'full_name': "Jane Doe", 'category': "Outdoor",
            'excerpt': "A shade that charges your phone.", 'image_url': None,
            'url': "https://americainnovates.us/article/solarshade",
        }],
    },
    'featured_story_promotion': {'name': "Jane Doe", 'product_name': "SolarShade", 'submission_id': "sample"},
}

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_P_END_RE = re.compile(r"</p>", re.IGNORECASE)
_DIV_END_RE = re.compile(r"</div>", re.IGNORECASE)
_HEADING_END_RE = re.compile(r"</h[1-6]>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_BLANK_LINES_RE = re.compile(r"\n\s*\n\s*\n+")
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&#x27;", "'"),
    ("&middot;", "·"),
    ("&amp;", "&"),
)


def html_to_plain_text(html: str) -> str:
    """Plain-text alternative for an HTML email body"""
    text = _STYLE_RE.sub("", html)
    text = _BR_RE.sub("\n", text)
    text = _P_END_RE.sub("\n\n", text)
    text = _DIV_END_RE.sub("\n", text)
    text = _HEADING_END_RE.sub("\n\n", text)
    text = _TAG_RE.sub("", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    lines = [line.strip() for line in text.split("\n")]
    text = _BLANK_LINES_RE.sub("\n\n", "\n".join(lines))
    return text.strip()


def unsubscribe_url(email: str) -> str:
    return f"{settings.API_PUBLIC_URL}/api/v1/newsletters/unsubscribe?email={quote(email)}"


def article_url(slug: str) -> str:
    return f"{settings.SITE_URL}/article/{slug}"


def format_money(cents: int, currency: str = "USD") -> str:
    """5000 -> '$50.00' for USD, '50.00 EUR' otherwise"""
    amount = f"{cents / 100:,.2f}"
    if currency.upper() == "USD":
        return f"${amount}"
    return f"{amount} {currency.upper()}"


class EmailTemplateService:
    """
    Renders registered templates with the current brand customization
    """

    def __init__(self, customization_repo: EmailCustomizationRepository = None,
                 template_dir: Path = None):
        self.customization_repo = customization_repo or EmailCustomizationRepository()
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=select_autoescape(['html', 'xml']),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def list_templates(self, category: Optional[str] = None) -> List[TemplateInfo]:
        if category and category not in TEMPLATE_CATEGORIES:
            raise ValidationError(f"Unknown template category: {category}")
        return [t for t in TEMPLATES.values() if category is None or t.category == category]

    def get_customization(self) -> EmailCustomization:
        """Saved brand settings, or the defaults when none are stored"""
        customization = self.customization_repo.find_latest()
        if customization is None:
            logger.info("No email customization stored, using defaults")
            customization = EmailCustomization()
        if not customization.footer_text:
            customization = customization.model_copy(update={'footer_text': DEFAULT_FOOTER_TEXT})
        return customization

    def _context(self, key: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in links and defaults each template expects"""
        context = {
            'name': None,
            'site_url': settings.SITE_URL,
            'support_email': settings.ADMIN_NOTIFICATION_EMAIL,
            'submit_url': f"{settings.SITE_URL}/submit",
            'dashboard_url': f"{settings.SITE_URL}/vendor-dashboard",
            'featured_price': format_money(settings.FEATURED_STORY_PRICE_CENTS),
            'featured_days': settings.FEATURED_STORY_DAYS,
        }
        context.update(data)

        slug = context.get('slug')
        if slug and 'article_url' not in data:
            context['article_url'] = article_url(slug)
        if key in ('approval', 'featured_story_promotion'):
            context.setdefault('upgrade_url', f"{settings.SITE_URL}/featured-upgrade/{context.get('submission_id', '')}")
        if key in ('vendor_confirmation', 'vendor_approval', 'vendor_rejection'):
            context.setdefault('contact_name', None)
            context.setdefault('rejection_reason', None)
        if key == 'draft_follow_up':
            context.setdefault('product_name', None)
        if key == 'recommendation':
            context.setdefault('recommender_name', None)
        if key == 'notification':
            context.setdefault('message', None)
        if key == 'customer_tracking':
            context.setdefault('product_name', None)
        if key == 'vendor_invite':
            context.setdefault('admin_invite', True)
            context.setdefault('inviter_name', None)
            context.setdefault('inviter_email', None)
            context.setdefault('marketplace_url', f"{settings.SITE_URL}/marketplace")
            if context['admin_invite'] or not context['inviter_name']:
                context.setdefault('invite_subject', "Invitation to Join America Innovates Marketplace as a Vendor")
            else:
                context.setdefault(
                    'invite_subject',
                    f"{context['inviter_name']} invited you to become a vendor on America Innovates Marketplace",
                )
        if key == 'admin_notification':
            context.setdefault('admin_url', f"{settings.SITE_URL}/admin")
        if key == 'newsletter':
            context.setdefault('intro', None)
        return context

    def subject_for(self, key: str, context: Dict[str, Any], company: str) -> str:
        if context.get('subject'):
            return context['subject']
        values = {'company': company}
        values.update(context)
        try:
            return SUBJECTS[key].format(**values)
        except KeyError as e:
            raise ValidationError(f"Missing value for email subject: {e}")

    def render(self, key: str, data: Dict[str, Any],
               recipient_email: Optional[str] = None,
               include_unsubscribe: bool = True,
               customization: Optional[EmailCustomization] = None) -> Tuple[str, str, str]:
        """
        Render a template

        Args:
            key: registry key, e.g. 'approval'
            data: template variables
            recipient_email: used to build the unsubscribe link
            include_unsubscribe: False for admin/vendor operational mail

        Returns:
            (subject, html, text)

        Raises:
            NotFoundError: unknown template key
            ValidationError: a template variable is missing
        """
        if key not in TEMPLATES:
            raise NotFoundError(f"Unknown email template: {key}")

        brand = customization or self.get_customization()
        context = self._context(key, data)
        context['brand'] = brand
        context['unsubscribe_url'] = (
            unsubscribe_url(recipient_email) if include_unsubscribe and recipient_email else None
        )

        try:
            html = self.env.get_template(f"{key}.html").render(**context)
        except TemplateError as e:
            logger.error(f"Error rendering email template '{key}': {e}")
            raise ValidationError(f"Could not render email template '{key}'", details=str(e))

        subject = self.subject_for(key, context, brand.company_name)
        text = html_to_plain_text(html)
        if context['unsubscribe_url']:
            text += f"\n\n---\nTo unsubscribe: {context['unsubscribe_url']}"
        return subject, html, text

    def preview(self, key: str) -> Tuple[str, str, str]:
        """Render a template with sample data"""
        if key not in TEMPLATES:
            raise NotFoundError(f"Unknown email template: {key}")
        return self.render(key, SAMPLE_DATA[key], recipient_email="preview@example.com")
