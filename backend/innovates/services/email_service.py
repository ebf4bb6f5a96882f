"""
Email Service - transactional emails delivered through Resend

Every send renders a registered template (see email_template_service) and
hands the message to ResendConnector. Resend errors propagate as
ExternalServiceError so callers decide whether a failed email is fatal.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from innovates.core.config import settings
from innovates.connectors.resend_connector import ResendConnector
from innovates.domain.email import EmailMessage
from innovates.domain.marketplace import Order, OrderItem
from innovates.domain.submission import Submission
from innovates.domain.vendor import VendorApplication
from innovates.services.email_template_service import EmailTemplateService, format_money, unsubscribe_url

logger = logging.getLogger(__name__)

# Operational mail has no unsubscribe link
OPERATIONAL_TEMPLATES = ("admin_notification", "vendor_order", "customer_tracking")


HEADER_UNSAFE_RE = re.compile(r"[\r\n\"<>,;]")


def display_name(name: str) -> str:
    """Name safe to place in a From header"""
    return " ".join(HEADER_UNSAFE_RE.sub(" ", name).split())


def address_lines(address: Optional[Dict[str, Any]]) -> List[str]:
    """Shipping address as printable lines"""
    if not address:
        return []
    lines = [address.get('line1'), address.get('line2')]
    city_line = ", ".join(part for part in [address.get('city'), address.get('state')] if part)
    if address.get('postal_code'):
        city_line = f"{city_line} {address['postal_code']}".strip()
    lines.append(city_line)
    lines.append(address.get('country'))
    return [line for line in lines if line]


class EmailService:

    def __init__(self, connector: ResendConnector = None, templates: EmailTemplateService = None):
        self._connector = connector
        self.templates = templates or EmailTemplateService()

    @property
    def connector(self) -> ResendConnector:
        # Created on first send so the API boots without RESEND_API_KEY
        if self._connector is None:
            self._connector = ResendConnector()
        return self._connector

    async def send_template(self, key: str, to: str, data: Dict[str, Any],
                            subject: Optional[str] = None, from_address: Optional[str] = None,
                            reply_to: Optional[str] = None) -> Dict:
        """
        Render and deliver a registered template

        Returns:
            Resend response ({"id": "..."})
        """
        if subject:
            data = {**data, 'subject': subject}

        include_unsubscribe = key not in OPERATIONAL_TEMPLATES
        rendered_subject, html, text = self.templates.render(
            key, data, recipient_email=to, include_unsubscribe=include_unsubscribe
        )

        headers = {}
        if include_unsubscribe:
            unsubscribe = unsubscribe_url(to)
            headers = {
                'List-Unsubscribe': f"<{unsubscribe}>",
                'List-Unsubscribe-Post': "List-Unsubscribe=One-Click",
            }

        message = EmailMessage(
            to=[to],
            subject=rendered_subject,
            html=html,
            text=text,
            from_address=from_address,
            reply_to=reply_to,
            headers=headers,
        )
        logger.info(f"Sending '{key}' email to {to}")
        return await self.connector.send(message)

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    async def send_welcome(self, email: str, name: Optional[str] = None) -> Dict:
        return await self.send_template('welcome', email, {'name': name})

    async def send_approval(self, submission: Submission) -> Dict:
        return await self.send_template('approval', submission.email, {
            'name': submission.full_name,
            'product_name': submission.product_name,
            'slug': submission.slug,
            'submission_id': submission.id,
        })

    async def send_featured(self, submission: Submission) -> Dict:
        return await self.send_template('featured', submission.email, {
            'name': submission.full_name,
            'product_name': submission.product_name,
            'slug': submission.slug,
        })

    async def send_featured_promotion(self, submission: Submission) -> Dict:
        return await self.send_template('featured_story_promotion', submission.email, {
            'name': submission.full_name,
            'product_name': submission.product_name,
            'submission_id': submission.id,
        })

    async def send_recommendation(self, email: str, name: str, recommender_name: Optional[str]) -> Dict:
        return await self.send_template('recommendation', email, {
            'name': name,
            'recommender_name': recommender_name,
        })

    async def send_draft_follow_up(self, email: str, name: Optional[str] = None,
                                   product_name: Optional[str] = None) -> Dict:
        return await self.send_template('draft_follow_up', email, {
            'name': name,
            'product_name': product_name,
        }, reply_to=settings.ADMIN_NOTIFICATION_EMAIL)

    async def send_notification(self, email: str, message: str, name: Optional[str] = None,
                                subject: Optional[str] = None) -> Dict:
        return await self.send_template('notification', email, {
            'name': name,
            'message': message,
        }, subject=subject)

    async def notify_admin_submission(self, submission: Submission) -> Dict:
        fields = [
            ("Name", submission.full_name),
            ("Email", submission.email),
            ("Phone", submission.phone_number),
            ("Location", ", ".join(p for p in [submission.city, submission.state] if p)),
            ("Product", submission.product_name),
            ("Category", submission.category),
            ("Stage", submission.stage),
            ("Submission ID", submission.id),
        ]
        return await self.send_template('admin_notification', settings.ADMIN_NOTIFICATION_EMAIL, {
            'heading': "New Article Submission",
            'fields': fields,
        })

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    def _vendor_data(self, application: VendorApplication) -> Dict[str, Any]:
        return {
            'business_name': application.business_name,
            'rejection_reason': application.rejection_reason,
        }

    async def send_vendor_confirmation(self, application: VendorApplication) -> Dict:
        return await self.send_template(
            'vendor_confirmation', application.contact_email, self._vendor_data(application)
        )

    async def send_vendor_approval(self, application: VendorApplication) -> Dict:
        return await self.send_template(
            'vendor_approval', application.contact_email, self._vendor_data(application)
        )

    async def send_vendor_rejection(self, application: VendorApplication) -> Dict:
        return await self.send_template(
            'vendor_rejection', application.contact_email, self._vendor_data(application)
        )

    async def notify_admin_vendor(self, application: VendorApplication) -> Dict:
        fields = [
            ("Business", application.business_name),
            ("Email", application.contact_email),
            ("Phone", application.contact_phone),
            ("Ships from", application.shipping_country),
            ("About", application.vendor_bio),
            ("Application ID", application.id),
        ]
        return await self.send_template('admin_notification', settings.ADMIN_NOTIFICATION_EMAIL, {
            'heading': "New Vendor Application",
            'fields': fields,
        })

    async def send_vendor_invite(self, email: str, message: str, admin_invite: bool,
                                 inviter_name: Optional[str] = None,
                                 inviter_email: Optional[str] = None) -> Dict:
        """
        Invite a business to apply as a vendor

        Personal invites are sent in the inviter's name and replies go to them.
        """
        personal = not admin_invite and bool(inviter_name)
        inviter_name = display_name(inviter_name) if personal else None
        from_name = f"{inviter_name} via America Innovates" if personal else "America Innovates Marketplace"
        return await self.send_template('vendor_invite', email, {
            'message': message,
            'admin_invite': not personal,
            'inviter_name': inviter_name,
            'inviter_email': inviter_email,
        }, from_address=f"{from_name} <{settings.INVITE_EMAIL_ADDRESS}>",
            reply_to=inviter_email if personal else None)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def send_vendor_order(self, vendor_email: str, order: Order, items: List[OrderItem]) -> Dict:
        """Ask a vendor to ship their items of a paid order"""
        total = sum(item.total_amount for item in items)
        return await self.send_template('vendor_order', vendor_email, {
            'order_number': order.order_number,
            'customer_name': order.customer_name or order.customer_email,
            'items': [
                {
                    'product_name': item.product_name,
                    'quantity': item.quantity,
                    'total_display': format_money(item.total_amount, order.currency),
                }
                for item in items
            ],
            'total_display': format_money(total, order.currency),
            'address_lines': address_lines(order.shipping_address),
        }, from_address=settings.ORDERS_EMAIL_FROM)

    async def send_customer_tracking(self, order: Order) -> Dict:
        product_name = order.items[0].product_name if order.items else f"Order #{order.order_number}"
        return await self.send_template('customer_tracking', order.customer_email, {
            'customer_name': order.customer_name,
            'order_number': order.order_number,
            'product_name': product_name,
            'tracking_number': order.tracking_number,
        }, from_address=settings.ORDERS_EMAIL_FROM)


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
