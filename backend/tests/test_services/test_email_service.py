"""
Tests for transactional email assembly (rendering + Resend hand-off)
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from innovates.domain.marketplace import OrderItem
from innovates.services.email_service import EmailService, address_lines
from innovates.services.email_template_service import EmailTemplateService


@pytest.fixture
def connector():
    resend = MagicMock()
    resend.send = AsyncMock(return_value={'id': 'email-1'})
    return resend


@pytest.fixture
def email_service(connector):
    repo = MagicMock()
    repo.find_latest.return_value = None
    return EmailService(connector=connector, templates=EmailTemplateService(customization_repo=repo))


def _sent(connector):
    return connector.send.call_args[0][0]


def test_address_lines():
    lines = address_lines({'line1': '1 Main St', 'line2': None, 'city': 'Austin', 'state': 'TX',
                           'postal_code': '78701', 'country': 'US'})
    assert lines == ['1 Main St', 'Austin, TX 78701', 'US']
    assert address_lines(None) == []


class TestSendTemplate:

    def test_marketing_mail_carries_unsubscribe_headers(self, email_service, connector, approved_submission):
        result = asyncio.run(email_service.send_approval(approved_submission))

        assert result == {'id': 'email-1'}
        message = _sent(connector)
        assert message.to == ['jane@example.com']
        assert "Solar Snack Box" in message.subject
        assert message.headers['List-Unsubscribe'] == (
            "<https://api.americainnovates.us/api/v1/newsletters/unsubscribe?email=jane%40example.com>"
        )
        assert message.headers['List-Unsubscribe-Post'] == "List-Unsubscribe=One-Click"
        assert "https://americainnovates.us/article/solar-snack-box" in message.html

    def test_operational_mail_has_no_unsubscribe(self, email_service, connector, submission):
        asyncio.run(email_service.notify_admin_submission(submission))

        message = _sent(connector)
        assert message.to == ['admin@americainnovates.us']
        assert message.subject == "New Article Submission - America Innovates"
        assert message.headers == {}
        assert "unsubscribe" not in message.text.lower()

    def test_subject_override(self, email_service, connector):
        asyncio.run(email_service.send_notification("reader@example.com", "Big news", subject="Hello there"))
        assert _sent(connector).subject == "Hello there"

    def test_follow_up_replies_to_admin(self, email_service, connector):
        asyncio.run(email_service.send_draft_follow_up("jane@example.com", "Jane", "Solar Snack Box"))
        assert _sent(connector).reply_to == "admin@americainnovates.us"

    def test_resend_errors_propagate(self, email_service, connector):
        connector.send.side_effect = RuntimeError("resend down")
        with pytest.raises(RuntimeError):
            asyncio.run(email_service.send_welcome("reader@example.com"))


class TestOrders:

    def test_vendor_order_lists_only_given_items(self, email_service, connector, order):
        items = [OrderItem(product_id="prod-1", product_name="Solar Snack Box",
                           product_price=4999, quantity=2, total_amount=9998)]

        asyncio.run(email_service.send_vendor_order("hello@solargoods.example.com", order, items))

        message = _sent(connector)
        assert message.from_address == "America Innovates Marketplace <orders@americainnovates.us>"
        assert message.subject == "New Order #AI-20250301-ABC123 - Action Required"
        assert "$99.98" in message.html
        assert "Austin, TX 78701" in message.html

    def test_customer_tracking(self, email_service, connector, order):
        shipped = order.model_copy(update={'tracking_number': '1Z999AA10123456784'})

        asyncio.run(email_service.send_customer_tracking(shipped))

        message = _sent(connector)
        assert message.to == ['buyer@example.com']
        assert message.subject == "Your Order Has Shipped! - Solar Snack Box"
        assert "1Z999AA10123456784" in message.html


class TestVendorInvites:

    def test_admin_invite(self, email_service, connector):
        asyncio.run(email_service.send_vendor_invite("maker@example.com", "We'd love to have you", admin_invite=True))

        message = _sent(connector)
        assert message.from_address == "America Innovates Marketplace <admin@americainnovates.us>"
        assert message.subject == "Invitation to Join America Innovates Marketplace as a Vendor"
        assert message.reply_to is None
        assert "https://americainnovates.us/marketplace" in message.html

    def test_personal_invite_is_sent_in_inviter_name(self, email_service, connector):
        asyncio.run(email_service.send_vendor_invite(
            "maker@example.com", "Come sell with us", admin_invite=False,
            inviter_name="Bob Buyer", inviter_email="buyer@example.com",
        ))

        message = _sent(connector)
        assert message.from_address == "Bob Buyer via America Innovates <admin@americainnovates.us>"
        assert message.subject == "Bob Buyer invited you to become a vendor on America Innovates Marketplace"
        assert message.reply_to == "buyer@example.com"
        assert "Come sell with us" in message.html

    def test_inviter_name_cannot_break_from_header(self, email_service, connector):
        asyncio.run(email_service.send_vendor_invite(
            "maker@example.com", "Hi", admin_invite=False,
            inviter_name='Bob "B" <x@evil.example>,\r\nBcc: y', inviter_email="buyer@example.com",
        ))

        from_address = _sent(connector).from_address
        assert from_address.count("<") == 1
        assert "\n" not in from_address
        assert from_address.endswith("<admin@americainnovates.us>")
        assert "\n" not in _sent(connector).subject
