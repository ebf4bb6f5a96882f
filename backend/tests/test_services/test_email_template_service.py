"""
Tests for email template rendering
"""
import pytest
from unittest.mock import MagicMock

from innovates.core.exceptions import NotFoundError, ValidationError
from innovates.domain.email import EmailCustomization
from innovates.services.email_template_service import (
    DEFAULT_FOOTER_TEXT, SAMPLE_DATA, TEMPLATES, EmailTemplateService,
    format_money, html_to_plain_text, unsubscribe_url,
)


@pytest.fixture
def templates():
    repo = MagicMock()
    repo.find_latest.return_value = None
    return EmailTemplateService(customization_repo=repo)


class TestRender:

    @pytest.mark.parametrize("key", sorted(TEMPLATES))
    def test_every_template_renders_its_sample(self, templates, key):
        subject, html, text = templates.preview(key)
        assert subject
        assert "<div" in html
        assert text

    def test_approval_contains_links_and_price(self, templates):
        subject, html, text = templates.render(
            'approval',
            {'name': 'Jane', 'product_name': 'Solar Snack Box', 'slug': 'solar-snack-box', 'submission_id': 'sub-1'},
            recipient_email='jane@example.com',
        )

        assert subject == '🎉 Your Innovation Story "Solar Snack Box" Has Been Approved!'
        assert 'https://americainnovates.us/article/solar-snack-box' in html
        assert '/featured-upgrade/sub-1' in html
        assert '$50.00' in html
        assert 'Unsubscribe from emails' in html
        assert text.endswith(f"To unsubscribe: {unsubscribe_url('jane@example.com')}")

    def test_operational_mail_has_no_unsubscribe(self, templates):
        _, html, text = templates.render(
            'customer_tracking', SAMPLE_DATA['customer_tracking'],
            recipient_email='buyer@example.com', include_unsubscribe=False,
        )
        assert 'Unsubscribe' not in html
        assert 'To unsubscribe' not in text
        assert '1Z999AA10123456784' in text

    def test_values_are_html_escaped(self, templates):
        _, html, _ = templates.render('welcome', {'name': '<script>alert(1)</script>'})
        assert '<script>alert(1)</script>' not in html
        assert '&lt;script&gt;' in html

    def test_explicit_subject_wins(self, templates):
        subject, _, _ = templates.render('notification', {'name': 'Jane', 'message': 'Hi', 'subject': 'Custom'})
        assert subject == 'Custom'

    def test_company_name_in_subject(self, templates):
        subject, _, _ = templates.render('welcome', {'name': 'Jane'})
        assert subject == 'Welcome to America Innovates Magazine!'

    def test_unknown_template(self, templates):
        with pytest.raises(NotFoundError):
            templates.render('nope', {})

    def test_missing_variable_is_validation_error(self, templates):
        with pytest.raises(ValidationError):
            templates.render('vendor_order', {'order_number': 'AI-1'})

    def test_newsletter_keeps_subscriber_placeholder(self, templates):
        _, html, _ = templates.preview('newsletter')
        assert '{{subscriber_name}}' in html


class TestCustomization:

    def test_defaults_when_nothing_stored(self, templates):
        brand = templates.get_customization()
        assert brand.company_name == "America Innovates Magazine"
        assert brand.footer_text == DEFAULT_FOOTER_TEXT

    def test_stored_customization_is_used(self):
        repo = MagicMock()
        repo.find_latest.return_value = EmailCustomization(
            company_name="AI Mag", primary_color="#ff0000", logo_url="https://cdn.example.com/logo.png",
        )
        service = EmailTemplateService(customization_repo=repo)

        subject, html, _ = service.render('welcome', {'name': 'Jane'})

        assert subject == 'Welcome to AI Mag!'
        assert 'https://cdn.example.com/logo.png' in html


class TestHelpers:

    def test_list_templates_by_category(self, templates):
        keys = {t.key for t in templates.list_templates('vendor')}
        assert keys == {'vendor_confirmation', 'vendor_approval', 'vendor_rejection', 'vendor_order', 'customer_tracking',
                        'vendor_invite'}

    def test_list_templates_unknown_category(self, templates):
        with pytest.raises(ValidationError):
            templates.list_templates('marketing')

    def test_html_to_plain_text(self):
        html = "<style>a{}</style><h1>Title</h1><p>One &amp; two</p><p>Line<br>break</p>"
        assert html_to_plain_text(html) == "Title\n\nOne & two\n\nLine\nbreak"

    def test_format_money(self):
        assert format_money(5000) == "$50.00"
        assert format_money(123456, "eur") == "1,234.56 EUR"

    def test_unsubscribe_url_quotes_email(self):
        assert unsubscribe_url("a+b@example.com").endswith("/api/v1/newsletters/unsubscribe?email=a%2Bb%40example.com")
