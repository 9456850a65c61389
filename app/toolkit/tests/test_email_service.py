"""
Tests for EmailService.
"""

from unittest.mock import patch

import pytest
from django.core import mail
from django.template import TemplateDoesNotExist

from toolkit.services.email import EmailService


@pytest.fixture(autouse=True)
def locmem_email(settings):
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.DEFAULT_FROM_EMAIL = "shop@example.com"


class TestSendRaw:
    """Tests for EmailService.send_raw."""

    def test_sends_text_and_html(self):
        """Should send one message with an HTML alternative."""
        sent = EmailService.send_raw(
            to="customer@example.com",
            subject="Hello",
            body_text="Plain",
            body_html="<p>Rich</p>",
        )

        assert sent is True
        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.to == ["customer@example.com"]
        assert message.from_email == "shop@example.com"
        assert message.body == "Plain"
        assert message.alternatives[0][0] == "<p>Rich</p>"

    def test_returns_false_when_backend_fails(self):
        """Should log and return False instead of raising."""
        with patch(
            "toolkit.services.email.EmailMultiAlternatives.send",
            side_effect=ConnectionRefusedError("smtp down"),
        ):
            sent = EmailService.send_raw(
                to=["customer@example.com"],
                subject="Hello",
                body_text="Plain",
            )

        assert sent is False
        assert mail.outbox == []


class TestSendTemplate:
    """Tests for EmailService.send."""

    def test_renders_both_templates(self):
        """Should render the .txt body and the .html alternative."""
        with patch("toolkit.services.email.render_to_string", side_effect=["<b>Hi</b>", "Hi"]):
            sent = EmailService.send(
                to="customer@example.com",
                subject="Greeting",
                template_name="greeting",
                context={},
            )

        assert sent is True
        assert mail.outbox[0].body == "Hi"
        assert mail.outbox[0].alternatives[0][0] == "<b>Hi</b>"

    def test_text_falls_back_to_stripped_html(self):
        """Should strip tags from the HTML when no text template exists."""
        with patch(
            "toolkit.services.email.render_to_string",
            side_effect=["<p>Only html</p>", TemplateDoesNotExist("greeting.txt")],
        ):
            EmailService.send(
                to="customer@example.com",
                subject="Greeting",
                template_name="greeting",
                context={},
            )

        assert mail.outbox[0].body == "Only html"

    def test_missing_templates_raise(self):
        """Should raise when neither template exists."""
        with pytest.raises(TemplateDoesNotExist):
            EmailService.send(
                to="customer@example.com",
                subject="Greeting",
                template_name="does/not/exist",
                context={},
            )
