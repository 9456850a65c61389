"""
Email service for centralized email sending.

This module provides the EmailService class for sending emails with
Django template rendering for HTML and plain text bodies.

Configuration:
    Email settings are read from Django settings:
    - EMAIL_BACKEND
    - EMAIL_HOST, EMAIL_PORT
    - DEFAULT_FROM_EMAIL

Usage:
    from toolkit.services.email import EmailService

    # Send email with template
    EmailService.send(
        to="customer@example.com",
        subject="Order confirmed",
        template_name="payments/emails/order_confirmation",
        context={"order": order},
    )
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from toolkit.helpers import mask_email

logger = logging.getLogger(__name__)


class EmailService:
    """
    Centralized email sending with template support.

    Delivery failures are logged and reported through the return value;
    callers that must not fail (payment notifications) rely on that.

    Usage:
        # Send template email
        sent = EmailService.send(
            to="customer@example.com",
            subject="Order confirmed",
            template_name="payments/emails/order_confirmation",
            context={"order": order},
        )

        # Send raw email
        sent = EmailService.send_raw(
            to="customer@example.com",
            subject="Quick note",
            body_text="Plain text content",
            body_html="<p>HTML content</p>",
        )
    """

    @staticmethod
    def send(
        to: str | list[str],
        subject: str,
        template_name: str,
        context: dict,
        from_email: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """
        Send email using a template.

        Args:
            to: Recipient email address(es)
            subject: Email subject line
            template_name: Name of template (without extension)
                           Looks for: {template_name}.html and {template_name}.txt
            context: Template context variables
            from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)
            reply_to: Reply-to address

        Returns:
            True if email was sent successfully

        Raises:
            TemplateDoesNotExist: If neither template exists
        """
        try:
            html_content = render_to_string(f"{template_name}.html", context)
        except TemplateDoesNotExist:
            html_content = None

        try:
            text_content = render_to_string(f"{template_name}.txt", context)
        except TemplateDoesNotExist:
            if html_content is None:
                raise
            # Fallback: strip HTML tags from HTML content
            text_content = strip_tags(html_content)

        return EmailService.send_raw(
            to=to,
            subject=subject,
            body_text=text_content,
            body_html=html_content,
            from_email=from_email,
            reply_to=reply_to,
        )

    @staticmethod
    def send_raw(
        to: str | list[str],
        subject: str,
        body_text: str,
        body_html: str | None = None,
        from_email: str | None = None,
        reply_to: str | None = None,
    ) -> bool:
        """
        Send email with raw content (no template).

        Returns:
            True if email was sent successfully
        """
        recipients = [to] if isinstance(to, str) else list(to)
        masked = ", ".join(mask_email(address) for address in recipients)

        email = EmailMultiAlternatives(
            subject=subject,
            body=body_text,
            from_email=from_email or settings.DEFAULT_FROM_EMAIL,
            to=recipients,
            reply_to=[reply_to] if reply_to else None,
        )
        if body_html:
            email.attach_alternative(body_html, "text/html")

        try:
            email.send(fail_silently=False)
        except Exception as e:
            logger.error(
                f"Failed to send email to {masked}: {e}",
                extra={"subject": subject},
                exc_info=True,
            )
            return False

        logger.info(f"Email sent to {masked}: {subject}")
        return True
