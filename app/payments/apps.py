"""
Payments app configuration.

This app provides the storefront's payment processing:
- Checkout, order and invoice lifecycle
- Paystack/OPay gateways, wallet and bank transfer payments
- Webhook handling
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        """Connect signal handlers when app is ready."""
        from payments.signals import connect_signals

        connect_signals()
