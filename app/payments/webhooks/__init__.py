"""
Webhook handling for payment events from Paystack and OPay.

Webhooks are verified, stored idempotently, and processed asynchronously
via Celery tasks.

Usage:
    # In urls.py
    from payments.webhooks import opay_webhook, paystack_webhook

    urlpatterns = [
        path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.views import opay_webhook, paystack_webhook

__all__ = [
    "dispatch_webhook",
    "opay_webhook",
    "paystack_webhook",
    "register_handler",
]
