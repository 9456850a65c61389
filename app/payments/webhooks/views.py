"""
Webhook endpoint views for Paystack and OPay.

Each view:
1. Verifies the webhook signature with the provider's adapter
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Queues the event for async processing
4. Returns immediately

Usage:
    # In urls.py
    from payments.webhooks.views import opay_webhook, paystack_webhook

    urlpatterns = [
        path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
        path("webhooks/opay/", opay_webhook, name="opay_webhook"),
    ]
"""

from __future__ import annotations

import json
import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import get_adapter
from payments.models import WebhookEvent
from payments.state_machines import PaymentMethod, WebhookEventStatus
from payments.webhooks.handlers import extract_event

logger = logging.getLogger(__name__)


def receive_webhook(request: HttpRequest, provider: str) -> HttpResponse:
    """
    Verify, store and queue a gateway webhook.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Unreadable payload or missing event fields
        - 401: Signature missing or invalid
    """
    payload = request.body

    # Step 1: Verify signature
    adapter = get_adapter(provider)
    if not adapter.verify_webhook_signature(payload, request.headers):
        logger.warning(
            f"{provider} webhook signature verification failed",
            extra={"provider": provider},
        )
        return HttpResponse("Invalid signature", status=401)

    try:
        body = json.loads(payload)
    except ValueError:
        logger.warning(f"{provider} webhook body is not JSON", extra={"provider": provider})
        return HttpResponse("Invalid payload", status=400)
    if not isinstance(body, dict):
        return HttpResponse("Invalid payload", status=400)

    event_id, event_type = extract_event(provider, body)
    if not event_id:
        logger.warning(
            "Webhook missing required fields",
            extra={"provider": provider, "event_type": event_type},
        )
        return HttpResponse("Invalid event", status=400)

    logger.info(
        f"Received {provider} webhook: {event_type}",
        extra={"provider": provider, "event_id": event_id, "event_type": event_type},
    )

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        provider=provider,
        event_id=event_id,
        defaults={
            "event_type": event_type,
            "payload": body,
            "status": WebhookEventStatus.PENDING,
        },
    )

    # Step 3: If already processed, return success
    if not created:
        if webhook_event.is_processed:
            logger.info(
                "Webhook already processed, returning success",
                extra={"provider": provider, "event_id": event_id},
            )
            return HttpResponse("Already processed", status=200)

        logger.info(
            f"Webhook already exists with status: {webhook_event.status}",
            extra={"provider": provider, "event_id": event_id},
        )

    # Step 4: Queue for async processing
    try:
        from payments.tasks import process_webhook_event

        process_webhook_event.delay(str(webhook_event.id))
        logger.info(
            "Webhook queued for processing",
            extra={"event_id": event_id, "webhook_event_id": str(webhook_event.id)},
        )
    except Exception as e:
        # The stored event is picked up by retry_failed_webhooks
        logger.error(
            f"Failed to queue webhook: {type(e).__name__}",
            extra={"event_id": event_id, "webhook_event_id": str(webhook_event.id)},
            exc_info=True,
        )
        webhook_event.mark_failed(f"Queueing failed: {type(e).__name__}")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])

    return HttpResponse("Accepted", status=200)


@csrf_exempt
@require_POST
def paystack_webhook(request: HttpRequest) -> HttpResponse:
    """Paystack charge events, signed in the x-paystack-signature header."""
    return receive_webhook(request, PaymentMethod.PAYSTACK)


@csrf_exempt
@require_POST
def opay_webhook(request: HttpRequest) -> HttpResponse:
    """OPay transaction status callbacks, signed in the body's sha512 field."""
    return receive_webhook(request, PaymentMethod.OPAY)
