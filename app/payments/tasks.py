"""
Celery tasks for payment processing.

This module provides async tasks for:
- Processing Paystack/OPay webhook events
- Retrying failed webhook events
- Resetting webhook events stuck in PROCESSING
- Customer emails for confirmed orders and wallet refunds

Usage:
    from payments.tasks import process_webhook_event

    # Queue a webhook for async processing
    process_webhook_event.delay(str(webhook_event.id))

    # Emails are queued by PaymentNotifier after commit
    send_order_confirmation_email.delay(str(order.id))
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from payments.models import Order, WebhookEvent
from payments.state_machines import PaymentMethod, WebhookEventStatus
from toolkit.services.email import EmailService

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

STUCK_PROCESSING_THRESHOLD_MINUTES = 30
RETRY_BATCH_SIZE = 100


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": settings.WEBHOOK_MAX_ATTEMPTS},
    acks_late=True,
)
def process_webhook_event(self, webhook_event_id: str) -> dict:
    """
    Process a gateway webhook event asynchronously.

    This task:
    1. Loads the WebhookEvent by ID
    2. Checks if already processed (idempotency)
    3. Marks as processing
    4. Dispatches to the handler for its provider and event type
    5. Marks as processed or failed

    Raises:
        Exception: Re-raised to trigger Celery retry mechanism
    """
    # Import here to avoid circular imports
    from payments.webhooks.handlers import dispatch_webhook

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    try:
        webhook_event = WebhookEvent.objects.get(id=webhook_event_id)
    except WebhookEvent.DoesNotExist:
        logger.error(
            "WebhookEvent not found",
            extra={"webhook_event_id": str(webhook_event_id)},
        )
        return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

    if webhook_event.is_processed:
        logger.info(
            "WebhookEvent already processed, skipping",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "event_id": webhook_event.event_id,
            },
        )
        return {"status": "already_processed", "webhook_event_id": str(webhook_event_id)}

    webhook_event.mark_processing()
    webhook_event.save()

    logger.info(
        f"Dispatching webhook: {webhook_event.provider}:{webhook_event.event_type}",
        extra={
            "webhook_event_id": str(webhook_event_id),
            "event_id": webhook_event.event_id,
            "attempts": webhook_event.attempts,
        },
    )

    try:
        # Each transition opens its own atomic block
        result = dispatch_webhook(webhook_event)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()

        logger.exception(
            "Webhook processing failed with exception",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "event_id": webhook_event.event_id,
                "error": error_msg,
            },
        )
        raise

    if result.success:
        webhook_event.mark_processed()
        webhook_event.save()
        logger.info(
            "Webhook processed successfully",
            extra={
                "webhook_event_id": str(webhook_event_id),
                "event_id": webhook_event.event_id,
            },
        )
        return {
            "status": "processed",
            "webhook_event_id": str(webhook_event_id),
            "event_id": webhook_event.event_id,
        }

    error_msg = result.error or "Handler returned failure"
    webhook_event.mark_failed(error_msg)
    webhook_event.save()
    logger.warning(
        f"Webhook handler failed: {error_msg}",
        extra={
            "webhook_event_id": str(webhook_event_id),
            "event_id": webhook_event.event_id,
            "error_code": result.error_code,
        },
    )
    return {
        "status": "handler_failed",
        "webhook_event_id": str(webhook_event_id),
        "error": error_msg,
    }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to re-queue failed webhook events.

    Only events below WEBHOOK_MAX_ATTEMPTS are retried. Schedule via
    celery-beat, e.g. every 5 minutes.
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        attempts__lt=settings.WEBHOOK_MAX_ATTEMPTS,
    ).order_by("created_at")[:RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in failed_webhooks:
        try:
            process_webhook_event.delay(str(webhook.id))
            queued_count += 1
        except Exception as e:
            logger.error(
                f"Failed to queue webhook for retry: {e}",
                extra={"webhook_event_id": str(webhook.id)},
            )

    logger.info(
        f"Queued {queued_count} failed webhooks for retry",
        extra={"queued_count": queued_count},
    )
    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Periodic task to reset webhooks stuck in PROCESSING.

    Handles workers that died mid-event; the reset events are picked up
    by retry_failed_webhooks.
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)
    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook in stuck_webhooks:
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "event_id": webhook.event_id,
                "stuck_since": webhook.updated_at.isoformat(),
            },
        )

    return {"reset_count": reset_count}


# =============================================================================
# Notification Tasks
# =============================================================================


def _customer_name(order: Order) -> str:
    return order.user.display_name or "Customer"


def _load_order(order_id: str) -> Order | None:
    try:
        return Order.objects.select_related("user").get(id=UUID(str(order_id)))
    except Order.DoesNotExist:
        logger.error("Order not found for notification", extra={"order_id": str(order_id)})
        return None


def _company_context() -> dict:
    return {
        "company_name": settings.COMPANY_NAME,
        "company_email": settings.COMPANY_EMAIL,
    }


@shared_task
def send_order_confirmation_email(order_id: str) -> dict:
    """
    Email the customer that their order is paid.

    Delivery failures are logged by EmailService and reported in the
    result; they never raise.
    """
    order = _load_order(order_id)
    if order is None:
        return {"status": "not_found", "order_id": str(order_id)}
    recipient = order.email or order.user.email
    if not recipient:
        logger.warning(
            "Order has no email address, confirmation skipped",
            extra={"order_id": str(order.id)},
        )
        return {"status": "skipped", "order_id": str(order.id)}

    sent = EmailService.send(
        to=recipient,
        subject=f"Order {order.order_number} confirmed",
        template_name="payments/emails/order_confirmation",
        context={
            "customer_name": _customer_name(order),
            "order": order,
            "items": list(order.items.all()),
            "total": order.total,
            "payment_method": PaymentMethod(order.payment_method).label
            if order.payment_method in PaymentMethod.values
            else order.payment_method,
            **_company_context(),
        },
    )
    return {"status": "sent" if sent else "failed", "order_id": str(order.id)}


@shared_task
def send_refund_notification_email(order_id: str, amount: str) -> dict:
    """Email the customer that a late payment was refunded to their wallet."""
    order = _load_order(order_id)
    if order is None:
        return {"status": "not_found", "order_id": str(order_id)}
    recipient = order.email or order.user.email
    if not recipient:
        logger.warning(
            "Order has no email address, refund notice skipped",
            extra={"order_id": str(order.id)},
        )
        return {"status": "skipped", "order_id": str(order.id)}

    sent = EmailService.send(
        to=recipient,
        subject=f"Refund for order {order.order_number}",
        template_name="payments/emails/refund_notification",
        context={
            "customer_name": _customer_name(order),
            "amount": Decimal(amount),
            "order": order,
            **_company_context(),
        },
    )
    return {"status": "sent" if sent else "failed", "order_id": str(order.id)}
