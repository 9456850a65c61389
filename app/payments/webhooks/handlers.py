"""
Webhook event handlers for Paystack and OPay events.

This module provides a handler registry keyed by (provider, event type).
Handlers never trust the webhook body for the payment outcome: they take
the reference from it and re-verify the payment with the gateway through
PaymentVerificationService, the same path the customer's return hits.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler(PaymentMethod.PAYSTACK, "refund.processed")
    def handle_refund_processed(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from core.exceptions import BaseApplicationError
from core.services import ServiceResult
from payments.exceptions import GatewayError, OrderNotFound
from payments.models import WebhookEvent
from payments.services import PaymentVerificationService
from payments.state_machines import PaymentMethod

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps (provider, event type) to handler functions
WEBHOOK_HANDLERS: dict[tuple[str, str], Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(provider: str, event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        provider: Gateway name (paystack, opay)
        event_type: Paystack event name or OPay transaction status

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[(provider, event_type)] = func
        logger.debug(f"Registered webhook handler for {provider}:{event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown events are acknowledged with a success result so the gateway
    stops redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get((webhook_event.provider, webhook_event.event_type))

    if not handler:
        logger.info(
            f"No handler registered for {webhook_event.provider}:{webhook_event.event_type}",
            extra={"event_id": webhook_event.event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.provider}:{webhook_event.event_type} to handler",
        extra={"event_id": webhook_event.event_id},
    )

    return handler(webhook_event)


# =============================================================================
# Event Parsing
# =============================================================================


def extract_event(provider: str, body: dict[str, Any]) -> tuple[str, str]:
    """
    Derive (event_id, event_type) from a webhook body.

    Paystack sends {"event": "charge.success", "data": {...}}. OPay sends
    {"type": "transaction-status", "payload": {"status": "SUCCESS", ...}},
    so its transaction status is the event type.

    The event id combines type and reference: a redelivery maps to the
    same row while a later status change for the same payment does not.
    """
    if provider == PaymentMethod.OPAY:
        data = body.get("payload") if isinstance(body.get("payload"), dict) else body
        event_type = str(data.get("status") or "").upper()
        reference = str(data.get("reference") or "")
    else:
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        event_type = str(body.get("event") or "")
        reference = str(data.get("reference") or data.get("id") or "")

    if not event_type or not reference:
        return "", event_type
    return f"{event_type}:{reference}", event_type


# =============================================================================
# Payment Handlers
# =============================================================================


def _verify_from_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Re-verify the referenced payment with the gateway.

    Gateway outages are raised so the task retries. A reference we do not
    know is a permanent failure.
    """
    reference = webhook_event.get_reference()
    if not reference:
        return ServiceResult.failure(
            "Webhook payload has no payment reference",
            error_code="MISSING_REFERENCE",
        )

    try:
        outcome = PaymentVerificationService.verify_payment(
            reference,
            method=webhook_event.provider,
        )
    except OrderNotFound as e:
        logger.warning(
            "Webhook references an unknown order",
            extra={"event_id": webhook_event.event_id, "reference": reference},
        )
        return ServiceResult.from_exception(e)
    except GatewayError:
        raise
    except BaseApplicationError as e:
        logger.warning(
            f"Webhook verification rejected: {e.message}",
            extra={
                "event_id": webhook_event.event_id,
                "reference": reference,
                "error_code": e.error_code,
            },
        )
        return ServiceResult.from_exception(e)

    logger.info(
        f"Webhook verification: {outcome.status}",
        extra={
            "event_id": webhook_event.event_id,
            "reference": reference,
            "order_number": outcome.order.order_number,
        },
    )
    return ServiceResult.success(
        {"status": outcome.status, "order_number": outcome.order.order_number}
    )


@register_handler(PaymentMethod.PAYSTACK, "charge.success")
def handle_paystack_charge_success(webhook_event: WebhookEvent) -> ServiceResult:
    return _verify_from_webhook(webhook_event)


@register_handler(PaymentMethod.PAYSTACK, "charge.failed")
def handle_paystack_charge_failed(webhook_event: WebhookEvent) -> ServiceResult:
    return _verify_from_webhook(webhook_event)


@register_handler(PaymentMethod.OPAY, "SUCCESS")
def handle_opay_success(webhook_event: WebhookEvent) -> ServiceResult:
    return _verify_from_webhook(webhook_event)


@register_handler(PaymentMethod.OPAY, "FAILED")
@register_handler(PaymentMethod.OPAY, "FAIL")
@register_handler(PaymentMethod.OPAY, "CLOSE")
def handle_opay_failed(webhook_event: WebhookEvent) -> ServiceResult:
    return _verify_from_webhook(webhook_event)
