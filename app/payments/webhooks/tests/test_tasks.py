"""
Tests for webhook processing tasks.

Tests cover:
- process_webhook_event: idempotency, dispatch and failure bookkeeping
- retry_failed_webhooks: re-queueing below the attempt limit
- cleanup_stuck_webhooks: resetting events stuck in PROCESSING
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from core.services import ServiceResult
from payments.adapters import GatewayStatus, GatewayVerification
from payments.models import Order, WebhookEvent
from payments.state_machines import OrderStatus, WebhookEventStatus
from payments.tasks import (
    cleanup_stuck_webhooks,
    process_webhook_event,
    retry_failed_webhooks,
)
from payments.tests.factories import WebhookEventFactory
from payments.webhooks.tests.conftest import paystack_body

DISPATCH = "payments.webhooks.handlers.dispatch_webhook"
DELAY = "payments.tasks.process_webhook_event.delay"


class TestProcessWebhookEvent:
    """Tests for process_webhook_event."""

    def test_end_to_end_settles_order(self, pending_order, gateway_adapter):
        """Should verify the payment and mark the event processed."""
        event = WebhookEventFactory(payload=paystack_body("charge.success", pending_order.payment_id))
        gateway_adapter.verify.return_value = GatewayVerification(
            status=GatewayStatus.SUCCESS,
            reference=pending_order.payment_id,
            amount=pending_order.total,
        )

        with patch("payments.services.verification.get_adapter", return_value=gateway_adapter):
            result = process_webhook_event(str(event.id))

        assert result["status"] == "processed"
        event.refresh_from_db()
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.attempts == 1
        assert Order.objects.get(pk=pending_order.pk).status == OrderStatus.CONFIRMED

    def test_already_processed_is_skipped(self, db):
        event = WebhookEventFactory(status=WebhookEventStatus.PROCESSED)

        with patch(DISPATCH) as mock_dispatch:
            result = process_webhook_event(str(event.id))

        assert result["status"] == "already_processed"
        mock_dispatch.assert_not_called()

    def test_missing_event(self, db):
        result = process_webhook_event(str(uuid.uuid4()))

        assert result["status"] == "not_found"

    def test_handler_failure_marks_failed(self, db):
        event = WebhookEventFactory()

        with patch(DISPATCH, return_value=ServiceResult.failure("No order", error_code="ORDER_NOT_FOUND")):
            result = process_webhook_event(str(event.id))

        assert result == {"status": "handler_failed", "webhook_event_id": str(event.id), "error": "No order"}
        event.refresh_from_db()
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "No order"

    def test_exception_marks_failed_and_reraises(self, db):
        """Should record the error before the retry."""
        event = WebhookEventFactory()

        with patch(DISPATCH, side_effect=RuntimeError("gateway down")), pytest.raises(RuntimeError):
            process_webhook_event(str(event.id))

        event.refresh_from_db()
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "RuntimeError: gateway down"
        assert event.attempts == 1


class TestRetryFailedWebhooks:
    def test_requeues_failed_events_below_limit(self, db, settings):
        settings.WEBHOOK_MAX_ATTEMPTS = 3
        retryable = WebhookEventFactory(status=WebhookEventStatus.FAILED, attempts=2)
        WebhookEventFactory(status=WebhookEventStatus.FAILED, attempts=3)
        WebhookEventFactory(status=WebhookEventStatus.PROCESSED, attempts=1)

        with patch(DELAY) as mock_delay:
            result = retry_failed_webhooks()

        assert result == {"queued_count": 1}
        mock_delay.assert_called_once_with(str(retryable.id))

    def test_queue_error_is_counted_out(self, db):
        WebhookEventFactory(status=WebhookEventStatus.FAILED, attempts=1)

        with patch(DELAY, side_effect=ConnectionError("broker down")):
            result = retry_failed_webhooks()

        assert result == {"queued_count": 0}


class TestCleanupStuckWebhooks:
    def test_resets_old_processing_events(self, db):
        """Should fail events stuck in PROCESSING for over 30 minutes."""
        stuck = WebhookEventFactory(status=WebhookEventStatus.PROCESSING, attempts=1)
        recent = WebhookEventFactory(status=WebhookEventStatus.PROCESSING, attempts=1)
        WebhookEvent.objects.filter(pk=stuck.pk).update(updated_at=timezone.now() - timedelta(minutes=45))

        result = cleanup_stuck_webhooks()

        assert result == {"reset_count": 1}
        stuck.refresh_from_db()
        recent.refresh_from_db()
        assert stuck.status == WebhookEventStatus.FAILED
        assert stuck.can_retry is True
        assert recent.status == WebhookEventStatus.PROCESSING
