"""
WebhookEvent model for gateway webhook tracking.

Stores every webhook received from Paystack or OPay so a redelivery is
recognised and processing can be retried from the stored payload.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        provider="paystack",
        event_id="charge.success:PAY_3F2A9C",
        defaults={"event_type": "charge.success", "payload": body},
    )
    if not created and event.is_processed:
        return HttpResponse(status=200)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import PaymentMethod, WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Gateway webhook stored for idempotent processing.

    Processing Flow:
        1. Webhook arrives, signature verified
        2. get_or_create on (provider, event_id)
        3. Already PROCESSED -> acknowledged without work
        4. Task marks PROCESSING, routes to the handler
        5. PROCESSED or FAILED; failed events are retried by the task

    Note:
        Uniqueness is per provider; Paystack and OPay ids may collide.
    """

    provider = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        help_text="Gateway that sent the webhook",
    )
    event_id = models.CharField(
        max_length=255,
        help_text="Provider event id - unique per provider for idempotency",
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Event type (e.g. 'charge.success', 'SUCCESS')",
    )
    payload = models.JSONField(
        help_text="Full webhook payload (JSON)",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )
    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )
    error_message = models.TextField(
        blank=True,
        default="",
        help_text="Error message if processing failed",
    )
    attempts = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "event_id"],
                name="webhook_event_unique_per_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.provider}:{self.event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        return (
            self.status == WebhookEventStatus.FAILED
            and self.attempts < settings.WEBHOOK_MAX_ATTEMPTS
        )

    def mark_processing(self) -> None:
        """Does not save."""
        self.status = WebhookEventStatus.PROCESSING
        self.attempts += 1

    def mark_processed(self) -> None:
        """Does not save."""
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = ""

    def mark_failed(self, error_message: str) -> None:
        """Does not save."""
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_reference(self) -> str | None:
        """Extract the payment reference from a Paystack or OPay payload."""
        payload = self.payload or {}
        data = payload.get("data") or payload.get("payload") or payload
        if not isinstance(data, dict):
            return None
        return data.get("reference")
