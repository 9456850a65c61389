"""
Transaction model: the canonical record of a value movement.

One row per gateway charge, wallet payment, bank transfer settlement,
top-up or refund. Its reference is unique, which is what makes payment
verification idempotent: the success transition gets-or-updates the row
by reference instead of inserting a second one.

Once reconciled, a row accepts no further status transitions.
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.models.mixins import default_currency
from payments.state_machines import PaymentMethod, TransactionStatus, TransactionType


def generate_transaction_id() -> str:
    return f"TXN_{uuid.uuid4().hex[:20].upper()}"


def is_unreconciled(instance: Transaction) -> bool:
    return not instance.reconciled


OPEN_STATES = [TransactionStatus.PENDING, TransactionStatus.PROCESSING]


class Transaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    Canonical value movement.

    State Flow:
        PENDING -> PROCESSING -> SUCCESS
        PENDING/PROCESSING -> SUCCESS / FAILED / CANCELLED
        FAILED -> SUCCESS (late gateway success)

    Fields:
        transaction_id: Internal id (TXN_xxx)
        reference: Unique gateway or internal reference
        provider: paystack, opay, wallet or bank_transfer
        provider_data: Raw gateway payload or wallet balance snapshots
        reconciled: True once the owning chain has been settled
    """

    transaction_id = models.CharField(
        max_length=40,
        unique=True,
        default=generate_transaction_id,
        help_text="Internal transaction id (TXN_xxx)",
    )
    reference = models.CharField(
        max_length=100,
        unique=True,
        help_text="Gateway or internal reference - unique for idempotency",
    )
    provider = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        help_text="Provider that moved the money",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="Customer the movement belongs to",
    )
    order = models.ForeignKey(
        "payments.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="Order settled by this movement",
    )
    type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        default=TransactionType.ORDER_PAYMENT,
        help_text="What the movement settles",
    )
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Amount in the major currency unit",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )
    status = FSMField(
        default=TransactionStatus.PENDING,
        choices=TransactionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Movement state (managed by FSM)",
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Human readable description",
    )

    reconciled = models.BooleanField(
        default=False,
        help_text="Whether the owning purchase chain has been settled",
    )
    reconciled_at = models.DateTimeField(null=True, blank=True, help_text="When reconciled")
    processed_at = models.DateTimeField(null=True, blank=True, help_text="When a terminal state was reached")

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Order id/number, payment method, retry flag, customer email",
    )
    provider_data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Raw gateway payload or wallet balance snapshots",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["user", "status"]),
            models.Index(fields=["provider", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount__gt=0),
                name="transaction_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Transaction({self.transaction_id}, {self.reference}, {self.status})"

    def mark_reconciled(self) -> None:
        """Does not save."""
        self.reconciled = True
        self.reconciled_at = timezone.now()

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=[*OPEN_STATES, TransactionStatus.FAILED, TransactionStatus.CANCELLED],
        target=TransactionStatus.SUCCESS,
        conditions=[is_unreconciled],
    )
    def succeed(self):
        """
        Also accepts FAILED and CANCELLED: the gateway can report a capture
        after the attempt was failed, superseded or expired on our side.
        """
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=OPEN_STATES,
        target=TransactionStatus.FAILED,
        conditions=[is_unreconciled],
    )
    def fail(self):
        self.processed_at = timezone.now()

    @transition(
        field=status,
        source=OPEN_STATES,
        target=TransactionStatus.CANCELLED,
        conditions=[is_unreconciled],
    )
    def cancel(self):
        self.processed_at = timezone.now()
