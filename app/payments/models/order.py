"""
Order and OrderItem models.

The Order is the anchor of a purchase chain. Its payment_id and
transaction_id hold the gateway reference of the current attempt, and
order_number doubles as the invoice number.

Usage:
    from payments.models import Order
    from payments.state_machines import apply_transitions

    apply_transitions(order, "confirm", "mark_payment_paid")
    order.save()
"""

from __future__ import annotations

import secrets
import string

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel, VersionedModel
from payments.models.mixins import AmountBreakdownMixin, LineItemMixin
from payments.state_machines import OrderPaymentStatus, OrderStatus, PaymentMethod

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """Return an order number of the form ORD-<epoch ms>-<6 upper alnum>."""
    millis = int(timezone.now().timestamp() * 1000)
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(6))
    return f"ORD-{millis}-{suffix}"


class OrderQuerySet(models.QuerySet):
    def unresolved(self):
        """Orders still waiting on a payment outcome."""
        return self.filter(
            status__in=[OrderStatus.PENDING, OrderStatus.FAILED],
            payment_status__in=[OrderPaymentStatus.PENDING, OrderPaymentStatus.FAILED],
        )

    def for_reference(self, reference: str):
        """
        Resolve a payment reference to at most one order.

        Fallback chain, first match wins:
            1. payment_id (gateway reference of the current attempt)
            2. transaction_id (provider transaction id)
            3. order_number (customer-facing number)
            4. reference of any Transaction of the order, which covers
               attempts a retry has since superseded
        """
        for field in ("payment_id", "transaction_id", "order_number", "transactions__reference"):
            order = self.filter(**{field: reference}).first()
            if order is not None:
                return order
        return None


class Order(UUIDPrimaryKeyMixin, AmountBreakdownMixin, VersionedModel):
    """
    Customer order.

    State Flow (status):
        PENDING -> CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED
        PENDING -> FAILED -> PENDING (retry)
        PENDING/FAILED -> CANCELLED (expired or cancelled by staff)
        FAILED -> CONFIRMED (late gateway success)

    State Flow (payment_status):
        PENDING -> PAID
        PENDING -> FAILED -> PENDING (retry)
        PENDING/FAILED -> CANCELLED
        FAILED -> PAID

    Note:
        payment_status only becomes PAID inside the reconciler's success
        transition, which also writes the SUCCESS Transaction.
    """

    # ==========================================================================
    # Identity
    # ==========================================================================

    order_number = models.CharField(
        max_length=40,
        unique=True,
        default=generate_order_number,
        help_text="Customer-facing order number (ORD-<ms>-<suffix>)",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
        help_text="Customer who placed the order",
    )

    email = models.EmailField(
        blank=True,
        default="",
        help_text="Contact email snapshot",
    )
    phone = models.CharField(
        max_length=30,
        blank=True,
        default="",
        help_text="Contact phone snapshot",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=OrderStatus.PENDING,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,
        help_text="Fulfilment state (managed by FSM)",
    )

    payment_status = FSMField(
        default=OrderPaymentStatus.PENDING,
        choices=OrderPaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Settlement state (managed by FSM)",
    )

    # ==========================================================================
    # Payment
    # ==========================================================================

    shipping_address = models.JSONField(
        default=dict,
        help_text="Shipping address snapshot",
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        help_text="Payment method of the current attempt",
    )
    payment_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        help_text="Gateway reference of the current attempt (PAY_xxx)",
    )
    transaction_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        help_text="Provider transaction id of the current attempt",
    )
    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Reason the last payment attempt failed",
    )
    notes = models.TextField(
        blank=True,
        default="",
        help_text="Internal notes",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    confirmed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When payment was confirmed",
    )
    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the order was cancelled",
    )

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["user", "status", "payment_status"]),
            models.Index(fields=["user", "created_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(total__gte=0),
                name="order_total_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.order_number}, {self.status}/{self.payment_status})"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == OrderPaymentStatus.PAID

    # ==========================================================================
    # status transitions
    # ==========================================================================

    @transition(
        field=status,
        source=[OrderStatus.PENDING, OrderStatus.FAILED],
        target=OrderStatus.CONFIRMED,
    )
    def confirm(self):
        self.confirmed_at = timezone.now()
        self.failure_reason = ""

    @transition(
        field=status,
        source=[OrderStatus.PENDING, OrderStatus.FAILED],
        target=OrderStatus.FAILED,
    )
    def fail(self, reason: str = ""):
        if reason:
            self.failure_reason = reason

    @transition(
        field=status,
        source=OrderStatus.FAILED,
        target=OrderStatus.PENDING,
    )
    def reopen(self):
        """FAILED -> PENDING when the customer retries."""
        self.failure_reason = ""

    @transition(
        field=status,
        source=[OrderStatus.PENDING, OrderStatus.FAILED],
        target=OrderStatus.CANCELLED,
    )
    def cancel(self):
        self.cancelled_at = timezone.now()

    @transition(
        field=status,
        source=OrderStatus.CONFIRMED,
        target=OrderStatus.PROCESSING,
    )
    def start_processing(self):
        pass

    @transition(
        field=status,
        source=OrderStatus.PROCESSING,
        target=OrderStatus.SHIPPED,
    )
    def ship(self):
        pass

    @transition(
        field=status,
        source=OrderStatus.SHIPPED,
        target=OrderStatus.DELIVERED,
    )
    def deliver(self):
        pass

    # ==========================================================================
    # payment_status transitions
    # ==========================================================================

    @transition(
        field=payment_status,
        source=[OrderPaymentStatus.PENDING, OrderPaymentStatus.FAILED],
        target=OrderPaymentStatus.PAID,
    )
    def mark_payment_paid(self):
        pass

    @transition(
        field=payment_status,
        source=[OrderPaymentStatus.PENDING, OrderPaymentStatus.FAILED],
        target=OrderPaymentStatus.FAILED,
    )
    def mark_payment_failed(self):
        pass

    @transition(
        field=payment_status,
        source=OrderPaymentStatus.FAILED,
        target=OrderPaymentStatus.PENDING,
    )
    def reset_payment(self):
        pass

    @transition(
        field=payment_status,
        source=[OrderPaymentStatus.PENDING, OrderPaymentStatus.FAILED],
        target=OrderPaymentStatus.CANCELLED,
    )
    def cancel_payment(self):
        pass


class OrderItem(UUIDPrimaryKeyMixin, LineItemMixin, BaseModel):
    """One purchased line of an order."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Order this line belongs to",
    )
    selected_unit = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Unit of sale chosen by the customer",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Order Item"
        verbose_name_plural = "Order Items"
