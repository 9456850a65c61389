"""
Checkout and CheckoutItem models.

A Checkout is the customer's purchase session: the priced cart snapshot,
addresses and the chosen payment method. It spawns exactly one Order and
is resumed (not duplicated) while that order is still unresolved.

Usage:
    from payments.models import Checkout
    from payments.state_machines import apply_transitions

    apply_transitions(checkout, "complete", "mark_payment_paid")
    checkout.save()
"""

from __future__ import annotations

import secrets

from django.conf import settings
from django.db import models
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.models.mixins import AmountBreakdownMixin, LineItemMixin
from payments.state_machines import (
    CheckoutPaymentStatus,
    CheckoutStatus,
    PaymentMethod,
)


def generate_session_token() -> str:
    return secrets.token_hex(24)


class Checkout(UUIDPrimaryKeyMixin, AmountBreakdownMixin, BaseModel):
    """
    Purchase session tied to one Order.

    State Flow (status):
        PENDING -> COMPLETED
        PENDING -> FAILED -> PENDING (retry)

    State Flow (payment_status):
        UNPAID/PENDING -> PAID
        UNPAID/PENDING -> FAILED -> UNPAID (retry)

    Note:
        Both status fields are protected; reload instances with
        Checkout.objects.get() rather than refresh_from_db().
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="checkouts",
        help_text="Customer who owns this checkout",
    )

    order = models.OneToOneField(
        "payments.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checkout",
        help_text="Order spawned by this checkout",
    )

    session_token = models.CharField(
        max_length=64,
        unique=True,
        default=generate_session_token,
        help_text="Opaque session identifier",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=CheckoutStatus.PENDING,
        choices=CheckoutStatus.choices,
        db_index=True,
        protected=True,
        help_text="Lifecycle state (managed by FSM)",
    )

    payment_status = FSMField(
        default=CheckoutPaymentStatus.UNPAID,
        choices=CheckoutPaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Payment progress (managed by FSM)",
    )

    # ==========================================================================
    # Purchase Details
    # ==========================================================================

    shipping_address = models.JSONField(
        default=dict,
        help_text="Shipping address snapshot",
    )
    billing_address = models.JSONField(
        default=dict,
        blank=True,
        help_text="Billing address snapshot (defaults to shipping)",
    )
    shipping_method = models.CharField(
        max_length=50,
        default="standard",
        help_text="Delivery method",
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        help_text="Payment method chosen at checkout",
    )
    coupon_code = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Coupon applied, if any",
    )
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this session stops being resumable",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this session is still in use",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Checkout"
        verbose_name_plural = "Checkouts"
        indexes = [
            models.Index(fields=["user", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(total__gte=0),
                name="checkout_total_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Checkout({self.id}, {self.status}/{self.payment_status})"

    # ==========================================================================
    # status transitions
    # ==========================================================================

    @transition(
        field=status,
        source=[CheckoutStatus.PENDING, CheckoutStatus.FAILED],
        target=CheckoutStatus.COMPLETED,
    )
    def complete(self):
        """PENDING/FAILED -> COMPLETED. FAILED covers a late gateway success."""
        self.is_active = False

    @transition(
        field=status,
        source=[CheckoutStatus.PENDING, CheckoutStatus.FAILED],
        target=CheckoutStatus.FAILED,
    )
    def fail(self):
        """PENDING -> FAILED. Also used when expiring an already failed session."""

    @transition(
        field=status,
        source=CheckoutStatus.FAILED,
        target=CheckoutStatus.PENDING,
    )
    def reopen(self):
        """FAILED -> PENDING for a retry."""
        self.is_active = True

    # ==========================================================================
    # payment_status transitions
    # ==========================================================================

    @transition(
        field=payment_status,
        source=[CheckoutPaymentStatus.UNPAID, CheckoutPaymentStatus.PENDING],
        target=CheckoutPaymentStatus.PENDING,
    )
    def await_payment(self):
        """A gateway redirect has been issued."""

    @transition(
        field=payment_status,
        source=[
            CheckoutPaymentStatus.UNPAID,
            CheckoutPaymentStatus.PENDING,
            CheckoutPaymentStatus.FAILED,
        ],
        target=CheckoutPaymentStatus.PAID,
    )
    def mark_payment_paid(self):
        pass

    @transition(
        field=payment_status,
        source=[
            CheckoutPaymentStatus.UNPAID,
            CheckoutPaymentStatus.PENDING,
            CheckoutPaymentStatus.FAILED,
        ],
        target=CheckoutPaymentStatus.FAILED,
    )
    def mark_payment_failed(self):
        pass

    @transition(
        field=payment_status,
        source=CheckoutPaymentStatus.FAILED,
        target=CheckoutPaymentStatus.UNPAID,
    )
    def reset_payment(self):
        pass


class CheckoutItem(UUIDPrimaryKeyMixin, LineItemMixin, BaseModel):
    """One cart line of a checkout."""

    checkout = models.ForeignKey(
        Checkout,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Checkout this line belongs to",
    )
    fixed_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Fixed per-unit price, used instead of unit_price when set",
    )
    selected_unit = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Unit of sale chosen by the customer (e.g. crate, piece)",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Checkout Item"
        verbose_name_plural = "Checkout Items"
