"""
Invoice, InvoiceItem and InvoicePayment models.

Every Order has exactly one Invoice numbered after it. The invoice keeps
its own settlement state so bank transfers can be paid in instalments:
each InvoicePayment is one settlement attempt, and only PAID attempts
count towards paid_amount.

Invariant:
    balance_amount == max(0, total - paid_amount)
    status == PAID  iff  balance_amount <= 0

Usage:
    from payments.models import Invoice
    from payments.state_machines import apply_transitions

    invoice.paid_amount += payment.amount
    apply_transitions(invoice, "apply_payment")  # -> PARTIALLY_PAID or PAID
    invoice.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import RETURN_VALUE, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel, VersionedModel
from payments.models.mixins import AmountBreakdownMixin, LineItemMixin
from payments.state_machines import (
    InvoicePaymentStatus,
    InvoicePaymentType,
    InvoiceStatus,
    OrderPaymentStatus,
    PaymentMethod,
)

ZERO = Decimal("0.00")


class Invoice(UUIDPrimaryKeyMixin, AmountBreakdownMixin, VersionedModel):
    """
    Bill issued for an Order.

    State Flow:
        UNPAID -> PARTIALLY_PAID -> PAID
        UNPAID -> PAID
        UNPAID/PARTIALLY_PAID -> CANCELLED

    Note:
        payment_status is a plain mirror of Order.payment_status and is
        written by the reconciler alongside the order.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.OneToOneField(
        "payments.Order",
        on_delete=models.CASCADE,
        related_name="invoice",
        help_text="Order this invoice bills",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="invoices",
        help_text="Customer billed",
    )
    invoice_number = models.CharField(
        max_length=40,
        unique=True,
        help_text="Invoice number (same as the order number)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=InvoiceStatus.UNPAID,
        choices=InvoiceStatus.choices,
        db_index=True,
        protected=True,
        help_text="Settlement state (managed by FSM)",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=OrderPaymentStatus.choices,
        default=OrderPaymentStatus.PENDING,
        help_text="Mirror of the order's payment status",
    )

    # ==========================================================================
    # Customer & Company Snapshot
    # ==========================================================================

    customer_name = models.CharField(max_length=255, blank=True, default="", help_text="Customer name")
    customer_email = models.EmailField(blank=True, default="", help_text="Customer email")
    customer_phone = models.CharField(max_length=30, blank=True, default="", help_text="Customer phone")
    billing_address = models.JSONField(default=dict, blank=True, help_text="Billing address snapshot")

    company_name = models.CharField(max_length=255, blank=True, default="", help_text="Issuer name")
    company_address = models.CharField(max_length=500, blank=True, default="", help_text="Issuer address")
    company_phone = models.CharField(max_length=30, blank=True, default="", help_text="Issuer phone")
    company_email = models.EmailField(blank=True, default="", help_text="Issuer email")

    # ==========================================================================
    # Amounts & Dates
    # ==========================================================================

    issue_date = models.DateField(
        default=timezone.localdate,
        help_text="Date the invoice was issued",
    )
    due_date = models.DateField(
        help_text="Date payment is due",
    )
    paid_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=ZERO,
        help_text="Sum of PAID settlements",
    )
    balance_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=ZERO,
        help_text="Outstanding amount, max(0, total - paid_amount)",
    )
    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the invoice was fully paid",
    )

    # ==========================================================================
    # Payment & Text
    # ==========================================================================

    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        help_text="Payment method of the order",
    )
    payment_reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Reference of the settling payment",
    )
    terms = models.TextField(blank=True, default="", help_text="Payment terms")
    notes = models.TextField(blank=True, default="", help_text="Notes shown on the invoice")
    footer = models.TextField(blank=True, default="", help_text="Footer text")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        indexes = [
            models.Index(fields=["user", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(paid_amount__gte=0),
                name="invoice_paid_amount_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(balance_amount__gte=0),
                name="invoice_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Invoice({self.invoice_number}, {self.status}, balance={self.balance_amount})"

    def recalculate(self) -> Decimal:
        """Recompute balance_amount from total and paid_amount. Does not save."""
        self.balance_amount = max(ZERO, self.total - self.paid_amount)
        return self.balance_amount

    @property
    def is_settled(self) -> bool:
        return self.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @transition(
        field=status,
        source=[InvoiceStatus.UNPAID, InvoiceStatus.PARTIALLY_PAID],
        target=RETURN_VALUE(InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID),
    )
    def apply_payment(self):
        """
        Re-derive status after paid_amount changed.

        Returns PAID once the balance reaches zero, else PARTIALLY_PAID.
        """
        if self.recalculate() <= ZERO:
            self.paid_at = timezone.now()
            self.payment_status = OrderPaymentStatus.PAID
            return InvoiceStatus.PAID
        return InvoiceStatus.PARTIALLY_PAID

    @transition(
        field=status,
        source=[InvoiceStatus.UNPAID, InvoiceStatus.PARTIALLY_PAID],
        target=InvoiceStatus.CANCELLED,
    )
    def cancel(self):
        self.payment_status = OrderPaymentStatus.CANCELLED


class InvoiceItem(UUIDPrimaryKeyMixin, LineItemMixin, BaseModel):
    """One billed line of an invoice."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
        help_text="Invoice this line belongs to",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Invoice Item"
        verbose_name_plural = "Invoice Items"


class InvoicePayment(UUIDPrimaryKeyMixin, BaseModel):
    """
    One settlement attempt against an invoice.

    Gateway and wallet settlements are written PAID together with their
    Transaction. Bank transfer claims start PENDING and are verified or
    rejected by staff.

    State Flow:
        PENDING -> PAID
        PENDING -> FAILED
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="payments",
        help_text="Invoice being paid",
    )
    transaction = models.ForeignKey(
        "payments.Transaction",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoice_payments",
        help_text="Canonical transaction backing this payment",
    )
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="verified_invoice_payments",
        help_text="Staff member who resolved the claim",
    )

    # ==========================================================================
    # Amount & State
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Amount paid",
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        help_text="How the payment was made",
    )
    payment_type = models.CharField(
        max_length=10,
        choices=InvoicePaymentType.choices,
        help_text="FULL if it covers the whole outstanding balance",
    )
    status = FSMField(
        default=InvoicePaymentStatus.PENDING,
        choices=InvoicePaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Resolution state (managed by FSM)",
    )

    # ==========================================================================
    # References & Bank Details
    # ==========================================================================

    external_transaction_id = models.CharField(
        max_length=100, blank=True, default="", help_text="Gateway or bank transaction id"
    )
    reference = models.CharField(max_length=100, blank=True, default="", help_text="Payer or gateway reference")
    bank_name = models.CharField(max_length=100, blank=True, default="", help_text="Sending bank")
    account_number = models.CharField(max_length=20, blank=True, default="", help_text="Sending account number")
    account_name = models.CharField(max_length=255, blank=True, default="", help_text="Sending account name")
    transfer_date = models.DateField(null=True, blank=True, help_text="Date of the bank transfer")

    verified_at = models.DateTimeField(null=True, blank=True, help_text="When the claim was resolved")
    paid_at = models.DateTimeField(null=True, blank=True, help_text="When the payment was confirmed")
    notes = models.TextField(blank=True, default="", help_text="Customer and admin notes")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Invoice Payment"
        verbose_name_plural = "Invoice Payments"
        indexes = [
            models.Index(fields=["invoice", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount__gt=0),
                name="invoice_payment_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"InvoicePayment({self.id}, {self.amount}, {self.status})"

    def append_note(self, prefix: str, text: str) -> None:
        if text:
            self.notes = f"{self.notes}\n{prefix}: {text}" if self.notes else f"{prefix}: {text}"

    @transition(
        field=status,
        source=InvoicePaymentStatus.PENDING,
        target=InvoicePaymentStatus.PAID,
    )
    def verify(self):
        now = timezone.now()
        self.verified_at = now
        self.paid_at = now

    @transition(
        field=status,
        source=InvoicePaymentStatus.PENDING,
        target=InvoicePaymentStatus.FAILED,
    )
    def reject(self):
        self.verified_at = timezone.now()
