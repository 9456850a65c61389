"""
Manual (bank transfer) invoice payments.

Customers record transfers against their invoice, possibly in several
instalments. Each record is a PENDING InvoicePayment that changes nothing
until staff resolve it:

- verify: the payment becomes PAID and the invoice paid/balance amounts
  are recomputed. Once the balance reaches zero the whole chain settles
  through CheckoutReconciler.mark_paid
- reject: the payment becomes FAILED; invoice and order are untouched

Usage:
    from payments.services import InvoicePaymentService, ManualPaymentResolver

    payment = InvoicePaymentService.record_manual_payment(
        user,
        invoice_ref="ORD-1700000000000-ABC123",
        amount=Decimal("4000.00"),
        bank_details={"bank_name": "Access Bank", "reference": "TRF-778"},
    )

    ManualPaymentResolver.resolve(admin, payment.id, "verify", notes="Seen on statement")
"""

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.db.models import QuerySet
from django.utils.dateparse import parse_date

from core.exceptions import PermissionDeniedError, ValidationError
from core.services import BaseService
from payments.exceptions import (
    AlreadyProcessed,
    InvoiceNotFound,
    OverpaymentRejected,
    PaymentNotFound,
)
from payments.models import Invoice, InvoicePayment
from payments.references import bank_transfer_reference
from payments.services.reconciler import CheckoutReconciler
from payments.state_machines import (
    InvoicePaymentStatus,
    InvoicePaymentType,
    InvoiceStatus,
    PaymentMethod,
    apply_transitions,
)

if TYPE_CHECKING:
    from authentication.models import User

BANK_TRANSFER_RECORDED_MESSAGE = (
    "Bank transfer payment recorded. Payment will be verified within 24 hours."
)


def _parse_uuid(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _ensure_open(invoice: Invoice) -> None:
    if invoice.status == InvoiceStatus.PAID:
        raise AlreadyProcessed(
            "Invoice is already paid",
            details={"invoice_number": invoice.invoice_number},
        )
    if invoice.status == InvoiceStatus.CANCELLED:
        raise AlreadyProcessed(
            "Invoice has been cancelled",
            details={"invoice_number": invoice.invoice_number},
        )


def _ensure_within_balance(invoice: Invoice, amount: Decimal) -> None:
    balance = invoice.recalculate()
    if amount > balance:
        raise OverpaymentRejected(
            invoice_number=invoice.invoice_number,
            amount=amount,
            balance=balance,
        )


class InvoicePaymentService(BaseService):
    """Customer side of manual invoice payments."""

    @classmethod
    def get_invoice(cls, invoice_ref: str | uuid.UUID, for_update: bool = False) -> Invoice:
        """
        Find an invoice by id or invoice number.

        Raises:
            InvoiceNotFound
        """
        queryset = Invoice.objects.select_for_update() if for_update else Invoice.objects.all()
        invoice_id = _parse_uuid(invoice_ref)
        if invoice_id is not None:
            invoice = queryset.filter(id=invoice_id).first()
        else:
            invoice = queryset.filter(invoice_number=str(invoice_ref)).first()
        if invoice is None:
            raise InvoiceNotFound(
                f"Invoice {invoice_ref} not found",
                details={"invoice_ref": str(invoice_ref)},
            )
        return invoice

    @classmethod
    def record_manual_payment(
        cls,
        user: User,
        invoice_ref: str | uuid.UUID,
        amount: Decimal | str,
        bank_details: dict[str, Any] | None = None,
        notes: str = "",
    ) -> InvoicePayment:
        """
        Record a bank transfer claim against the user's invoice.

        Args:
            user: Invoice owner
            invoice_ref: Invoice id or number
            amount: Amount transferred
            bank_details: bank_name, account_number, account_name,
                reference and transfer_date of the transfer
            notes: Customer note

        Returns:
            The PENDING InvoicePayment. Invoice amounts are not changed.

        Raises:
            ValidationError: amount is not a positive number
            InvoiceNotFound: Unknown invoice
            PermissionDeniedError: Invoice belongs to someone else
            AlreadyProcessed: Invoice already paid or cancelled
            OverpaymentRejected: amount exceeds the outstanding balance
        """
        try:
            amount = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValidationError("Amount must be a number", details={"field": "amount"})
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("Amount must be greater than zero", details={"field": "amount"})

        bank_details = bank_details or {}
        transfer_date = bank_details.get("transfer_date")
        if isinstance(transfer_date, str):
            transfer_date = parse_date(transfer_date)

        with cls.atomic():
            invoice = cls.get_invoice(invoice_ref, for_update=True)
            if invoice.user_id != user.pk:
                raise PermissionDeniedError(
                    "You do not have access to this invoice",
                    details={"invoice_ref": str(invoice_ref)},
                )
            _ensure_open(invoice)
            _ensure_within_balance(invoice, amount)

            payment = InvoicePayment.objects.create(
                invoice=invoice,
                amount=amount,
                payment_method=PaymentMethod.BANK_TRANSFER,
                payment_type=(
                    InvoicePaymentType.FULL
                    if amount == invoice.balance_amount
                    else InvoicePaymentType.PARTIAL
                ),
                reference=bank_details.get("reference", ""),
                bank_name=bank_details.get("bank_name", ""),
                account_number=bank_details.get("account_number", ""),
                account_name=bank_details.get("account_name", ""),
                transfer_date=transfer_date,
                notes=notes,
            )

        cls.get_logger().info(
            "Bank transfer recorded",
            extra={
                "invoice_payment_id": str(payment.id),
                "invoice_number": invoice.invoice_number,
                "amount": str(amount),
                "payment_type": payment.payment_type,
                "user_id": str(user.pk),
            },
        )
        return payment

    @classmethod
    def list_payments(cls, user: User, invoice_ref: str | uuid.UUID) -> QuerySet[InvoicePayment]:
        """
        Payment history of an invoice, newest first.

        Raises:
            InvoiceNotFound, PermissionDeniedError
        """
        invoice = cls.get_invoice(invoice_ref)
        if invoice.user_id != user.pk and not user.is_staff:
            raise PermissionDeniedError(
                "You do not have access to this invoice",
                details={"invoice_ref": str(invoice_ref)},
            )
        return invoice.payments.select_related("verified_by").order_by("-created_at")


class ManualPaymentResolver(BaseService):
    """Staff side of manual invoice payments."""

    ACTIONS = ("verify", "reject")

    @classmethod
    def resolve(
        cls,
        admin: User,
        payment_id: str | uuid.UUID,
        action: str,
        notes: str = "",
    ) -> InvoicePayment:
        """
        Verify or reject a PENDING bank transfer claim.

        Verification runs in one atomic block: the claim, the invoice and,
        once the balance reaches zero, the order, checkout and a reconciled
        SUCCESS Transaction.

        Raises:
            PermissionDeniedError: admin is not staff
            ValidationError: Unknown action
            PaymentNotFound: Unknown payment
            AlreadyProcessed: Payment no longer PENDING, or invoice closed
            OverpaymentRejected: Verifying would exceed the invoice total
        """
        if not admin.is_staff:
            raise PermissionDeniedError("Only staff can resolve payments")
        if action not in cls.ACTIONS:
            raise ValidationError(
                "Action must be 'verify' or 'reject'",
                details={"field": "action", "action": action},
            )

        pk = _parse_uuid(payment_id)
        with cls.atomic():
            payment = (
                InvoicePayment.objects.select_for_update().filter(pk=pk).first()
                if pk is not None
                else None
            )
            if payment is None:
                raise PaymentNotFound(
                    f"Payment {payment_id} not found",
                    details={"payment_id": str(payment_id)},
                )
            if payment.status != InvoicePaymentStatus.PENDING:
                raise AlreadyProcessed(
                    "Payment has already been processed",
                    details={"payment_id": str(payment.id), "status": payment.status},
                )

            if action == "reject":
                apply_transitions(payment, "reject")
                payment.verified_by = admin
                payment.append_note("Admin (Rejected)", notes)
                payment.save()
            else:
                cls._verify(admin, payment, notes)

        cls.get_logger().info(
            f"Manual payment {action}",
            extra={
                "invoice_payment_id": str(payment.id),
                "invoice_id": str(payment.invoice_id),
                "amount": str(payment.amount),
                "admin_id": str(admin.pk),
            },
        )
        return InvoicePayment.objects.get(pk=payment.pk)

    @classmethod
    def _verify(cls, admin: User, payment: InvoicePayment, notes: str) -> None:
        invoice = Invoice.objects.select_for_update().get(pk=payment.invoice_id)
        _ensure_open(invoice)
        _ensure_within_balance(invoice, payment.amount)

        apply_transitions(payment, "verify")
        payment.verified_by = admin
        payment.append_note("Admin", notes)
        payment.save()

        invoice.paid_amount += payment.amount
        apply_transitions(invoice, "apply_payment")
        if payment.reference:
            invoice.payment_reference = payment.reference
        invoice.save()

        if invoice.status == InvoiceStatus.PAID:
            paid = invoice.payments.filter(status=InvoicePaymentStatus.PAID)
            CheckoutReconciler.mark_paid(
                invoice.order,
                provider=PaymentMethod.BANK_TRANSFER,
                reference=bank_transfer_reference(payment.id),
                amount=invoice.total,
                provider_data={
                    "invoice_payment_ids": [str(p.id) for p in paid],
                    "verified_by": str(admin.pk),
                },
            )
