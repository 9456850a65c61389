"""
Tests for bank transfer instalments: customer claims and staff resolution.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from core.exceptions import PermissionDeniedError, ValidationError
from payments.adapters import GatewayStatus
from payments.exceptions import (
    AlreadyProcessed,
    InvoiceNotFound,
    OverpaymentRejected,
    PaymentNotFound,
)
from payments.models import Checkout, Invoice, InvoicePayment, Order, Transaction
from payments.references import bank_transfer_reference
from payments.services import InvoicePaymentService, ManualPaymentResolver, PaymentVerificationService
from payments.state_machines import (
    CheckoutStatus,
    InvoicePaymentStatus,
    InvoicePaymentType,
    InvoiceStatus,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    TransactionStatus,
)
from payments.strategies import GatewayPaymentStrategy, OutcomeStatus, WalletPaymentStrategy
from payments.tests.conftest import verification
from payments.wallet.models import Wallet


@pytest.fixture
def transfer_chain(user, chain_for):
    """Bank transfer order of 10000 with an open invoice."""
    return chain_for(user, "10000.00", payment_method=PaymentMethod.BANK_TRANSFER)


def record(user, invoice, amount, **bank_details):
    return InvoicePaymentService.record_manual_payment(
        user,
        invoice.invoice_number,
        amount,
        bank_details={"bank_name": "Access Bank", **bank_details},
    )


class TestRecordManualPayment:
    """Tests for customer transfer claims."""

    def test_records_pending_claim_without_touching_invoice(self, user, transfer_chain):
        """Should only store the claim."""
        payment = record(user, transfer_chain.invoice, "4000.00", reference="TRF-1", transfer_date="2024-09-12")

        assert payment.status == InvoicePaymentStatus.PENDING
        assert payment.payment_type == InvoicePaymentType.PARTIAL
        assert payment.payment_method == PaymentMethod.BANK_TRANSFER
        assert payment.transfer_date.isoformat() == "2024-09-12"
        invoice = Invoice.objects.get(pk=transfer_chain.invoice.pk)
        assert invoice.paid_amount == Decimal("0.00")
        assert invoice.status == InvoiceStatus.UNPAID

    def test_claim_for_whole_balance_is_full(self, user, transfer_chain):
        payment = record(user, transfer_chain.invoice, "10000.00")

        assert payment.payment_type == InvoicePaymentType.FULL

    def test_accepts_invoice_id(self, user, transfer_chain):
        payment = InvoicePaymentService.record_manual_payment(user, transfer_chain.invoice.id, "100.00")

        assert payment.invoice_id == transfer_chain.invoice.id

    def test_overpayment_is_rejected_before_any_write(self, user, chain_for):
        """Should refuse 600 against a balance of 500."""
        chain = chain_for(user, "500.00", payment_method=PaymentMethod.BANK_TRANSFER)

        with pytest.raises(OverpaymentRejected) as exc_info:
            record(user, chain.invoice, "600.00")

        assert exc_info.value.details["balance_amount"] == "500.00"
        assert exc_info.value.error_code == "OVERPAYMENT_REJECTED"
        assert not InvoicePayment.objects.exists()

    @pytest.mark.parametrize("amount", ["0", "-10", "abc"])
    def test_invalid_amount(self, user, transfer_chain, amount):
        with pytest.raises(ValidationError):
            record(user, transfer_chain.invoice, amount)

    def test_unknown_invoice(self, user):
        with pytest.raises(InvoiceNotFound):
            InvoicePaymentService.record_manual_payment(user, "ORD-0000000000000-NOPE00", "100.00")

    def test_other_customer_cannot_pay(self, other_user, transfer_chain):
        with pytest.raises(PermissionDeniedError):
            record(other_user, transfer_chain.invoice, "100.00")

    def test_paid_invoice_is_closed(self, user, staff_user, transfer_chain):
        payment = record(user, transfer_chain.invoice, "10000.00")
        ManualPaymentResolver.resolve(staff_user, payment.id, "verify")

        with pytest.raises(AlreadyProcessed, match="already paid"):
            record(user, transfer_chain.invoice, "1.00")


class TestManualPaymentResolver:
    """Tests for staff verification and rejection."""

    def test_two_instalments_settle_chain(self, user, staff_user, transfer_chain):
        """Should go PARTIALLY_PAID after 4000 and PAID after 6000."""
        invoice = transfer_chain.invoice
        first = record(user, invoice, "4000.00")
        second = record(user, invoice, "6000.00")

        ManualPaymentResolver.resolve(staff_user, first.id, "verify", notes="Seen on statement")

        invoice = Invoice.objects.get(pk=invoice.pk)
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID
        assert invoice.paid_amount == Decimal("4000.00")
        assert invoice.balance_amount == Decimal("6000.00")
        assert Order.objects.get(pk=transfer_chain.order.pk).status == OrderStatus.PENDING

        resolved = ManualPaymentResolver.resolve(staff_user, second.id, "verify")

        assert resolved.status == InvoicePaymentStatus.PAID
        assert resolved.verified_by == staff_user
        invoice = Invoice.objects.get(pk=invoice.pk)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.balance_amount == Decimal("0.00")

        order = Order.objects.get(pk=transfer_chain.order.pk)
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment_status == OrderPaymentStatus.PAID
        assert Checkout.objects.get(pk=transfer_chain.checkout.pk).status == CheckoutStatus.COMPLETED

        txn = Transaction.objects.get(reference=bank_transfer_reference(second.id))
        assert txn.status == TransactionStatus.SUCCESS
        assert txn.amount == Decimal("10000.00")
        assert txn.reconciled is True

    def test_notes_are_appended(self, user, staff_user, transfer_chain):
        payment = InvoicePaymentService.record_manual_payment(
            user, transfer_chain.invoice.invoice_number, "100.00", notes="Paid from GTB"
        )

        resolved = ManualPaymentResolver.resolve(staff_user, payment.id, "verify", notes="Confirmed")

        assert resolved.notes == "Paid from GTB\nAdmin: Confirmed"

    def test_verification_cannot_exceed_balance(self, user, staff_user, transfer_chain):
        """Should reject a claim larger than what is left after earlier verifications."""
        invoice = transfer_chain.invoice
        first = record(user, invoice, "4000.00")
        second = record(user, invoice, "8000.00")
        ManualPaymentResolver.resolve(staff_user, first.id, "verify")

        with pytest.raises(OverpaymentRejected):
            ManualPaymentResolver.resolve(staff_user, second.id, "verify")

        assert InvoicePayment.objects.get(pk=second.pk).status == InvoicePaymentStatus.PENDING
        assert Invoice.objects.get(pk=invoice.pk).paid_amount == Decimal("4000.00")

    def test_reject_leaves_invoice_alone(self, user, staff_user, transfer_chain):
        payment = record(user, transfer_chain.invoice, "4000.00")

        resolved = ManualPaymentResolver.resolve(staff_user, payment.id, "reject", notes="No such transfer")

        assert resolved.status == InvoicePaymentStatus.FAILED
        assert "Admin (Rejected): No such transfer" in resolved.notes
        invoice = Invoice.objects.get(pk=transfer_chain.invoice.pk)
        assert invoice.status == InvoiceStatus.UNPAID
        assert invoice.paid_amount == Decimal("0.00")

    def test_already_processed(self, user, staff_user, transfer_chain):
        payment = record(user, transfer_chain.invoice, "4000.00")
        ManualPaymentResolver.resolve(staff_user, payment.id, "reject")

        with pytest.raises(AlreadyProcessed):
            ManualPaymentResolver.resolve(staff_user, payment.id, "verify")

    def test_non_staff_is_denied(self, user, transfer_chain):
        payment = record(user, transfer_chain.invoice, "4000.00")

        with pytest.raises(PermissionDeniedError):
            ManualPaymentResolver.resolve(user, payment.id, "verify")

    def test_unknown_action(self, staff_user):
        with pytest.raises(ValidationError):
            ManualPaymentResolver.resolve(staff_user, "anything", "refund")

    @pytest.mark.parametrize("payment_id", ["not-a-uuid", "8f14e45f-ceea-467f-a9f0-1b2c3d4e5f60"])
    def test_unknown_payment(self, staff_user, payment_id):
        with pytest.raises(PaymentNotFound):
            ManualPaymentResolver.resolve(staff_user, payment_id, "verify")


class TestListPayments:
    def test_newest_first_for_owner_and_staff(self, user, staff_user, other_user, transfer_chain):
        invoice = transfer_chain.invoice
        older = record(user, invoice, "1000.00")
        InvoicePayment.objects.filter(pk=older.pk).update(created_at=timezone.now() - timedelta(minutes=5))
        newer = record(user, invoice, "2000.00")

        assert list(InvoicePaymentService.list_payments(user, invoice.id)) == [newer, older]
        assert InvoicePaymentService.list_payments(staff_user, invoice.id).count() == 2
        with pytest.raises(PermissionDeniedError):
            InvoicePaymentService.list_payments(other_user, invoice.id)


class TestCheckoutAfterInstalments:
    """Tests for wallet and gateway checkouts that finish a part-paid invoice."""

    @pytest.fixture
    def part_paid(self, user, staff_user, transfer_chain):
        """The 10000 transfer chain with a verified 4000 instalment."""
        claim = record(user, transfer_chain.invoice, "4000.00")
        ManualPaymentResolver.resolve(staff_user, claim.id, "verify")
        return transfer_chain

    def test_wallet_pays_only_the_balance(self, user, fund_wallet, cart_for, part_paid):
        """Should debit 6000 and record a 6000 payment against the invoice."""
        fund_wallet(user, "20000.00")

        outcome = WalletPaymentStrategy().process(user, cart_for("10000.00"))

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.order_number == part_paid.order.order_number
        assert Wallet.objects.get(user=user).balance == Decimal("14000.00")

        invoice = Invoice.objects.get(pk=part_paid.invoice.pk)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_amount == Decimal("10000.00")
        assert invoice.balance_amount == Decimal("0.00")
        paid = invoice.payments.filter(status=InvoicePaymentStatus.PAID)
        assert sum(payment.amount for payment in paid) == Decimal("10000.00")
        wallet_payment = paid.get(payment_method=PaymentMethod.WALLET)
        assert wallet_payment.amount == Decimal("6000.00")
        assert wallet_payment.payment_type == InvoicePaymentType.FULL
        assert Transaction.objects.get(reference=outcome.payment_reference).amount == Decimal("6000.00")

    def test_gateway_charges_only_the_balance(self, user, cart_for, mock_adapter, part_paid):
        """Should initiate and settle a 6000 charge."""
        outcome = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter).process(
            user, cart_for("10000.00")
        )

        assert mock_adapter.initiate.call_args.args[0].amount == Decimal("6000.00")
        assert Transaction.objects.get(reference=outcome.payment_reference).amount == Decimal("6000.00")

        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, outcome.payment_reference, "6000.00"
        )
        result = PaymentVerificationService.verify_payment(
            outcome.payment_reference, PaymentMethod.PAYSTACK, user=user, adapter=mock_adapter
        )

        assert result.verified is True
        invoice = Invoice.objects.get(pk=part_paid.invoice.pk)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_amount == Decimal("10000.00")
        paid = invoice.payments.filter(status=InvoicePaymentStatus.PAID)
        assert sum(payment.amount for payment in paid) == Decimal("10000.00")
