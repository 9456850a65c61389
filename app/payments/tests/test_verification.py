"""
Tests for PaymentVerificationService.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from core.exceptions import PermissionDeniedError
from payments.adapters import GatewayStatus
from payments.exceptions import OrderNotFound, RefundFailed
from payments.models import Invoice, Order, Transaction
from payments.services import PaymentVerificationService
from payments.services.verification import VerificationStatus
from payments.state_machines import (
    InvoiceStatus,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    TransactionStatus,
    TransactionType,
    apply_transitions,
)
from payments.strategies import GatewayPaymentStrategy
from payments.tests.conftest import verification
from payments.wallet.models import Wallet


@pytest.fixture
def gateway_order(user, cart_for, mock_adapter):
    """A PENDING order with an initiated Paystack charge of 10000."""
    outcome = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter).process(
        user, cart_for("10000.00")
    )
    return Order.objects.get(order_number=outcome.order_number)


def verify(order, mock_adapter, reference=None, user=None):
    return PaymentVerificationService.verify_payment(
        reference or order.payment_id,
        PaymentMethod.PAYSTACK,
        user=user,
        adapter=mock_adapter,
    )


class TestVerifySuccess:
    """Tests for gateway successes."""

    def test_settles_order(self, user, gateway_order, mock_adapter):
        """Should confirm the order and its invoice."""
        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, gateway_order.payment_id, "10000.00"
        )

        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.verified is True
        assert outcome.status == VerificationStatus.SUCCESS
        assert outcome.message == "Payment verified successfully"
        assert outcome.order.status == OrderStatus.CONFIRMED
        assert outcome.order.payment_status == OrderPaymentStatus.PAID
        assert Invoice.objects.get(order=gateway_order).status == InvoiceStatus.PAID
        assert outcome.payment.reference == gateway_order.payment_id

    def test_repeated_verification_creates_one_transaction(self, user, gateway_order, mock_adapter):
        """Should settle once and skip the gateway on the second call."""
        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, gateway_order.payment_id, "10000.00"
        )

        first = verify(gateway_order, mock_adapter, user=user)
        second = verify(gateway_order, mock_adapter, user=user)

        assert first.verified is True
        assert second.verified is True
        assert second.message == "Payment already verified"
        assert mock_adapter.verify.call_count == 1
        successes = Transaction.objects.filter(order=gateway_order, status=TransactionStatus.SUCCESS)
        assert successes.count() == 1

    def test_order_number_resolves_to_payment_reference(self, user, gateway_order, mock_adapter):
        """Should ask the gateway about the stored payment reference."""
        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, gateway_order.payment_id, "10000.00"
        )

        outcome = verify(gateway_order, mock_adapter, reference=gateway_order.order_number, user=user)

        assert outcome.verified is True
        mock_adapter.verify.assert_called_once_with(gateway_order.payment_id)

    def test_amount_below_total_fails_order(self, user, gateway_order, mock_adapter):
        """Should not settle an underpaid charge."""
        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, gateway_order.payment_id, "9000.00"
        )

        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.verified is False
        assert outcome.status == VerificationStatus.FAILED
        assert outcome.order.status == OrderStatus.FAILED
        assert "less than amount due" in outcome.message

    def test_success_for_cancelled_order_is_refunded(self, user, gateway_order, mock_adapter):
        """Should record the charge and credit the wallet."""
        apply_transitions(gateway_order, "cancel", "cancel_payment")
        gateway_order.save()
        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, gateway_order.payment_id, "10000.00"
        )

        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.status == VerificationStatus.REFUNDED
        assert outcome.order.status == OrderStatus.CANCELLED
        assert Wallet.objects.get(user=user).balance == Decimal("10000.00")
        assert Transaction.objects.filter(order=gateway_order, type=TransactionType.REFUND).count() == 1


class TestVerifyUnsettled:
    """Tests for failed and pending gateway results."""

    def test_failed_charge_fails_order(self, user, gateway_order, mock_adapter):
        mock_adapter.verify.return_value = verification(
            GatewayStatus.FAILED, gateway_order.payment_id, message="Declined"
        )

        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.status == VerificationStatus.FAILED
        assert outcome.message == "Declined"
        assert outcome.order.status == OrderStatus.FAILED
        assert outcome.order.failure_reason == "Declined"

    def test_failed_charge_without_message(self, user, gateway_order, mock_adapter):
        mock_adapter.verify.return_value = verification(GatewayStatus.FAILED, gateway_order.payment_id)

        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.message == "Payment was not successful"

    def test_pending_charge_writes_nothing(self, user, gateway_order, mock_adapter):
        """Should leave the order and its transaction untouched."""
        mock_adapter.verify.return_value = verification(GatewayStatus.PENDING, gateway_order.payment_id)

        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.status == VerificationStatus.PENDING
        assert outcome.message == "Payment is still being processed"
        order = Order.objects.get(pk=gateway_order.pk)
        assert order.status == OrderStatus.PENDING
        assert Transaction.objects.get(reference=order.payment_id).status == TransactionStatus.PENDING


class TestResolveOrder:
    """Tests for reference resolution and ownership."""

    def test_unknown_reference(self, db, mock_adapter):
        with pytest.raises(OrderNotFound) as exc_info:
            PaymentVerificationService.verify_payment(
                "PAY_NOPE", PaymentMethod.PAYSTACK, adapter=mock_adapter
            )

        assert exc_info.value.message == "No order found for reference PAY_NOPE"
        mock_adapter.verify.assert_not_called()

    def test_other_customer_is_denied(self, gateway_order, other_user, mock_adapter):
        """Should refuse to verify another customer's order."""
        with pytest.raises(PermissionDeniedError):
            verify(gateway_order, mock_adapter, user=other_user)

        mock_adapter.verify.assert_not_called()

    def test_staff_may_verify_any_order(self, gateway_order, staff_user):
        order = PaymentVerificationService.resolve_order(gateway_order.order_number, user=staff_user)

        assert order == gateway_order

    def test_webhook_path_skips_ownership(self, gateway_order):
        """Should resolve without a user."""
        order = PaymentVerificationService.resolve_order(gateway_order.payment_id)

        assert order == gateway_order


class TestLateCaptures:
    """Tests for captures reported after their attempt was closed on our side."""

    def test_capture_on_expired_order_is_refunded(self, user, gateway_order, cart_for, mock_adapter):
        """Should refund a charge whose order a later checkout expired."""
        Order.objects.filter(pk=gateway_order.pk).update(created_at=timezone.now() - timedelta(hours=25))
        retry = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter).process(
            user, cart_for("10000.00")
        )
        assert retry.order_number != gateway_order.order_number
        assert Order.objects.get(pk=gateway_order.pk).status == OrderStatus.CANCELLED
        assert Transaction.objects.get(reference=gateway_order.payment_id).status == TransactionStatus.CANCELLED

        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, gateway_order.payment_id, "10000.00"
        )
        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.status == VerificationStatus.REFUNDED
        assert outcome.order.status == OrderStatus.CANCELLED
        charge = Transaction.objects.get(reference=gateway_order.payment_id)
        assert charge.status == TransactionStatus.SUCCESS
        assert charge.reconciled is True
        assert Transaction.objects.filter(reference=f"{gateway_order.payment_id}_REFUND").exists()
        assert Wallet.objects.get(user=user).balance == Decimal("10000.00")
        assert Order.objects.get(order_number=retry.order_number).status == OrderStatus.PENDING

    def test_capture_on_superseded_attempt_settles_order(self, user, gateway_order, cart_for, mock_adapter):
        """Should settle the order with an attempt a retry replaced."""
        first_reference = gateway_order.payment_id
        retry = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter).process(
            user, cart_for("10000.00")
        )
        assert retry.order_number == gateway_order.order_number
        assert Transaction.objects.get(reference=first_reference).status == TransactionStatus.CANCELLED

        mock_adapter.verify.return_value = verification(GatewayStatus.SUCCESS, first_reference, "10000.00")
        outcome = PaymentVerificationService.verify_payment(
            first_reference, PaymentMethod.PAYSTACK, adapter=mock_adapter
        )

        mock_adapter.verify.assert_called_once_with(first_reference)
        assert outcome.verified is True
        assert outcome.order.payment_status == OrderPaymentStatus.PAID
        assert outcome.payment.reference == first_reference
        assert Transaction.objects.get(reference=retry.payment_reference).status == TransactionStatus.CANCELLED
        assert Invoice.objects.get(order=gateway_order).status == InvoiceStatus.PAID

    def test_second_capture_on_paid_order_is_refunded(self, user, gateway_order, cart_for, mock_adapter):
        """Should refund the customer when both attempts of one order were charged."""
        first_reference = gateway_order.payment_id
        retry = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter).process(
            user, cart_for("10000.00")
        )
        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, retry.payment_reference, "10000.00"
        )
        verify(gateway_order, mock_adapter, reference=retry.payment_reference, user=user)

        mock_adapter.verify.return_value = verification(GatewayStatus.SUCCESS, first_reference, "10000.00")
        outcome = verify(gateway_order, mock_adapter, reference=first_reference, user=user)

        assert outcome.status == VerificationStatus.REFUNDED
        assert outcome.verified is True
        assert outcome.order.payment_id == retry.payment_reference
        assert Transaction.objects.get(reference=first_reference).status == TransactionStatus.SUCCESS
        assert Wallet.objects.get(user=user).balance == Decimal("10000.00")

    def test_refund_to_frozen_wallet_keeps_the_charge(self, user, gateway_order, mock_adapter):
        """Should commit the charge, report the failed credit and retry it later."""
        apply_transitions(gateway_order, "cancel", "cancel_payment")
        gateway_order.save()
        Wallet.objects.filter(user=user).update(is_active=False)
        mock_adapter.verify.return_value = verification(
            GatewayStatus.SUCCESS, gateway_order.payment_id, "10000.00"
        )

        with pytest.raises(RefundFailed) as exc_info:
            verify(gateway_order, mock_adapter, user=user)

        assert exc_info.value.error_code == "REFUND_FAILED"
        charge = Transaction.objects.get(reference=gateway_order.payment_id)
        assert charge.status == TransactionStatus.SUCCESS
        assert charge.reconciled is True
        assert not Transaction.objects.filter(order=gateway_order, type=TransactionType.REFUND).exists()

        Wallet.objects.filter(user=user).update(is_active=True)
        outcome = verify(gateway_order, mock_adapter, user=user)

        assert outcome.status == VerificationStatus.REFUNDED
        assert Wallet.objects.get(user=user).balance == Decimal("10000.00")
