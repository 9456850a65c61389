"""
Tests for CheckoutOrchestrator routing and error handling.
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from payments.exceptions import CheckoutValidationError, UnsupportedPaymentMethod
from payments.models import Order
from payments.services import CartPricingService, CheckoutReconciler
from payments.services.checkout_orchestrator import CheckoutOrchestrator
from payments.state_machines import OrderStatus, PaymentMethod, WalletTransactionType
from payments.strategies import (
    BankTransferPaymentStrategy,
    GatewayPaymentStrategy,
    OutcomeStatus,
    SubmitCheckoutParams,
    WalletPaymentStrategy,
)
from payments.tests.conftest import cart_items
from payments.wallet.models import Wallet, WalletTransaction


def params(payment_method, total="3000.00", shipping_address=None, **kwargs):
    return SubmitCheckoutParams(
        payment_method=payment_method,
        cart_items=cart_items(total),
        shipping_address=shipping_address or {"street": "12 Admiralty Way", "city": "Lagos"},
        **kwargs,
    )


class TestGetStrategy:
    """Tests for the strategy registry."""

    @pytest.mark.parametrize(
        ("payment_method", "strategy_class"),
        [
            (PaymentMethod.PAYSTACK, GatewayPaymentStrategy),
            (PaymentMethod.OPAY, GatewayPaymentStrategy),
            (PaymentMethod.WALLET, WalletPaymentStrategy),
            (PaymentMethod.BANK_TRANSFER, BankTransferPaymentStrategy),
        ],
    )
    def test_routes_each_method(self, payment_method, strategy_class):
        strategy = CheckoutOrchestrator.get_strategy(payment_method)

        assert isinstance(strategy, strategy_class)
        assert strategy.payment_method == payment_method

    def test_unknown_method(self):
        """Should name the supported methods."""
        with pytest.raises(UnsupportedPaymentMethod) as exc_info:
            CheckoutOrchestrator.get_strategy("crypto")

        assert "paystack" in exc_info.value.message
        assert exc_info.value.details["payment_method"] == "crypto"


class TestSubmitCheckout:
    """Tests for submit_checkout."""

    def test_wallet_checkout_end_to_end(self, user, fund_wallet):
        """Should pay 3000 from a 5000 wallet and leave 2000."""
        fund_wallet(user, "5000.00")

        outcome = CheckoutOrchestrator.submit_checkout(user, params(PaymentMethod.WALLET))

        assert outcome.status == OutcomeStatus.SUCCESS
        assert Wallet.objects.get(user=user).balance == Decimal("2000.00")
        assert Order.objects.get(order_number=outcome.order_number).status == OrderStatus.CONFIRMED

    def test_racing_wallet_submissions_debit_once(self, user, fund_wallet):
        """Should not debit again for an order a concurrent submission already paid."""
        fund_wallet(user, "200.00")
        submission = params(PaymentMethod.WALLET, total="80.00")
        cart = CartPricingService.price(submission.cart_items, submission.shipping_address)
        # The second request resumed the order before the first one paid it
        late_chain = CheckoutReconciler.resume_or_create(user, cart, PaymentMethod.WALLET)

        first = CheckoutOrchestrator.submit_checkout(user, submission)
        with patch.object(CheckoutReconciler, "resume_or_create", return_value=late_chain):
            second = CheckoutOrchestrator.submit_checkout(user, submission)

        assert first.status == OutcomeStatus.SUCCESS
        assert second.status == OutcomeStatus.SUCCESS
        assert second.order_number == first.order_number
        assert second.payment_reference == first.payment_reference
        assert Order.objects.filter(user=user).count() == 1
        assert Wallet.objects.get(user=user).balance == Decimal("120.00")
        debits = WalletTransaction.objects.filter(wallet__user=user, type=WalletTransactionType.PAYMENT_OUT)
        assert debits.count() == 1

    def test_unsupported_method_writes_nothing(self, user):
        with pytest.raises(UnsupportedPaymentMethod):
            CheckoutOrchestrator.submit_checkout(user, params("crypto"))

        assert not Order.objects.exists()

    def test_invalid_cart_writes_nothing(self, user):
        """Should reject a cart without a delivery city before any write."""
        with pytest.raises(CheckoutValidationError):
            CheckoutOrchestrator.submit_checkout(
                user, params(PaymentMethod.BANK_TRANSFER, shipping_address={"street": "12 Admiralty Way"})
            )

        assert not Order.objects.exists()

    def test_unexpected_error_becomes_failed_outcome(self, user):
        """Should not leak unexpected exceptions to the caller."""
        with patch.object(BankTransferPaymentStrategy, "process", side_effect=RuntimeError("disk full")):
            outcome = CheckoutOrchestrator.submit_checkout(user, params(PaymentMethod.BANK_TRANSFER))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_code == "CHECKOUT_ERROR"
        assert outcome.reason == "An unexpected error occurred"

    def test_discount_reduces_total(self, user):
        outcome = CheckoutOrchestrator.submit_checkout(
            user, params(PaymentMethod.BANK_TRANSFER, discount=Decimal("500.00"))
        )

        assert outcome.order.total == Decimal("2500.00")
        assert outcome.bank_transfer["amount"] == "2500.00"
