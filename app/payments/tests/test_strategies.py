"""
Tests for the checkout payment strategies.

Gateway calls go to the mock_adapter fixture; wallet and bank transfer
strategies run against the database only.
"""

from decimal import Decimal
from unittest.mock import patch

from payments.exceptions import GatewayTimeoutError
from payments.models import Invoice, Order, Transaction
from payments.state_machines import (
    InvoiceStatus,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    TransactionStatus,
    WalletTransactionType,
)
from payments.strategies import (
    BankTransferPaymentStrategy,
    GatewayPaymentStrategy,
    OutcomeStatus,
    WalletPaymentStrategy,
)
from payments.wallet.models import Wallet, WalletTransaction
from payments.wallet.services import WalletService
from payments.wallet.types import WalletBalance


# =============================================================================
# Gateway
# =============================================================================


class TestGatewayPaymentStrategy:
    """Tests for hosted gateway checkouts."""

    def test_returns_redirect_and_opens_transaction(self, user, cart_for, mock_adapter):
        """Should initiate a charge and record the attempt."""
        strategy = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter)

        outcome = strategy.process(user, cart_for("10000.00"))

        assert outcome.status == OutcomeStatus.PENDING
        assert outcome.redirect_url.startswith("https://checkout.paystack.com/")
        assert outcome.payment_reference.startswith("PAY_")
        assert outcome.is_retry is False

        order = Order.objects.get(order_number=outcome.order_number)
        assert order.payment_id == outcome.payment_reference
        txn = Transaction.objects.get(reference=outcome.payment_reference)
        assert txn.status == TransactionStatus.PENDING
        assert txn.amount == Decimal("10000.00")

        params = mock_adapter.initiate.call_args.args[0]
        assert params.amount == Decimal("10000.00")
        assert params.email == user.email
        assert params.callback_url.endswith(f"/orders/{order.order_number}")

    def test_retry_reuses_order_with_retry_reference(self, user, cart_for, mock_adapter):
        """Should resume the order and mark the new reference as a retry."""
        strategy = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter)
        first = strategy.process(user, cart_for())

        second = strategy.process(user, cart_for())

        assert second.is_retry is True
        assert second.order_number == first.order_number
        assert second.payment_reference.endswith("_RETRY")
        assert Order.objects.filter(user=user).count() == 1
        assert Transaction.objects.get(reference=first.payment_reference).status == TransactionStatus.CANCELLED

    def test_gateway_error_fails_order(self, user, cart_for, mock_adapter):
        """Should report a failed outcome and leave the order FAILED."""
        mock_adapter.initiate.side_effect = GatewayTimeoutError(
            "paystack is unavailable, please try again", provider=PaymentMethod.PAYSTACK
        )
        strategy = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=mock_adapter)

        outcome = strategy.process(user, cart_for())

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_code == "GATEWAY_TIMEOUT"
        order = Order.objects.get(order_number=outcome.order_number)
        assert order.status == OrderStatus.FAILED
        assert order.payment_status == OrderPaymentStatus.FAILED
        assert not Transaction.objects.filter(order=order).exists()


# =============================================================================
# Wallet
# =============================================================================


class TestWalletPaymentStrategy:
    """Tests for immediate wallet payments."""

    def test_debits_wallet_and_settles_order(self, user, cart_for, fund_wallet):
        """Should take 3000 from a 5000 balance and confirm the order."""
        fund_wallet(user, "5000.00")

        outcome = WalletPaymentStrategy().process(user, cart_for("3000.00"))

        assert outcome.status == OutcomeStatus.SUCCESS
        assert Wallet.objects.get(user=user).balance == Decimal("2000.00")
        assert WalletService.get_system_wallet().balance == Decimal("3000.00")

        out_entry = WalletTransaction.objects.get(wallet__user=user, type=WalletTransactionType.PAYMENT_OUT)
        assert out_entry.balance_before == Decimal("5000.00")
        assert out_entry.balance_after == Decimal("2000.00")

        order = Order.objects.get(order_number=outcome.order_number)
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment_status == OrderPaymentStatus.PAID

        txn = Transaction.objects.get(reference=outcome.payment_reference)
        assert txn.status == TransactionStatus.SUCCESS
        assert txn.provider == PaymentMethod.WALLET
        assert txn.provider_data["balance_before"] == "5000.00"
        assert txn.provider_data["balance_after"] == "2000.00"
        assert outcome.invoice.status == InvoiceStatus.PAID

    def test_insufficient_balance_creates_nothing(self, user, cart_for, fund_wallet):
        """Should fail before any record is written."""
        fund_wallet(user, "1000.00")

        outcome = WalletPaymentStrategy().process(user, cart_for("3000.00"))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_code == "INSUFFICIENT_BALANCE"
        assert not Order.objects.filter(user=user).exists()
        assert Wallet.objects.get(user=user).balance == Decimal("1000.00")

    def test_inactive_wallet(self, user, cart_for, fund_wallet):
        fund_wallet(user, "5000.00")
        Wallet.objects.filter(user=user).update(is_active=False)

        outcome = WalletPaymentStrategy().process(user, cart_for("3000.00"))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_code == "WALLET_INACTIVE"

    def test_balance_drop_after_precheck_fails_order(self, user, cart_for, fund_wallet):
        """Should fail the order without debiting when the locked balance is short."""
        fund_wallet(user, "1000.00")
        stale_snapshot = WalletBalance(balance=Decimal("5000.00"), currency="NGN", is_active=True)

        with patch.object(WalletService, "get_balance", return_value=stale_snapshot):
            outcome = WalletPaymentStrategy().process(user, cart_for("3000.00"))

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_code == "INSUFFICIENT_BALANCE"
        order = Order.objects.get(order_number=outcome.order_number)
        assert order.status == OrderStatus.FAILED
        assert Wallet.objects.get(user=user).balance == Decimal("1000.00")
        assert not WalletTransaction.objects.filter(wallet__user=user).exists()


# =============================================================================
# Bank transfer
# =============================================================================


class TestBankTransferPaymentStrategy:
    def test_returns_instructions_and_leaves_invoice_open(self, user, cart_for, settings):
        """Should create the chain and hand back transfer instructions."""
        settings.BANK_TRANSFER_ACCOUNTS = [
            {"bank_name": "First Bank", "account_number": "3012345678", "account_name": "Storefront Ltd"}
        ]

        outcome = BankTransferPaymentStrategy().process(user, cart_for("10000.00"))

        assert outcome.status == OutcomeStatus.PENDING
        assert outcome.bank_transfer["reference"] == outcome.order_number
        assert outcome.bank_transfer["amount"] == "10000.00"
        assert outcome.bank_transfer["accounts"][0]["bank_name"] == "First Bank"
        assert len(outcome.bank_transfer["instructions"]) == 4

        invoice = Invoice.objects.get(invoice_number=outcome.order_number)
        assert invoice.status == InvoiceStatus.UNPAID
        assert invoice.terms.startswith("Payment via bank transfer")
        assert not Transaction.objects.filter(order__user=user).exists()
