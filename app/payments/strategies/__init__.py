"""
Payment strategies for the supported checkout payment methods.

This module provides the strategy pattern implementation for paying a
checkout by gateway redirect, wallet balance or bank transfer.

Usage:
    from payments.strategies import GatewayPaymentStrategy

    strategy = GatewayPaymentStrategy(PaymentMethod.PAYSTACK)
    outcome = strategy.process(user, priced_cart)
    if outcome.status == OutcomeStatus.PENDING:
        redirect(outcome.redirect_url)
"""

from payments.strategies.bank_transfer import (
    BankTransferPaymentStrategy,
    bank_transfer_instructions,
)
from payments.strategies.base import (
    CheckoutOutcome,
    OutcomeStatus,
    PaymentStrategy,
    SubmitCheckoutParams,
)
from payments.strategies.gateway import GatewayPaymentStrategy
from payments.strategies.wallet import WalletPaymentStrategy

__all__ = [
    "BankTransferPaymentStrategy",
    "CheckoutOutcome",
    "GatewayPaymentStrategy",
    "OutcomeStatus",
    "PaymentStrategy",
    "SubmitCheckoutParams",
    "WalletPaymentStrategy",
    "bank_transfer_instructions",
]
