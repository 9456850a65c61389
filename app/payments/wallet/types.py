"""
Data types returned by wallet operations.

Types:
    WalletBalance: Read-only balance snapshot
    DebitResult: Outcome of a wallet-to-wallet payment
    DepositInitResult: Hosted page for a top-up
    DepositVerifyResult: Outcome of checking a top-up
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from payments.wallet.models import WalletTransaction


@dataclass(frozen=True)
class WalletBalance:
    """
    Balance snapshot.

    Attributes:
        balance: Current balance in the major unit
        currency: ISO 4217 code
        is_active: False when the wallet is frozen
    """

    balance: Decimal
    currency: str
    is_active: bool

    def covers(self, amount: Decimal) -> bool:
        return self.is_active and self.balance >= amount


@dataclass
class DebitResult:
    """
    Outcome of WalletService.debit().

    Attributes:
        reference: Shared reference of the two legs (PAY_<id>_<ms>)
        amount: Amount moved
        balance_before: Payer balance before the debit
        balance_after: Payer balance after the debit
        out_entry: PAYMENT_OUT journal entry on the payer wallet
        in_entry: PAYMENT_IN journal entry on the payee wallet
    """

    reference: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    out_entry: WalletTransaction
    in_entry: WalletTransaction


@dataclass
class DepositInitResult:
    reference: str
    authorization_url: str
    amount: Decimal


class DepositOutcome:
    ALREADY_VERIFIED = "already_verified"
    PREVIOUSLY_FAILED = "previously_failed"
    VERIFIED = "verified"
    FAILED = "failed"
    PENDING = "pending"


@dataclass
class DepositVerifyResult:
    """
    Outcome of WalletService.verify_deposit().

    outcome is one of the DepositOutcome values; balance is the wallet
    balance after the check.
    """

    outcome: str
    reference: str
    amount: Decimal
    balance: Decimal

    @property
    def success(self) -> bool:
        return self.outcome in (DepositOutcome.VERIFIED, DepositOutcome.ALREADY_VERIFIED)
