"""
Wallet-specific exceptions.

Exception Hierarchy:
    NotFoundError (404)
    ├── WalletNotFound - User has no wallet
    └── DepositNotFound - No deposit with that reference for the user

    InsufficientResourceError (402)
    └── InsufficientBalance - Balance below the debit amount

    ConflictError (409)
    └── WalletInactive - Wallet is frozen

    ValidationError (400)
    └── InvalidAmountError - Non-positive or below-minimum amount

Usage:
    from payments.wallet.exceptions import InsufficientBalance

    if wallet.balance < amount:
        raise InsufficientBalance(wallet.id, required=amount, available=wallet.balance)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    ConflictError,
    InsufficientResourceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal
    from typing import Any


class WalletNotFound(NotFoundError):
    """
    Raised when a user has no wallet.

    Wallets are provisioned when the user is created; a missing wallet
    is reported rather than created on the fly.
    """

    default_error_code: str = "WALLET_NOT_FOUND"


class DepositNotFound(NotFoundError):
    """Raised when a deposit reference does not belong to the user."""

    default_error_code: str = "DEPOSIT_NOT_FOUND"


class InsufficientBalance(InsufficientResourceError):
    """
    Raised when a wallet cannot cover a debit.

    Attributes:
        wallet_id: The wallet that was short
        required: Amount requested
        available: Balance on the locked row at check time
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        wallet_id: uuid.UUID,
        required: Decimal,
        available: Decimal,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.wallet_id = wallet_id
        self.required = required
        self.available = available

        message = (
            f"Insufficient wallet balance: required {required}, "
            f"available {available}"
        )

        full_details = {
            "wallet_id": str(wallet_id),
            "required": str(required),
            "available": str(available),
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=message,
            error_code=error_code,
            details=full_details,
        )


class WalletInactive(ConflictError):
    """Raised when debiting or crediting a frozen wallet."""

    default_error_code: str = "WALLET_INACTIVE"


class InvalidAmountError(ValidationError):
    """Raised for non-positive amounts or deposits below the minimum."""

    default_error_code: str = "INVALID_AMOUNT"
