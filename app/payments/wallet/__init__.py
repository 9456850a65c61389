"""
Wallet - stored-value balances for customers and the store.

Public API:
    Models (payments.wallet.models):
        Wallet - Balance row, locked for every change
        WalletTransaction - Journal entry with before/after snapshots

    Service (payments.wallet.services):
        WalletService - create_wallet, get_balance, debit, credit,
            initialize_deposit, verify_deposit, get_history

    Types (payments.wallet.types):
        WalletBalance, DebitResult, DepositInitResult, DepositVerifyResult

    Exceptions (payments.wallet.exceptions):
        WalletNotFound, InsufficientBalance, WalletInactive,
        InvalidAmountError, DepositNotFound

Usage:
    from payments.wallet.services import WalletService

    result = WalletService.debit(
        from_user=customer,
        to_user=None,  # store wallet
        amount=Decimal("3000.00"),
        description="Payment for order ORD-1700000000000-K3J9QZ",
    )
    result.balance_after  # Decimal("2000.00")
"""
