"""
Wallet service layer.

All balance changes go through WalletService so that every change:
- runs in one database transaction
- locks the affected wallet rows (in id order, so two payments between
  the same wallets cannot deadlock)
- re-checks is_active and the balance on the locked row
- writes journal entries with before/after snapshots

Usage:
    from payments.wallet.services import WalletService

    WalletService.create_wallet(user)
    WalletService.get_balance(user).balance

    result = WalletService.debit(
        from_user=user,
        to_user=None,
        amount=Decimal("3000.00"),
        description="Payment for order ORD-...",
        metadata={"order_number": order.order_number},
    )
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError
from django.db.models import F

from core.services import BaseService
from payments.adapters import InitiateParams, PaystackAdapter, to_minor_units
from payments.models.transaction import Transaction
from payments.references import deposit_reference, wallet_payment_reference
from payments.state_machines import (
    PaymentMethod,
    TransactionType,
    WalletTransactionStatus,
    WalletTransactionType,
    apply_transitions,
)
from payments.wallet.exceptions import (
    DepositNotFound,
    InsufficientBalance,
    InvalidAmountError,
    WalletInactive,
    WalletNotFound,
)
from payments.wallet.models import Wallet, WalletTransaction
from payments.wallet.types import (
    DebitResult,
    DepositInitResult,
    DepositOutcome,
    DepositVerifyResult,
    WalletBalance,
)

if TYPE_CHECKING:
    from authentication.models import User
    from payments.adapters import GatewayAdapter


class WalletService(BaseService):
    """
    Service class for wallet operations.

    All methods are class methods - no instance state is maintained.
    """

    # =========================================================================
    # Provisioning & Lookup
    # =========================================================================

    @classmethod
    def create_wallet(cls, user: User | None, is_system: bool = False) -> Wallet:
        """
        Provision a wallet. Idempotent per user.

        Args:
            user: Owner, or None for the store wallet
            is_system: True for the store wallet
        """
        if is_system:
            return cls.get_system_wallet()

        wallet, created = Wallet.objects.get_or_create(user=user)
        if created:
            cls.get_logger().info(
                "Wallet created",
                extra={"wallet_id": str(wallet.id), "user_id": user.pk},
            )
        return wallet

    @classmethod
    def get_system_wallet(cls) -> Wallet:
        """Return the store wallet, creating it on first use."""
        wallet = Wallet.objects.filter(is_system=True).first()
        if wallet is not None:
            return wallet
        try:
            with cls.atomic():
                return Wallet.objects.create(user=None, is_system=True)
        except IntegrityError:
            # Created concurrently
            return Wallet.objects.get(is_system=True)

    @staticmethod
    def get_wallet(user: User) -> Wallet:
        """
        Raises:
            WalletNotFound: If the user has no wallet
        """
        try:
            return Wallet.objects.get(user=user)
        except Wallet.DoesNotExist:
            raise WalletNotFound(
                "Wallet not found",
                details={"user_id": user.pk},
            )

    @classmethod
    def get_balance(cls, user: User) -> WalletBalance:
        wallet = cls.get_wallet(user)
        return WalletBalance(
            balance=wallet.balance,
            currency=wallet.currency,
            is_active=wallet.is_active,
        )

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def _validate_amount(amount: Decimal) -> Decimal:
        amount = Decimal(amount)
        if amount <= 0:
            raise InvalidAmountError(
                "Amount must be greater than zero",
                details={"amount": str(amount)},
            )
        return amount

    @staticmethod
    def _validate_active(wallet: Wallet) -> None:
        if not wallet.is_active:
            raise WalletInactive(
                "Wallet is inactive",
                details={"wallet_id": str(wallet.id)},
            )

    # =========================================================================
    # Balance Changes
    # =========================================================================

    @classmethod
    def debit(
        cls,
        from_user: User,
        to_user: User | None,
        amount: Decimal,
        description: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> DebitResult:
        """
        Move money from one wallet to another.

        Args:
            from_user: Payer
            to_user: Payee, or None for the store wallet
            amount: Amount in the major unit
            description: Shown in both wallets' history
            metadata: Stored on both journal entries

        Returns:
            DebitResult with the payer's before/after balance and both entries

        Raises:
            WalletNotFound: Payer (or named payee) has no wallet
            WalletInactive: Either wallet is frozen
            InsufficientBalance: Payer balance below amount on the locked row
            InvalidAmountError: amount <= 0, or payer and payee are the same

        Note:
            Nothing is written unless every check passes. Called inside an
            outer atomic block, a later failure rolls the debit back too.
        """
        amount = cls._validate_amount(amount)
        payer_id = cls.get_wallet(from_user).id
        payee_id = cls.get_wallet(to_user).id if to_user is not None else cls.get_system_wallet().id
        if payer_id == payee_id:
            raise InvalidAmountError(
                "Cannot pay into the same wallet",
                details={"wallet_id": str(payer_id)},
            )

        with cls.atomic():
            # Lock both rows in a consistent order to prevent deadlocks
            locked = {
                wallet.id: wallet
                for wallet in Wallet.objects.filter(id__in=[payer_id, payee_id])
                .select_for_update()
                .order_by("id")
            }
            payer, payee = locked[payer_id], locked[payee_id]

            cls._validate_active(payer)
            cls._validate_active(payee)
            if payer.balance < amount:
                raise InsufficientBalance(
                    wallet_id=payer.id,
                    required=amount,
                    available=payer.balance,
                )

            payer_before = payer.balance
            payee_before = payee.balance
            Wallet.objects.filter(pk=payer.pk).update(
                balance=F("balance") - amount, version=F("version") + 1
            )
            Wallet.objects.filter(pk=payee.pk).update(
                balance=F("balance") + amount, version=F("version") + 1
            )

            reference = wallet_payment_reference(payer.id)
            out_entry = WalletTransaction.objects.create(
                wallet=payer,
                counterparty=payee,
                reference=f"{reference}_OUT",
                type=WalletTransactionType.PAYMENT_OUT,
                status=WalletTransactionStatus.SUCCESS,
                amount=amount,
                balance_before=payer_before,
                balance_after=payer_before - amount,
                description=description,
                metadata=metadata or {},
            )
            in_entry = WalletTransaction.objects.create(
                wallet=payee,
                counterparty=payer,
                reference=f"{reference}_IN",
                type=WalletTransactionType.PAYMENT_IN,
                status=WalletTransactionStatus.SUCCESS,
                amount=amount,
                balance_before=payee_before,
                balance_after=payee_before + amount,
                description=description,
                metadata=metadata or {},
            )

        cls.get_logger().info(
            "Wallet debit completed",
            extra={
                "reference": reference,
                "payer_wallet_id": str(payer.id),
                "payee_wallet_id": str(payee.id),
                "amount": str(amount),
            },
        )
        return DebitResult(
            reference=reference,
            amount=amount,
            balance_before=payer_before,
            balance_after=payer_before - amount,
            out_entry=out_entry,
            in_entry=in_entry,
        )

    @classmethod
    def credit(
        cls,
        user: User,
        amount: Decimal,
        description: str = "",
        type: str = WalletTransactionType.REFUND,
        reference: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> WalletTransaction:
        """
        Add money to a wallet (refunds, manual adjustments).

        Raises:
            WalletNotFound, WalletInactive, InvalidAmountError
        """
        amount = cls._validate_amount(amount)
        wallet_id = cls.get_wallet(user).id

        with cls.atomic():
            wallet = Wallet.objects.select_for_update().get(pk=wallet_id)
            cls._validate_active(wallet)

            before = wallet.balance
            Wallet.objects.filter(pk=wallet.pk).update(
                balance=F("balance") + amount, version=F("version") + 1
            )
            entry = WalletTransaction.objects.create(
                wallet=wallet,
                reference=reference or f"{wallet_payment_reference(wallet.id)}_{type.upper()}",
                type=type,
                status=WalletTransactionStatus.SUCCESS,
                amount=amount,
                balance_before=before,
                balance_after=before + amount,
                description=description,
                metadata=metadata or {},
            )

        cls.get_logger().info(
            "Wallet credited",
            extra={"reference": entry.reference, "wallet_id": str(wallet.id), "amount": str(amount)},
        )
        return entry

    # =========================================================================
    # Deposits
    # =========================================================================

    @classmethod
    def initialize_deposit(
        cls,
        user: User,
        amount: Decimal,
        adapter: GatewayAdapter | None = None,
    ) -> DepositInitResult:
        """
        Start a wallet top-up through Paystack.

        The gateway is called first; the PENDING journal entry and
        Transaction are only written once it has accepted the charge.

        Raises:
            InvalidAmountError: Below WALLET_MIN_DEPOSIT minor units
            WalletNotFound, WalletInactive
            GatewayError: Paystack refused or timed out
        """
        amount = cls._validate_amount(amount)
        if to_minor_units(amount) < settings.WALLET_MIN_DEPOSIT:
            raise InvalidAmountError(
                "Minimum deposit amount is ₦1.00",
                details={"amount": str(amount)},
            )

        wallet = cls.get_wallet(user)
        cls._validate_active(wallet)

        reference = deposit_reference(wallet.id)
        adapter = adapter or PaystackAdapter()
        result = adapter.initiate(
            InitiateParams(
                reference=reference,
                amount=amount,
                email=user.email,
                currency=wallet.currency,
                callback_url=f"{settings.FRONTEND_URL}/account/wallet?reference={reference}",
                metadata={"type": "wallet_deposit", "wallet_id": str(wallet.id)},
            )
        )

        with cls.atomic():
            WalletTransaction.objects.create(
                wallet=wallet,
                reference=reference,
                type=WalletTransactionType.TOPUP,
                amount=amount,
                description="Wallet deposit",
                metadata={"provider_order_id": result.provider_order_id},
            )
            Transaction.objects.create(
                reference=reference,
                provider=PaymentMethod.PAYSTACK,
                user=user,
                type=TransactionType.WALLET_TOPUP,
                amount=amount,
                currency=wallet.currency,
                description="Wallet deposit",
                metadata={"wallet_id": str(wallet.id), "customer_email": user.email},
            )

        cls.get_logger().info(
            "Wallet deposit initialized",
            extra={"reference": reference, "user_id": user.pk, "amount": str(amount)},
        )
        return DepositInitResult(
            reference=reference,
            authorization_url=result.redirect_url,
            amount=amount,
        )

    @classmethod
    def verify_deposit(
        cls,
        user: User,
        reference: str,
        adapter: GatewayAdapter | None = None,
    ) -> DepositVerifyResult:
        """
        Check a top-up with Paystack and credit the wallet once.

        Returns:
            DepositVerifyResult whose outcome is already_verified,
            previously_failed, verified, failed or pending

        Raises:
            DepositNotFound: Reference unknown or owned by another user
        """
        entry = WalletTransaction.objects.filter(
            reference=reference,
            wallet__user=user,
            type=WalletTransactionType.TOPUP,
        ).select_related("wallet").first()
        if entry is None:
            raise DepositNotFound(
                "Deposit not found",
                details={"reference": reference},
            )

        if entry.status == WalletTransactionStatus.SUCCESS:
            return cls._deposit_result(DepositOutcome.ALREADY_VERIFIED, entry)
        if entry.status == WalletTransactionStatus.FAILED:
            return cls._deposit_result(DepositOutcome.PREVIOUSLY_FAILED, entry)

        adapter = adapter or PaystackAdapter()
        verification = adapter.verify(reference)

        if verification.is_success:
            with cls.atomic():
                entry = WalletTransaction.objects.select_for_update().get(pk=entry.pk)
                if entry.status != WalletTransactionStatus.PENDING:
                    return cls._deposit_result(DepositOutcome.ALREADY_VERIFIED, entry)
                wallet = Wallet.objects.select_for_update().get(pk=entry.wallet_id)
                cls._validate_active(wallet)

                before = wallet.balance
                Wallet.objects.filter(pk=wallet.pk).update(
                    balance=F("balance") + entry.amount, version=F("version") + 1
                )
                entry.balance_before = before
                entry.balance_after = before + entry.amount
                entry.metadata = {**entry.metadata, "gateway": verification.raw}
                apply_transitions(entry, "complete")
                entry.save()
                cls._settle_topup_transaction(reference, "succeed", verification.raw)

            if verification.amount is not None and verification.amount != entry.amount:
                cls.get_logger().warning(
                    "Deposit amount differs from gateway amount",
                    extra={
                        "reference": reference,
                        "amount": str(entry.amount),
                        "gateway_amount": str(verification.amount),
                    },
                )
            cls.get_logger().info(
                "Wallet deposit verified",
                extra={"reference": reference, "user_id": user.pk, "amount": str(entry.amount)},
            )
            return cls._deposit_result(DepositOutcome.VERIFIED, entry)

        if verification.is_failed:
            with cls.atomic():
                entry = WalletTransaction.objects.select_for_update().get(pk=entry.pk)
                if entry.status == WalletTransactionStatus.PENDING:
                    apply_transitions(entry, "fail")
                    entry.save()
                    cls._settle_topup_transaction(reference, "fail", verification.raw)
            cls.get_logger().info(
                "Wallet deposit failed",
                extra={"reference": reference, "user_id": user.pk},
            )
            return cls._deposit_result(DepositOutcome.FAILED, entry)

        return cls._deposit_result(DepositOutcome.PENDING, entry)

    @staticmethod
    def _settle_topup_transaction(reference: str, transition_name: str, raw: dict) -> None:
        txn = Transaction.objects.select_for_update().filter(reference=reference).first()
        if txn is None or txn.reconciled:
            return
        apply_transitions(txn, transition_name)
        txn.provider_data = raw
        txn.mark_reconciled()
        txn.save()

    @staticmethod
    def _deposit_result(outcome: str, entry: WalletTransaction) -> DepositVerifyResult:
        balance = Wallet.objects.values_list("balance", flat=True).get(pk=entry.wallet_id)
        return DepositVerifyResult(
            outcome=outcome,
            reference=entry.reference,
            amount=entry.amount,
            balance=balance,
        )

    # =========================================================================
    # History
    # =========================================================================

    @classmethod
    def get_history(cls, user: User, limit: int = 20, offset: int = 0) -> list[WalletTransaction]:
        """
        Journal entries for the user's wallet, newest first.

        limit is clamped to 1..WALLET_HISTORY_MAX_LIMIT.
        """
        wallet = cls.get_wallet(user)
        limit = max(1, min(limit, settings.WALLET_HISTORY_MAX_LIMIT))
        offset = max(0, offset)
        return list(
            WalletTransaction.objects.filter(wallet=wallet)
            .select_related("counterparty")
            .order_by("-created_at")[offset : offset + limit]
        )
