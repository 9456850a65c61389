"""
Wallet models.

- Wallet: Stored-value balance for one user (or the store itself)
- WalletTransaction: Journal entry recording every balance change

Balances are denormalised on the Wallet row so a debit can lock and
check a single row. Each change writes a journal entry with before/after
snapshots, so the history can be replayed against the balance.

Usage:
    from payments.wallet.models import Wallet

    wallet = Wallet.objects.get(user=user)
    wallet.balance  # Decimal, major unit
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel, VersionedModel
from payments.models.mixins import default_currency
from payments.state_machines import WalletTransactionStatus, WalletTransactionType


class Wallet(UUIDPrimaryKeyMixin, VersionedModel):
    """
    A stored-value account.

    Fields:
        user: Owner; null only for the store (system) wallet
        balance: Current balance, never negative
        is_system: True for the single store wallet credited by payments
        is_active: Frozen wallets refuse debits and credits

    Constraints:
        - balance >= 0
        - at most one system wallet

    Note:
        Only WalletService changes balance.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="wallet",
        help_text="Owner of this wallet (empty for the store wallet)",
    )
    balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Current balance in the major currency unit",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this wallet can be debited or credited",
    )
    is_system = models.BooleanField(
        default=False,
        help_text="Whether this is the store wallet",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Wallet"
        verbose_name_plural = "Wallets"
        constraints = [
            models.CheckConstraint(
                check=models.Q(balance__gte=0),
                name="wallet_balance_non_negative",
            ),
            models.UniqueConstraint(
                fields=["is_system"],
                condition=models.Q(is_system=True),
                name="unique_system_wallet",
            ),
        ]

    def __str__(self) -> str:
        owner = "store" if self.is_system else self.user_id
        return f"Wallet({owner}, {self.balance} {self.currency})"


class WalletTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    Journal entry for one balance change.

    A wallet payment writes two entries sharing a base reference:
    PAYMENT_OUT on the payer (<ref>_OUT) and PAYMENT_IN on the payee
    (<ref>_IN). Top-ups start PENDING (WD_<id>_<ms>) until the gateway
    confirms them.

    State Flow:
        PENDING -> SUCCESS
        PENDING -> FAILED
    """

    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.PROTECT,
        related_name="entries",
        help_text="Wallet whose balance changed",
    )
    counterparty = models.ForeignKey(
        Wallet,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="counterparty_entries",
        help_text="Other wallet of a payment",
    )
    reference = models.CharField(
        max_length=100,
        unique=True,
        help_text="Unique entry reference",
    )
    type = models.CharField(
        max_length=20,
        choices=WalletTransactionType.choices,
        help_text="Direction and purpose",
    )
    status = FSMField(
        default=WalletTransactionStatus.PENDING,
        choices=WalletTransactionStatus.choices,
        protected=True,
        help_text="Entry state (managed by FSM)",
    )
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Amount moved",
    )
    balance_before = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Wallet balance before this entry applied",
    )
    balance_after = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Wallet balance after this entry applied",
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Human readable description",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Order number, gateway data, etc.",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Wallet Transaction"
        verbose_name_plural = "Wallet Transactions"
        indexes = [
            models.Index(fields=["wallet", "created_at"]),
            models.Index(fields=["wallet", "type", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount__gt=0),
                name="wallet_transaction_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_type_display()}: {self.amount} ({self.status})"

    @transition(
        field=status,
        source=WalletTransactionStatus.PENDING,
        target=WalletTransactionStatus.SUCCESS,
    )
    def complete(self):
        pass

    @transition(
        field=status,
        source=WalletTransactionStatus.PENDING,
        target=WalletTransactionStatus.FAILED,
    )
    def fail(self):
        pass
