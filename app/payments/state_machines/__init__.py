"""
State machine enums and the shared transition guard for payment models.
"""

from payments.state_machines.states import (
    CheckoutPaymentStatus,
    CheckoutStatus,
    InvoicePaymentStatus,
    InvoicePaymentType,
    InvoiceStatus,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    TransactionStatus,
    TransactionType,
    WalletTransactionStatus,
    WalletTransactionType,
    WebhookEventStatus,
)
from payments.state_machines.transitions import apply_transitions, can_apply

__all__ = [
    "CheckoutPaymentStatus",
    "CheckoutStatus",
    "InvoicePaymentStatus",
    "InvoicePaymentType",
    "InvoiceStatus",
    "OrderPaymentStatus",
    "OrderStatus",
    "PaymentMethod",
    "TransactionStatus",
    "TransactionType",
    "WalletTransactionStatus",
    "WalletTransactionType",
    "WebhookEventStatus",
    "apply_transitions",
    "can_apply",
]
