"""
Payment domain models.

This module contains the purchase chain and its payment records:
- Checkout / CheckoutItem: Customer purchase session and cart snapshot
- Order / OrderItem: The order the session spawned
- Invoice / InvoiceItem: Bill for an order, payable in instalments
- InvoicePayment: One settlement attempt against an invoice
- Transaction: Canonical record of a value movement
- WebhookEvent: Gateway webhook tracking for idempotent processing
- Wallet / WalletTransaction: Stored-value balances (payments.wallet.models)
"""

from payments.models.checkout import Checkout, CheckoutItem
from payments.models.invoice import Invoice, InvoiceItem, InvoicePayment
from payments.models.order import Order, OrderItem
from payments.models.transaction import Transaction
from payments.models.webhook_event import WebhookEvent
from payments.wallet.models import Wallet, WalletTransaction

__all__ = [
    "Checkout",
    "CheckoutItem",
    "Invoice",
    "InvoiceItem",
    "InvoicePayment",
    "Order",
    "OrderItem",
    "Transaction",
    "Wallet",
    "WalletTransaction",
    "WebhookEvent",
]
