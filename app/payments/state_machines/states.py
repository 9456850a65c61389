"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Checkout (status / payment_status):
    pending → completed                      unpaid/pending → paid
    pending → failed → pending (retry)       unpaid/pending → failed → unpaid (retry)

Order (status / payment_status):
    pending → confirmed → processing → shipped → delivered
    pending → failed → pending (retry)       pending → paid
    pending/failed → cancelled (expiry)      pending → failed → pending (retry)
                                             pending/failed → cancelled

Invoice:
    unpaid → partially_paid → paid
    unpaid → paid
    unpaid/partially_paid → cancelled

InvoicePayment:
    pending → paid
    pending → failed

Transaction:
    pending → processing → success
    pending/processing → failed / cancelled
    (reconciled rows accept no further transitions)

WalletTransaction:
    pending → success / failed

WebhookEvent:
    pending → processing → processed
    pending → processing → failed → processing (retry)
"""

from django.db import models


class CheckoutStatus(models.TextChoices):
    """
    Lifecycle of a checkout session.

    Terminal states: COMPLETED

    State Flow:
        PENDING → COMPLETED
        PENDING → FAILED → PENDING (retry within the staleness window)
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class CheckoutPaymentStatus(models.TextChoices):
    """
    Payment progress of a checkout session.

    State Flow:
        UNPAID → PENDING (gateway redirect issued)
        UNPAID/PENDING → PAID
        UNPAID/PENDING → FAILED → UNPAID (retry)
    """

    UNPAID = "unpaid", "Unpaid"
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"


class OrderStatus(models.TextChoices):
    """
    Fulfilment lifecycle of an order.

    Terminal states: DELIVERED, CANCELLED

    State Flow:
        PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
        PENDING → FAILED → PENDING (retry)
        PENDING/FAILED → CANCELLED (expired after the staleness window, or by staff)
        FAILED → CONFIRMED (late gateway success)
    """

    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    FAILED = "failed", "Failed"


class OrderPaymentStatus(models.TextChoices):
    """
    Settlement status of an order, mirrored onto its invoice.

    PAID is only ever set together with a SUCCESS Transaction.

    State Flow:
        PENDING → PAID
        PENDING → FAILED → PENDING (retry)
        PENDING/FAILED → CANCELLED
        FAILED → PAID (late gateway success)
    """

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class InvoiceStatus(models.TextChoices):
    """
    Settlement status of an invoice.

    Invariant: PAID iff balance_amount <= 0.

    State Flow:
        UNPAID → PARTIALLY_PAID → PAID
        UNPAID → PAID
        UNPAID/PARTIALLY_PAID → CANCELLED
    """

    UNPAID = "unpaid", "Unpaid"
    PARTIALLY_PAID = "partially_paid", "Partially Paid"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"


class InvoicePaymentStatus(models.TextChoices):
    """
    Status of one settlement attempt against an invoice.

    Gateway and wallet settlements are created PAID. Bank transfer
    claims start PENDING and are resolved by an operator.
    """

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"


class InvoicePaymentType(models.TextChoices):
    """Whether a settlement covers the whole outstanding balance."""

    FULL = "full", "Full"
    PARTIAL = "partial", "Partial"


class TransactionStatus(models.TextChoices):
    """
    Status of a canonical value movement.

    Terminal states: SUCCESS, FAILED, CANCELLED
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class TransactionType(models.TextChoices):
    """What a Transaction settles."""

    ORDER_PAYMENT = "order_payment", "Order Payment"
    WALLET_TOPUP = "wallet_topup", "Wallet Top-up"
    REFUND = "refund", "Refund"


class PaymentMethod(models.TextChoices):
    """
    Supported ways of paying for a checkout.

    PAYSTACK and OPAY redirect to a hosted gateway page; WALLET debits
    the customer's balance immediately; BANK_TRANSFER records a claim that
    an operator verifies later.
    """

    PAYSTACK = "paystack", "Paystack"
    OPAY = "opay", "OPay"
    WALLET = "wallet", "Wallet"
    BANK_TRANSFER = "bank_transfer", "Bank Transfer"


class WalletTransactionType(models.TextChoices):
    """Direction and purpose of a wallet journal entry."""

    PAYMENT_OUT = "payment_out", "Payment Out"
    PAYMENT_IN = "payment_in", "Payment In"
    TOPUP = "topup", "Top-up"
    REFUND = "refund", "Refund"


class WalletTransactionStatus(models.TextChoices):
    """
    Status of a wallet journal entry.

    Debits and credits are written SUCCESS; deposits start PENDING until
    the gateway confirms them.
    """

    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
