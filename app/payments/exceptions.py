"""
Payment-specific exceptions for checkout, order and invoice operations.

Every class sits under one of the core error categories, which fixes the
HTTP status the API answers with.

Exception Hierarchy:
    NotFoundError (404)
    ├── OrderNotFound - No order matches a payment reference
    ├── InvoiceNotFound - No invoice matches an id or number
    └── PaymentNotFound - No invoice payment matches an id

    ValidationError (400)
    ├── CheckoutValidationError - Empty cart, missing address, bad amount
    ├── OverpaymentRejected - Amount exceeds the outstanding invoice balance
    └── UnsupportedPaymentMethod - Unknown payment method

    ConflictError (409)
    ├── AlreadyProcessed - Record is no longer open for the action
    ├── InvalidStateTransitionError - FSM transition not allowed
    └── RefundFailed - A captured payment could not be credited back

    ExternalServiceError (502)
    └── GatewayError - Base for payment gateway failures
        ├── GatewayTimeoutError - Timeout / connection failure (retryable)
        └── GatewayResponseError - Non-success or malformed response

Usage:
    from payments.exceptions import OrderNotFound, OverpaymentRejected

    raise OrderNotFound(reference)

    raise OverpaymentRejected(
        invoice_number="ORD-1700000000000-ABC123",
        amount=Decimal("600.00"),
        balance=Decimal("500.00"),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from decimal import Decimal
    from typing import Any


# =============================================================================
# Not Found
# =============================================================================


class OrderNotFound(NotFoundError):
    """
    Raised when no order matches a payment reference.

    The reference is tried against payment_id, transaction_id,
    order_number and the references of past Transactions before this is
    raised.
    """

    default_error_code: str = "ORDER_NOT_FOUND"

    def __init__(self, reference: str, details: dict[str, Any] | None = None):
        self.reference = reference
        full_details = {"reference": reference}
        if details:
            full_details.update(details)
        super().__init__(
            f"No order found for reference {reference}",
            details=full_details,
        )


class InvoiceNotFound(NotFoundError):
    """Raised when no invoice matches an id or invoice number."""

    default_error_code: str = "INVOICE_NOT_FOUND"


class PaymentNotFound(NotFoundError):
    """Raised when no invoice payment matches an id."""

    default_error_code: str = "PAYMENT_NOT_FOUND"


# =============================================================================
# Validation
# =============================================================================


class CheckoutValidationError(ValidationError):
    """
    Raised when a checkout submission or payment request is malformed.

    Example:
        raise CheckoutValidationError(
            "Shipping address city is required",
            details={"field": "shipping_address.city"},
        )
    """

    default_error_code: str = "CHECKOUT_VALIDATION_ERROR"


class OverpaymentRejected(ValidationError):
    """
    Raised when a payment exceeds the invoice's outstanding balance.

    Raised before any row is written.
    """

    default_error_code: str = "OVERPAYMENT_REJECTED"

    def __init__(
        self,
        invoice_number: str,
        amount: Decimal,
        balance: Decimal,
    ):
        self.invoice_number = invoice_number
        self.amount = amount
        self.balance = balance
        super().__init__(
            f"Payment amount {amount} exceeds outstanding balance {balance}",
            details={
                "invoice_number": invoice_number,
                "amount": str(amount),
                "balance_amount": str(balance),
            },
        )


class UnsupportedPaymentMethod(ValidationError):
    """Raised when a checkout names a payment method with no strategy."""

    default_error_code: str = "UNSUPPORTED_PAYMENT_METHOD"


# =============================================================================
# Conflicts
# =============================================================================


class AlreadyProcessed(ConflictError):
    """
    Raised when a record is no longer open for the requested action.

    Use for:
    - Verifying or rejecting a bank transfer claim twice
    - Paying an invoice that is already PAID or CANCELLED
    """

    default_error_code: str = "ALREADY_PROCESSED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's transition checks so every illegal move
    (e.g. PAID back to PENDING) surfaces in the standard error format.

    Attributes:
        details: Contains model, field, current_state and transition name
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class RefundFailed(ConflictError):
    """
    Raised when a capture the order cannot use could not be refunded.

    The capture itself is already recorded as a SUCCESS Transaction; only
    the wallet credit is missing (frozen or missing wallet). Verifying the
    reference again retries the credit.
    """

    default_error_code: str = "REFUND_FAILED"

    def __init__(self, reference: str, reason: str, details: dict[str, Any] | None = None):
        self.reference = reference
        full_details = {"reference": reference, "reason": reason}
        if details:
            full_details.update(details)
        super().__init__(
            f"Payment {reference} was received but could not be refunded: {reason}",
            details=full_details,
        )


# =============================================================================
# Gateway Errors
# =============================================================================


class GatewayError(ExternalServiceError):
    """
    Base exception for payment gateway failures.

    Use is_retryable to decide whether the customer may try again
    immediately. Retrying always re-enters the resume-or-create protocol,
    so it never duplicates an order.

    Attributes:
        provider: Gateway name (paystack, opay)
        is_retryable: Whether the failure is transient
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        provider: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details["provider"] = provider
        super().__init__(message, error_code=error_code, details=details)
        self.provider = provider


class GatewayTimeoutError(GatewayError):
    """Gateway did not answer in time or the connection failed."""

    default_error_code: str = "GATEWAY_TIMEOUT"
    is_retryable: bool = True


class GatewayResponseError(GatewayError):
    """Gateway answered with an error status or an unreadable body."""

    default_error_code: str = "GATEWAY_RESPONSE_ERROR"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Not found
    "OrderNotFound",
    "InvoiceNotFound",
    "PaymentNotFound",
    # Validation
    "CheckoutValidationError",
    "OverpaymentRejected",
    "UnsupportedPaymentMethod",
    # Conflicts
    "AlreadyProcessed",
    "InvalidStateTransitionError",
    "RefundFailed",
    # Gateway
    "GatewayError",
    "GatewayTimeoutError",
    "GatewayResponseError",
]
