"""
Base exception classes for application-wide error handling.

Every domain error raised by a service belongs to exactly one category of
the hierarchy below. The category decides how the API layer answers:
each class carries the HTTP status it maps to, so views can translate any
BaseApplicationError into a response without knowing the concrete type.

Exception Hierarchy:
    BaseApplicationError (base, 400)
    ├── ValidationError - Input validation failures (400)
    ├── NotFoundError - Resource not found (404)
    ├── PermissionDeniedError - Authorization failures (403)
    ├── ConflictError - State conflicts, already-processed records (409)
    ├── InsufficientResourceError - Not enough funds / inactive account (402)
    └── ExternalServiceError - Upstream gateway failures (502)

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Amount must be greater than zero")

    raise NotFoundError(
        "Order ORD-1700000000000-ABC123 not found",
        error_code="ORDER_NOT_FOUND",
        details={"reference": "ORD-1700000000000-ABC123"},
    )

    # In a view
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, amounts, ids)
        status_code: HTTP status the API layer responds with

    Example:
        try:
            order = OrderLookup.by_reference(reference)
        except NotFoundError as e:
            logger.warning(f"Order lookup failed: {e.error_code}")
            return Response(e.to_dict(), status=e.status_code)
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys

        Example:
            {
                "error": "Insufficient wallet balance",
                "error_code": "INSUFFICIENT_BALANCE",
                "details": {"required": "3000.00", "available": "1200.00"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Non-positive amounts
    - Missing required address fields
    - Empty carts
    - Overpayment of an invoice balance

    Raised before any write happens, so the caller can correct the
    request and resubmit.

    Note:
        For DRF serializer validation, use DRF's built-in validation.
        Use this for service-layer validation logic.
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Services never create a substitute record when a lookup misses;
    the caller receives this error instead.

    Example:
        invoice = Invoice.objects.filter(invoice_number=number).first()
        if not invoice:
            raise NotFoundError(
                f"Invoice {number} not found",
                error_code="INVOICE_NOT_FOUND",
                details={"invoice": number},
            )
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller may not act on a resource.

    Use for:
    - Verifying or paying an order that belongs to another user
    - Non-staff callers reaching operator actions

    Note:
        For authentication failures (missing/invalid token), use DRF's
        AuthenticationFailed. Use this for authorization failures.
    """

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Records that were already processed (double verification)
    - Invalid state transitions
    - Duplicate unique references

    Non-retryable: the caller must re-fetch state instead of resubmitting.
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class InsufficientResourceError(BaseApplicationError):
    """
    Raised when an account cannot cover an operation.

    Kept distinct from generic failures so clients can offer a
    "fund wallet" action rather than "try again".

    Example:
        if wallet.balance < amount:
            raise InsufficientResourceError(
                "Insufficient wallet balance",
                error_code="INSUFFICIENT_BALANCE",
            )
    """

    default_error_code: str = "INSUFFICIENT_RESOURCE"
    status_code: int = 402


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment gateway timeouts
    - Malformed or non-success gateway responses
    - Gateway unavailability

    Example:
        try:
            response = session.post(url, json=payload, timeout=30)
        except requests.Timeout as e:
            raise ExternalServiceError(
                "Payment gateway timed out",
                error_code="GATEWAY_TIMEOUT",
                details={"provider": "paystack", "original_error": str(e)},
            )

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = 502
