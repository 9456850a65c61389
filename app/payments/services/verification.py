"""
Payment verification for gateway checkouts.

Called when the customer returns from the hosted gateway page and from
gateway webhooks. Both paths may race; the success transition is
idempotent so the order is settled exactly once.

Reference lookup:
    The reference the caller holds may be our payment reference, the
    provider's transaction id, the order number or the reference of an
    earlier attempt a retry superseded. They are tried in that order
    (Order.objects.for_reference).

Usage:
    from payments.services import PaymentVerificationService

    outcome = PaymentVerificationService.verify_payment(
        reference="PAY_0123456789ABCDEF",
        method=PaymentMethod.PAYSTACK,
        user=request.user,
    )
    if outcome.verified:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.exceptions import PermissionDeniedError
from core.services import BaseService
from payments.adapters import GatewayAdapter, get_adapter
from payments.exceptions import OrderNotFound
from payments.models import Order, Transaction
from payments.services.reconciler import CheckoutReconciler
from payments.state_machines import OrderStatus, TransactionStatus, TransactionType

if TYPE_CHECKING:
    from authentication.models import User


class VerificationStatus:
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    REFUNDED = "refunded"


@dataclass
class VerificationOutcome:
    """
    Result of verifying a payment.

    Attributes:
        verified: True when the order is paid
        status: success, failed, pending or refunded
        order: The order the reference resolved to
        payment: The SUCCESS Transaction when verified
        message: Customer-facing message
    """

    verified: bool
    status: str
    order: Order
    payment: Transaction | None = None
    message: str = ""


class PaymentVerificationService(BaseService):
    """
    Asks the gateway about a payment and applies the outcome.

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def resolve_order(cls, reference: str, user: User | None = None) -> Order:
        """
        Find the order a reference belongs to.

        Raises:
            OrderNotFound: Nothing matches the reference
            PermissionDeniedError: A user was given and does not own the order
        """
        order = Order.objects.for_reference(reference)
        if order is None:
            raise OrderNotFound(reference)
        if user is not None and order.user_id != user.pk and not user.is_staff:
            raise PermissionDeniedError(
                "You do not have access to this order",
                details={"reference": reference},
            )
        return order

    @classmethod
    def verify_payment(
        cls,
        reference: str,
        method: str,
        user: User | None = None,
        adapter: GatewayAdapter | None = None,
    ) -> VerificationOutcome:
        """
        Verify a gateway payment and settle or fail its order.

        Steps:
        1. Resolve the order (payment_id -> transaction_id -> order_number
           -> attempt reference)
        2. Already paid: return success without contacting the gateway,
           unless the reference names a different attempt that may also
           have captured
        3. Ask the gateway about the named attempt, else order.payment_id
        4. SUCCESS: success transition when it covers the amount due;
           FAILED: failure transition; PENDING: nothing is written

        A SUCCESS for an order that was cancelled, or that another attempt
        already paid, is recorded and refunded to the customer's wallet.

        Args:
            reference: Any reference the caller holds for the payment
            method: Gateway the payment went through (paystack, opay)
            user: Caller, when verification is customer-initiated. Webhooks
                pass None
            adapter: Gateway adapter override

        Raises:
            OrderNotFound, PermissionDeniedError, UnsupportedPaymentMethod,
            GatewayError, RefundFailed
        """
        order = cls.resolve_order(reference, user=user)
        attempt = cls._attempt_for(order, reference)

        if order.is_paid and (attempt is None or attempt.status == TransactionStatus.SUCCESS):
            return cls._already_verified(order)

        adapter = adapter or get_adapter(method)
        if attempt is not None:
            gateway_reference = attempt.reference
        else:
            gateway_reference = order.payment_id or reference
        verification = adapter.verify(gateway_reference)

        cls.get_logger().info(
            "Gateway verification result",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "reference": gateway_reference,
                "provider": method,
                "gateway_status": verification.status.value,
            },
        )

        if verification.is_success:
            amount = verification.amount
            if amount is None:
                amount = attempt.amount if attempt is not None else order.total

            if order.status == OrderStatus.CANCELLED or order.is_paid:
                CheckoutReconciler.refund_late_payment(
                    order,
                    provider=method,
                    reference=gateway_reference,
                    amount=amount,
                    provider_data=verification.raw,
                )
                if order.is_paid:
                    message = "Order was already paid. The duplicate payment has been refunded to your wallet."
                else:
                    message = "Order was cancelled. The payment has been refunded to your wallet."
                return VerificationOutcome(
                    verified=order.is_paid,
                    status=VerificationStatus.REFUNDED,
                    order=Order.objects.get(pk=order.pk),
                    message=message,
                )

            amount_due = CheckoutReconciler.amount_due(order)
            if amount < amount_due:
                cls.get_logger().error(
                    "Gateway amount below amount due",
                    extra={
                        "order_id": str(order.id),
                        "reference": gateway_reference,
                        "amount": str(amount),
                        "amount_due": str(amount_due),
                    },
                )
                order = CheckoutReconciler.mark_failed(
                    order, f"Amount paid {amount} is less than amount due {amount_due}"
                )
                return VerificationOutcome(
                    verified=False,
                    status=VerificationStatus.FAILED,
                    order=order,
                    message=order.failure_reason,
                )

            order = CheckoutReconciler.mark_paid(
                order,
                provider=method,
                reference=gateway_reference,
                amount=amount,
                provider_data=verification.raw,
                metadata={"provider_order_id": verification.provider_order_id},
            )
            return VerificationOutcome(
                verified=True,
                status=VerificationStatus.SUCCESS,
                order=order,
                payment=cls._success_transaction(order),
                message="Payment verified successfully",
            )

        if order.is_paid:
            # A superseded attempt that never captured; the order stands
            return cls._already_verified(order)

        if verification.is_failed:
            reason = verification.gateway_message or "Payment was not successful"
            order = CheckoutReconciler.mark_failed(order, reason)
            return VerificationOutcome(
                verified=False,
                status=VerificationStatus.FAILED,
                order=order,
                message=reason,
            )

        return VerificationOutcome(
            verified=False,
            status=VerificationStatus.PENDING,
            order=order,
            message="Payment is still being processed",
        )

    @classmethod
    def _already_verified(cls, order: Order) -> VerificationOutcome:
        return VerificationOutcome(
            verified=True,
            status=VerificationStatus.SUCCESS,
            order=order,
            payment=cls._success_transaction(order),
            message="Payment already verified",
        )

    @staticmethod
    def _attempt_for(order: Order, reference: str) -> Transaction | None:
        """The payment attempt of the order whose reference the caller holds."""
        return Transaction.objects.filter(
            order=order, reference=reference, type=TransactionType.ORDER_PAYMENT
        ).first()

    @staticmethod
    def _success_transaction(order: Order) -> Transaction | None:
        return (
            Transaction.objects.filter(order=order, status=TransactionStatus.SUCCESS)
            .order_by("-processed_at")
            .first()
        )
