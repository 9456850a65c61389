"""
Staff order management: fulfilment updates and cancellation.

Fulfilment only moves forward along a paid order's path:
    CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED

Cancellation is for orders nothing has been paid against yet. It cascades
through the purchase chain (CheckoutReconciler.cancel_chain): the invoice
is cancelled, the checkout failed and open gateway attempts cancelled. A
gateway success that still arrives for the order is refunded to the
customer's wallet by PaymentVerificationService.

Usage:
    from payments.services import OrderService

    OrderService.update_status(admin, "ORD-1700000000000-ABC123", OrderStatus.SHIPPED)
    OrderService.cancel_order(admin, "ORD-1700000000000-ABC123", reason="Out of stock")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import PermissionDeniedError, ValidationError
from core.services import BaseService
from payments.exceptions import AlreadyProcessed, OrderNotFound
from payments.models import Invoice, Order
from payments.services.reconciler import CheckoutReconciler
from payments.state_machines import OrderStatus, apply_transitions

if TYPE_CHECKING:
    from authentication.models import User


FULFILMENT_TRANSITIONS = {
    OrderStatus.PROCESSING: "start_processing",
    OrderStatus.SHIPPED: "ship",
    OrderStatus.DELIVERED: "deliver",
}


def _ensure_staff(admin: User) -> None:
    if not admin.is_staff:
        raise PermissionDeniedError("Only staff can manage orders")


class OrderService(BaseService):
    """
    Staff side of the order lifecycle.

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def _locked_order(cls, order_number: str) -> Order:
        order = Order.objects.select_for_update().filter(order_number=order_number).first()
        if order is None:
            raise OrderNotFound(order_number)
        return order

    @classmethod
    def update_status(cls, admin: User, order_number: str, status: str) -> Order:
        """
        Move a paid order one step along fulfilment.

        Raises:
            PermissionDeniedError: admin is not staff
            ValidationError: status is not a fulfilment status
            OrderNotFound: Unknown order number
            InvalidStateTransitionError: The order is not at the preceding step
        """
        _ensure_staff(admin)
        transition = FULFILMENT_TRANSITIONS.get(status)
        if transition is None:
            raise ValidationError(
                "Status must be one of: " + ", ".join(FULFILMENT_TRANSITIONS),
                details={"field": "status", "status": status},
            )

        with cls.atomic():
            order = cls._locked_order(order_number)
            previous = order.status
            apply_transitions(order, transition)
            order.save()

        cls.get_logger().info(
            "Order status updated",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "from_status": previous,
                "to_status": order.status,
                "admin_id": str(admin.pk),
            },
        )
        return order

    @classmethod
    def cancel_order(cls, admin: User, order_number: str, reason: str = "") -> Order:
        """
        Cancel an unpaid order together with its invoice and checkout.

        Raises:
            PermissionDeniedError: admin is not staff
            OrderNotFound: Unknown order number
            AlreadyProcessed: The order is paid, already cancelled, or has
                verified bank transfers against its invoice
        """
        _ensure_staff(admin)

        with cls.atomic():
            order = cls._locked_order(order_number)
            if order.is_paid or order.status == OrderStatus.CANCELLED:
                raise AlreadyProcessed(
                    "Only unpaid orders can be cancelled",
                    details={
                        "order_number": order.order_number,
                        "status": order.status,
                        "payment_status": order.payment_status,
                    },
                )
            if Invoice.objects.filter(order=order, paid_amount__gt=0).exists():
                raise AlreadyProcessed(
                    "Order has verified bank transfers and cannot be cancelled",
                    details={"order_number": order.order_number},
                )

            CheckoutReconciler.cancel_chain(order, reason=reason or "Cancelled by staff")

        cls.get_logger().warning(
            "Order cancelled by staff",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "reason": order.failure_reason,
                "admin_id": str(admin.pk),
            },
        )
        return order
