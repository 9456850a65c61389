"""
Bank transfer strategy.

The checkout only creates (or resumes) the purchase chain and returns the
transfer instructions. The customer then records the transfer against the
invoice (InvoicePaymentService.record_manual_payment) and staff verify it
(ManualPaymentResolver.resolve).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django.conf import settings

from payments.services.reconciler import CheckoutReconciler
from payments.state_machines import PaymentMethod
from payments.strategies.base import CheckoutOutcome, PaymentStrategy
from toolkit.helpers import format_naira

if TYPE_CHECKING:
    from authentication.models import User
    from payments.models import Order
    from payments.services.pricing import PricedCart

logger = logging.getLogger(__name__)

BANK_TRANSFER_MESSAGE = "Order created. Complete your bank transfer to confirm it."


def bank_transfer_instructions(order: Order) -> dict[str, Any]:
    """Account details and steps shown to the customer for an order."""
    return {
        "amount": str(order.total),
        "reference": order.order_number,
        "accounts": settings.BANK_TRANSFER_ACCOUNTS,
        "instructions": [
            f"Transfer {format_naira(order.total)} to any of the accounts above",
            f"Use your order number {order.order_number} as the payment reference",
            f"Send your payment receipt to {settings.COMPANY_EMAIL}",
            "Payment will be verified and your order confirmed within 24 hours",
        ],
    }


class BankTransferPaymentStrategy(PaymentStrategy):
    """Strategy for manual bank transfers."""

    def __init__(self, payment_method: str = PaymentMethod.BANK_TRANSFER):
        super().__init__(payment_method)

    def process(self, user: User, cart: PricedCart) -> CheckoutOutcome:
        chain = CheckoutReconciler.resume_or_create(user, cart, self.payment_method)

        logger.info(
            "Bank transfer order awaiting payment",
            extra={
                "order_id": str(chain.order.id),
                "order_number": chain.order.order_number,
                "amount": str(chain.order.total),
                "is_retry": chain.is_retry,
            },
        )
        return CheckoutOutcome.pending(
            chain,
            reason=BANK_TRANSFER_MESSAGE,
            bank_transfer=bank_transfer_instructions(chain.order),
        )
