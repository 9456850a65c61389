"""
Hosted gateway strategy (Paystack, OPay).

Flow:
1. Resume or create the purchase chain
2. Initiate a charge for the amount due (the invoice balance) with a
   fresh PAY_<hex> reference (PAY_<hex>_RETRY on a resumed order)
3. Store the reference on the order and open a PENDING Transaction
4. Return the gateway redirect URL

The charge is settled later by PaymentVerificationService, either from
the customer's return to the storefront or from a gateway webhook.

A gateway error marks the order FAILED and is reported as a failed
outcome; the next checkout attempt resumes the same order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings

from payments.adapters import GatewayAdapter, InitiateParams, get_adapter
from payments.exceptions import GatewayError
from payments.references import gateway_reference
from payments.services.reconciler import CheckoutReconciler
from payments.strategies.base import CheckoutOutcome, PaymentStrategy

if TYPE_CHECKING:
    from authentication.models import User
    from payments.services.pricing import PricedCart

logger = logging.getLogger(__name__)


class GatewayPaymentStrategy(PaymentStrategy):
    """
    Strategy for hosted-checkout gateways.

    Dependency Injection:
        The adapter can be injected for testing. If not provided, the
        registered adapter for the payment method is used.

    Usage:
        strategy = GatewayPaymentStrategy(PaymentMethod.PAYSTACK)

        # Testing with mock adapter
        strategy = GatewayPaymentStrategy(PaymentMethod.OPAY, adapter=mock_adapter)
    """

    def __init__(self, payment_method: str, adapter: GatewayAdapter | None = None):
        super().__init__(payment_method)
        self.adapter = adapter or get_adapter(payment_method)

    def process(self, user: User, cart: PricedCart) -> CheckoutOutcome:
        chain = CheckoutReconciler.resume_or_create(user, cart, self.payment_method)
        order = chain.order
        reference = gateway_reference(is_retry=chain.is_retry)
        amount_due = CheckoutReconciler.amount_due(order)

        try:
            result = self.adapter.initiate(
                InitiateParams(
                    reference=reference,
                    amount=amount_due,
                    email=order.email or user.email,
                    currency=order.currency,
                    callback_url=f"{settings.FRONTEND_URL}/orders/{order.order_number}",
                    customer_name=user.display_name or user.email,
                    product_name=f"Order {order.order_number}",
                    metadata={
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "is_retry": chain.is_retry,
                    },
                )
            )
        except GatewayError as e:
            logger.warning(
                f"Gateway initiation failed: {e.message}",
                extra={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "reference": reference,
                    "provider": self.payment_method,
                    "error_code": e.error_code,
                },
            )
            chain.order = CheckoutReconciler.mark_failed(order, e.message)
            return CheckoutOutcome.failed(e.message, e.error_code, chain=chain)

        CheckoutReconciler.record_gateway_attempt(
            chain,
            provider=self.payment_method,
            reference=reference,
            provider_order_id=result.provider_order_id or "",
            provider_data=result.raw,
        )

        logger.info(
            "Gateway payment initiated",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "reference": reference,
                "provider": self.payment_method,
                "amount": str(amount_due),
                "is_retry": chain.is_retry,
            },
        )
        return CheckoutOutcome.pending(
            chain,
            reason="Redirect the customer to complete payment",
            redirect_url=result.redirect_url,
            reference=reference,
        )
