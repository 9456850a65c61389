"""
Checkout orchestrator: the entry point for submitting a checkout.

The orchestrator:
- Routes the submission to the strategy registered for its payment method
- Prices the cart once, before any record is written
- Ensures consistent error handling and logging

Usage:
    from payments.services.checkout_orchestrator import CheckoutOrchestrator
    from payments.strategies import SubmitCheckoutParams

    outcome = CheckoutOrchestrator.submit_checkout(
        request.user,
        SubmitCheckoutParams(
            payment_method="paystack",
            cart_items=cart_items,
            shipping_address={"street": "1 Marina", "city": "Lagos"},
        ),
    )

    if outcome.status == "pending":
        redirect_url = outcome.redirect_url

Note:
    Not re-exported from payments.services; the strategies import the
    reconciler from there.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError
from core.services import BaseService
from payments.exceptions import UnsupportedPaymentMethod
from payments.services.pricing import CartPricingService
from payments.state_machines import PaymentMethod
from payments.strategies import (
    BankTransferPaymentStrategy,
    CheckoutOutcome,
    GatewayPaymentStrategy,
    OutcomeStatus,
    SubmitCheckoutParams,
    WalletPaymentStrategy,
)

if TYPE_CHECKING:
    from authentication.models import User
    from payments.strategies.base import PaymentStrategy


class CheckoutOrchestrator(BaseService):
    """
    Central coordinator for checkout submissions.

    Strategy Registry:
        - OPAY, PAYSTACK: GatewayPaymentStrategy (hosted redirect)
        - WALLET: WalletPaymentStrategy (immediate debit)
        - BANK_TRANSFER: BankTransferPaymentStrategy (manual verification)

    All methods are class methods - no instance state is maintained.
    """

    # Strategy registry - maps payment method to strategy class
    STRATEGIES: dict[str, type[PaymentStrategy]] = {
        PaymentMethod.OPAY: GatewayPaymentStrategy,
        PaymentMethod.PAYSTACK: GatewayPaymentStrategy,
        PaymentMethod.WALLET: WalletPaymentStrategy,
        PaymentMethod.BANK_TRANSFER: BankTransferPaymentStrategy,
    }

    @classmethod
    def get_strategy(cls, payment_method: str) -> PaymentStrategy:
        """
        Get a strategy instance for the given payment method.

        Raises:
            UnsupportedPaymentMethod: If the method is not registered
        """
        strategy_class = cls.STRATEGIES.get(payment_method)
        if not strategy_class:
            supported = ", ".join(cls.STRATEGIES.keys())
            raise UnsupportedPaymentMethod(
                f"Invalid payment method. Supported methods: {supported}",
                details={"payment_method": payment_method},
            )
        return strategy_class(payment_method)

    @classmethod
    def submit_checkout(cls, user: User, params: SubmitCheckoutParams) -> CheckoutOutcome:
        """
        Price the cart and pay for it with the chosen method.

        Args:
            user: Authenticated customer, passed in by the view
            params: Submitted checkout

        Returns:
            CheckoutOutcome with status success, pending or failed

        Raises:
            UnsupportedPaymentMethod: Unknown payment method
            CheckoutValidationError: Empty cart or missing delivery city
        """
        strategy = cls.get_strategy(params.payment_method)
        cart = CartPricingService.price(
            params.cart_items,
            params.shipping_address,
            billing_address=params.billing_address,
            discount=params.discount,
        )

        cls.get_logger().info(
            "Submitting checkout",
            extra={
                "user_id": str(user.pk),
                "payment_method": params.payment_method,
                "amount": str(cart.total),
                "item_count": len(cart.items),
            },
        )

        try:
            outcome = strategy.process(user, cart)
        except BaseApplicationError:
            raise
        except Exception as e:
            cls.get_logger().error(
                f"Unexpected error submitting checkout: {type(e).__name__}",
                extra={"user_id": str(user.pk), "payment_method": params.payment_method},
                exc_info=True,
            )
            return CheckoutOutcome.failed(
                "An unexpected error occurred",
                error_code="CHECKOUT_ERROR",
            )

        log = cls.get_logger().warning if outcome.status == OutcomeStatus.FAILED else cls.get_logger().info
        log(
            f"Checkout {outcome.status}",
            extra={
                "user_id": str(user.pk),
                "order_number": outcome.order_number,
                "payment_method": params.payment_method,
                "error_code": outcome.error_code,
                "is_retry": outcome.is_retry,
            },
        )
        return outcome
