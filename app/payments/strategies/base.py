"""
Abstract base strategy for checkout payments.

Each strategy handles one way of paying for a checkout (gateway
redirect, wallet, bank transfer). Strategies receive an already priced
cart and the authenticated user, go through the reconciler's single
resume-or-create protocol and report a CheckoutOutcome.

Usage:
    class MyCustomStrategy(PaymentStrategy):
        def process(self, user, cart):
            chain = CheckoutReconciler.resume_or_create(user, cart, self.payment_method)
            ...
            return CheckoutOutcome.pending(chain, message="Awaiting payment")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from authentication.models import User
    from payments.models import Invoice, Order
    from payments.services.pricing import PricedCart
    from payments.services.reconciler import PurchaseChain


# =============================================================================
# Parameter and Result Types
# =============================================================================


@dataclass
class SubmitCheckoutParams:
    """
    Parameters for submitting a checkout.

    Attributes:
        payment_method: PaymentMethod value (paystack, opay, wallet, bank_transfer)
        cart_items: Cart lines with product_id, title, quantity, unit_price
            and optional fixed_price / selected_unit
        shipping_address: Address dict, city required
        billing_address: Address dict, defaults to the shipping address
        discount: Discount in the major unit

    Example:
        params = SubmitCheckoutParams(
            payment_method="paystack",
            cart_items=[{"product_id": "sku-1", "title": "Rice", "quantity": 2, "unit_price": "5000"}],
            shipping_address={"street": "1 Marina", "city": "Lagos"},
        )
    """

    payment_method: str
    cart_items: list[dict[str, Any]]
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any] | None = None
    discount: Decimal = Decimal("0.00")

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not self.payment_method:
            raise ValueError("payment_method is required")


class OutcomeStatus:
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


@dataclass
class CheckoutOutcome:
    """
    Result of a checkout submission.

    Attributes:
        status: success (paid), pending (awaiting gateway or transfer) or failed
        order_number: Order the attempt paid for, when one exists
        redirect_url: Hosted gateway page (gateway methods only)
        reason: Failure reason or customer message
        error_code: Machine-readable failure code
        order: The Order, when one exists
        invoice: The Invoice, when one exists
        payment_reference: Gateway or wallet reference of the attempt
        is_retry: True when an unresolved order was resumed
        bank_transfer: Transfer instructions (bank transfer only)
    """

    status: str
    order_number: str | None = None
    redirect_url: str | None = None
    reason: str | None = None
    error_code: str | None = None
    order: Order | None = None
    invoice: Invoice | None = None
    payment_reference: str | None = None
    is_retry: bool = False
    bank_transfer: dict[str, Any] | None = field(default=None)

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def success(cls, chain: PurchaseChain, reference: str | None = None) -> CheckoutOutcome:
        return cls(
            status=OutcomeStatus.SUCCESS,
            order_number=chain.order.order_number,
            order=chain.order,
            invoice=chain.invoice,
            payment_reference=reference,
            is_retry=chain.is_retry,
        )

    @classmethod
    def pending(
        cls,
        chain: PurchaseChain,
        reason: str | None = None,
        redirect_url: str | None = None,
        reference: str | None = None,
        bank_transfer: dict[str, Any] | None = None,
    ) -> CheckoutOutcome:
        return cls(
            status=OutcomeStatus.PENDING,
            order_number=chain.order.order_number,
            redirect_url=redirect_url,
            reason=reason,
            order=chain.order,
            invoice=chain.invoice,
            payment_reference=reference,
            is_retry=chain.is_retry,
            bank_transfer=bank_transfer,
        )

    @classmethod
    def failed(
        cls,
        reason: str,
        error_code: str,
        chain: PurchaseChain | None = None,
    ) -> CheckoutOutcome:
        return cls(
            status=OutcomeStatus.FAILED,
            order_number=chain.order.order_number if chain else None,
            reason=reason,
            error_code=error_code,
            order=chain.order if chain else None,
            invoice=chain.invoice if chain else None,
            is_retry=chain.is_retry if chain else False,
        )


# =============================================================================
# Abstract Strategy
# =============================================================================


class PaymentStrategy(ABC):
    """
    Abstract base class for checkout payment strategies.

    - GatewayPaymentStrategy: Hosted redirect (Paystack, OPay)
    - WalletPaymentStrategy: Immediate debit of the customer's wallet
    - BankTransferPaymentStrategy: Manual transfer verified by staff

    The CheckoutOrchestrator picks the strategy from the submitted
    payment method. Subclasses must implement process().
    """

    def __init__(self, payment_method: str):
        self.payment_method = payment_method

    @abstractmethod
    def process(self, user: User, cart: PricedCart) -> CheckoutOutcome:
        """
        Pay for a priced cart.

        Args:
            user: Authenticated customer
            cart: Output of CartPricingService.price

        Returns:
            CheckoutOutcome. Expected payment failures (declined gateway,
            insufficient balance) are reported as failed outcomes, with
            the order left FAILED for a later retry.
        """
