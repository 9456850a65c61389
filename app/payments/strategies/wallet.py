"""
Wallet strategy: pay for a checkout from the customer's stored balance.

Flow:
1. Pre-check the balance before any record is touched
2. Resume or create the purchase chain
3. In one atomic block: lock the order, debit the amount due (the
   invoice balance) into the store wallet and run the success transition
   with the debit reference. An order another request already paid is
   returned as is, without a second debit

If anything in step 3 fails the debit rolls back with the chain, and the
order is then marked FAILED with the reason.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction

from core.exceptions import BaseApplicationError
from payments.models import Checkout, Invoice, Order
from payments.services.reconciler import CheckoutReconciler
from payments.state_machines import PaymentMethod
from payments.strategies.base import CheckoutOutcome, PaymentStrategy
from payments.wallet.exceptions import WalletNotFound
from payments.wallet.services import WalletService

if TYPE_CHECKING:
    from authentication.models import User
    from payments.services.pricing import PricedCart

logger = logging.getLogger(__name__)


class WalletPaymentStrategy(PaymentStrategy):
    """
    Strategy for immediate wallet payments.

    The store is credited through the system wallet (WalletService.debit
    with to_user=None).
    """

    def __init__(self, payment_method: str = PaymentMethod.WALLET):
        super().__init__(payment_method)

    def process(self, user: User, cart: PricedCart) -> CheckoutOutcome:
        try:
            balance = WalletService.get_balance(user)
        except WalletNotFound as e:
            return CheckoutOutcome.failed(e.message, e.error_code)

        if not balance.is_active:
            return CheckoutOutcome.failed("Wallet is inactive", "WALLET_INACTIVE")
        if balance.balance < cart.total:
            return CheckoutOutcome.failed(
                f"Insufficient wallet balance. Available: {balance.balance}, required: {cart.total}",
                "INSUFFICIENT_BALANCE",
            )

        chain = CheckoutReconciler.resume_or_create(user, cart, self.payment_method)
        order = chain.order

        try:
            with transaction.atomic():
                # Held until commit; a concurrent submit for the same order waits here
                locked = Order.objects.select_for_update().get(pk=order.pk)
                debit = None
                if not locked.is_paid:
                    debit = WalletService.debit(
                        from_user=user,
                        to_user=None,
                        amount=CheckoutReconciler.amount_due(locked),
                        description=f"Payment for order {order.order_number}",
                        metadata={"order_id": str(order.id), "order_number": order.order_number},
                    )
                    locked = CheckoutReconciler.mark_paid(
                        locked,
                        provider=PaymentMethod.WALLET,
                        reference=debit.reference,
                        amount=debit.amount,
                        provider_data={
                            "balance_before": str(debit.balance_before),
                            "balance_after": str(debit.balance_after),
                            "out_reference": debit.out_entry.reference,
                            "in_reference": debit.in_entry.reference,
                        },
                        metadata={"is_retry": chain.is_retry},
                    )
                chain.order = locked
        except BaseApplicationError as e:
            logger.warning(
                f"Wallet payment failed: {e.message}",
                extra={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "user_id": str(user.pk),
                    "error_code": e.error_code,
                },
            )
            chain.order = CheckoutReconciler.mark_failed(order, e.message)
            return CheckoutOutcome.failed(e.message, e.error_code, chain=chain)
        except Exception as e:
            logger.error(
                f"Wallet payment aborted: {type(e).__name__}",
                extra={"order_id": str(order.id), "order_number": order.order_number},
                exc_info=True,
            )
            CheckoutReconciler.mark_failed(order, "Wallet payment could not be completed")
            raise

        chain.invoice = Invoice.objects.get(pk=chain.invoice.pk)
        chain.checkout = Checkout.objects.get(pk=chain.checkout.pk)
        if debit is None:
            logger.info(
                "Order already paid by a concurrent request",
                extra={"order_id": str(order.id), "order_number": order.order_number},
            )
            return CheckoutOutcome.success(chain, reference=chain.order.payment_id)

        logger.info(
            "Wallet payment completed",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "reference": debit.reference,
                "amount": str(debit.amount),
                "balance_after": str(debit.balance_after),
            },
        )
        return CheckoutOutcome.success(chain, reference=debit.reference)
