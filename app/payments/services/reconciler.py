"""
Checkout/Order/Invoice reconciler.

Owns every multi-record write of a purchase chain:

- resume_or_create: find the user's unresolved chain and resume it, expire
  it when stale, or create a fresh one
- mark_paid: the single success transition (order, checkout, invoice,
  transaction and invoice payment together)
- mark_failed: the failure transition (invoice left as is)
- cancel_chain: cancel an unpaid order together with its invoice,
  checkout and open transactions
- refund_late_payment: record a capture the order can no longer use and
  return the money to the customer's wallet

Each transition runs inside one atomic block and re-reads the rows it
changes with select_for_update, so a crash or a concurrent request can
never leave an Order PAID without its SUCCESS Transaction. The refund
commits the capture before it credits the wallet.

Usage:
    from payments.services import CartPricingService, CheckoutReconciler

    cart = CartPricingService.price(items, shipping_address)
    chain = CheckoutReconciler.resume_or_create(user, cart, PaymentMethod.PAYSTACK)

    # later, from verification or a webhook
    CheckoutReconciler.mark_paid(
        chain.order,
        provider=PaymentMethod.PAYSTACK,
        reference="PAY_0123456789ABCDEF",
        amount=chain.order.total,
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone

from core.services import BaseService
from payments.models import (
    Checkout,
    CheckoutItem,
    Invoice,
    InvoiceItem,
    InvoicePayment,
    Order,
    OrderItem,
    Transaction,
)
from payments.exceptions import RefundFailed
from payments.models.transaction import OPEN_STATES
from payments.services.notifier import PaymentNotifier
from payments.state_machines import (
    CheckoutPaymentStatus,
    CheckoutStatus,
    InvoicePaymentStatus,
    InvoicePaymentType,
    InvoiceStatus,
    OrderPaymentStatus,
    OrderStatus,
    PaymentMethod,
    TransactionStatus,
    TransactionType,
    WalletTransactionType,
    apply_transitions,
    can_apply,
)
from payments.wallet.exceptions import WalletInactive, WalletNotFound
from payments.wallet.services import WalletService

if TYPE_CHECKING:
    from authentication.models import User
    from payments.services.pricing import PricedCart


# =============================================================================
# Invoice text
# =============================================================================

INVOICE_TERMS = {
    PaymentMethod.PAYSTACK: "Payment processed via Paystack gateway.",
    PaymentMethod.OPAY: "Payment processed via Opay gateway.",
    PaymentMethod.WALLET: "Payment processed via wallet balance.",
    PaymentMethod.BANK_TRANSFER: (
        "Payment via bank transfer. Order will be processed once payment is verified."
    ),
}


def invoice_footer() -> str:
    return (
        "Thank you for your business! "
        f"Contact us at {settings.COMPANY_EMAIL} for any questions."
    )


@dataclass
class PurchaseChain:
    """
    The records of one purchase attempt.

    Attributes:
        order: Anchor of the chain
        checkout: Session that spawned the order
        invoice: Bill for the order
        is_retry: True when an unresolved chain was resumed
    """

    order: Order
    checkout: Checkout
    invoice: Invoice
    is_retry: bool = False


class CheckoutReconciler(BaseService):
    """
    Keeps Checkout, Order, Invoice and Transaction consistent.

    All methods are class methods - no instance state is maintained.
    """

    # =========================================================================
    # Resume or create
    # =========================================================================

    @classmethod
    def resume_or_create(
        cls,
        user: User,
        cart: PricedCart,
        payment_method: str,
        now: datetime | None = None,
    ) -> PurchaseChain:
        """
        Return the chain this checkout attempt should pay for.

        Steps (one atomic block, serialized per user on the user row):
        1. Find the newest unresolved order of the user
        2. Younger than CHECKOUT_STALE_AFTER_HOURS: resume it. The existing
           totals are kept and missing checkout/invoice rows are rebuilt
           from the order
        3. Older, with nothing paid against its invoice: expire it (cancel
           order, invoice and open transactions, fail the checkout, drop
           orphan checkouts), then fall through
        4. Create a new checkout, order and invoice from the priced cart

        Args:
            user: Authenticated customer
            cart: Output of CartPricingService.price
            payment_method: PaymentMethod value of this attempt
            now: Clock override

        Returns:
            PurchaseChain with is_retry set when an order was resumed
        """
        now = now or timezone.now()
        stale_before = now - timedelta(hours=settings.CHECKOUT_STALE_AFTER_HOURS)

        with cls.atomic():
            get_user_model().objects.select_for_update().get(pk=user.pk)

            existing = (
                Order.objects.select_for_update()
                .filter(user=user)
                .unresolved()
                .order_by("-created_at")
                .first()
            )

            if existing is not None:
                if existing.created_at > stale_before or cls._has_paid_instalments(existing):
                    chain = cls._resume(existing, cart, payment_method)
                    cls.get_logger().info(
                        "Resumed unresolved order",
                        extra={
                            "order_id": str(existing.id),
                            "order_number": existing.order_number,
                            "user_id": str(user.pk),
                        },
                    )
                    return chain
                cls._expire(existing)

            chain = cls._create(user, cart, payment_method)

        cls.get_logger().info(
            "Created purchase chain",
            extra={
                "order_id": str(chain.order.id),
                "order_number": chain.order.order_number,
                "user_id": str(user.pk),
                "amount": str(chain.order.total),
            },
        )
        return chain

    @staticmethod
    def _has_paid_instalments(order: Order) -> bool:
        """Verified bank transfers keep a chain resumable past the staleness window."""
        return Invoice.objects.filter(order=order, paid_amount__gt=0).exists()

    @classmethod
    def _resume(cls, order: Order, cart: PricedCart, payment_method: str) -> PurchaseChain:
        transitions = []
        if order.status == OrderStatus.FAILED:
            transitions.append("reopen")
        if order.payment_status == OrderPaymentStatus.FAILED:
            transitions.append("reset_payment")
        if transitions:
            apply_transitions(order, *transitions)
        order.payment_method = payment_method
        order.save()

        checkout = Checkout.objects.select_for_update().filter(order=order).first()
        if checkout is None:
            checkout = cls._checkout_from_order(order, cart)
        else:
            transitions = []
            if checkout.status == CheckoutStatus.FAILED:
                transitions.append("reopen")
            if checkout.payment_status == CheckoutPaymentStatus.FAILED:
                transitions.append("reset_payment")
            if transitions:
                apply_transitions(checkout, *transitions)
            checkout.payment_method = payment_method
            checkout.save()

        invoice = Invoice.objects.select_for_update().filter(order=order).first()
        if invoice is None:
            invoice = cls._invoice_from_order(order, cart.billing_address)
        else:
            invoice.payment_method = payment_method
            invoice.terms = INVOICE_TERMS.get(payment_method, "")
            invoice.save(update_fields=["payment_method", "terms", "updated_at"])

        return PurchaseChain(order=order, checkout=checkout, invoice=invoice, is_retry=True)

    @classmethod
    def _expire(cls, order: Order) -> None:
        cls.cancel_chain(order)

        orphans, _ = Checkout.objects.filter(user_id=order.user_id, order__isnull=True).delete()

        cls.get_logger().info(
            "Expired stale order",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "orphan_checkouts_deleted": orphans,
            },
        )

    @classmethod
    def cancel_chain(cls, order: Order, reason: str = "") -> Order:
        """
        Cancel an unpaid order and everything attached to it.

        Order -> CANCELLED / CANCELLED, Invoice -> CANCELLED, Checkout ->
        FAILED and open Transactions -> CANCELLED. The caller holds the
        order row lock.

        Raises:
            InvalidStateTransitionError: The order is paid or already cancelled
        """
        transitions = ["cancel"]
        if can_apply(order, "cancel_payment"):
            transitions.append("cancel_payment")
        apply_transitions(order, *transitions)
        if reason:
            order.failure_reason = reason
        order.save()

        invoice = Invoice.objects.select_for_update().filter(order=order).first()
        if invoice is not None and can_apply(invoice, "cancel"):
            apply_transitions(invoice, "cancel")
            invoice.save()

        for checkout in Checkout.objects.select_for_update().filter(order=order):
            transitions = [
                name for name in ("fail", "mark_payment_failed") if can_apply(checkout, name)
            ]
            if transitions:
                apply_transitions(checkout, *transitions)
                checkout.save()

        references = [ref for ref in (order.payment_id, order.transaction_id) if ref]
        open_transactions = Transaction.objects.select_for_update().filter(
            Q(order=order) | Q(reference__in=references),
            status__in=OPEN_STATES,
            reconciled=False,
        )
        for txn in open_transactions:
            apply_transitions(txn, "cancel")
            txn.save()
        return order

    @classmethod
    def _create(cls, user: User, cart: PricedCart, payment_method: str) -> PurchaseChain:
        order = Order.objects.create(
            user=user,
            email=user.email,
            phone=cart.shipping_address.get("phone", ""),
            shipping_address=cart.shipping_address,
            payment_method=payment_method,
            **cart.amount_fields(),
        )
        OrderItem.objects.bulk_create(
            OrderItem(order=order, selected_unit=item.selected_unit, **item.as_fields())
            for item in cart.items
        )

        checkout = Checkout.objects.create(
            user=user,
            order=order,
            shipping_address=cart.shipping_address,
            billing_address=cart.billing_address,
            payment_method=payment_method,
            expires_at=order.created_at + timedelta(hours=settings.CHECKOUT_STALE_AFTER_HOURS),
            **cart.amount_fields(),
        )
        CheckoutItem.objects.bulk_create(
            CheckoutItem(
                checkout=checkout,
                product_id=item.product_id,
                title=item.title,
                quantity=item.quantity,
                unit_price=item.unit_price,
                fixed_price=item.fixed_price,
                selected_unit=item.selected_unit,
                total_price=item.total_price,
            )
            for item in cart.items
        )

        invoice = cls._invoice_from_order(order, cart.billing_address)
        return PurchaseChain(order=order, checkout=checkout, invoice=invoice, is_retry=False)

    @classmethod
    def _checkout_from_order(cls, order: Order, cart: PricedCart) -> Checkout:
        checkout = Checkout(
            user_id=order.user_id,
            order=order,
            shipping_address=order.shipping_address,
            billing_address=cart.billing_address or order.shipping_address,
            payment_method=order.payment_method,
            expires_at=order.created_at + timedelta(hours=settings.CHECKOUT_STALE_AFTER_HOURS),
        )
        checkout.copy_amounts_from(order)
        checkout.save()
        CheckoutItem.objects.bulk_create(
            CheckoutItem(
                checkout=checkout,
                product_id=item.product_id,
                title=item.title,
                quantity=item.quantity,
                unit_price=item.unit_price,
                selected_unit=item.selected_unit,
                total_price=item.total_price,
            )
            for item in order.items.all()
        )
        return checkout

    @classmethod
    def _invoice_from_order(cls, order: Order, billing_address: dict[str, Any] | None) -> Invoice:
        """Issue the invoice for an order, numbered after it."""
        user = order.user
        issue_date = timezone.localdate()
        invoice = Invoice(
            order=order,
            user=user,
            invoice_number=order.order_number,
            customer_name=user.display_name or user.email,
            customer_email=order.email or user.email,
            customer_phone=order.phone,
            billing_address=billing_address or order.shipping_address,
            company_name=settings.COMPANY_NAME,
            company_address=settings.COMPANY_ADDRESS,
            company_phone=settings.COMPANY_PHONE,
            company_email=settings.COMPANY_EMAIL,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=settings.INVOICE_DUE_DAYS),
            payment_method=order.payment_method,
            terms=INVOICE_TERMS.get(order.payment_method, ""),
            footer=invoice_footer(),
        )
        invoice.copy_amounts_from(order)
        invoice.recalculate()
        invoice.save()
        InvoiceItem.objects.bulk_create(
            InvoiceItem(
                invoice=invoice,
                product_id=item.product_id,
                title=item.title,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for item in order.items.all()
        )
        return invoice

    # =========================================================================
    # Gateway attempt bookkeeping
    # =========================================================================

    @staticmethod
    def amount_due(order: Order) -> Decimal:
        """
        What a checkout attempt should charge for the order.

        The invoice balance, so bank transfers already verified against the
        invoice are not charged again. The order total when no invoice exists.
        """
        invoice = Invoice.objects.filter(order=order).first()
        if invoice is None:
            return order.total
        return invoice.balance_amount

    @classmethod
    def record_gateway_attempt(
        cls,
        chain: PurchaseChain,
        provider: str,
        reference: str,
        provider_order_id: str = "",
        provider_data: dict[str, Any] | None = None,
    ) -> Transaction:
        """
        Store a gateway reference on the chain and open its Transaction.

        The order's payment_id/transaction_id point at the new reference and
        the checkout moves to payment PENDING.
        """
        with cls.atomic():
            order = Order.objects.select_for_update().get(pk=chain.order.pk)
            order.payment_id = reference
            order.transaction_id = provider_order_id or reference
            order.payment_method = provider
            order.save(update_fields=["payment_id", "transaction_id", "payment_method", "updated_at"])

            checkout = Checkout.objects.select_for_update().get(pk=chain.checkout.pk)
            if checkout.payment_status != CheckoutPaymentStatus.PENDING:
                apply_transitions(checkout, "await_payment")
                checkout.save()

            # Only the newest attempt of an order stays open
            superseded = Transaction.objects.select_for_update().filter(
                order=order,
                status__in=OPEN_STATES,
                reconciled=False,
            )
            for previous in superseded:
                apply_transitions(previous, "cancel")
                previous.save()

            txn = Transaction.objects.create(
                reference=reference,
                provider=provider,
                user_id=order.user_id,
                order=order,
                type=TransactionType.ORDER_PAYMENT,
                amount=cls.amount_due(order),
                currency=order.currency,
                description=f"Payment for order {order.order_number}",
                metadata=cls._transaction_metadata(order, provider, chain.is_retry),
                provider_data=provider_data or {},
            )

        chain.order = order
        chain.checkout = checkout
        return txn

    # =========================================================================
    # Success transition
    # =========================================================================

    @classmethod
    def mark_paid(
        cls,
        order: Order,
        provider: str,
        reference: str,
        amount: Decimal | None = None,
        provider_data: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Order:
        """
        Settle a purchase chain.

        Inside one atomic block:
        - Order -> CONFIRMED / PAID
        - Checkout -> COMPLETED / PAID
        - Transaction for the reference -> SUCCESS, reconciled
          (created SUCCESS when none is open). Other open attempts of the
          order are cancelled
        - A PAID InvoicePayment for the outstanding balance, linked to the
          Transaction, and Invoice -> PAID. An invoice that verified bank
          transfers already settled keeps its amounts and its PAID payments
          are linked instead

        Calling it again for an order that is already PAID returns the order
        unchanged, so gateway verification and webhooks can race safely.

        Returns:
            The (reloaded) Order
        """
        with cls.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            if locked.is_paid:
                cls.get_logger().info(
                    "Order already paid",
                    extra={"order_id": str(locked.id), "reference": reference},
                )
                return locked

            amount = amount if amount is not None else locked.total

            apply_transitions(locked, "confirm", "mark_payment_paid")
            if not locked.payment_id:
                locked.payment_id = reference
            locked.payment_method = provider
            locked.save()

            checkout = Checkout.objects.select_for_update().filter(order=locked).first()
            if checkout is not None:
                transitions = [
                    name for name in ("complete", "mark_payment_paid") if can_apply(checkout, name)
                ]
                apply_transitions(checkout, *transitions)
                checkout.save()

            txn = cls._settle_transaction(locked, provider, reference, amount, provider_data, metadata)

            superseded = Transaction.objects.select_for_update().filter(
                order=locked,
                status__in=OPEN_STATES,
                reconciled=False,
            ).exclude(pk=txn.pk)
            for other in superseded:
                apply_transitions(other, "cancel")
                other.save()

            invoice = Invoice.objects.select_for_update().filter(order=locked).first()
            if invoice is not None:
                if invoice.status == InvoiceStatus.PAID:
                    invoice.payments.filter(
                        status=InvoicePaymentStatus.PAID, transaction__isnull=True
                    ).update(transaction=txn)
                else:
                    # Never record more than the invoice still owes
                    applied = min(amount, invoice.balance_amount)
                    InvoicePayment.objects.create(
                        invoice=invoice,
                        transaction=txn,
                        amount=applied,
                        payment_method=provider,
                        payment_type=(
                            InvoicePaymentType.FULL
                            if applied == invoice.balance_amount
                            else InvoicePaymentType.PARTIAL
                        ),
                        status=InvoicePaymentStatus.PAID,
                        external_transaction_id=txn.transaction_id,
                        reference=reference,
                        paid_at=timezone.now(),
                        notes=f"Automatic payment via {PaymentMethod(provider).label}",
                    )
                    invoice.paid_amount += applied
                    apply_transitions(invoice, "apply_payment")
                invoice.payment_reference = reference
                invoice.payment_status = OrderPaymentStatus.PAID
                invoice.save()

            PaymentNotifier.order_confirmed(locked)

        cls.get_logger().info(
            "Order paid",
            extra={
                "order_id": str(locked.id),
                "order_number": locked.order_number,
                "reference": reference,
                "provider": provider,
                "amount": str(amount),
            },
        )
        return locked

    @classmethod
    def _settle_transaction(
        cls,
        order: Order,
        provider: str,
        reference: str,
        amount: Decimal,
        provider_data: dict[str, Any] | None,
        metadata: dict[str, Any] | None,
    ) -> Transaction:
        txn = Transaction.objects.select_for_update().filter(reference=reference).first()
        if txn is None:
            txn = Transaction(
                reference=reference,
                provider=provider,
                user_id=order.user_id,
                order=order,
                type=TransactionType.ORDER_PAYMENT,
                amount=amount,
                currency=order.currency,
                description=f"Payment for order {order.order_number}",
                status=TransactionStatus.SUCCESS,
                processed_at=timezone.now(),
            )
        else:
            apply_transitions(txn, "succeed")
            txn.order = order

        txn.metadata = {**cls._transaction_metadata(order, provider), **txn.metadata, **(metadata or {})}
        if provider_data:
            txn.provider_data = provider_data
        txn.mark_reconciled()
        txn.save()
        return txn

    # =========================================================================
    # Captures the order cannot use
    # =========================================================================

    @classmethod
    def refund_late_payment(
        cls,
        order: Order,
        provider: str,
        reference: str,
        amount: Decimal,
        provider_data: dict[str, Any] | None = None,
    ) -> Transaction:
        """
        Record a gateway capture the order can no longer use and refund it.

        Happens when the order was cancelled (expired or by staff) before the
        gateway reported the payment, or when another attempt already paid
        the order. The order keeps its state.

        The capture is committed first as a reconciled SUCCESS Transaction.
        The same amount is then credited to the customer's wallet as a
        REFUND in a second atomic block, so a failed credit never loses the
        record of the money taken.

        Returns:
            The REFUND Transaction (the existing one on repeat calls)

        Raises:
            RefundFailed: The wallet could not be credited. A repeat call
                retries the credit
        """
        refund_reference = f"{reference}_REFUND"

        with cls.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            existing = Transaction.objects.filter(reference=refund_reference).first()
            if existing is not None:
                return existing

            recorded = Transaction.objects.filter(
                reference=reference, status=TransactionStatus.SUCCESS
            ).exists()
            if not recorded:
                cls._settle_transaction(locked, provider, reference, amount, provider_data, None)

        if locked.status == OrderStatus.CANCELLED:
            description = f"Refund for cancelled order {locked.order_number}"
        else:
            description = f"Refund for duplicate payment on order {locked.order_number}"

        try:
            with cls.atomic():
                WalletService.credit(
                    locked.user,
                    amount,
                    description=description,
                    type=WalletTransactionType.REFUND,
                    reference=refund_reference,
                    metadata={"order_number": locked.order_number, "charge_reference": reference},
                )
                refund = Transaction.objects.create(
                    reference=refund_reference,
                    provider=PaymentMethod.WALLET,
                    user_id=locked.user_id,
                    order=locked,
                    type=TransactionType.REFUND,
                    amount=amount,
                    currency=locked.currency,
                    status=TransactionStatus.SUCCESS,
                    processed_at=timezone.now(),
                    reconciled=True,
                    reconciled_at=timezone.now(),
                    description=description,
                    metadata=cls._transaction_metadata(locked, provider),
                )

                PaymentNotifier.refund_issued(locked, amount)
        except (WalletInactive, WalletNotFound) as e:
            cls.get_logger().error(
                f"Refund could not be credited: {e.message}",
                extra={
                    "order_id": str(locked.id),
                    "order_number": locked.order_number,
                    "reference": reference,
                    "amount": str(amount),
                    "error_code": e.error_code,
                },
            )
            raise RefundFailed(reference, reason=e.message) from e

        cls.get_logger().warning(
            "Refunded unusable payment",
            extra={
                "order_id": str(locked.id),
                "order_number": locked.order_number,
                "order_status": locked.status,
                "reference": reference,
                "amount": str(amount),
            },
        )
        return refund

    # =========================================================================
    # Failure transition
    # =========================================================================

    @classmethod
    def mark_failed(cls, order: Order, reason: str) -> Order:
        """
        Record a failed payment attempt.

        Order and Checkout move to FAILED/FAILED and the attempt's open
        Transactions fail. The Invoice keeps its state so the customer can
        retry against the same bill. A no-op for orders that are already
        failed, paid or cancelled.
        """
        with cls.atomic():
            locked = Order.objects.select_for_update().get(pk=order.pk)
            if locked.status != OrderStatus.PENDING and locked.payment_status != OrderPaymentStatus.PENDING:
                return locked

            transitions = [
                name for name in ("fail", "mark_payment_failed") if can_apply(locked, name)
            ]
            apply_transitions(locked, *transitions)
            locked.failure_reason = reason
            locked.save()

            checkout = Checkout.objects.select_for_update().filter(order=locked).first()
            if checkout is not None:
                transitions = [
                    name for name in ("fail", "mark_payment_failed") if can_apply(checkout, name)
                ]
                if transitions:
                    apply_transitions(checkout, *transitions)
                    checkout.save()

            references = [ref for ref in (locked.payment_id, locked.transaction_id) if ref]
            pending = Transaction.objects.select_for_update().filter(
                Q(order=locked) | Q(reference__in=references),
                status__in=OPEN_STATES,
                reconciled=False,
            )
            for txn in pending:
                apply_transitions(txn, "fail")
                txn.metadata = {**txn.metadata, "failure_reason": reason}
                txn.save()

        cls.get_logger().warning(
            "Order payment failed",
            extra={
                "order_id": str(locked.id),
                "order_number": locked.order_number,
                "reason": reason,
            },
        )
        return locked

    @staticmethod
    def _transaction_metadata(order: Order, provider: str, is_retry: bool = False) -> dict[str, Any]:
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "payment_method": provider,
            "is_retry": is_retry,
            "customer_email": order.email,
        }
