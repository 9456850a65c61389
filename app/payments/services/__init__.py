"""
Payment services for coordinating checkout, order and invoice operations.

This module provides:
- CartPricingService: Prices a submitted cart before anything is written
- CheckoutReconciler: Resume-or-create and the success/failure transitions
- PaymentVerificationService: Settles gateway payments from their references
- InvoicePaymentService: Records bank transfer claims against invoices
- ManualPaymentResolver: Staff verification or rejection of those claims
- OrderService: Staff fulfilment updates and cancellation of orders
- PaymentNotifier: Post-commit customer emails

Usage:
    from payments.services import PaymentVerificationService

    outcome = PaymentVerificationService.verify_payment(
        reference="PAY_0123456789ABCDEF",
        method="paystack",
        user=request.user,
    )

    # Checkout submission lives in its own module
    from payments.services.checkout_orchestrator import CheckoutOrchestrator
"""

from payments.services.invoice_payments import (
    BANK_TRANSFER_RECORDED_MESSAGE,
    InvoicePaymentService,
    ManualPaymentResolver,
)
from payments.services.notifier import PaymentNotifier
from payments.services.orders import OrderService
from payments.services.pricing import CartPricingService, PricedCart, PricedItem
from payments.services.reconciler import CheckoutReconciler, PurchaseChain
from payments.services.verification import (
    PaymentVerificationService,
    VerificationOutcome,
    VerificationStatus,
)

__all__ = [
    "BANK_TRANSFER_RECORDED_MESSAGE",
    "CartPricingService",
    "CheckoutReconciler",
    "InvoicePaymentService",
    "ManualPaymentResolver",
    "OrderService",
    "PaymentNotifier",
    "PaymentVerificationService",
    "PricedCart",
    "PricedItem",
    "PurchaseChain",
    "VerificationOutcome",
    "VerificationStatus",
]
