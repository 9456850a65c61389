"""
Payments app for storefront checkout and payment reconciliation.

This app handles:
- Checkout, order and invoice lifecycle (resume, expire or create)
- Paystack and OPay hosted checkout
- Wallet payments, deposits and the wallet journal
- Bank transfer claims and staff verification
- Gateway webhook handling

Related apps:
    - authentication: User model that owns orders and wallets
    - toolkit: Outbound email for confirmations and refunds

Usage:
    from payments.services.checkout_orchestrator import CheckoutOrchestrator

    outcome = CheckoutOrchestrator.submit_checkout(request.user, params)
    if outcome.redirect_url:
        return redirect(outcome.redirect_url)

    # Gateway callback or webhook
    from payments.services import PaymentVerificationService

    PaymentVerificationService.verify_payment(reference, "paystack", user=request.user)
"""
