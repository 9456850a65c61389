"""
URL configuration for the payments app.

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments import views
from payments.webhooks.views import opay_webhook, paystack_webhook

app_name = "payments"

urlpatterns = [
    # Checkout
    path("checkout/", views.CheckoutView.as_view(), name="checkout"),
    path("verify/", views.VerifyPaymentView.as_view(), name="verify_payment"),
    # Orders
    path("orders/", views.OrderListView.as_view(), name="order_list"),
    path("orders/<str:order_number>/", views.OrderDetailView.as_view(), name="order_detail"),
    # Invoices
    path(
        "invoices/payments/",
        views.InvoicePaymentCreateView.as_view(),
        name="invoice_payment_create",
    ),
    path(
        "invoices/<str:invoice_ref>/payments/",
        views.InvoicePaymentListView.as_view(),
        name="invoice_payment_list",
    ),
    path(
        "admin/invoice-payments/<str:payment_id>/resolve/",
        views.ResolveInvoicePaymentView.as_view(),
        name="invoice_payment_resolve",
    ),
    path(
        "admin/orders/<str:order_number>/",
        views.AdminOrderView.as_view(),
        name="admin_order",
    ),
    # Wallet
    path("wallet/", views.WalletView.as_view(), name="wallet"),
    path("wallet/transactions/", views.WalletTransactionsView.as_view(), name="wallet_transactions"),
    path("wallet/deposits/", views.DepositInitView.as_view(), name="wallet_deposit"),
    path("wallet/deposits/verify/", views.DepositVerifyView.as_view(), name="wallet_deposit_verify"),
    # Webhook endpoints
    path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
    path("webhooks/opay/", opay_webhook, name="opay_webhook"),
]
