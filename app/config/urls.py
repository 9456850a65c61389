"""
Root URL configuration for the storefront payments backend.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/payments/              - Payment endpoints
        checkout/                  - Submit checkout (POST) / list checkouts (GET)
        verify/                    - Verify a gateway payment by reference
        orders/                    - Order history
        orders/{order_number}/     - Order detail with invoice
        invoices/payments/         - Record a bank transfer claim
        invoices/{ref}/payments/   - Invoice payment history
        admin/invoice-payments/{id}/resolve/ - Verify or reject a claim (staff)
        admin/orders/{order_number}/ - Advance fulfilment (PATCH) / cancel (DELETE) (staff)
        wallet/                    - Wallet balance
        wallet/transactions/       - Wallet history
        wallet/deposits/           - Start a wallet top-up
        wallet/deposits/verify/    - Confirm a wallet top-up
        webhooks/paystack/         - Paystack webhook endpoint (POST)
        webhooks/opay/             - OPay webhook endpoint (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Storefront Payments Admin"
admin.site.site_title = "Payments Admin"
admin.site.index_title = "Orders, invoices and wallets"
