"""
Pytest fixtures for payment tests.

The delivery fee is zeroed for every test in this package so cart totals
equal the sum of their lines. Gateway adapters are MagicMocks; nothing
here talks to Paystack or OPay.

Usage:
    def test_wallet_payment(user, fund_wallet, cart_for):
        fund_wallet(user, "5000.00")
        cart = cart_for("3000.00")
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from rest_framework.test import APIClient

from payments.adapters import (
    GatewayAdapter,
    GatewayStatus,
    GatewayVerification,
    InitiateResult,
)
from payments.services import CartPricingService, CheckoutReconciler
from payments.state_machines import PaymentMethod
from payments.tests.factories import StaffUserFactory, UserFactory
from payments.wallet.models import Wallet

SHIPPING_ADDRESS = {"street": "12 Admiralty Way", "city": "Lagos", "state": "Lagos", "phone": "08030000000"}


@pytest.fixture(autouse=True)
def no_delivery_fee(settings):
    settings.DELIVERY_FEE = Decimal("0.00")


# =============================================================================
# Users and Wallets
# =============================================================================


@pytest.fixture
def user(db):
    """Customer; the post_save signal gives it an empty wallet."""
    return UserFactory()


@pytest.fixture
def other_user(db):
    return UserFactory()


@pytest.fixture
def staff_user(db):
    return StaffUserFactory()


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user) -> APIClient:
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def staff_client(staff_user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def fund_wallet(db):
    """Set a user's wallet balance directly."""

    def _fund(user, amount) -> Wallet:
        Wallet.objects.filter(user=user).update(balance=Decimal(amount))
        return Wallet.objects.get(user=user)

    return _fund


# =============================================================================
# Carts and Purchase Chains
# =============================================================================


def cart_items(total: str) -> list[dict]:
    return [
        {
            "product_id": "sku-rice-50kg",
            "title": "Rice 50kg",
            "quantity": 1,
            "unit_price": total,
        }
    ]


@pytest.fixture
def shipping_address():
    return dict(SHIPPING_ADDRESS)


@pytest.fixture
def cart_for():
    """Price a single-line cart whose total is the given amount."""

    def _cart(total: str = "10000.00"):
        return CartPricingService.price(cart_items(total), dict(SHIPPING_ADDRESS))

    return _cart


@pytest.fixture
def chain_for(cart_for):
    """Create (or resume) a purchase chain for a user."""

    def _chain(user, total: str = "10000.00", payment_method: str = PaymentMethod.PAYSTACK, now=None):
        return CheckoutReconciler.resume_or_create(user, cart_for(total), payment_method, now=now)

    return _chain


# =============================================================================
# Gateway Doubles
# =============================================================================


def verification(status: GatewayStatus, reference: str, amount=None, message: str = "") -> GatewayVerification:
    return GatewayVerification(
        status=status,
        reference=reference,
        provider_order_id="4099260516",
        amount=Decimal(amount) if amount is not None else None,
        gateway_message=message,
        raw={"status": status.value, "reference": reference},
    )


@pytest.fixture
def mock_adapter():
    """
    Gateway adapter double.

    initiate() returns a hosted page URL; verify() reports whatever the
    test puts in mock_adapter.verify.return_value.
    """
    adapter = MagicMock(spec=GatewayAdapter)
    adapter.initiate.side_effect = lambda params: InitiateResult(
        reference=params.reference,
        redirect_url=f"https://checkout.paystack.com/{params.reference.lower()}",
        provider_order_id="ac_7x2k9",
        raw={"status": True},
    )
    return adapter
