"""
Pytest fixtures for wallet tests.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from payments.adapters import GatewayAdapter, InitiateResult
from payments.tests.factories import UserFactory
from payments.wallet.models import Wallet


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def other_user(db):
    return UserFactory()


@pytest.fixture
def fund_wallet(db):
    def _fund(user, amount) -> Wallet:
        Wallet.objects.filter(user=user).update(balance=Decimal(amount))
        return Wallet.objects.get(user=user)

    return _fund


@pytest.fixture
def paystack():
    """Paystack adapter double for deposits."""
    adapter = MagicMock(spec=GatewayAdapter)
    adapter.initiate.side_effect = lambda params: InitiateResult(
        reference=params.reference,
        redirect_url=f"https://checkout.paystack.com/{params.reference.lower()}",
        provider_order_id="ac_dep01",
        raw={"status": True},
    )
    return adapter
