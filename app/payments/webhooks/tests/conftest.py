"""
Pytest fixtures for webhook tests.

Provides signing secrets, signed request helpers, a PENDING gateway order
and a gateway adapter double for the verification step.
"""

import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from payments.adapters import GatewayAdapter, InitiateResult
from payments.adapters.opay_adapter import compact_json
from payments.models import Order
from payments.services import CartPricingService
from payments.state_machines import PaymentMethod
from payments.strategies import GatewayPaymentStrategy
from payments.tests.factories import UserFactory

PAYSTACK_SECRET = "sk_test_3f9a1c"
OPAY_SECRET = "OPAYPRV_test_77d2"


@pytest.fixture(autouse=True)
def gateway_secrets(settings):
    settings.PAYSTACK_SECRET_KEY = PAYSTACK_SECRET
    settings.OPAY_SECRET_KEY = OPAY_SECRET
    settings.DELIVERY_FEE = Decimal("0.00")


def paystack_signature(body: bytes) -> str:
    return hmac.new(PAYSTACK_SECRET.encode(), body, hashlib.sha512).hexdigest()


def opay_signature(signed: dict) -> str:
    return hmac.new(OPAY_SECRET.encode(), compact_json(signed).encode(), hashlib.sha512).hexdigest()


def paystack_body(event: str, reference: str) -> dict:
    return {
        "event": event,
        "data": {"id": 4099260516, "reference": reference, "status": "success", "amount": 1000000},
    }


def opay_body(status: str, reference: str) -> dict:
    payload = {"reference": reference, "status": status, "amount": "1000000", "currency": "NGN"}
    return {"type": "transaction-status", "payload": payload, "sha512": opay_signature(payload)}


@pytest.fixture
def post_paystack(client):
    """POST a Paystack webhook body, signed unless a signature is given."""

    def _post(body: dict, signature: str | None = None):
        raw = json.dumps(body).encode()
        return client.post(
            "/api/v1/payments/webhooks/paystack/",
            data=raw,
            content_type="application/json",
            HTTP_X_PAYSTACK_SIGNATURE=signature if signature is not None else paystack_signature(raw),
        )

    return _post


@pytest.fixture
def post_opay(client):
    def _post(body: dict):
        return client.post(
            "/api/v1/payments/webhooks/opay/",
            data=json.dumps(body),
            content_type="application/json",
        )

    return _post


@pytest.fixture
def gateway_adapter():
    adapter = MagicMock(spec=GatewayAdapter)
    adapter.initiate.side_effect = lambda params: InitiateResult(
        reference=params.reference,
        redirect_url=f"https://checkout.paystack.com/{params.reference.lower()}",
        provider_order_id="ac_wh001",
    )
    return adapter


@pytest.fixture
def pending_order(db, gateway_adapter) -> Order:
    """PENDING Paystack order of 10000 awaiting its webhook."""
    user = UserFactory()
    cart = CartPricingService.price(
        [{"product_id": "sku-1", "title": "Yam tuber", "quantity": 4, "unit_price": "2500.00"}],
        {"street": "5 Bode Thomas", "city": "Surulere"},
    )
    outcome = GatewayPaymentStrategy(PaymentMethod.PAYSTACK, adapter=gateway_adapter).process(user, cart)
    return Order.objects.get(order_number=outcome.order_number)
