"""
Pytest fixtures for gateway adapter tests.

Adapters are built with a mocked requests session so no call leaves the
process; `gateway_reply` shapes what the session returns.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from payments.adapters import InitiateParams, OpayAdapter, PaystackAdapter

SECRET = "sk_test_adapter_5e1f"


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def gateway_reply(session):
    """Set the JSON body and HTTP status the next gateway call returns."""

    def _reply(body, status_code=200):
        response = MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.ok = status_code < 400
        response.json.return_value = body
        session.request.return_value = response
        return response

    return _reply


@pytest.fixture
def paystack(session):
    return PaystackAdapter(secret_key=SECRET, base_url="https://api.paystack.test/", session=session, timeout=5)


@pytest.fixture
def opay(session):
    return OpayAdapter(
        merchant_id="256621051120756",
        public_key="OPAYPUB_test",
        secret_key=SECRET,
        environment="sandbox",
        session=session,
        timeout=5,
    )


@pytest.fixture
def initiate_params():
    return InitiateParams(
        reference="PAY_7C0D5E9A1B2F3C4D",
        amount=Decimal("12500.50"),
        email="ada@example.com",
        callback_url="https://shop.example.com/orders/ORD-20261018-0001",
        customer_name="Ada Obi",
        product_name="Order ORD-20261018-0001",
        metadata={"order_number": "ORD-20261018-0001"},
    )
