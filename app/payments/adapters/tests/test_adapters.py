"""
Tests for the Paystack and OPay adapters.

Tests cover:
- Request payloads (minor units, headers, endpoints)
- Status normalisation and response unwrapping
- Transport failures mapped to gateway errors
- Webhook signature checks
"""

import hashlib
import hmac
import json
from decimal import Decimal

import pytest
import requests

from payments.adapters import GatewayStatus, OpayAdapter, PaystackAdapter, get_adapter, to_minor_units
from payments.adapters.base import from_minor_units
from payments.adapters.opay_adapter import compact_json
from payments.adapters.tests.conftest import SECRET
from payments.exceptions import GatewayResponseError, GatewayTimeoutError, UnsupportedPaymentMethod
from payments.state_machines import PaymentMethod


def sha512(message: bytes) -> str:
    return hmac.new(SECRET.encode(), message, hashlib.sha512).hexdigest()


class TestMinorUnits:
    def test_to_minor_units(self):
        assert to_minor_units(Decimal("12500.50")) == 1250050

    def test_from_minor_units(self):
        assert from_minor_units(1250050) == Decimal("12500.50")
        assert from_minor_units("100") == Decimal("1.00")
        assert from_minor_units(None) is None


# =============================================================================
# Paystack
# =============================================================================


class TestPaystackInitiate:
    def test_posts_amount_in_kobo(self, paystack, session, gateway_reply, initiate_params):
        gateway_reply(
            {
                "status": True,
                "message": "Authorization URL created",
                "data": {
                    "authorization_url": "https://checkout.paystack.com/0peioxfhpn",
                    "access_code": "0peioxfhpn",
                    "reference": initiate_params.reference,
                },
            }
        )

        result = paystack.initiate(initiate_params)

        assert result.redirect_url == "https://checkout.paystack.com/0peioxfhpn"
        assert result.provider_order_id == "0peioxfhpn"
        assert result.reference == initiate_params.reference

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://api.paystack.test/transaction/initialize"
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["Authorization"] == f"Bearer {SECRET}"
        assert kwargs["json"]["amount"] == 1250050
        assert kwargs["json"]["email"] == "ada@example.com"
        assert kwargs["json"]["metadata"] == {"order_number": "ORD-20261018-0001"}

    def test_status_false_is_rejected(self, paystack, gateway_reply, initiate_params):
        gateway_reply({"status": False, "message": "Invalid key"})

        with pytest.raises(GatewayResponseError, match="Invalid key"):
            paystack.initiate(initiate_params)

    def test_http_error_is_rejected(self, paystack, gateway_reply, initiate_params):
        gateway_reply({"status": False, "message": "Duplicate Transaction Reference"}, status_code=400)

        with pytest.raises(GatewayResponseError) as exc_info:
            paystack.initiate(initiate_params)

        assert exc_info.value.details["status_code"] == 400
        assert exc_info.value.details["provider"] == PaymentMethod.PAYSTACK

    def test_non_json_body_is_rejected(self, paystack, gateway_reply, initiate_params):
        response = gateway_reply({})
        response.json.side_effect = ValueError("Expecting value")

        with pytest.raises(GatewayResponseError, match="unreadable"):
            paystack.initiate(initiate_params)

    @pytest.mark.parametrize("error", [requests.Timeout("read timed out"), requests.ConnectionError("refused")])
    def test_transport_failure_is_a_timeout(self, paystack, session, initiate_params, error):
        session.request.side_effect = error

        with pytest.raises(GatewayTimeoutError) as exc_info:
            paystack.initiate(initiate_params)

        assert exc_info.value.is_retryable is True
        assert exc_info.value.error_code == "GATEWAY_TIMEOUT"


class TestPaystackVerify:
    @pytest.mark.parametrize(
        "gateway_status,expected",
        [
            ("success", GatewayStatus.SUCCESS),
            ("failed", GatewayStatus.FAILED),
            ("abandoned", GatewayStatus.FAILED),
            ("reversed", GatewayStatus.FAILED),
            ("ongoing", GatewayStatus.PENDING),
            ("", GatewayStatus.PENDING),
        ],
    )
    def test_status_mapping(self, paystack, gateway_reply, gateway_status, expected):
        gateway_reply({"status": True, "data": {"id": 1, "status": gateway_status, "reference": "PAY_X"}})

        assert paystack.verify("PAY_X").status == expected

    def test_reads_amount_and_message(self, paystack, session, gateway_reply):
        gateway_reply(
            {
                "status": True,
                "message": "Verification successful",
                "data": {
                    "id": 4099260516,
                    "status": "success",
                    "reference": "PAY_X",
                    "amount": 1000000,
                    "gateway_response": "Approved",
                },
            }
        )

        verification = paystack.verify("PAY_X")

        assert verification.is_success
        assert verification.amount == Decimal("10000.00")
        assert verification.provider_order_id == "4099260516"
        assert verification.gateway_message == "Approved"
        assert session.request.call_args.args == ("GET", "https://api.paystack.test/transaction/verify/PAY_X")


class TestPaystackSignature:
    def test_valid_signature(self, paystack):
        body = b'{"event":"charge.success","data":{"reference":"PAY_X"}}'

        assert paystack.verify_webhook_signature(body, {"x-paystack-signature": sha512(body)}) is True

    def test_title_case_header(self, paystack):
        body = b'{"event":"charge.success"}'

        assert paystack.verify_webhook_signature(body, {"X-Paystack-Signature": sha512(body)}) is True

    def test_tampered_body(self, paystack):
        signature = sha512(b'{"amount":1000000}')

        assert paystack.verify_webhook_signature(b'{"amount":100}', {"x-paystack-signature": signature}) is False

    def test_missing_header(self, paystack):
        assert paystack.verify_webhook_signature(b"{}", {}) is False

    def test_unconfigured_secret(self, session):
        adapter = PaystackAdapter(secret_key="", base_url="https://api.paystack.test", session=session)

        assert adapter.verify_webhook_signature(b"{}", {"x-paystack-signature": "abc"}) is False


# =============================================================================
# OPay
# =============================================================================


class TestOpayInitiate:
    def test_creates_cashier_order(self, opay, session, gateway_reply, initiate_params):
        gateway_reply(
            {
                "code": "00000",
                "message": "SUCCESSFUL",
                "data": {
                    "reference": initiate_params.reference,
                    "orderNo": "211004140885521681",
                    "cashierUrl": "https://sandboxcashier.opaycheckout.com/apiCashier/redirect/payment",
                },
            }
        )

        result = opay.initiate(initiate_params)

        assert result.redirect_url.startswith("https://sandboxcashier.opaycheckout.com/")
        assert result.provider_order_id == "211004140885521681"

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://testapi.opaycheckout.com/api/v1/international/cashier/create"
        assert kwargs["headers"]["Authorization"] == "Bearer OPAYPUB_test"
        assert kwargs["headers"]["MerchantId"] == "256621051120756"
        assert kwargs["json"]["amount"] == {"total": 1250050, "currency": "NGN"}
        assert kwargs["json"]["userInfo"]["userName"] == "Ada Obi"

    def test_error_code_is_rejected(self, opay, gateway_reply, initiate_params):
        gateway_reply({"code": "02002", "message": "merchant not configured"})

        with pytest.raises(GatewayResponseError) as exc_info:
            opay.initiate(initiate_params)

        assert exc_info.value.message == "OPay error: merchant not configured (Code: 02002)"

    def test_missing_cashier_url_is_rejected(self, opay, gateway_reply, initiate_params):
        gateway_reply({"code": "00000", "data": {"reference": initiate_params.reference}})

        with pytest.raises(GatewayResponseError, match="cashier URL"):
            opay.initiate(initiate_params)


class TestOpayVerify:
    def test_status_request_is_signed(self, opay, session, gateway_reply):
        gateway_reply(
            {
                "code": "00000",
                "data": {
                    "reference": "PAY_O",
                    "orderNo": "2110041408",
                    "status": "SUCCESS",
                    "amount": {"total": 250000, "currency": "NGN"},
                },
            }
        )

        verification = opay.verify("PAY_O")

        assert verification.status == GatewayStatus.SUCCESS
        assert verification.amount == Decimal("2500.00")
        kwargs = session.request.call_args.kwargs
        expected_body = compact_json({"country": "NG", "reference": "PAY_O"})
        assert kwargs["data"] == expected_body
        assert kwargs["headers"]["Authorization"] == f"Bearer {sha512(expected_body.encode())}"

    @pytest.mark.parametrize(
        "gateway_status,expected",
        [
            ("SUCCESS", GatewayStatus.SUCCESS),
            ("FAIL", GatewayStatus.FAILED),
            ("CLOSE", GatewayStatus.FAILED),
            ("INITIAL", GatewayStatus.PENDING),
            ("pending", GatewayStatus.PENDING),
        ],
    )
    def test_status_mapping(self, opay, gateway_reply, gateway_status, expected):
        gateway_reply({"code": "00000", "data": {"reference": "PAY_O", "status": gateway_status}})

        assert opay.verify("PAY_O").status == expected

    def test_failure_reason(self, opay, gateway_reply):
        gateway_reply(
            {"code": "00000", "data": {"reference": "PAY_O", "status": "FAIL", "failureReason": "Insufficient funds"}}
        )

        verification = opay.verify("PAY_O")

        assert verification.is_failed
        assert verification.gateway_message == "Insufficient funds"


class TestOpaySignature:
    def test_wrapped_payload(self, opay):
        payload = {"reference": "PAY_O", "status": "SUCCESS", "amount": "250000"}
        body = json.dumps({"payload": payload, "sha512": sha512(compact_json(payload).encode())})

        assert opay.verify_webhook_signature(body.encode(), {}) is True

    def test_simple_form(self, opay):
        signed = {"reference": "PAY_O", "status": "FAIL"}
        body = json.dumps({**signed, "signature": sha512(compact_json(signed).encode())})

        assert opay.verify_webhook_signature(body.encode(), {}) is True

    def test_wrong_signature(self, opay):
        body = json.dumps({"payload": {"reference": "PAY_O"}, "sha512": "0" * 128})

        assert opay.verify_webhook_signature(body.encode(), {}) is False

    @pytest.mark.parametrize("raw", [b"not json", b"[]", b'{"reference": "PAY_O"}'])
    def test_malformed_bodies(self, opay, raw):
        assert opay.verify_webhook_signature(raw, {}) is False


# =============================================================================
# get_adapter
# =============================================================================


class TestGetAdapter:
    def test_gateway_methods(self):
        assert isinstance(get_adapter(PaymentMethod.PAYSTACK), PaystackAdapter)
        assert isinstance(get_adapter(PaymentMethod.OPAY), OpayAdapter)

    @pytest.mark.parametrize("method", [PaymentMethod.WALLET, PaymentMethod.BANK_TRANSFER, "stripe"])
    def test_non_gateway_methods(self, method):
        with pytest.raises(UnsupportedPaymentMethod) as exc_info:
            get_adapter(method)

        assert exc_info.value.details == {"payment_method": method}
