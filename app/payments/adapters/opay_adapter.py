"""
OPay cashier adapter.

Endpoints (host chosen by OPAY_ENVIRONMENT):
    POST /api/v1/international/cashier/create   Bearer <public key>
    POST /api/v1/international/cashier/status   Bearer HMAC-SHA512(body, secret)

Both requests carry a MerchantId header. A response code of "00000"
means the call itself succeeded; the charge status is in data.status.

Webhooks arrive either as {"payload": {...}, "sha512": "..."} or in the
simple form {"reference", "status", "signature"}; both are HMAC-SHA512 of
the compact JSON of the signed part, keyed with the secret.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

from django.conf import settings

from payments.adapters.base import (
    GatewayAdapter,
    GatewayStatus,
    GatewayVerification,
    InitiateParams,
    InitiateResult,
    from_minor_units,
    to_minor_units,
)
from payments.exceptions import GatewayResponseError
from payments.state_machines import PaymentMethod

HOSTS = {
    "sandbox": "https://testapi.opaycheckout.com",
    "production": "https://liveapi.opaycheckout.com",
}

CREATE_PATH = "/api/v1/international/cashier/create"
STATUS_PATH = "/api/v1/international/cashier/status"

OK_CODE = "00000"

STATUS_MAP = {
    "SUCCESS": GatewayStatus.SUCCESS,
    "FAIL": GatewayStatus.FAILED,
    "CLOSE": GatewayStatus.FAILED,
    "INITIAL": GatewayStatus.PENDING,
    "PENDING": GatewayStatus.PENDING,
}

# Minutes the cashier page stays open
CASHIER_EXPIRY_MINUTES = 30


def compact_json(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"))


class OpayAdapter(GatewayAdapter):
    """Hosted checkout through the OPay cashier."""

    provider = PaymentMethod.OPAY

    def __init__(
        self,
        merchant_id: str | None = None,
        public_key: str | None = None,
        secret_key: str | None = None,
        environment: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.merchant_id = merchant_id if merchant_id is not None else settings.OPAY_MERCHANT_ID
        self.public_key = public_key if public_key is not None else settings.OPAY_PUBLIC_KEY
        self.secret_key = secret_key if secret_key is not None else settings.OPAY_SECRET_KEY
        self.country = settings.OPAY_COUNTRY
        self.base_url = HOSTS.get(environment or settings.OPAY_ENVIRONMENT, HOSTS["sandbox"])

    def sign(self, message: str) -> str:
        return hmac.new(self.secret_key.encode(), message.encode(), hashlib.sha512).hexdigest()

    def _check_code(self, body: dict[str, Any], operation: str) -> dict[str, Any]:
        if body.get("code") != OK_CODE:
            raise GatewayResponseError(
                f"OPay error: {body.get('message') or 'Unknown error'} (Code: {body.get('code')})",
                provider=self.provider,
                details={"operation": operation, "code": body.get("code")},
            )
        return body.get("data") or {}

    def initiate(self, params: InitiateParams) -> InitiateResult:
        payload = {
            "country": self.country,
            "reference": params.reference,
            "amount": {
                "total": to_minor_units(params.amount),
                "currency": params.currency,
            },
            "returnUrl": params.callback_url,
            "callbackUrl": params.callback_url,
            "expireAt": CASHIER_EXPIRY_MINUTES,
            "userInfo": {
                "userId": params.email,
                "userName": params.customer_name,
                "userEmail": params.email,
            },
            "product": {
                "name": params.product_name or "Storefront purchase",
                "description": params.product_name or "Storefront purchase",
            },
        }
        body = self._request(
            "POST",
            f"{self.base_url}{CREATE_PATH}",
            operation="cashier_create",
            json=payload,
            headers={
                "Authorization": f"Bearer {self.public_key}",
                "MerchantId": self.merchant_id,
                "Content-Type": "application/json",
            },
        )
        data = self._check_code(body, "cashier_create")
        if not data.get("cashierUrl"):
            raise GatewayResponseError(
                "OPay did not return a cashier URL",
                provider=self.provider,
                details={"operation": "cashier_create"},
            )

        return InitiateResult(
            reference=data.get("reference") or params.reference,
            redirect_url=data["cashierUrl"],
            provider_order_id=data.get("orderNo"),
            raw=body,
        )

    def verify(self, reference: str) -> GatewayVerification:
        request_body = compact_json({"country": self.country, "reference": reference})
        body = self._request(
            "POST",
            f"{self.base_url}{STATUS_PATH}",
            operation="cashier_status",
            data=request_body,
            headers={
                "Authorization": f"Bearer {self.sign(request_body)}",
                "MerchantId": self.merchant_id,
                "Content-Type": "application/json",
            },
        )
        data = self._check_code(body, "cashier_status")
        amount = (data.get("amount") or {}).get("total")

        return GatewayVerification(
            status=STATUS_MAP.get(str(data.get("status", "")).upper(), GatewayStatus.PENDING),
            reference=data.get("reference") or reference,
            provider_order_id=data.get("orderNo"),
            amount=from_minor_units(amount),
            gateway_message=data.get("failureReason") or "",
            raw=data,
        )

    def verify_webhook_signature(self, payload: bytes, headers: dict[str, str]) -> bool:
        if not self.secret_key:
            return False
        try:
            body = json.loads(payload)
        except ValueError:
            return False
        if not isinstance(body, dict):
            return False

        if isinstance(body.get("payload"), dict):
            signed, signature = body["payload"], body.get("sha512")
        else:
            signed = {"reference": body.get("reference"), "status": body.get("status")}
            signature = body.get("signature")

        if not signature:
            return False
        return hmac.compare_digest(self.sign(compact_json(signed)), str(signature))
