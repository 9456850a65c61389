"""
Paystack adapter.

Endpoints (base PAYSTACK_BASE_URL, Bearer secret key):
    POST /transaction/initialize         start a hosted checkout
    GET  /transaction/verify/<reference> current status of a charge

Webhooks are signed with HMAC-SHA512 of the raw body using the secret
key, sent in the x-paystack-signature header.

Usage:
    from payments.adapters import InitiateParams, PaystackAdapter

    result = PaystackAdapter().initiate(InitiateParams(
        reference="PAY_9F1C2B...",
        amount=Decimal("12500.00"),
        email="ada@example.com",
        callback_url="https://shop.example.com/checkout/payment-success",
    ))
    redirect(result.redirect_url)
"""

from __future__ import annotations

import hashlib
import hmac
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

# Paystack transaction status -> normalised status; anything else is PENDING
STATUS_MAP = {
    "success": GatewayStatus.SUCCESS,
    "failed": GatewayStatus.FAILED,
    "abandoned": GatewayStatus.FAILED,
    "reversed": GatewayStatus.FAILED,
}

SIGNATURE_HEADER = "x-paystack-signature"


class PaystackAdapter(GatewayAdapter):
    """Hosted checkout through Paystack."""

    provider = PaymentMethod.PAYSTACK

    def __init__(self, secret_key: str | None = None, base_url: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.secret_key = secret_key if secret_key is not None else settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def _unwrap(self, body: dict[str, Any], operation: str) -> dict[str, Any]:
        """Paystack wraps every response in {status, message, data}."""
        if not body.get("status") or not isinstance(body.get("data"), dict):
            raise GatewayResponseError(
                body.get("message") or "Paystack rejected the request",
                provider=self.provider,
                details={"operation": operation},
            )
        return body["data"]

    def initiate(self, params: InitiateParams) -> InitiateResult:
        payload = {
            "reference": params.reference,
            "amount": to_minor_units(params.amount),
            "currency": params.currency,
            "email": params.email,
            "callback_url": params.callback_url,
            "metadata": params.metadata,
        }
        body = self._request(
            "POST",
            f"{self.base_url}/transaction/initialize",
            operation="initialize",
            json=payload,
            headers=self._headers(),
        )
        data = self._unwrap(body, "initialize")

        return InitiateResult(
            reference=data.get("reference") or params.reference,
            redirect_url=data["authorization_url"],
            provider_order_id=data.get("access_code"),
            raw=body,
        )

    def verify(self, reference: str) -> GatewayVerification:
        body = self._request(
            "GET",
            f"{self.base_url}/transaction/verify/{reference}",
            operation="verify",
            headers=self._headers(),
        )
        data = self._unwrap(body, "verify")

        return GatewayVerification(
            status=STATUS_MAP.get(str(data.get("status", "")).lower(), GatewayStatus.PENDING),
            reference=data.get("reference") or reference,
            provider_order_id=str(data["id"]) if data.get("id") is not None else None,
            amount=from_minor_units(data.get("amount")),
            gateway_message=data.get("gateway_response") or "",
            raw=data,
        )

    def verify_webhook_signature(self, payload: bytes, headers: dict[str, str]) -> bool:
        signature = headers.get(SIGNATURE_HEADER) or headers.get(SIGNATURE_HEADER.title())
        if not signature or not self.secret_key:
            return False
        expected = hmac.new(self.secret_key.encode(), payload, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)
