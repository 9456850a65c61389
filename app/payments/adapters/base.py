"""
Gateway adapter contract and shared HTTP plumbing.

Every hosted-checkout gateway implements GatewayAdapter. Adapters speak
the gateway's wire format and translate outcomes into three statuses the
reconciler understands; they never touch the database.

Amounts cross this boundary in the major unit (naira) and are converted
to minor units (kobo) inside each adapter.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

import requests
from django.conf import settings

from payments.exceptions import GatewayResponseError, GatewayTimeoutError

MINOR_UNITS = 100


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to integer minor units (kobo)."""
    return int((Decimal(amount) * MINOR_UNITS).to_integral_value())


def from_minor_units(amount: int | str | None) -> Decimal | None:
    if amount is None:
        return None
    return (Decimal(str(amount)) / MINOR_UNITS).quantize(Decimal("0.01"))


# =============================================================================
# Data Types
# =============================================================================


class GatewayStatus(str, Enum):
    """Normalised outcome of a gateway charge."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    PENDING = "PENDING"


@dataclass
class InitiateParams:
    """
    Parameters for starting a hosted-checkout charge.

    Attributes:
        reference: Our payment reference (PAY_xxx); becomes Order.payment_id
        amount: Amount in the major currency unit
        email: Customer email the gateway receipts go to
        currency: ISO 4217 code
        callback_url: Where the gateway sends the customer afterwards
        metadata: Extra key-value pairs echoed back by the gateway
    """

    reference: str
    amount: Decimal
    email: str
    currency: str = "NGN"
    callback_url: str = ""
    customer_name: str = ""
    product_name: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.reference:
            raise ValueError("reference is required")
        if not self.email:
            raise ValueError("email is required")


@dataclass
class InitiateResult:
    """
    Result of starting a charge.

    Attributes:
        reference: Our reference, as acknowledged by the gateway
        redirect_url: Hosted page the customer must be sent to
        provider_order_id: Gateway-side id (access code / order no)
        raw: Full gateway response body
    """

    reference: str
    redirect_url: str
    provider_order_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewayVerification:
    """Gateway's current view of a charge."""

    status: GatewayStatus
    reference: str
    provider_order_id: str | None = None
    amount: Decimal | None = None
    gateway_message: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == GatewayStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status == GatewayStatus.FAILED


# =============================================================================
# Adapter Base
# =============================================================================


class GatewayAdapter(ABC):
    """
    Base class for hosted-checkout payment gateways.

    Subclasses set `provider` and implement the three operations. HTTP calls
    go through _request(), which applies the configured timeout, logs
    duration_ms and maps transport failures:

        timeout / connection error      -> GatewayTimeoutError (retryable)
        non-2xx status / non-JSON body  -> GatewayResponseError
    """

    provider: str = ""

    def __init__(self, timeout: int | None = None, session: requests.Session | None = None):
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT
        self.session = session or requests.Session()

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @abstractmethod
    def initiate(self, params: InitiateParams) -> InitiateResult:
        """
        Start a charge and return the hosted page URL.

        Raises:
            GatewayTimeoutError: Gateway unreachable or too slow
            GatewayResponseError: Gateway rejected the request
        """

    @abstractmethod
    def verify(self, reference: str) -> GatewayVerification:
        """Ask the gateway for the current status of a charge."""

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, headers: dict[str, str]) -> bool:
        """Return True if a webhook body was signed with our secret."""

    # =========================================================================
    # HTTP
    # =========================================================================

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        logger = self.get_logger()
        log_context = {"provider": self.provider, "operation": operation}

        start_time = time.time()
        logger.info("Starting gateway call", extra=log_context)

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.Timeout, requests.ConnectionError) as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "Gateway call timed out",
                extra={**log_context, "duration_ms": duration_ms, "error": str(e)},
            )
            raise GatewayTimeoutError(
                f"{self.provider} is unavailable, please try again",
                provider=self.provider,
                details={"operation": operation},
            ) from e
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Gateway call failed",
                extra={**log_context, "duration_ms": duration_ms, "error": str(e)},
                exc_info=True,
            )
            raise GatewayResponseError(
                f"{self.provider} request failed",
                provider=self.provider,
                details={"operation": operation},
            ) from e

        duration_ms = (time.time() - start_time) * 1000

        try:
            body = response.json()
        except ValueError as e:
            logger.error(
                "Gateway returned a non-JSON body",
                extra={**log_context, "status_code": response.status_code, "duration_ms": duration_ms},
            )
            raise GatewayResponseError(
                f"{self.provider} returned an unreadable response",
                provider=self.provider,
                details={"operation": operation, "status_code": response.status_code},
            ) from e

        if not response.ok:
            logger.warning(
                "Gateway returned an error status",
                extra={**log_context, "status_code": response.status_code, "duration_ms": duration_ms},
            )
            message = body.get("message") if isinstance(body, dict) else None
            raise GatewayResponseError(
                message or f"{self.provider} returned HTTP {response.status_code}",
                provider=self.provider,
                details={"operation": operation, "status_code": response.status_code},
            )

        logger.info(
            "Gateway call completed",
            extra={**log_context, "status_code": response.status_code, "duration_ms": duration_ms},
        )
        return body
