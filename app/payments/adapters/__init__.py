"""
Payment gateway adapters.

All external gateway calls go through these adapters for consistent
timeouts, error translation and logging.

Usage:
    from payments.adapters import InitiateParams, get_adapter

    adapter = get_adapter("paystack")
    result = adapter.initiate(InitiateParams(reference=ref, amount=total, email=email))
    verification = adapter.verify(ref)
"""

from payments.adapters.base import (
    GatewayAdapter,
    GatewayStatus,
    GatewayVerification,
    InitiateParams,
    InitiateResult,
    from_minor_units,
    to_minor_units,
)
from payments.adapters.opay_adapter import OpayAdapter
from payments.adapters.paystack_adapter import PaystackAdapter
from payments.exceptions import UnsupportedPaymentMethod
from payments.state_machines import PaymentMethod

ADAPTERS: dict[str, type[GatewayAdapter]] = {
    PaymentMethod.PAYSTACK: PaystackAdapter,
    PaymentMethod.OPAY: OpayAdapter,
}


def get_adapter(method: str) -> GatewayAdapter:
    """
    Return an adapter instance for a gateway payment method.

    Raises:
        UnsupportedPaymentMethod: If the method has no gateway adapter
    """
    try:
        adapter_class = ADAPTERS[method]
    except KeyError:
        raise UnsupportedPaymentMethod(
            f"No payment gateway for method '{method}'",
            details={"payment_method": method},
        )
    return adapter_class()


__all__ = [
    "ADAPTERS",
    "GatewayAdapter",
    "GatewayStatus",
    "GatewayVerification",
    "InitiateParams",
    "InitiateResult",
    "OpayAdapter",
    "PaystackAdapter",
    "from_minor_units",
    "get_adapter",
    "to_minor_units",
]
