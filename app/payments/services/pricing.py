"""
Cart pricing for checkout submissions.

The catalog is not modelled, so the price snapshot sent with each cart
line is what gets charged. Every line is priced at its fixed price when
one is set, otherwise at its unit price, times the quantity.

    subtotal = sum(line totals)
    total    = max(0, subtotal + tax + DELIVERY_FEE - discount)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from django.conf import settings

from core.services import BaseService
from payments.exceptions import CheckoutValidationError

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value: Any, field_name: str) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(CENT)
    except (InvalidOperation, ValueError, TypeError):
        raise CheckoutValidationError(
            f"{field_name} must be a number",
            details={"field": field_name},
        )
    if not amount.is_finite():
        raise CheckoutValidationError(
            f"{field_name} must be a number",
            details={"field": field_name},
        )
    return amount


@dataclass
class PricedItem:
    product_id: str
    title: str
    quantity: int
    unit_price: Decimal
    fixed_price: Decimal | None
    selected_unit: str
    total_price: Decimal

    def as_fields(self) -> dict[str, Any]:
        """Field values for an OrderItem / InvoiceItem row."""
        return {
            "product_id": self.product_id,
            "title": self.title,
            "quantity": self.quantity,
            "unit_price": self.fixed_price if self.fixed_price is not None else self.unit_price,
            "total_price": self.total_price,
        }


@dataclass
class PricedCart:
    """
    Validated, priced cart ready to be written onto a purchase chain.
    """

    items: list[PricedItem]
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    discount: Decimal
    total: Decimal
    currency: str
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)

    def amount_fields(self) -> dict[str, Any]:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping_cost": self.shipping_cost,
            "discount": self.discount,
            "total": self.total,
            "currency": self.currency,
        }


class CartPricingService(BaseService):
    """Validates and prices a submitted cart."""

    @classmethod
    def price(
        cls,
        cart_items: list[dict[str, Any]],
        shipping_address: dict[str, Any] | None,
        billing_address: dict[str, Any] | None = None,
        discount: Any = ZERO,
    ) -> PricedCart:
        """
        Price a cart.

        Args:
            cart_items: Lines with product_id, title, quantity, unit_price and
                optional fixed_price / selected_unit
            shipping_address: Must contain a city
            billing_address: Defaults to the shipping address
            discount: Discount in the major unit

        Raises:
            CheckoutValidationError: Empty cart, missing city, bad quantity or price
        """
        if not cart_items:
            raise CheckoutValidationError(
                "Cart items are required",
                details={"field": "cart_items"},
            )
        if not shipping_address:
            raise CheckoutValidationError(
                "Shipping address is required",
                details={"field": "shipping_address"},
            )
        if not str(shipping_address.get("city") or "").strip():
            raise CheckoutValidationError(
                "Delivery city is required",
                details={"field": "shipping_address.city"},
            )

        items = [cls._price_item(index, item) for index, item in enumerate(cart_items)]

        subtotal = sum((item.total_price for item in items), ZERO)
        discount = to_money(discount or ZERO, "discount")
        if discount < 0:
            raise CheckoutValidationError(
                "discount cannot be negative",
                details={"field": "discount"},
            )
        shipping_cost = Decimal(settings.DELIVERY_FEE).quantize(CENT)
        tax = ZERO
        total = max(ZERO, subtotal + tax + shipping_cost - discount)

        return PricedCart(
            items=items,
            subtotal=subtotal,
            tax=tax,
            shipping_cost=shipping_cost,
            discount=discount,
            total=total,
            currency=settings.PAYMENT_CURRENCY,
            shipping_address=dict(shipping_address),
            billing_address=dict(billing_address or shipping_address),
        )

    @staticmethod
    def _price_item(index: int, item: dict[str, Any]) -> PricedItem:
        prefix = f"cart_items[{index}]"
        try:
            quantity = int(item.get("quantity", 0))
        except (TypeError, ValueError):
            quantity = 0
        if quantity <= 0:
            raise CheckoutValidationError(
                "Quantity must be at least 1",
                details={"field": f"{prefix}.quantity"},
            )

        fixed_price = item.get("fixed_price")
        fixed_price = to_money(fixed_price, f"{prefix}.fixed_price") if fixed_price is not None else None
        unit_price = to_money(item.get("unit_price", ZERO), f"{prefix}.unit_price")
        effective = fixed_price if fixed_price is not None else unit_price
        if effective <= 0:
            raise CheckoutValidationError(
                "Item price must be greater than zero",
                details={"field": f"{prefix}.unit_price"},
            )

        return PricedItem(
            product_id=str(item.get("product_id", "")),
            title=str(item.get("title", "")),
            quantity=quantity,
            unit_price=unit_price,
            fixed_price=fixed_price,
            selected_unit=str(item.get("selected_unit") or ""),
            total_price=(effective * quantity).quantize(CENT),
        )
