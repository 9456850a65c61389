"""
Abstract field groups shared by Checkout, Order and Invoice.

The same money breakdown and line-item shape is snapshotted onto each
record of a purchase chain, so the fields are declared once here.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models


def default_currency() -> str:
    return settings.PAYMENT_CURRENCY


class AmountBreakdownMixin(models.Model):
    """
    Money breakdown in the major currency unit.

    Fields:
        subtotal: Sum of line totals
        tax: Tax charged (currently always zero)
        shipping_cost: Flat delivery fee
        discount: Discount applied to the subtotal
        total: subtotal + tax + shipping_cost - discount, never negative
        currency: ISO 4217 code
    """

    subtotal = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of line item totals",
    )
    tax = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Tax amount",
    )
    shipping_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Delivery fee",
    )
    discount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Discount applied",
    )
    total = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Amount payable",
    )
    currency = models.CharField(
        max_length=3,
        default=default_currency,
        help_text="ISO 4217 currency code",
    )

    class Meta:
        abstract = True

    def copy_amounts_from(self, other: AmountBreakdownMixin) -> None:
        """Copy the breakdown of another chain record. Does not save."""
        for field in ("subtotal", "tax", "shipping_cost", "discount", "total", "currency"):
            setattr(self, field, getattr(other, field))


class LineItemMixin(models.Model):
    """
    Snapshot of one cart line.

    The catalog is not modelled; product_id is the client's reference.
    """

    product_id = models.CharField(
        max_length=100,
        help_text="Catalog reference of the product",
    )
    title = models.CharField(
        max_length=255,
        help_text="Product title at time of purchase",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        help_text="Number of units",
    )
    unit_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Price per unit at time of purchase",
    )
    total_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Line total (effective unit price x quantity)",
    )

    class Meta:
        abstract = True

    def __str__(self) -> str:
        return f"{self.title} x{self.quantity}"
