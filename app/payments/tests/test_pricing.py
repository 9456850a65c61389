"""
Tests for CartPricingService.
"""

from decimal import Decimal

import pytest

from payments.exceptions import CheckoutValidationError
from payments.services import CartPricingService

ADDRESS = {"street": "3 Awolowo Road", "city": "Ikoyi"}


def line(**overrides):
    item = {"product_id": "sku-1", "title": "Palm oil 5L", "quantity": 1, "unit_price": "2500.00"}
    item.update(overrides)
    return item


class TestCartPricing:
    """Tests for totals and line pricing."""

    def test_total_includes_delivery_fee(self, settings):
        """Should add the flat delivery fee to the subtotal."""
        settings.DELIVERY_FEE = Decimal("4500")

        cart = CartPricingService.price([line(quantity=2)], ADDRESS)

        assert cart.subtotal == Decimal("5000.00")
        assert cart.shipping_cost == Decimal("4500.00")
        assert cart.total == Decimal("9500.00")
        assert cart.currency == "NGN"

    def test_fixed_price_overrides_unit_price(self, settings):
        """Should charge the fixed price per unit when one is set."""
        settings.DELIVERY_FEE = Decimal("0")

        cart = CartPricingService.price([line(quantity=3, fixed_price="2000.00")], ADDRESS)

        item = cart.items[0]
        assert item.total_price == Decimal("6000.00")
        assert item.as_fields()["unit_price"] == Decimal("2000.00")
        assert cart.total == Decimal("6000.00")

    def test_discount_never_makes_total_negative(self, settings):
        """Should clamp the total at zero."""
        settings.DELIVERY_FEE = Decimal("0")

        cart = CartPricingService.price([line()], ADDRESS, discount="9999.00")

        assert cart.total == Decimal("0.00")

    def test_billing_address_defaults_to_shipping(self):
        cart = CartPricingService.price([line()], ADDRESS)

        assert cart.billing_address == ADDRESS

    def test_selected_unit_is_kept(self):
        cart = CartPricingService.price([line(selected_unit="carton")], ADDRESS)

        assert cart.items[0].selected_unit == "carton"


class TestCartValidation:
    """Tests for rejected carts."""

    def test_empty_cart(self):
        with pytest.raises(CheckoutValidationError, match="Cart items are required"):
            CartPricingService.price([], ADDRESS)

    def test_missing_city(self):
        """Should require a delivery city."""
        with pytest.raises(CheckoutValidationError) as exc_info:
            CartPricingService.price([line()], {"street": "3 Awolowo Road", "city": "  "})

        assert exc_info.value.details["field"] == "shipping_address.city"

    @pytest.mark.parametrize("quantity", [0, -1, "many"])
    def test_bad_quantity(self, quantity):
        with pytest.raises(CheckoutValidationError, match="Quantity"):
            CartPricingService.price([line(quantity=quantity)], ADDRESS)

    def test_non_numeric_price(self):
        with pytest.raises(CheckoutValidationError, match="must be a number"):
            CartPricingService.price([line(unit_price="abc")], ADDRESS)

    def test_zero_price(self):
        with pytest.raises(CheckoutValidationError, match="greater than zero"):
            CartPricingService.price([line(unit_price="0")], ADDRESS)

    def test_negative_discount(self):
        with pytest.raises(CheckoutValidationError, match="discount"):
            CartPricingService.price([line()], ADDRESS, discount="-5")
