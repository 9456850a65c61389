"""
Tests for toolkit helper functions.
"""

from decimal import Decimal

from toolkit.helpers import format_naira, mask_email


class TestMaskEmail:
    """Tests for mask_email."""

    def test_keeps_first_character_and_domain(self):
        """Should keep the first character and domain visible."""
        assert mask_email("john.doe@example.com") == "j***@example.com"

    def test_single_character_local_part(self):
        """Should fully mask a one-character local part."""
        assert mask_email("a@example.com") == "***@example.com"

    def test_invalid_email(self):
        """Should fully mask values without an @."""
        assert mask_email("not-an-email") == "***"
        assert mask_email("") == "***"


class TestFormatNaira:
    """Tests for format_naira."""

    def test_thousands_separator_and_two_decimals(self):
        """Should group thousands and show kobo."""
        assert format_naira(Decimal("14500")) == "₦14,500.00"

    def test_accepts_strings_and_ints(self):
        """Should accept any Decimal-compatible value."""
        assert format_naira("99.5") == "₦99.50"
        assert format_naira(1000000) == "₦1,000,000.00"
