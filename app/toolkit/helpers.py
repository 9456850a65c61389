"""
Helper functions for customer-facing text.

This module provides:
- Data masking (email - PII handling in logs)
- Money formatting for emails and payment instructions

Usage:
    from toolkit.helpers import format_naira, mask_email

    masked = mask_email("user@example.com")  # u***@example.com
    label = format_naira(Decimal("14500"))   # ₦14,500.00
"""

from __future__ import annotations

from decimal import Decimal


def mask_email(email: str) -> str:
    """
    Mask email for display.

    Keeps first character, domain, and TLD visible.

    Args:
        email: Email address to mask

    Returns:
        Masked email (e.g., "j***@example.com")

    Example:
        masked = mask_email("john.doe@example.com")  # "j***@example.com"
    """
    if not email or "@" not in email:
        return "***"

    local, domain = email.rsplit("@", 1)

    if len(local) > 1:
        masked_local = local[0] + "***"
    else:
        masked_local = "***"

    return f"{masked_local}@{domain}"


def format_naira(amount: Decimal | int | str) -> str:
    """
    Format an amount in the major unit with the naira sign.

    Example:
        format_naira(Decimal("4500"))  # "₦4,500.00"
    """
    return f"₦{Decimal(str(amount)):,.2f}"
