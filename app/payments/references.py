"""
Reference generators for payments and wallet entries.

Formats:
    PAY_<hex>            gateway payment reference (Order.payment_id)
    PAY_<hex>_RETRY      same, for a retried checkout
    PAY_<wallet>_<ms>    base of a wallet payment; legs add _OUT / _IN
    WD_<wallet>_<ms>     wallet deposit
    BT_<hex>             verified bank transfer settlement
"""

from __future__ import annotations

import secrets
import uuid

from django.utils import timezone

RETRY_SUFFIX = "_RETRY"


def epoch_millis() -> int:
    return int(timezone.now().timestamp() * 1000)


def gateway_reference(is_retry: bool = False) -> str:
    reference = f"PAY_{uuid.uuid4().hex[:16].upper()}"
    return f"{reference}{RETRY_SUFFIX}" if is_retry else reference


def _wallet_tag(wallet_id: uuid.UUID) -> str:
    return wallet_id.hex[:8].upper()


def wallet_payment_reference(wallet_id: uuid.UUID) -> str:
    # Random tail keeps two payments in the same millisecond apart
    return f"PAY_{_wallet_tag(wallet_id)}_{epoch_millis()}{secrets.token_hex(2).upper()}"


def deposit_reference(wallet_id: uuid.UUID) -> str:
    return f"WD_{_wallet_tag(wallet_id)}_{epoch_millis()}{secrets.token_hex(2).upper()}"


def bank_transfer_reference(invoice_payment_id: uuid.UUID) -> str:
    return f"BT_{invoice_payment_id.hex[:16].upper()}"
