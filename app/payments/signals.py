"""
Django signals for the payments app.

Provides handlers for:
- Wallet provisioning when a user is created

Usage:
    Signals are connected from PaymentsConfig.ready().
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db.models.signals import post_save

logger = logging.getLogger(__name__)


def connect_signals():
    """
    Connect all signal handlers.

    Called from PaymentsConfig.ready() so the user model is loaded.
    """
    post_save.connect(
        provision_wallet_on_user_create,
        sender=settings.AUTH_USER_MODEL,
        dispatch_uid="payments_provision_wallet",
    )

    logger.debug("Payments signals connected")


def provision_wallet_on_user_create(
    sender,
    instance,
    created: bool,
    raw: bool = False,
    **kwargs,
) -> None:
    """
    Give every new user an empty, active wallet.

    Skipped for fixture loading (raw saves). Runs inside the transaction
    that created the user, so a failure here fails the signup.
    """
    if not created or raw:
        return

    from payments.wallet.services import WalletService

    wallet = WalletService.create_wallet(instance)
    logger.debug(
        "Wallet provisioned for new user",
        extra={"user_id": str(instance.pk), "wallet_id": str(wallet.id)},
    )
