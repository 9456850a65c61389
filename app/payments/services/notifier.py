"""
Customer notifications for payment outcomes.

Emails are queued with transaction.on_commit, so they go out only after
the payment transition that triggered them has committed. A failing email
can never roll a payment back.

Usage:
    from payments.services.notifier import PaymentNotifier

    with transaction.atomic():
        ...
        PaymentNotifier.order_confirmed(order)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import transaction

from payments import tasks

if TYPE_CHECKING:
    from payments.models import Order

logger = logging.getLogger(__name__)


class PaymentNotifier:
    """Schedules notification tasks once the surrounding transaction commits."""

    @staticmethod
    def order_confirmed(order: Order) -> None:
        order_id = str(order.id)
        transaction.on_commit(lambda: _enqueue(tasks.send_order_confirmation_email, order_id))

    @staticmethod
    def refund_issued(order: Order, amount: Decimal) -> None:
        order_id = str(order.id)
        transaction.on_commit(
            lambda: _enqueue(tasks.send_refund_notification_email, order_id, str(amount))
        )


def _enqueue(task, *args) -> None:
    try:
        task.delay(*args)
    except Exception as e:
        logger.error(
            f"Failed to queue {task.name}: {e}",
            extra={"task_args": args},
            exc_info=True,
        )
