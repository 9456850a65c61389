"""
Shared transition guard for every payment state machine.

Each model declares its allowed moves with django-fsm @transition methods.
Services never call those methods directly; they go through
apply_transitions(), which checks every requested transition before
applying any of them. A multi-field move such as "order paid" (status and
payment_status together) is therefore either applied whole or rejected
with InvalidStateTransitionError before the instance is touched.

Usage:
    from payments.state_machines import apply_transitions

    apply_transitions(order, "confirm", "mark_payment_paid")
    order.save()
"""

from __future__ import annotations

import logging

from django.db import models
from django_fsm import can_proceed

from payments.exceptions import InvalidStateTransitionError

logger = logging.getLogger(__name__)


def apply_transitions(instance: models.Model, *transition_names: str) -> None:
    """
    Validate and apply one or more named transitions on an instance.

    Args:
        instance: Model instance declaring the transitions
        *transition_names: Names of @transition methods, applied in order

    Raises:
        InvalidStateTransitionError: If any transition is not allowed from
            the current state (or its conditions fail). No transition is
            applied in that case.

    Note:
        Does not save. Callers save inside their own atomic block.
    """
    methods = []
    for name in transition_names:
        method = getattr(instance, name)
        if not can_proceed(method):
            field = method._django_fsm.field
            current_state = getattr(instance, field.name)
            logger.warning(
                "Rejected state transition",
                extra={
                    "model": instance.__class__.__name__,
                    "pk": str(instance.pk),
                    "transition": name,
                    "current_state": current_state,
                },
            )
            raise InvalidStateTransitionError(
                f"Cannot {name} {instance.__class__.__name__} "
                f"from '{current_state}' {field.name}",
                details={
                    "model": instance.__class__.__name__,
                    "field": field.name,
                    "current_state": current_state,
                    "transition": name,
                },
            )
        methods.append(method)

    for method in methods:
        method()


def can_apply(instance: models.Model, transition_name: str) -> bool:
    """Return whether a single named transition is currently allowed."""
    return can_proceed(getattr(instance, transition_name))
