"""
Concurrent wallet debits against a real database.

SQLite serialises writers and ignores SELECT ... FOR UPDATE, so these
tests only run on PostgreSQL.
"""

import threading
from decimal import Decimal

import pytest
from django.db import connection

from payments.tests.factories import UserFactory
from payments.wallet.exceptions import InsufficientBalance
from payments.wallet.models import Wallet, WalletTransaction
from payments.wallet.services import WalletService

pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(connection.vendor != "postgresql", reason="Row locks need PostgreSQL"),
]


def run_concurrently(*calls):
    """Start every call at once; return (results, errors)."""
    barrier = threading.Barrier(len(calls))
    results, errors = [], []

    def worker(call):
        try:
            barrier.wait()
            results.append(call())
        except Exception as e:
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results, errors


def test_two_debits_cannot_overdraw():
    """Should let exactly one of two 80 debits through a balance of 100."""
    user = UserFactory()
    Wallet.objects.filter(user=user).update(balance=Decimal("100.00"))
    WalletService.get_system_wallet()

    results, errors = run_concurrently(
        lambda: WalletService.debit(user, None, Decimal("80.00")),
        lambda: WalletService.debit(user, None, Decimal("80.00")),
    )

    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], InsufficientBalance)
    assert Wallet.objects.get(user=user).balance == Decimal("20.00")
    assert WalletTransaction.objects.filter(wallet__user=user).count() == 1


def test_opposite_payments_do_not_deadlock():
    """Should complete A->B and B->A together."""
    alice, bola = UserFactory(), UserFactory()
    Wallet.objects.filter(user__in=[alice, bola]).update(balance=Decimal("500.00"))

    results, errors = run_concurrently(
        lambda: WalletService.debit(alice, bola, Decimal("200.00")),
        lambda: WalletService.debit(bola, alice, Decimal("50.00")),
    )

    assert errors == []
    assert len(results) == 2
    assert Wallet.objects.get(user=alice).balance == Decimal("350.00")
    assert Wallet.objects.get(user=bola).balance == Decimal("650.00")
