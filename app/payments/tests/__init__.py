"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Order, Invoice, Transaction, WebhookEvent model tests
- test_state_transitions.py: FSM transitions and the shared guard
- test_pricing.py, test_reconciler.py: cart pricing and resume-or-create
- test_strategies.py, test_orchestrator.py: checkout per payment method
- test_verification.py, test_invoice_payments.py: settlement paths
- test_concurrency.py: row-lock behaviour (PostgreSQL only)
- test_views.py: API endpoint tests

Usage:
    pytest payments/tests/
    pytest payments/tests/test_reconciler.py
"""
