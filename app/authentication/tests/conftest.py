"""
Test configuration and fixtures for authentication tests.
"""

import pytest

from authentication.tests.factories import StaffUserFactory, UserFactory


@pytest.fixture
def user(db):
    """Create a regular customer."""
    return UserFactory()


@pytest.fixture
def staff_user(db):
    """Create an operator account."""
    return StaffUserFactory()
