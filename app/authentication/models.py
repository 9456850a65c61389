"""
Authentication models.

The storefront delegates sign-in to an external identity provider. This app
keeps only the local identity record every order, invoice and wallet hangs
off:
- User: email-identified account linked to the provider's subject id

Related files:
    - managers.py: Custom user manager for email-based creation
    - payments/signals.py: Provisions the user's wallet on creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        external_id: Subject id issued by the identity provider
        email: Primary identifier, unique, used for login and receipts
        display_name: Name printed on invoices and emails
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin and operator actions
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email="ada@example.com",
            external_id="user_2abc",
            display_name="Ada Obi",
        )
    """

    external_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Subject id issued by the external identity provider",
    )

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    display_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Customer name shown on invoices and emails",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site and verify transfers.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"

    def __str__(self) -> str:
        return self.email

    def get_full_name(self) -> str:
        """Name for invoices; falls back to the email address."""
        return self.display_name or self.email

    def get_short_name(self) -> str:
        return self.get_full_name()
