"""
Toolkit - customer-facing utilities & services.

This app provides:
- EmailService: Centralized email sending with templates
- Helper functions: PII masking, naira formatting

Key components:
    - services/email.py: EmailService class
    - helpers.py: mask_email, format_naira

Usage:
    from toolkit.services.email import EmailService
    from toolkit.helpers import format_naira, mask_email

Note:
    This app has no models.
"""
