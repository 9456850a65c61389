"""
Authentication application.

Holds the local User record that binds an identity-provider subject id to
an email address. Sign-in itself happens at the identity provider.

Usage:
    from authentication.models import User
"""
