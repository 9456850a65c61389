"""
WSGI config for the storefront payments backend.

Exposes the WSGI callable as a module-level variable named `application`
for Gunicorn and other WSGI servers.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
