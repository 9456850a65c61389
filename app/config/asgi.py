"""
ASGI config for the storefront payments backend.

Exposes the ASGI callable as a module-level variable named `application`
for Uvicorn. Only plain HTTP is served; there are no WebSocket routes.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
