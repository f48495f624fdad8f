"""
ASGI config for the medwaste project.

Plain HTTP only; the API is request/response and has no socket endpoints.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "medwaste.settings")

application = get_asgi_application()
