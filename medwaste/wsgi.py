"""WSGI entry point; serves ``application`` to gunicorn or uwsgi."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "medwaste.settings")

application = get_wsgi_application()
