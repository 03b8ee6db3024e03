"""WSGI config for the getiickets project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "getiickets.settings")

application = get_wsgi_application()
