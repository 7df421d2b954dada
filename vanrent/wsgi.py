"""WSGI config for vanrent project."""

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "vanrent.settings")

application = get_wsgi_application()
