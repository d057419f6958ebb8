"""ASGI config for the club reservations project.

Exposes the ASGI application for async servers. The reservation engine
itself runs synchronously; see Django's ASGI documentation for deployment.
"""

import os
from django.core.asgi import get_asgi_application  # type: ignore

# Use the development settings by default. Production servers should set
# DJANGO_SETTINGS_MODULE accordingly.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_asgi_application()
