"""
WSGI entry point for chat_backend.

Only the REST API is served this way; realtime clients need the ASGI
application in ``config.asgi``, which mounts Socket.IO in front of Django.
"""

import os

from django.core.wsgi import get_wsgi_application

# Fall back on BUILD_ENV when no settings module was given explicitly.
if "DJANGO_SETTINGS_MODULE" not in os.environ:
    is_local = os.environ.get("BUILD_ENV", "production").lower() == "local"
    os.environ["DJANGO_SETTINGS_MODULE"] = (
        "config.settings.local" if is_local else "config.settings.production"
    )

application = get_wsgi_application()
