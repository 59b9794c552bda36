"""
ASGI entry point for chat_backend.

``application`` answers Socket.IO traffic on ``settings.SOCKETIO_PATH`` and
passes every other request to Django.
"""

import os

from django.core.asgi import get_asgi_application

# Fall back on BUILD_ENV when no settings module was given explicitly.
if "DJANGO_SETTINGS_MODULE" not in os.environ:
    is_local = os.environ.get("BUILD_ENV", "production").lower() == "local"
    os.environ["DJANGO_SETTINGS_MODULE"] = (
        "config.settings.local" if is_local else "config.settings.production"
    )

django_application = get_asgi_application()

from django.conf import settings  # noqa: E402
from socketio import ASGIApp  # noqa: E402

from chat_backend.realtime.socketio import sio  # noqa: E402

# Socket.IO sits in front of Django: it answers both Engine.IO long-polling and
# WebSocket upgrades on its own path and hands everything else to Django.
application = ASGIApp(
    sio,
    other_asgi_app=django_application,
    socketio_path=settings.SOCKETIO_PATH,
)
