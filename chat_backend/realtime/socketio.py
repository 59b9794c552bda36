"""Global Socket.IO server for the chat frontend.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: settings.SOCKETIO_PATH (default `/socket.io/`)
- Auth: `auth.token` (JWT access token), `query.token` as fallback

Connection handlers are bound by `RealtimeGateway.register()` when the realtime
app is ready. Sync Django code (views, signals) reaches the gateway through the
helpers below.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

import socketio
from asgiref.sync import async_to_sync
from django.apps import apps
from django.conf import settings

if TYPE_CHECKING:  # import for type checking only
    from chat_backend.realtime.gateway import RealtimeGateway

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.SOCKETIO_CORS_ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)


def get_gateway() -> RealtimeGateway:
    return apps.get_app_config("realtime").gateway


def is_user_online(user_id: int) -> bool:
    return get_gateway().presence.is_online(int(user_id))


def emit_event_to_chat(chat_id: int, event: str, payload: dict[str, Any]) -> None:
    """Emit an event to a chat room from sync Django code."""

    logger.debug("Publishing %s to chat %s", event, chat_id)
    async_to_sync(get_gateway().publish_to_chat)(chat_id, event, payload)
